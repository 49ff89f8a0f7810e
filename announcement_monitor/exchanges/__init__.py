from .base import ExchangeMonitor, NormalizedBatch, PageRequest, RawPayload

from .binance import BinanceMonitor
from .okx import OkxMonitor
from .bybit import BybitMonitor
from .bitmex import BitmexMonitor
from .gateio import GateioMonitor
from .kraken import KrakenMonitor
from .coinbase import CoinbaseMonitor
from .upbit import UpbitMonitor
from .bitget import BitgetMonitor
from .htx import HtxMonitor
from .mexc import MexcMonitor
from .kucoin import KuCoinMonitor

from typing import Dict, Type

from announcement_monitor.core.http_client import HttpClient
from announcement_monitor.core.models import Exchange, MonitorConfig
from . import (
    BinanceMonitor, OkxMonitor, BybitMonitor, BitmexMonitor, GateioMonitor, KrakenMonitor, CoinbaseMonitor,
    UpbitMonitor, BitgetMonitor, HtxMonitor, MexcMonitor, KuCoinMonitor, ExchangeMonitor,
)


class ExchangeFactory:
    """Factory for creating exchange monitors"""

    _registry: Dict[Exchange, Type[ExchangeMonitor]] = {
        Exchange.BINANCE: BinanceMonitor,
        Exchange.OKX: OkxMonitor,
        Exchange.BYBIT: BybitMonitor,
        Exchange.BITMEX: BitmexMonitor,
        Exchange.GATEIO: GateioMonitor,
        Exchange.KRAKEN: KrakenMonitor,
        Exchange.COINBASE: CoinbaseMonitor,
        Exchange.UPBIT: UpbitMonitor,
        Exchange.BITGET: BitgetMonitor,
        Exchange.HTX: HtxMonitor,
        Exchange.MEXC: MexcMonitor,
        Exchange.KUCOIN: KuCoinMonitor,
    }

    @classmethod
    def create(cls, config: MonitorConfig, http_client: HttpClient) -> ExchangeMonitor:
        """Create monitor for exchange"""
        monitor_class = cls._registry.get(config.exchange_id)
        if not monitor_class:
            raise ValueError(f"Unknown exchange: {config.exchange_id}")

        return monitor_class(config, http_client)

    @classmethod
    def register(cls, exchange: Exchange, monitor_class: Type[ExchangeMonitor]):
        """Register new exchange monitor"""
        cls._registry[exchange] = monitor_class

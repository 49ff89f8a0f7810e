import re
from typing import FrozenSet, List


class TickerParser:
    """Token symbol extraction from announcement text"""

    # Quote assets of trading pairs, stripped from "ABCUSDT"-style pairs
    SECOND_PAIR_TOKENS = ['USDT', 'USDC', 'FDUSD', 'TUSD', 'BUSD', 'USD1']

    BLACKLIST = {
        # Quote / fiat
        'USDT', 'USDC', 'FDUSD', 'TUSD', 'BUSD', 'USD1', 'USD', 'EUR', 'KRW', 'TRY', 'GBP', 'JPY',
        # Common terms
        'UTC', 'API', 'APR', 'APY', 'FAQ', 'KYC', 'AMA', 'NFT', 'AI', 'TBA', 'TBD', 'VIP', 'ETF',
        'CEO', 'ID', 'IEO', 'IDO', 'ICO', 'OTC', 'P2P', 'DEX', 'CEX', 'EVM', 'RWA', 'MEME', 'ST',
        'UPDATE', 'NEW', 'SPOT', 'MARGIN', 'FUTURES', 'PERP', 'PERPETUAL', 'CONTRACT',
        'TRADING', 'LISTING', 'AND', 'THE', 'FOR', 'ON', 'OF', 'TO', 'IN', 'WITH', 'PAIR', 'PAIRS',
        'GMT', 'AM', 'PM', 'HODLER', 'LAUNCHPOOL', 'LAUNCHPAD', 'ALPHA', 'SEED', 'TAG',
        # Exchanges
        'MEXC', 'BINGX', 'BITHUMB', 'UPBIT', 'GATE', 'BITGET', 'HTX', 'BINANCE', 'KUCOIN', 'OKX',
        'BYBIT', 'KRAKEN', 'BITSTAMP', 'BITFINEX', 'COINBASE', 'LBANK', 'POLONIEX', 'BITMEX', 'HUOBI',
    }

    MIN_LENGTH = 2
    MAX_LENGTH = 10

    # "Name (TICKER)" and "$TICKER"
    MARKED_PATTERNS = [
        r'\(\s*([A-Z0-9]{2,10})\s*\)',
        r'(?<![A-Za-z0-9])\$([A-Z0-9]{2,10})\b',
    ]
    # Bare all-caps words, "ABC/USDT" and "ABCUSDT" included
    BARE_PATTERN = r'(?<![A-Za-z0-9$])([A-Z0-9]{2,16})(?![A-Za-z0-9])'

    @classmethod
    def extract_marked(cls, text: str) -> List[str]:
        """Symbols explicitly marked as tickers, in order of appearance"""
        found = []
        for pattern in cls.MARKED_PATTERNS:
            for match in re.finditer(pattern, text or ""):
                found.append((match.start(), match.group(1)))
        return [symbol for _, symbol in sorted(found) if cls.is_symbol(symbol)]

    @classmethod
    def extract_bare(cls, text: str) -> List[str]:
        symbols = []
        for match in re.finditer(cls.BARE_PATTERN, text or ""):
            candidate = cls._strip_pair_suffix(match.group(1))
            if cls.is_symbol(candidate):
                symbols.append(candidate)
        return symbols

    @classmethod
    def extract_tickers(cls, text: str) -> FrozenSet[str]:
        """
        Extract token symbols from a text fragment.

        Marked symbols ("(ABC)", "$ABC") take precedence: when any are present the bare
        uppercase words are ignored, since those are usually project names or noise.
        """
        marked = cls.extract_marked(text)
        if marked:
            return frozenset(marked)
        return frozenset(cls.extract_bare(text))

    @classmethod
    def is_symbol(cls, token: str) -> bool:
        if not token or not cls.MIN_LENGTH <= len(token) <= cls.MAX_LENGTH:
            return False
        if token != token.upper() or not re.search(r'[A-Z]', token):
            return False
        return token not in cls.BLACKLIST

    @classmethod
    def _strip_pair_suffix(cls, token: str) -> str:
        for suffix in cls.SECOND_PAIR_TOKENS:
            if token.endswith(suffix) and len(token) > len(suffix):
                return token[:-len(suffix)]
        return token

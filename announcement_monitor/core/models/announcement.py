import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple


class Exchange(str, Enum):
    """Exchanges with an announcement monitor"""
    BINANCE = "binance"
    OKX = "okx"
    BYBIT = "bybit"
    BITMEX = "bitmex"
    GATEIO = "gateio"
    KRAKEN = "kraken"
    COINBASE = "coinbase"
    UPBIT = "upbit"
    BITGET = "bitget"
    HTX = "htx"
    MEXC = "mexc"
    KUCOIN = "kucoin"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> "Exchange":
        """Resolve an exchange id or display name, case-insensitive"""
        key = (value or "").strip().lower()
        for member in cls:
            if key in (member.value, member.display_name.lower()):
                return member
        raise ValueError(f"Unknown exchange: {value}")


_DISPLAY_NAMES = {
    Exchange.BINANCE: "Binance",
    Exchange.OKX: "OKX",
    Exchange.BYBIT: "Bybit",
    Exchange.BITMEX: "BitMEX",
    Exchange.GATEIO: "Gate.io",
    Exchange.KRAKEN: "Kraken",
    Exchange.COINBASE: "Coinbase",
    Exchange.UPBIT: "Upbit",
    Exchange.BITGET: "Bitget",
    Exchange.HTX: "HTX",
    Exchange.MEXC: "MEXC",
    Exchange.KUCOIN: "KuCoin",
}


def normalize_title(title: str) -> str:
    return re.sub(r"\s+", " ", title or "").strip().lower()


def published_bucket(published_at: datetime, approximate: bool) -> str:
    """Hour bucket of the publication time; empty when the time is only the retrieval time"""
    if approximate:
        return ""
    return published_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H")


def compute_fingerprint(source: Exchange, source_id: Optional[str], title: str,
                        published_at: datetime, approximate: bool) -> str:
    identity = source_id if source_id else normalize_title(title)
    raw = "\x1f".join((source.value, identity, published_bucket(published_at, approximate)))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True, eq=False)
class Announcement:
    source: Exchange
    id: Optional[str]
    title: str
    body: str
    published_at: datetime
    url: Optional[str] = None
    published_at_approximate: bool = False
    categories: Tuple[str, ...] = ()
    fingerprint: str = field(init=False, repr=False)

    def __post_init__(self):
        if self.published_at.tzinfo is None:
            object.__setattr__(self, "published_at", self.published_at.replace(tzinfo=timezone.utc))
        object.__setattr__(
            self,
            "fingerprint",
            compute_fingerprint(self.source, self.id, self.title, self.published_at, self.published_at_approximate),
        )

    def __eq__(self, other):
        if not isinstance(other, Announcement):
            return NotImplemented
        return self.fingerprint == other.fingerprint

    def __hash__(self):
        return hash(self.fingerprint)

    @property
    def exchange(self) -> str:
        return self.source.display_name

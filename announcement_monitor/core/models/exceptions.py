from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ParseStage(str, Enum):
    RAW_DECODE = "raw-decode"
    ENTRY_NORMALIZE = "entry-normalize"


class MonitorError(Exception):
    """Base class for every failure an exchange cycle can end with"""

    kind = "error"

    def __init__(self, message: str, exchange: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.exchange = exchange


class NetworkError(MonitorError):
    """Connection failure or timeout talking to an exchange"""

    def __init__(self, message: str, exchange: Optional[str] = None, timeout: bool = False):
        super().__init__(message, exchange)
        self.timeout = timeout

    @property
    def kind(self) -> str:
        return "timeout" if self.timeout else "network"


class HttpStatusError(MonitorError):
    """Non-2xx response"""

    kind = "http_status"
    RETRYABLE_CODES = (403, 429)

    def __init__(self, code: int, body: str = "", exchange: Optional[str] = None):
        super().__init__(f"HTTP {code}: {body}", exchange)
        self.code = code
        self.body = body

    @property
    def retryable(self) -> bool:
        return self.code in self.RETRYABLE_CODES


class ParseError(MonitorError):
    kind = "parse"

    def __init__(self, message: str, stage: ParseStage = ParseStage.RAW_DECODE, exchange: Optional[str] = None):
        super().__init__(f"[{stage.value}] {message}", exchange)
        self.stage = stage


class ConfigError(Exception):
    """Invalid monitor configuration"""


@dataclass
class PartialParseWarning:
    """Some entries of a batch were skipped, the rest were kept"""
    exchange: str
    skipped: int
    total: int
    reasons: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.exchange}: skipped {self.skipped}/{self.total} entries ({'; '.join(self.reasons[:3])})"

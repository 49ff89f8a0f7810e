from .announcement import Announcement, Exchange, compute_fingerprint
from .listing import Confidence, ListingEvent
from .monitor_config import MonitorConfig, DEFAULT_POLL_INTERVAL, DEFAULT_FETCH_TIMEOUT
from .exceptions import (
    MonitorError,
    NetworkError,
    HttpStatusError,
    ParseError,
    ParseStage,
    PartialParseWarning,
    ConfigError,
)

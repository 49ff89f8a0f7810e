from dataclasses import dataclass

from announcement_monitor.core.models.announcement import Exchange

DEFAULT_POLL_INTERVAL = 300.0
DEFAULT_FETCH_TIMEOUT = 30.0


@dataclass(frozen=True)
class MonitorConfig:
    """Resolved per-exchange settings, read-only once the orchestrator starts"""
    exchange_id: Exchange
    poll_interval: float = DEFAULT_POLL_INTERVAL
    enabled: bool = True
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    max_pages: int = 1
    detail_limit: int = 5

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError(f"{self.exchange_id.value}: poll_interval must be positive")
        if self.fetch_timeout <= 0:
            raise ValueError(f"{self.exchange_id.value}: fetch_timeout must be positive")
        if self.max_pages < 1:
            raise ValueError(f"{self.exchange_id.value}: max_pages must be at least 1")
        if self.detail_limit < 0:
            raise ValueError(f"{self.exchange_id.value}: detail_limit must not be negative")

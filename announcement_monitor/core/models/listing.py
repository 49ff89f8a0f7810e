from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional

from announcement_monitor.core.models.announcement import Announcement


class Confidence(str, Enum):
    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class ListingEvent:
    """Classifier verdict for one announcement"""
    announcement: Announcement
    is_new_listing: bool
    symbols: FrozenSet[str] = frozenset()
    confidence: Optional[Confidence] = None
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    @property
    def exchange(self) -> str:
        return self.announcement.exchange

    @property
    def sorted_symbols(self):
        return sorted(self.symbols)

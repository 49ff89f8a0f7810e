from abc import ABC, abstractmethod

from announcement_monitor.core.models import ListingEvent


class EventSink(ABC):
    """Consumer of ListingEvents, fed by the orchestrator dispatcher in arrival order"""

    name = "sink"

    @abstractmethod
    async def send(self, event: ListingEvent) -> None:
        pass

    async def close(self) -> None:
        pass

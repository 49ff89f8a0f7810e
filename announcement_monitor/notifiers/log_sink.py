from loguru import logger

from announcement_monitor.core.models import ListingEvent
from announcement_monitor.notifiers.base import EventSink
from announcement_monitor.notifiers.formatter import MessageFormatter


class LogSink(EventSink):
    """Listings at INFO, everything else at DEBUG"""

    name = "log"

    async def send(self, event: ListingEvent) -> None:
        log = logger.bind(exchange=event.exchange, component="events")
        message = MessageFormatter.format_log(event)
        if event.is_new_listing:
            log.info(f"🚀 {message}")
        else:
            log.debug(message)

from html import escape

from announcement_monitor.core.models import Confidence, ListingEvent


class MessageFormatter:
    """Format listing events for different notification channels"""

    MAX_SYMBOLS = 3

    @classmethod
    def symbols_text(cls, event: ListingEvent) -> str:
        symbols = event.sorted_symbols
        text = ", ".join(f"${s}" for s in symbols[:cls.MAX_SYMBOLS])
        if len(symbols) > cls.MAX_SYMBOLS:
            text += f" +{len(symbols) - cls.MAX_SYMBOLS} more"
        return text

    @staticmethod
    def action(event: ListingEvent) -> str:
        if not event.is_new_listing:
            return "Announcement"
        return "Listing" if event.confidence == Confidence.HIGH else "Possible listing"

    @classmethod
    def format_log(cls, event: ListingEvent) -> str:
        msg = f"[{cls.action(event)}]"
        if symbols := cls.symbols_text(event):
            msg += f" {symbols}"
        msg += f": {event.announcement.title}"
        if event.announcement.url:
            msg += f" | {event.announcement.url}"
        return msg

    @classmethod
    def format_telegram(cls, event: ListingEvent) -> str:
        """Format listing event for Telegram"""
        ann = event.announcement
        msg = f"<b>{escape(ann.exchange)}</b> [{cls.action(event)}]"

        if symbols := cls.symbols_text(event):
            msg += f" {escape(symbols)}"

        msg += f": {escape(ann.title)}"

        if ann.url:
            return f"<a href='{escape(ann.url, quote=True)}'>{msg}</a>"
        return msg

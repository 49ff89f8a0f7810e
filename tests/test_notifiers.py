import asyncio
from datetime import datetime, timezone

from announcement_monitor.core.models import Announcement, Confidence, Exchange, ListingEvent
from announcement_monitor.notifiers.formatter import MessageFormatter
from announcement_monitor.notifiers.telegram import TelegramNotifier


def _event(is_listing=True, symbols=("ABC",), confidence=Confidence.HIGH, url="https://www.gate.io/a/1"):
    ann = Announcement(
        source=Exchange.GATEIO,
        id="1",
        title="Gate.io Will List ABC <Token> (ABC)",
        body="",
        published_at=datetime(2024, 1, 5, 10, tzinfo=timezone.utc),
        url=url,
    )
    return ListingEvent(ann, is_listing, frozenset(symbols), confidence if is_listing else None)


def test_telegram_message_is_html_escaped_link():
    msg = MessageFormatter.format_telegram(_event())
    assert msg.startswith("<a href='https://www.gate.io/a/1'><b>Gate.io</b> [Listing] $ABC: ")
    assert "&lt;Token&gt;" in msg


def test_symbol_list_is_truncated():
    event = _event(symbols=("AAA", "BBB", "CCC", "DDD", "EEE"))
    assert MessageFormatter.symbols_text(event) == "$AAA, $BBB, $CCC +2 more"


def test_log_format_for_weak_and_non_listings():
    assert MessageFormatter.format_log(_event(symbols=(), confidence=Confidence.LOW, url=None)).startswith(
        "[Possible listing]: ")
    assert MessageFormatter.format_log(_event(is_listing=False, symbols=())).startswith("[Announcement]: ")


def test_telegram_skips_non_listings_and_missing_credentials(monkeypatch):
    sent = []
    notifier = TelegramNotifier("token", "-100")

    async def fake_send_message(exchange, text):
        sent.append((exchange, text))
        return True

    monkeypatch.setattr(notifier, "send_message", fake_send_message)

    async def _run():
        await notifier.send(_event(is_listing=False, symbols=()))
        await notifier.send(_event())
        return await TelegramNotifier("", "").send_message("Gate.io", "hi")

    delivered = asyncio.run(_run())
    assert [exchange for exchange, _ in sent] == ["Gate.io"]
    assert delivered is False

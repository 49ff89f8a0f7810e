import asyncio
from typing import Optional, Union

import aiohttp
from loguru import logger

from announcement_monitor.core.models import ListingEvent
from announcement_monitor.notifiers.base import EventSink
from announcement_monitor.notifiers.formatter import MessageFormatter


class TelegramNotifier(EventSink):
    """Telegram alerts for new listings, with a persistent session"""

    name = "telegram"
    API_URL = "https://api.telegram.org"

    def __init__(self, bot_token: str, chat_id: Union[int, str], thread_id: Optional[int] = None,
                 listings_only: bool = True):
        self._token = bot_token
        self._chat_id = chat_id
        self._thread_id = thread_id
        self._listings_only = listings_only
        self._log = logger.bind(component="telegram")
        self._session: Optional[aiohttp.ClientSession] = None

    def init(self):
        """Initializes the aiohttp session."""
        if not self._session or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=20))

    async def close(self):
        """Closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def send(self, event: ListingEvent) -> None:
        if self._listings_only and not event.is_new_listing:
            return
        await self.send_message(event.exchange, MessageFormatter.format_telegram(event))

    async def send_message(self, exchange: str, text: str) -> bool:
        """Send one HTML message; delivery failures are logged, not raised"""
        if not self._token or not self._chat_id:
            self._log.warning(f"Missing token or chat id, dropping {exchange} message")
            return False

        self.init()

        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "disable_web_page_preview": True,
            "parse_mode": "HTML",
        }
        if self._thread_id:
            payload["message_thread_id"] = self._thread_id

        url = f"{self.API_URL}/bot{self._token}/sendMessage"

        data = {}
        try:
            async with self._session.post(url, json=payload) as resp:
                data = await resp.json(content_type=None)
                success = resp.status == 200 and bool(data.get("ok"))
                if success:
                    self._log.debug(f"{exchange} message sent")
                else:
                    self._log.warning(f"{exchange} message failed | {resp.status} {data}")
                return success
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self._log.error(f"{exchange} send error: {e!r} | {data}")
            return False

from datetime import datetime
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor


class HtxMonitor(ExchangeMonitor):
    """
    HTX notice list.

    The endpoint sometimes answers with the rendered support page instead of JSON; the
    "article-item" cards are parsed then. Those carry no id, no body and only a date.
    """

    exchange = Exchange.HTX
    api_url = "https://www.htx.com/api/v1/notice/get_notice_list"
    detail_url = "https://www.htx.com/api/v1/notice/get_notice_by_id"

    def decode_page(self, text: str) -> Any:
        return super().decode_page(text) if text.lstrip().startswith(("{", "[")) else text

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if isinstance(raw_data, str):
            return self._extract_html_items(raw_data)

        if not isinstance(raw_data, dict) or raw_data.get("success") is False:
            raise self.envelope_error(raw_data)
        items = (raw_data.get("data") or {}).get("list")
        if not isinstance(items, list):
            raise self.envelope_error(raw_data, "no data.list")
        return items

    def _extract_html_items(self, page: str) -> List[Dict]:
        soup = BeautifulSoup(page, "html.parser")
        cards = soup.select("div.article-item")
        if not cards:
            raise self.envelope_error(page, "neither JSON nor article-item cards")

        items = []
        for card in cards:
            title = card.select_one(".article-title")
            date = card.select_one(".article-date")
            items.append({
                "title": title.get_text(" ", strip=True) if title else "",
                "date": date.get_text(strip=True) if date else None,
            })
        return items

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id")
        return str(source_id) if source_id else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("content", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("created_at") or item.get("date"), formats=("%Y-%m-%d",))

    def build_url(self, item: Dict) -> Optional[str]:
        if source_id := self.extract_source_id(item):
            return f"{self._base_url}/support/en-us/detail/{source_id}"
        return None

    def detail_key(self, item: Dict) -> Optional[str]:
        return self.extract_source_id(item)

    async def fetch_detail(self, key: str) -> str:
        detail = await self.http.get(self.detail_url, params={"id": key})
        if not isinstance(detail, dict) or not isinstance(detail.get("data"), dict):
            raise self.envelope_error(detail)
        return detail["data"].get("content", "")

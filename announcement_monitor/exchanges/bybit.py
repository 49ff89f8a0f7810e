from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class BybitMonitor(ExchangeMonitor):
    """Bybit announcements filtered to the new_crypto type"""

    exchange = Exchange.BYBIT
    api_url = "https://api2.bybit.com/announcement/api/v1/announcement/list"
    paginated = True

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "params": {"locale": "en-US", "page": page, "limit": self.page_size, "type": "new_crypto"},
        })

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict):
            raise self.envelope_error(raw_data)
        if raw_data.get("success") is False or raw_data.get("ret_code", raw_data.get("retCode", 0)) != 0:
            raise self.envelope_error(raw_data)
        items = (raw_data.get("result") or {}).get("list")
        if not isinstance(items, list):
            raise self.envelope_error(raw_data, "no result.list")
        return items

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id")
        return str(source_id) if source_id else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("description", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("releaseDate") or item.get("dateTimestamp"))

    def extract_categories(self, item: Dict) -> Iterable[str]:
        kind = item.get("type")
        if isinstance(kind, dict):
            return [kind.get("title", ""), kind.get("key", "")]
        return [kind or ""]

    def build_url(self, item: Dict) -> Optional[str]:
        return item.get("url") or None

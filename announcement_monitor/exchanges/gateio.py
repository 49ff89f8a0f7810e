from datetime import datetime
from typing import Any, Dict, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class GateioMonitor(ExchangeMonitor):
    """Gate.io announcements, listing category"""

    exchange = Exchange.GATEIO
    api_url = "https://www.gate.io/api/v1/announcement/list"
    paginated = True

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "params": {"page": page, "limit": self.page_size, "lang": "en", "category": "listing"},
        })

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict) or raw_data.get("code") not in (0, "0"):
            raise self.envelope_error(raw_data)
        data = raw_data.get("data")
        items = data.get("list") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise self.envelope_error(raw_data, "no data.list")
        return items

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id")
        return str(source_id) if source_id is not None else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("content", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("publishTime"))

    def build_url(self, item: Dict) -> Optional[str]:
        if url := item.get("url"):
            return url if url.startswith("http") else f"{self._base_url}{url}"
        if item.get("id") is not None:
            return f"{self._base_url}/announcements/article/{item['id']}"
        return None

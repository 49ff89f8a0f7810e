from datetime import datetime
from typing import Any, Dict, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor


class BitmexMonitor(ExchangeMonitor):
    exchange = Exchange.BITMEX
    api_url = "https://www.bitmex.com/api/v1/announcement"

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if isinstance(raw_data, dict) and "error" in raw_data:
            raise self.envelope_error(raw_data, str(raw_data["error"]))
        if not isinstance(raw_data, list):
            raise self.envelope_error(raw_data)
        return raw_data

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id")
        return str(source_id) if source_id is not None else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("content", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("date"))

    def build_url(self, item: Dict) -> Optional[str]:
        link = item.get("link")
        if not link:
            return None
        return link if link.startswith("http") else f"{self._base_url}{link}"

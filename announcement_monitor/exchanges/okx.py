import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class OkxMonitor(ExchangeMonitor):
    """OKX support center announcements, ids derived from the article path"""

    exchange = Exchange.OKX
    api_url = "https://www.okx.com/v2/support/home/web/announcement/queryList"

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "params": {"t": str(int(time.time() * 1000)), "language": "en_US"},
        })

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict) or str(raw_data.get("code")) != "0":
            raise self.envelope_error(raw_data)
        data = raw_data.get("data")
        if isinstance(data, dict):
            data = data.get("list", data.get("items"))
        if not isinstance(data, list):
            raise self.envelope_error(raw_data, "no announcement list in data")
        return data

    def extract_source_id(self, item: Dict) -> Optional[str]:
        if path := item.get("sWeburlpath"):
            return "okx" + path.replace("/", "_")
        return None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("sTitle", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("sContent", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("iTime"), formats=("%Y-%m-%d %H:%M:%S",))

    def extract_categories(self, item: Dict) -> Iterable[str]:
        return [item.get("sCategoryName", "")]

    def build_url(self, item: Dict) -> Optional[str]:
        path = item.get("sWeburlpath")
        if not path:
            return None
        return path if path.startswith("http") else f"{self._base_url}{path}"

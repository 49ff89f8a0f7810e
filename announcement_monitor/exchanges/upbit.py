from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class UpbitMonitor(ExchangeMonitor):
    """Upbit notices; the list has no body, it comes from the notice detail"""

    exchange = Exchange.UPBIT
    api_url = "https://api-manager.upbit.com/api/v1/notices"
    paginated = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._site_url = "https://upbit.com"

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "params": {"page": page, "per_page": self.page_size, "thread_name": "general"},
        })

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict) or not raw_data.get("success"):
            raise self.envelope_error(raw_data)
        data = raw_data.get("data")
        if isinstance(data, dict):
            data = data.get("list", data.get("notices"))
        if not isinstance(data, list):
            raise self.envelope_error(raw_data, "no notice list in data")
        return data

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id")
        return str(source_id) if source_id is not None else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("body", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("created_at") or item.get("listed_at"))

    def extract_categories(self, item: Dict) -> Iterable[str]:
        return [item.get("category", "")]

    def build_url(self, item: Dict) -> Optional[str]:
        notice_id = self.extract_source_id(item)
        return f"{self._site_url}/service_center/notice?id={notice_id}" if notice_id else None

    def detail_key(self, item: Dict) -> Optional[str]:
        return self.extract_source_id(item)

    async def fetch_detail(self, key: str) -> str:
        detail = await self.http.get(f"{self.api_url}/{key}")
        data = detail.get("data") if isinstance(detail, dict) else None
        if not isinstance(data, dict):
            raise self.envelope_error(detail)
        return data.get("body") or data.get("content") or ""

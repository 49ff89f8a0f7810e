from datetime import datetime
from typing import Any, Dict, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class MexcMonitor(ExchangeMonitor):
    """MEXC platform notices, new listings catalog"""

    exchange = Exchange.MEXC
    api_url = "https://www.mexc.com/api/platform/notice/list"
    detail_url = "https://www.mexc.com/api/platform/notice/detail"
    paginated = True

    CATALOG_ID = "5"

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "params": {"pageNum": page, "pageSize": self.page_size, "catalogId": self.CATALOG_ID, "lang": "en_US"},
        })

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict) or raw_data.get("code") not in (0, 200, "0", "200"):
            raise self.envelope_error(raw_data)
        items = (raw_data.get("data") or {}).get("dataList")
        if not isinstance(items, list):
            raise self.envelope_error(raw_data, "no data.dataList")
        return items

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id")
        return str(source_id) if source_id else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("content", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("createTime"))

    def build_url(self, item: Dict) -> Optional[str]:
        if url := item.get("url"):
            return url
        if source_id := self.extract_source_id(item):
            return f"{self._base_url}/support/notice/detail?id={source_id}"
        return None

    def detail_key(self, item: Dict) -> Optional[str]:
        return self.extract_source_id(item)

    async def fetch_detail(self, key: str) -> str:
        detail = await self.http.get(self.detail_url, params={"id": key})
        if not isinstance(detail, dict) or not isinstance(detail.get("data"), dict):
            raise self.envelope_error(detail)
        return detail["data"].get("content", "")

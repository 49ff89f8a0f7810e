from datetime import datetime
from typing import Any, Dict, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class BitgetMonitor(ExchangeMonitor):
    exchange = Exchange.BITGET
    api_url = "https://api.bitget.com/api/v2/spot/public/support/notice/list"
    detail_url = "https://api.bitget.com/api/v2/spot/public/support/notice/detail"
    paginated = True

    CATALOG_ID = "6"

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "params": {"language": "en", "catalogId": self.CATALOG_ID, "page": page, "pageSize": self.page_size},
        })

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict) or str(raw_data.get("code")) != "00000":
            raise self.envelope_error(raw_data)
        data = raw_data.get("data")
        items = data.get("list") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise self.envelope_error(raw_data, "no data.list")
        return items

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id") or item.get("annId")
        return str(source_id) if source_id else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title") or item.get("annTitle", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("content") or item.get("annDesc", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("releaseTime") or item.get("cTime"))

    def build_url(self, item: Dict) -> Optional[str]:
        return item.get("url") or item.get("annUrl") or None

    def detail_key(self, item: Dict) -> Optional[str]:
        return self.extract_source_id(item)

    async def fetch_detail(self, key: str) -> str:
        detail = await self.http.get(self.detail_url, params={"id": key})
        if not isinstance(detail, dict) or str(detail.get("code")) != "00000":
            raise self.envelope_error(detail)
        return (detail.get("data") or {}).get("content", "")

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class BinanceMonitor(ExchangeMonitor):
    """Binance "New Cryptocurrency Listing" catalog; article bodies come from the web page"""

    exchange = Exchange.BINANCE
    api_url = "https://www.binance.com/bapi/composite/v1/public/cms/article/catalog/list/query"
    method = "POST"
    paginated = True

    CATALOG_ID = "48"
    CONTENT_SELECTORS = (".css-3iuet5", "article")

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "json": {"catalogId": self.CATALOG_ID, "pageNo": page, "pageSize": self.page_size},
            "headers": {"Content-Type": "application/json", "Origin": self._base_url},
        })

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict) or not raw_data.get("success"):
            raise self.envelope_error(raw_data)

        data = raw_data.get("data")
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            if isinstance(data.get("articles"), list):
                return data["articles"]
            catalogs = data.get("catalogs")
            if isinstance(catalogs, list):
                return [article for catalog in catalogs for article in catalog.get("articles", [])]
        raise self.envelope_error(raw_data, "no article list in data")

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("code") or item.get("id")
        return str(source_id) if source_id else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("body", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("releaseDate"))

    def extract_categories(self, item: Dict) -> Iterable[str]:
        return [item.get("catalogName", "")]

    def build_url(self, item: Dict) -> Optional[str]:
        if url := item.get("url"):
            return url if url.startswith("http") else f"{self._base_url}{url}"
        if code := item.get("code"):
            return f"{self._base_url}/en/support/announcement/{code}"
        return None

    def detail_key(self, item: Dict) -> Optional[str]:
        return self.build_url(item)

    async def fetch_detail(self, key: str) -> str:
        page = await self.http.request("GET", key, headers={"Accept": "text/html"})
        soup = BeautifulSoup(page, "html.parser")
        for selector in self.CONTENT_SELECTORS:
            if node := soup.select_one(selector):
                return node.get_text(" ", strip=True)
        return ""

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class KuCoinMonitor(ExchangeMonitor):
    """KuCoin listing articles, with the page's __INITIAL_STATE__ as fallback when HTML comes back"""

    exchange = Exchange.KUCOIN
    api_url = "https://www.kucoin.com/_api/cms/articles"
    paginated = True

    INITIAL_STATE = re.compile(r'window\.__INITIAL_STATE__\s*=\s*(\{.*?\});', re.DOTALL)

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {
            "params": {"page": page, "pageSize": self.page_size, "category": "listing", "lang": "en_US"},
        })

    def decode_page(self, text: str) -> Any:
        return super().decode_page(text) if text.lstrip().startswith(("{", "[")) else text

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if isinstance(raw_data, str):
            return self._extract_state_items(raw_data)

        if not isinstance(raw_data, dict) or str(raw_data.get("code")) != "200000":
            raise self.envelope_error(raw_data)
        items = (raw_data.get("data") or {}).get("items")
        if not isinstance(items, list):
            raise self.envelope_error(raw_data, "no data.items")
        return items

    def _extract_state_items(self, page: str) -> List[Dict]:
        match = self.INITIAL_STATE.search(page)
        if not match:
            raise self.envelope_error(page, "neither JSON nor __INITIAL_STATE__")
        try:
            state = json.loads(match.group(1))
        except ValueError as e:
            raise self.envelope_error(page, f"__INITIAL_STATE__ is not JSON: {e}") from e

        articles = ((state.get("news") or {}).get("list") or {}).get("data")
        if not isinstance(articles, list):
            raise self.envelope_error(page, "no news.list.data in __INITIAL_STATE__")
        return [dict(article, path=f"/news/{article.get('id')}") if isinstance(article, dict) else article
                for article in articles]

    def extract_source_id(self, item: Dict) -> Optional[str]:
        source_id = item.get("id")
        return str(source_id) if source_id else None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("summary") or item.get("content") or "")

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("publishedStartAt") or item.get("publishDate") or item.get("publish_ts"))

    def build_url(self, item: Dict) -> Optional[str]:
        path = item.get("webPath") or item.get("path")
        if not path:
            return None
        if path.startswith("http"):
            return path
        if path.startswith("/news/"):
            return f"{self._base_url}{path}"
        return f"{self._base_url}/announcement{path}"

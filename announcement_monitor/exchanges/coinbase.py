from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor, PageRequest


class CoinbaseMonitor(ExchangeMonitor):
    """Coinbase blog RSS feed through rss2json; listing posts are tagged by category"""

    exchange = Exchange.COINBASE
    api_url = "https://api.rss2json.com/v1/api.json"
    feed_url = "https://blog.coinbase.com/feed"

    def build_request(self, page: int) -> PageRequest:
        return PageRequest(self.method, self.api_url, {"params": {"rss_url": self.feed_url}})

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, dict) or raw_data.get("status", "ok") != "ok":
            raise self.envelope_error(raw_data)
        items = raw_data.get("items")
        if not isinstance(items, list):
            raise self.envelope_error(raw_data, "no items")
        return items

    def extract_source_id(self, item: Dict) -> Optional[str]:
        return item.get("guid") or None

    def extract_title(self, item: Dict) -> str:
        return self.strip_html(item.get("title", ""))

    def extract_body(self, item: Dict) -> str:
        return self.strip_html(item.get("content") or item.get("contentSnippet") or item.get("description", ""))

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("pubDate"), formats=("%Y-%m-%d %H:%M:%S",))

    def extract_categories(self, item: Dict) -> Iterable[str]:
        return [str(category) for category in item.get("categories") or []]

    def build_url(self, item: Dict) -> Optional[str]:
        return item.get("link") or None

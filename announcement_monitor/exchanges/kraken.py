from datetime import datetime
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from announcement_monitor.core.models import Exchange
from announcement_monitor.exchanges.base import ExchangeMonitor


class KrakenMonitor(ExchangeMonitor):
    """Kraken product-updates blog, scraped from the HTML listing"""

    exchange = Exchange.KRAKEN
    api_url = "https://blog.kraken.com/product-updates"

    DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y")

    def decode_page(self, text: str) -> Any:
        return text

    def extract_items(self, raw_data: Any) -> List[Dict]:
        if not isinstance(raw_data, str):
            raise self.envelope_error(raw_data, "expected an HTML page")

        soup = BeautifulSoup(raw_data, "html.parser")
        posts = soup.select("article.blog-post")
        if not posts:
            raise self.envelope_error(raw_data, "no article.blog-post cards on the page")

        items = []
        for post in posts:
            link = post.select_one("h2.blog-post__title a") or post.select_one("h2 a")
            date = post.select_one("time.blog-post__date") or post.select_one("time")
            excerpt = post.select_one("div.blog-post__excerpt")
            items.append({
                "title": link.get_text(" ", strip=True) if link else "",
                "url": link.get("href") if link else None,
                "date": (date.get("datetime") or date.get_text(strip=True)) if date else None,
                "excerpt": excerpt.get_text(" ", strip=True) if excerpt else "",
            })
        return items

    def extract_source_id(self, item: Dict) -> Optional[str]:
        return self.derive_id(self.build_url(item))

    def extract_title(self, item: Dict) -> str:
        return item["title"]

    def extract_body(self, item: Dict) -> str:
        return item.get("excerpt", "")

    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        return self.parse_datetime(item.get("date"), formats=self.DATE_FORMATS)

    def build_url(self, item: Dict) -> Optional[str]:
        url = item.get("url")
        if not url:
            return None
        return url if url.startswith("http") else f"{self._base_url}{url}"

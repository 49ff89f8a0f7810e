import html
import re
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from loguru import logger

from announcement_monitor.core.http_client import HttpClient
from announcement_monitor.core.models import (
    Announcement,
    Exchange,
    MonitorConfig,
    MonitorError,
    ParseError,
    ParseStage,
    PartialParseWarning,
)
from announcement_monitor.utils.tools import get_json_if_valid

# Epoch values above this are milliseconds
EPOCH_MS_THRESHOLD = 9999999999


@dataclass
class PageRequest:
    method: str
    url: str
    kwargs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RawPayload:
    """Undecoded-into-records result of one fetch: page bodies plus detail bodies by entry key"""
    exchange: Exchange
    pages: List[Any]
    details: Dict[str, str] = field(default_factory=dict)
    retrieved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class NormalizedBatch:
    announcements: List[Announcement]
    warning: Optional[PartialParseWarning] = None
    total: int = 0

    def __len__(self):
        return len(self.announcements)


class ExchangeMonitor(ABC):
    """
    Base class for exchange announcement adapters.

    fetch_raw() is the only method doing network I/O. normalize() turns the payload into
    Announcements through the per-item extract_* hooks; an invalid envelope raises
    ParseError, an invalid entry is skipped and counted.
    """

    exchange: Exchange
    api_url: str = ""
    method: str = "GET"
    page_size: int = 20
    paginated: bool = False

    DETAIL_CACHE_SIZE = 200

    def __init__(self, config: MonitorConfig, http_client: HttpClient):
        self.config = config
        self.http = http_client
        self.name = self.exchange.display_name
        self._log = logger.bind(exchange=self.name)
        self._base_url = HttpClient.get_base_url(self.api_url) if self.api_url else ""
        self._detail_cache: "OrderedDict[str, str]" = OrderedDict()

    # Fetching

    def build_request(self, page: int) -> PageRequest:
        """Request for one page of the announcement list, pages start at 1"""
        return PageRequest(self.method, self.api_url)

    def decode_page(self, text: str) -> Any:
        """JSON endpoints by default; HTML adapters override"""
        data = get_json_if_valid(text)
        if isinstance(data, str):
            raise ParseError(f"expected JSON, got: {data[:120]!r}", exchange=self.name)
        return data

    async def fetch_page(self, page: int) -> Any:
        request = self.build_request(page)
        text = await self.http.request(request.method, request.url, **request.kwargs)
        return self.decode_page(text)

    async def fetch_raw(self) -> RawPayload:
        pages = []
        for page in range(1, self.config.max_pages + 1):
            data = await self.fetch_page(page)
            pages.append(data)
            if not self.has_more(data):
                break

        details = await self.fetch_details(pages)
        return RawPayload(self.exchange, pages, details)

    def has_more(self, data: Any) -> bool:
        if not self.paginated:
            return False
        try:
            return len(self.extract_items(data)) >= self.page_size
        except ParseError:
            return False

    async def fetch_details(self, pages: Sequence[Any]) -> Dict[str, str]:
        """Bodies for entries the list endpoint returns without one, bounded by detail_limit"""
        if self.config.detail_limit <= 0:
            return {}

        keys = []
        for data in pages:
            try:
                items = self.extract_items(data)
            except ParseError:
                # normalize() reports it
                return {}
            for item in items:
                try:
                    key = self.detail_key(item)
                    if key and not self.extract_body(item) and key not in keys:
                        keys.append(key)
                except (AttributeError, KeyError, TypeError, ValueError):
                    continue

        details = {key: self._detail_cache[key] for key in keys if key in self._detail_cache}
        pending = [key for key in keys if key not in details][:self.config.detail_limit]

        for key in pending:
            try:
                body = await self.fetch_detail(key)
            except MonitorError as e:
                self._log.warning(f"Detail {key} failed: {e.kind} {e}")
                continue
            details[key] = body
            self._remember_detail(key, body)

        return details

    def _remember_detail(self, key: str, body: str):
        self._detail_cache[key] = body
        self._detail_cache.move_to_end(key)
        while len(self._detail_cache) > self.DETAIL_CACHE_SIZE:
            self._detail_cache.popitem(last=False)

    def detail_key(self, item: Dict) -> Optional[str]:
        """Key for fetch_detail(), None when the exchange has no detail endpoint"""
        return None

    async def fetch_detail(self, key: str) -> str:
        raise NotImplementedError(f"{self.name} has no detail endpoint")

    async def close(self):
        await self.http.close()

    # Normalization

    def normalize(self, raw: RawPayload) -> NormalizedBatch:
        items = []
        for data in raw.pages:
            items.extend(self.extract_items(data))

        announcements = []
        seen = set()
        reasons = []
        for item in items:
            try:
                ann = self.parse_announcement(item, raw)
            except (AttributeError, KeyError, TypeError, ValueError, ParseError) as e:
                reasons.append(f"{type(e).__name__}: {e}")
                continue
            if ann.fingerprint in seen:
                continue
            seen.add(ann.fingerprint)
            announcements.append(ann)

        announcements.sort(key=lambda a: a.published_at, reverse=True)

        warning = None
        if reasons:
            warning = PartialParseWarning(self.name, len(reasons), len(items), reasons)
        return NormalizedBatch(announcements, warning, len(items))

    def parse_announcement(self, item: Dict[str, Any], raw: RawPayload) -> Announcement:
        if not isinstance(item, dict):
            raise ParseError(f"entry is {type(item).__name__}, not an object", ParseStage.ENTRY_NORMALIZE, self.name)

        title = self.extract_title(item)
        if not title:
            raise ParseError("entry has no title", ParseStage.ENTRY_NORMALIZE, self.name)

        url = self.build_url(item)
        source_id = self.extract_source_id(item) or self.derive_id(url)

        body = self.extract_body(item)
        if not body and (key := self.detail_key(item)):
            body = self.strip_html(raw.details.get(key, ""))

        published_at = self.extract_timestamp(item)

        return Announcement(
            source=self.exchange,
            id=source_id,
            title=title,
            body=body or "",
            published_at=published_at or raw.retrieved_at,
            url=url,
            published_at_approximate=published_at is None,
            categories=tuple(c for c in self.extract_categories(item) if c),
        )

    # Abstract methods for data extraction
    @abstractmethod
    def extract_items(self, raw_data: Any) -> List[Dict]:
        """Entries of one page; raises ParseError when the envelope is invalid"""

    @abstractmethod
    def extract_source_id(self, item: Dict) -> Optional[str]:
        pass

    @abstractmethod
    def extract_title(self, item: Dict) -> str:
        pass

    @abstractmethod
    def extract_body(self, item: Dict) -> str:
        pass

    @abstractmethod
    def extract_timestamp(self, item: Dict) -> Optional[datetime]:
        pass

    @abstractmethod
    def build_url(self, item: Dict) -> Optional[str]:
        pass

    def extract_categories(self, item: Dict) -> Iterable[str]:
        return ()

    # Helpers

    def envelope_error(self, raw_data: Any, detail: str = "") -> ParseError:
        text = detail or str(raw_data)[:200]
        return ParseError(f"unexpected response: {text}", ParseStage.RAW_DECODE, self.name)

    @staticmethod
    def derive_id(url: Optional[str]) -> Optional[str]:
        """Stable id from an article URL path"""
        if not url:
            return None
        parsed = urlparse(url)
        path = parsed.path.strip("/")
        if parsed.query:
            path = f"{path}?{parsed.query}"
        return path or None

    @staticmethod
    def strip_html(text: str) -> str:
        """Remove HTML tags"""
        if not text:
            return ""
        text = re.sub(r'<[^>]+>', ' ', text)
        text = html.unescape(text)
        text = re.sub(r'\s+', ' ', text)
        return text.strip()

    @staticmethod
    def from_epoch(value: Any) -> Optional[datetime]:
        """Epoch seconds or milliseconds, numeric strings included"""
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if number <= 0:
            return None
        if number > EPOCH_MS_THRESHOLD:
            number /= 1000
        try:
            return datetime.fromtimestamp(number, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    @classmethod
    def parse_datetime(cls, value: Any, formats: Sequence[str] = ()) -> Optional[datetime]:
        """
        Parse whatever an exchange uses for dates.

        Tries epoch numbers, ISO 8601 / RFC 3339, the given strptime formats and RFC 2822.
        Naive results are taken as UTC. Returns None when nothing matches.
        """
        if value is None or value == "":
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls.from_epoch(value)

        text = str(value).strip()
        if re.fullmatch(r'\d+(\.\d+)?', text):
            return cls.from_epoch(text)

        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            for fmt in formats:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue

        if parsed is None:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError, IndexError):
                return None
            if parsed is None:
                return None

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

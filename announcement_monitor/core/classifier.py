import re
from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional

from announcement_monitor.core.models import Announcement, Confidence, ListingEvent
from announcement_monitor.utils.ticker_parser import TickerParser


class ListingClassifier:
    """
    Rule-based new listing detection.

    Rules are applied in order, title before body:
      1. strong: a listing verb followed by a symbol in the same sentence, or a listing
         keyword sharing a sentence with a marked symbol ("(ABC)", "$ABC") -> high
      2. weak: a listing keyword or a listing category, no symbol -> low
      3. otherwise not a listing

    A title announcing a delisting or removal is never a listing, and body sentences
    announcing one never supply symbols.
    """

    LISTING_VERBS = [
        r'\bwill\s+list\b',
        r'\blists\b',
        r'\bto\s+list\b',
        r'\badds\b',
        r'\bwill\s+add\b',
        r'\blaunch(?:es|ed)?\s+trading\s+for\b',
        r'\bopens?\s+trading\s+for\b',
        r'\bwill\s+launch\b',
    ]

    LISTING_KEYWORDS = [
        r'\bnew\s+listings?\b',
        r'\bwill\s+be\s+listed\b',
        r'\btrading\s+pairs?\b',
        r'\bnew\s+(?:token|coin|cryptocurrency)\b',
        r'\blisting\b',
        r'上线',
        r'添加',
    ]

    LISTING_CATEGORY = re.compile(r'(?<!de)listing|new[\s_-]+(?:asset|crypto|token|coin)', re.IGNORECASE)

    # Removals, not listings
    VETO = re.compile(
        r'\bdelist|\bremov(?:e|ed|es|al|ing)\b|\bsuspen(?:d|ded|ds|sion)\b|\bceas(?:e|ed|es|ing)\b|\bdiscontinu|\bterminat',
        re.IGNORECASE,
    )

    SENTENCE_SPLIT = re.compile(r'(?<=[.!?])\s+|\n+|;')

    def __init__(self):
        self._verbs = re.compile('|'.join(self.LISTING_VERBS), re.IGNORECASE)
        self._keywords = re.compile('|'.join(self.LISTING_KEYWORDS), re.IGNORECASE)

    def classify(self, announcement: Announcement, detected_at: Optional[datetime] = None) -> ListingEvent:
        extra = {"detected_at": detected_at} if detected_at else {}
        if self.VETO.search(announcement.title or ""):
            return ListingEvent(announcement, False, frozenset(), None, **extra)

        for text in (announcement.title, announcement.body):
            symbols = self.strong_symbols(text)
            if symbols:
                return ListingEvent(announcement, True, symbols, Confidence.HIGH, **extra)

        if self.is_weak_listing(announcement):
            return ListingEvent(announcement, True, frozenset(), Confidence.LOW, **extra)

        return ListingEvent(announcement, False, frozenset(), None, **extra)

    def strong_symbols(self, text: str) -> FrozenSet[str]:
        symbols = set()
        for sentence in self._sentences(text):
            if self.VETO.search(sentence):
                continue
            for match in self._verbs.finditer(sentence):
                symbols.update(TickerParser.extract_tickers(sentence[match.end():]))
            if self._keywords.search(sentence):
                symbols.update(TickerParser.extract_marked(sentence))
        return frozenset(symbols)

    def is_weak_listing(self, announcement: Announcement) -> bool:
        if self.VETO.search(announcement.title or ""):
            return False
        if self._keywords.search(announcement.title or ""):
            return True
        if any(self._keywords.search(s) for s in self._sentences(announcement.body)
               if not self.VETO.search(s)):
            return True
        return self._has_listing_category(announcement.categories)

    def _has_listing_category(self, categories: Iterable[str]) -> bool:
        return any(self.LISTING_CATEGORY.search(category or "") for category in categories)

    def _sentences(self, text: str) -> List[str]:
        return [s for s in self.SENTENCE_SPLIT.split(text or "") if s.strip()]


_default = ListingClassifier()


def classify(announcement: Announcement) -> ListingEvent:
    return _default.classify(announcement)

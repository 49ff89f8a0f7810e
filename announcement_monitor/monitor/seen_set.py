from collections import OrderedDict
from typing import Hashable

DEFAULT_CAPACITY = 500


class SeenSet:
    """Set of recently seen fingerprints, oldest evicted first once capacity is reached"""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: "OrderedDict[Hashable, None]" = OrderedDict()

    def add(self, item: Hashable) -> bool:
        """Record item; False when it was already present"""
        if item in self._items:
            return False
        self._items[item] = None
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)
        return True

    def __contains__(self, item: Hashable) -> bool:
        return item in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

"""
FIFO eviction queue for envcache

Records cache keys in insertion order. Re-setting a key moves it to the
back, so each live key appears once. Eviction order ignores reads and expiry.
"""

from collections import OrderedDict
from typing import List, Optional


class EvictionQueue:
    """Insertion-ordered set of cache keys."""

    def __init__(self):
        self._keys: "OrderedDict[str, None]" = OrderedDict()

    def enqueue(self, key: str) -> None:
        """Append key, or move it to the back if already queued."""
        if key in self._keys:
            self._keys.move_to_end(key)
        else:
            self._keys[key] = None

    def dequeue(self) -> Optional[str]:
        """Remove and return the oldest key, or None when empty."""
        if not self._keys:
            return None
        key, _ = self._keys.popitem(last=False)
        return key

    def discard(self, key: str) -> bool:
        """Forget a key that left the cache by another route."""
        if key in self._keys:
            del self._keys[key]
            return True
        return False

    def clear(self) -> None:
        self._keys.clear()

    def snapshot(self) -> List[str]:
        """Keys from oldest to newest."""
        return list(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: str) -> bool:
        return key in self._keys

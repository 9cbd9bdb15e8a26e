"""
Signature dedup window.

Bounded insertion-ordered set. When the cap is exceeded the oldest
``evict_count`` signatures are dropped in one pass (prefix eviction, not LRU:
a re-seen signature does not move to the back).
"""
from typing import Dict


class DedupWindow:

    def __init__(self, max_size: int = 10_000, evict_count: int = 1_000):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.evict_count = max(1, min(evict_count, max_size))
        self._seen: Dict[str, None] = {}
        self.duplicates = 0

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, signature: str) -> bool:
        return signature in self._seen

    def check_and_add(self, signature: str) -> bool:
        """
        Record ``signature``. Returns True the first time it is seen and
        False for a redelivery.

        No await inside, so callers on one event loop never interleave here.
        """
        if signature in self._seen:
            self.duplicates += 1
            return False

        self._seen[signature] = None

        if len(self._seen) > self.max_size:
            for key in list(self._seen)[:self.evict_count]:
                del self._seen[key]

        return True

    def clear(self):
        self._seen.clear()

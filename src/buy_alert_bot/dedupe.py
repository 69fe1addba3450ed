from __future__ import annotations

import math
from collections import OrderedDict


class SignatureDeduper:
    def __init__(self, max_size: int = 5000, keep_fraction: float = 0.5) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if not 0 < keep_fraction <= 1:
            raise ValueError("keep_fraction must be in (0, 1]")
        self.max_size = max_size
        self.keep = max(1, math.ceil(max_size * keep_fraction))
        self._seen: OrderedDict[str, None] = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def seen(self, signature: str | None) -> bool:
        if not signature:
            return False
        return signature in self._seen

    def record(self, signature: str | None) -> None:
        if not signature or signature in self._seen:
            return
        self._seen[signature] = None
        if len(self._seen) > self.max_size:
            self._evict()

    def _evict(self) -> None:
        # Insertion order, not access order: lookups never refresh an entry.
        while len(self._seen) > self.keep:
            self._seen.popitem(last=False)

from __future__ import annotations

import threading
from typing import Hashable, Set


class DedupIndex:
    """Run-scoped set of already seen identifiers (URLs or item ids).

    ``add`` is the only mutation and is an atomic check-and-insert, so two
    concurrent handlers can never both claim the same identifier. Nothing is
    ever removed.
    """

    def __init__(self, name: str = "dedup"):
        self.name = name
        self._seen: Set[Hashable] = set()
        self._lock = threading.Lock()

    def add(self, key: Hashable) -> bool:
        """Insert ``key``; return True if it was not seen before."""
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def __repr__(self) -> str:
        return f"DedupIndex(name={self.name!r}, size={len(self)})"

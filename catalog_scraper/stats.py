from __future__ import annotations

import logging
import threading
from typing import Dict, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_COUNTERS = {"urls": 0, "items": 0, "totalItems": 0, "failed": 0}


class StatsStore(Protocol):
    def load(self, scope: str) -> Dict[str, int]: ...

    def save(self, scope: str, counters: Mapping[str, int]) -> None: ...

    def reset(self, scope: str) -> None: ...


class RunStats:
    """Monotonic run counters with load-merge-save checkpoints.

    On construction the last saved values for ``scope`` are loaded on top of
    the defaults, so a resumed run keeps counting from the checkpoint.
    ``save`` writes the absolute totals back.
    """

    def __init__(self, store: Optional[StatsStore] = None, scope: str = "default", defaults: Optional[Mapping[str, int]] = None):
        self.store = store
        self.scope = scope
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = dict(DEFAULT_COUNTERS if defaults is None else defaults)
        if store is not None:
            persisted = store.load(scope)
            if persisted:
                logger.info(f"[STATS] resuming scope={scope} from checkpoint {persisted}")
            for key, value in persisted.items():
                self._counters[key] = max(int(value), self._counters.get(key, 0))

    @classmethod
    def load(cls, store: StatsStore, scope: str = "default", defaults: Optional[Mapping[str, int]] = None) -> "RunStats":
        return cls(store=store, scope=scope, defaults=defaults)

    def add(self, key: str, n: int) -> int:
        if n < 0:
            raise ValueError(f"counters only grow; got {key}+={n}")
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + n
            return self._counters[key]

    def inc(self, key: str) -> int:
        return self.add(key, 1)

    def get(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def save(self) -> Dict[str, int]:
        snapshot = self.as_dict()
        if self.store is not None:
            self.store.save(self.scope, snapshot)
            logger.debug(f"[STATS] checkpoint scope={self.scope} {snapshot}")
        return snapshot

    def __getitem__(self, key: str) -> int:
        return self.get(key)

    def __repr__(self) -> str:
        return f"RunStats(scope={self.scope!r}, {self.as_dict()})"

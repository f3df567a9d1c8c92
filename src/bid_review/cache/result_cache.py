"""In-process TTL cache for analysis results."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from bid_review.config import CacheConfig
from bid_review.types import AnalysisResult

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class _CacheEntry:
    result: AnalysisResult
    created_at: int


class ResultCache:
    """Maps document ids to analysis results for a fixed time-to-live.

    An entry older than `ttl_ms` is never returned. Expired entries are
    removed lazily on `get` and by a full sweep on every `set`; nothing
    else bounds the number of entries.

    One instance is created at process start and passed to every consumer.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock or _now_ms
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl_ms(self) -> int:
        return self.config.ttl_ms

    def set(self, doc_id: str, result: AnalysisResult) -> None:
        now = self._clock()
        if result.created_at is None:
            result = dataclasses.replace(result, created_at=now)
        with self._lock:
            self._entries[doc_id] = _CacheEntry(result=result, created_at=result.created_at)
        self.sweep()

    def get(self, doc_id: str) -> AnalysisResult | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(doc_id)
            if entry is None:
                return None
            if self._expired(entry, now):
                del self._entries[doc_id]
                return None
            return entry.result

    def delete(self, doc_id: str) -> None:
        with self._lock:
            self._entries.pop(doc_id, None)

    def sweep(self) -> int:
        """Evict every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in expired:
                del self._entries[key]
        for key in expired:
            logger.info(f"Cleaned up expired cache entry: {key}")
        return len(expired)

    def doc_ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: _CacheEntry, now: int) -> bool:
        return now - entry.created_at > self.config.ttl_ms

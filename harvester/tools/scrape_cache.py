from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from harvester.config import settings
from harvester.research_core.models.interfaces import ScrapeResult
from harvester.tools.web_utils import normalize_url


@dataclass(slots=True)
class CacheEntry:
    expires_at: float
    value: ScrapeResult


class ScrapeCache:
    """Bounded TTL cache of final scrape results, keyed by normalized URL.

    Recency is approximated by insertion order: a hit is popped and
    reinserted, and capacity eviction drops the oldest-inserted key. No
    method awaits, so each call is atomic under asyncio.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        success_ttl_seconds: float | None = None,
        failure_ttl_seconds: float | None = None,
        enabled: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max(
            int(max_entries if max_entries is not None else settings.scrape_cache_max_entries), 1
        )
        self.success_ttl_seconds = (
            success_ttl_seconds
            if success_ttl_seconds is not None
            else settings.scrape_cache_success_ttl_seconds
        )
        self.failure_ttl_seconds = (
            failure_ttl_seconds
            if failure_ttl_seconds is not None
            else settings.scrape_cache_failure_ttl_seconds
        )
        self.enabled = settings.scrape_cache_enabled if enabled is None else bool(enabled)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return normalize_url(url) in self._entries

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def get(self, url: str) -> ScrapeResult | None:
        if not self.enabled:
            return None
        self.purge_expired()
        key = normalize_url(url)
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        self._entries[key] = entry
        return entry.value

    def put(self, url: str, value: ScrapeResult) -> None:
        if not self.enabled:
            return
        ttl = self.failure_ttl_seconds if value.error else self.success_ttl_seconds
        key = normalize_url(url)
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(expires_at=self._clock() + ttl, value=value)
        self._enforce_capacity()

    def clear(self) -> None:
        self._entries.clear()

    def _enforce_capacity(self) -> None:
        while len(self._entries) > self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

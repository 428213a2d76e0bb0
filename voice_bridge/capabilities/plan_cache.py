"""Exact-match plan cache capability.

Maps a normalized utterance to the plan it resolved to. Bounded LRU with a
per-entry expiry; expired entries are dropped lazily on lookup.

Config options:
    plan_cache_max_entries: Maximum number of entries (default: 500)
    plan_cache_ttl_ms: Default time-to-live in ms (default: 7 days)
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .base import Capability
from ..const import CONF_PLAN_CACHE_MAX_ENTRIES, CONF_PLAN_CACHE_TTL_MS, DEFAULTS
from ..utils.plan_types import Plan

_LOGGER = logging.getLogger(__name__)

# Marker for "use the cache's default TTL"; ttl_ms=None means no expiry.
DEFAULT_TTL = object()


@dataclass
class CacheEntry:
    """A cached plan and its absolute expiry (clock seconds, or None)."""

    plan: Plan
    expires_at: Optional[float]


class PlanCacheCapability(Capability):
    """LRU-with-TTL store of resolved plans keyed by normalized utterance."""

    name = "plan_cache"
    description = "Exact-match cache of resolved action plans"

    def __init__(
        self,
        hub: Any,
        config: Dict[str, Any],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(hub, config)
        self.max_entries = config.get(
            CONF_PLAN_CACHE_MAX_ENTRIES, DEFAULTS[CONF_PLAN_CACHE_MAX_ENTRIES]
        )
        self.default_ttl_ms = config.get(CONF_PLAN_CACHE_TTL_MS, DEFAULTS[CONF_PLAN_CACHE_TTL_MS])
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._stats = {"lookups": 0, "hits": 0, "misses": 0, "expired": 0}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def get(self, key: str) -> Optional[Plan]:
        """Return the cached plan and mark it most recently used."""
        self._stats["lookups"] += 1
        entry = self._entries.get(key)
        if entry is None:
            self._stats["misses"] += 1
            return None

        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[key]
            self._stats["expired"] += 1
            self._stats["misses"] += 1
            _LOGGER.debug("[PlanCache] EXPIRED: '%s'", key)
            return None

        self._entries.move_to_end(key)
        self._stats["hits"] += 1
        return entry.plan

    def set(self, key: str, plan: Plan, ttl_ms: Any = DEFAULT_TTL) -> None:
        """Store a plan, evicting least recently used entries past the bound."""
        if ttl_ms is DEFAULT_TTL:
            ttl_ms = self.default_ttl_ms
        expires_at = None if ttl_ms is None else self._clock() + ttl_ms / 1000

        self._entries[key] = CacheEntry(plan=plan, expires_at=expires_at)
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            _LOGGER.debug("[PlanCache] EVICT: '%s'", evicted)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def run(self, user_input, **_: Any) -> Optional[Plan]:
        return self.get(user_input.normalized)

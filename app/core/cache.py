"""In-process response cache with TTL expiry and flush-all invalidation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

PUBLIC_IDENTITY = "public"


@dataclass(frozen=True)
class CachedResponse:
    """A JSON response body captured for replay."""

    body: bytes
    status_code: int = 200
    media_type: str = "application/json"


@dataclass
class _Entry:
    value: Any
    expires_at: float


@dataclass
class ResponseCache:
    """
    Key/value store for rendered GET responses.

    Entries expire lazily: an expired entry is dropped when it is next read,
    there is no background sweep. Any write anywhere in the API calls
    ``invalidate_all()``, so per-resource dependency tracking is not needed.

    One instance is created per application and shared through
    ``app.state.response_cache``.
    """

    default_ttl: int = 300
    enabled: bool = True
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, _Entry] = field(default_factory=dict, init=False, repr=False)

    @staticmethod
    def make_key(path_with_query: str, identity: str | None) -> str:
        """Build a per-user cache key; anonymous callers share ``public``."""
        return f"__cache__{path_with_query}__{identity or PUBLIC_IDENTITY}"

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key* for *ttl* seconds, replacing any entry."""
        seconds = self.default_ttl if ttl is None else ttl
        self._entries[key] = _Entry(value=value, expires_at=self.clock() + seconds)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        """Drop every entry unconditionally."""
        count = len(self._entries)
        self._entries.clear()
        if count:
            logger.debug("Response cache flushed (%d entries)", count)

    def set_enabled(self, enabled: bool) -> None:
        """Toggle the cache; disabling also flushes it."""
        if not enabled:
            self.invalidate_all()
        self.enabled = enabled
        logger.info("Response cache %s", "enabled" if enabled else "disabled")

    def __len__(self) -> int:
        return len(self._entries)

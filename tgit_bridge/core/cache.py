"""In-process get-or-compute cache for data source lookups."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

log = structlog.get_logger("tgit_bridge.cache")

T = TypeVar("T")


class PackageCache:
    """Namespaced key/value store with optional per-entry TTL.

    Concurrent first calls for the same key are not coalesced; each may run
    the factory, and the last one to finish wins.
    """

    def __init__(
        self,
        default_ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[tuple[str, str], tuple[float | None, Any]] = {}

    async def get_or_set(
        self,
        namespace: str,
        key: str,
        factory: Callable[[], Awaitable[T]],
        *,
        ttl: float | None = None,
    ) -> T:
        entry = self._entries.get((namespace, key))
        if entry is not None:
            expires_at, value = entry
            if expires_at is None or expires_at > self._clock():
                return value
            del self._entries[(namespace, key)]

        value = await factory()
        ttl = ttl if ttl is not None else self._default_ttl
        expires_at = self._clock() + ttl if ttl else None
        self._entries[(namespace, key)] = (expires_at, value)
        log.debug("cache.stored", namespace=namespace, key=key)
        return value

    def invalidate(self, namespace: str | None = None) -> None:
        if namespace is None:
            self._entries.clear()
            return
        for k in [k for k in self._entries if k[0] == namespace]:
            del self._entries[k]

    def __len__(self) -> int:
        return len(self._entries)

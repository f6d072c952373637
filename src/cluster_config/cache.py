"""Time-expiring memoization of staleness results.

Entries expire a fixed time after they are written, whatever their access
pattern. Only successful results are stored: an exception raised while
computing propagates to the caller and the next ``get`` tries again.

Concurrent misses on the same key are coalesced so that one computation runs
and the other callers reuse its result. A computation that overlaps an
invalidation of its key returns its result but does not store it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from whenever import Instant, TimeDelta

if TYPE_CHECKING:
    from collections.abc import Callable

    from cluster_config.types import ComponentKey

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CachePolicy:
    """Whether results are cached, and for how long."""

    enabled: bool = True
    ttl_seconds: float = DEFAULT_TTL_SECONDS

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError(f"Cache TTL must be positive, got {self.ttl_seconds}")

    @property
    def ttl(self) -> TimeDelta:
        return TimeDelta(seconds=self.ttl_seconds)


@dataclass(frozen=True)
class _Entry:
    value: bool
    written_at: Instant


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class StaleResultCache:
    """Caches ``compute(key)`` per component for the policy's TTL."""

    def __init__(
        self,
        compute: Callable[[ComponentKey], bool],
        policy: CachePolicy | None = None,
        *,
        clock: Callable[[], Instant] = Instant.now,
    ) -> None:
        self._compute = compute
        self._policy = policy or CachePolicy()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[ComponentKey, _Entry] = {}
        self._key_locks: dict[ComponentKey, _KeyLock] = {}
        self._generations: dict[ComponentKey, int] = {}
        self._epoch = 0

    @property
    def policy(self) -> CachePolicy:
        return self._policy

    def get(self, key: ComponentKey) -> bool:
        if not self._policy.enabled:
            return self._compute(key)

        cached = self._lookup(key)
        if cached is not None:
            return cached

        key_lock = self._acquire_key_lock(key)
        try:
            with key_lock.lock:
                cached = self._lookup(key)
                if cached is not None:
                    return cached

                with self._lock:
                    token = self._token(key)
                value = self._compute(key)
                with self._lock:
                    if self._token(key) == token:
                        self._entries[key] = _Entry(value=value, written_at=self._clock())
                return value
        finally:
            self._release_key_lock(key, key_lock)

    def invalidate(self, key: ComponentKey) -> None:
        with self._lock:
            self._drop(key)

    def invalidate_host(self, hostname: str) -> None:
        """Drop every entry for components running on ``hostname``."""
        with self._lock:
            known = self._entries.keys() | self._key_locks.keys()
            keys = [k for k in known if k.hostname == hostname]
            for key in keys:
                self._drop(key)
        logger.info("Invalidated %d stale-config cache entries for host %s", len(keys), hostname)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()
            self._key_locks.clear()
            self._epoch += 1
        logger.info("Invalidated all stale-config cache entries")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def _lookup(self, key: ComponentKey) -> bool | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.written_at >= self._policy.ttl:
                del self._entries[key]
                return None
            return entry.value

    def _acquire_key_lock(self, key: ComponentKey) -> _KeyLock:
        with self._lock:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = self._key_locks[key] = _KeyLock()
            key_lock.holders += 1
            return key_lock

    def _release_key_lock(self, key: ComponentKey, key_lock: _KeyLock) -> None:
        with self._lock:
            key_lock.holders -= 1
            if key_lock.holders == 0 and self._key_locks.get(key) is key_lock:
                del self._key_locks[key]
                # generations only matter while a computation is in flight
                self._generations.pop(key, None)

    def _token(self, key: ComponentKey) -> tuple[int, int]:
        # caller holds self._lock
        return self._epoch, self._generations.get(key, 0)

    def _drop(self, key: ComponentKey) -> None:
        # caller holds self._lock
        self._entries.pop(key, None)
        if key in self._key_locks:
            self._generations[key] = self._generations.get(key, 0) + 1

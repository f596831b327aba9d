"""Time-aged caches shared by every lookup tier."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger()

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading at which it was fetched."""

    value: V
    fetched_at: float


class RefreshPolicy:
    """Decides staleness from the elapsed time and a refresh interval in minutes.

    An interval of ``0`` or ``None`` means cached values are never refetched.
    """

    def __init__(self, refresh_minutes: float | None = None) -> None:
        self.refresh_minutes = refresh_minutes

    def is_stale(self, entry: CacheEntry, now: float) -> bool:
        if not self.refresh_minutes:
            return False
        return now - entry.fetched_at > self.refresh_minutes * 60


class TimedCache(Generic[K, V]):
    """Mapping of keys to timestamped values with lazy refetching.

    Absent results are stored like any other value so that repeated misses
    within the refresh window do not trigger repeated fetches. Concurrent
    lookups of a key that is already being fetched wait for that fetch.
    """

    def __init__(self, name: str, policy: RefreshPolicy, clock: Clock = time.monotonic) -> None:
        self.name = name
        self._policy = policy
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}
        self._pending: dict[K, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def peek(self, key: K) -> CacheEntry[V] | None:
        """Return the raw entry for a key without any staleness check."""
        return self._entries.get(key)

    def is_fresh(self, key: K) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._policy.is_stale(entry, self._clock())

    def store(self, key: K, value: V) -> None:
        self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_fetch(self, key: K, fetch: Callable[[], Awaitable[V]]) -> V:
        """Return the cached value for ``key``, fetching it when missing or stale."""
        if self.is_fresh(key):
            return self._entries[key].value

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug("Joining in-flight fetch", cache=self.name, key=key)
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # The owner was cancelled, not this caller.
                logger.debug("In-flight fetch was cancelled, fetching again", cache=self.name, key=key)
                return await self.get_or_fetch(key, fetch)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        try:
            value = await fetch()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark the exception as retrieved when nobody joined the fetch.
            future.exception()
            raise
        else:
            self.store(key, value)
            future.set_result(value)
            logger.debug("Cache entry stored", cache=self.name, key=key)
            return value
        finally:
            self._pending.pop(key, None)


class SessionCaches:
    """The cache tiers owned by one session, aged by a single refresh interval."""

    def __init__(self, refresh_minutes: float | None = None, clock: Clock = time.monotonic) -> None:
        self.policy = RefreshPolicy(refresh_minutes)
        self.items: TimedCache = TimedCache("items", self.policy, clock)
        self.attachments: TimedCache = TimedCache("attachments", self.policy, clock)
        self.statuses: TimedCache = TimedCache("statuses", self.policy, clock)
        self.types: TimedCache = TimedCache("types", self.policy, clock)
        self.icons: TimedCache = TimedCache("icons", self.policy, clock)
        self.users: TimedCache = TimedCache("users", self.policy, clock)

    def tiers(self) -> list[TimedCache]:
        return [self.items, self.attachments, self.statuses, self.types, self.icons, self.users]

    def clear(self) -> None:
        for tier in self.tiers():
            tier.clear()
        logger.debug("Session caches cleared")

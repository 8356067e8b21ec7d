"""Query cache with in-flight deduplication and mutation invalidation.

Keys are tuples ``(resource, *params)``; build them with ``make_key`` so
identical request signatures always produce the same key.

Guarantees:
- concurrent callers for a key share one load; a caller arriving after an
  invalidation (or after the load was abandoned) starts a fresh one
- a fresh entry (younger than the staleness window, not invalidated) is
  served without calling the loader
- a failed load is never cached and never erases the previous value
- a cancelled caller stops waiting without cancelling a load other callers
  still wait on; the load is cancelled only when nobody is left
- every failed load or mutation is retried at most ``retry`` times
  (default once) with no backoff, unless the error is not retryable
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, Mapping, Sequence

from naxum_team.config import DEFAULT_RETRY, DEFAULT_STALE_TIME
from naxum_team.errors import is_retryable

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]
Loader = Callable[[], Awaitable[Any]]


def make_key(name: str, *args: Hashable, **filters: Any) -> QueryKey:
    """
    Build a cache key from a resource name, positional ids and filters.

    ``None`` filters are dropped and the rest sorted, so
    ``make_key("tasks", status="pending", assigned_to=None)`` equals
    ``make_key("tasks", status="pending")``.
    """
    parts: list[Hashable] = [name, *args]
    items = tuple(sorted((k, v) for k, v in filters.items() if v is not None))
    if items:
        parts.append(items)
    return tuple(parts)


def normalize_key(key: str | Sequence[Hashable]) -> QueryKey:
    """Accept a bare resource name as a one-element key."""
    if isinstance(key, str):
        return (key,)
    return tuple(key)


class FetchStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"


@dataclass
class CacheEntry:
    key: QueryKey
    value: Any = None
    has_value: bool = False
    updated_at: float | None = None
    stale: bool = False
    status: FetchStatus = FetchStatus.IDLE
    error: BaseException | None = None
    generation: int = 0

    def is_fresh(self, now: float, stale_time: float) -> bool:
        if not self.has_value or self.stale or self.updated_at is None:
            return False
        return now - self.updated_at < stale_time


@dataclass
class _InFlight:
    key: QueryKey
    task: asyncio.Task
    generation: int
    waiters: int = 0
    abandoned: bool = False


@dataclass(frozen=True)
class InvalidationRule:
    """
    One cache prefix a mutation invalidates.

    With ``id_field`` set, the mutation variable of that name is appended to
    the prefix (``("task",)`` + id 7 -> ``("task", 7)``); the rule is skipped
    when the variable is missing.
    """
    prefix: QueryKey
    id_field: str | None = None
    exact: bool = False

    def resolve(self, variables: Mapping[str, Any]) -> QueryKey | None:
        if self.id_field is None:
            return self.prefix
        value = variables.get(self.id_field)
        if value is None:
            return None
        return (*self.prefix, value)


@dataclass
class QueryCache:
    """In-memory query cache for one client session."""

    stale_time: float = DEFAULT_STALE_TIME
    retry: int = DEFAULT_RETRY
    mutation_retry: int = DEFAULT_RETRY
    invalidation_rules: Mapping[str, Sequence[InvalidationRule]] = field(default_factory=dict)
    clock: Callable[[], float] = time.monotonic

    def __post_init__(self) -> None:
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._in_flight: dict[QueryKey, _InFlight] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch(
        self,
        key: str | Sequence[Hashable],
        loader: Loader,
        *,
        stale_time: float | None = None,
        retry: int | None = None,
    ) -> Any:
        """
        Return the cached value for ``key`` or load it.

        Raises:
            Exception: Whatever the loader raised after its last attempt
        """
        key = normalize_key(key)
        window = self.stale_time if stale_time is None else stale_time

        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self.clock(), window):
            return entry.value

        flight = self._joinable(key)
        if flight is None:
            flight = self._start(key, loader, self.retry if retry is None else retry)
        else:
            logger.debug("Joining in-flight fetch for %s", key)

        return await self._wait(flight)

    async def prefetch(self, key: str | Sequence[Hashable], loader: Loader) -> None:
        """Warm the cache; failures are logged, not raised."""
        try:
            await self.fetch(key, loader)
        except Exception as exc:
            logger.warning("Prefetch of %s failed: %s", normalize_key(key), exc)

    def get(self, key: str | Sequence[Hashable]) -> Any:
        """Last known value for ``key`` (possibly stale), or None."""
        entry = self._entries.get(normalize_key(key))
        return entry.value if entry is not None and entry.has_value else None

    def get_entry(self, key: str | Sequence[Hashable]) -> CacheEntry | None:
        return self._entries.get(normalize_key(key))

    def is_fetching(self, key: str | Sequence[Hashable] | None = None) -> bool:
        if key is None:
            return bool(self._in_flight)
        return normalize_key(key) in self._in_flight

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _joinable(self, key: QueryKey) -> _InFlight | None:
        """The running load for ``key`` if it can still serve a new caller."""
        flight = self._in_flight.get(key)
        if flight is None or flight.abandoned:
            return None
        entry = self._entries.get(key)
        # Started before an invalidation: its result is already outdated
        if entry is not None and entry.generation != flight.generation:
            return None
        return flight

    def _start(self, key: QueryKey, loader: Loader, retry: int) -> _InFlight:
        entry = self._entries.setdefault(key, CacheEntry(key=key))
        entry.status = FetchStatus.FETCHING

        task = asyncio.get_running_loop().create_task(
            run_with_retry(loader, retry, f"fetch {key}")
        )
        flight = _InFlight(key=key, task=task, generation=entry.generation)
        self._in_flight[key] = flight
        task.add_done_callback(lambda done: self._finish(key, flight, done))
        return flight

    def _finish(self, key: QueryKey, flight: _InFlight, task: asyncio.Task) -> None:
        current = self._in_flight.get(key) is flight
        if current:
            del self._in_flight[key]

        error = None if task.cancelled() else task.exception()
        entry = self._entries.get(key)
        if not current or entry is None:
            # Cache was cleared or the key refetched meanwhile; discard
            return

        if task.cancelled():
            entry.status = FetchStatus.IDLE
            return

        if error is not None:
            entry.status = FetchStatus.ERROR
            entry.error = error
            logger.debug("Fetch for %s failed: %s", key, error)
            return

        entry.value = task.result()
        entry.has_value = True
        entry.updated_at = self.clock()
        entry.status = FetchStatus.IDLE
        entry.error = None
        # Invalidated while loading: keep the value but refetch next time
        entry.stale = entry.generation != flight.generation

    async def _wait(self, flight: _InFlight) -> Any:
        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                # Last interested caller went away
                self._abandon(flight)

    def _abandon(self, flight: _InFlight) -> None:
        flight.abandoned = True
        flight.task.cancel()
        if self._in_flight.get(flight.key) is flight:
            del self._in_flight[flight.key]
            entry = self._entries.get(flight.key)
            if entry is not None:
                entry.status = FetchStatus.IDLE

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, key: str | Sequence[Hashable], *, exact: bool = False) -> int:
        """
        Mark entries stale so the next ``fetch`` runs the loader again.

        Matches every key starting with ``key`` unless ``exact`` is set.
        Returns the number of entries marked.
        """
        prefix = normalize_key(key)
        count = 0
        for entry_key, entry in self._entries.items():
            matched = entry_key == prefix if exact else entry_key[: len(prefix)] == prefix
            if matched:
                entry.stale = True
                entry.generation += 1
                count += 1
        if count:
            logger.debug("Invalidated %d cache entr%s under %s", count, "y" if count == 1 else "ies", prefix)
        return count

    def invalidate_all(self) -> int:
        for entry in self._entries.values():
            entry.stale = True
            entry.generation += 1
        return len(self._entries)

    def clear(self) -> None:
        """Drop every entry. Loads still running finish but are not stored."""
        self._entries.clear()
        self._in_flight.clear()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def invalidation_targets(self, mutation: str, variables: Mapping[str, Any] | None = None) -> list[tuple[QueryKey, bool]]:
        """
        Keys a mutation invalidates, from the declared rule table.

        Raises:
            KeyError: If the mutation has no declared rules
        """
        if mutation not in self.invalidation_rules:
            raise KeyError(f"No invalidation rules declared for mutation '{mutation}'")

        variables = variables or {}
        targets = []
        for rule in self.invalidation_rules[mutation]:
            resolved = rule.resolve(variables)
            if resolved is not None:
                targets.append((resolved, rule.exact))
        return targets

    async def mutate(
        self,
        mutation: str,
        fn: Loader,
        *,
        variables: Mapping[str, Any] | None = None,
        retry: int | None = None,
    ) -> Any:
        """
        Run a mutation, then invalidate the keys declared for it.

        Mutations are never deduplicated and do not wait on reads.
        """
        targets = self.invalidation_targets(mutation, variables)
        result = await run_with_retry(fn, self.mutation_retry if retry is None else retry, mutation)

        for key, exact in targets:
            self.invalidate(key, exact=exact)
        return result


async def run_with_retry(fn: Loader, retry: int, label: str = "operation") -> Any:
    """Await ``fn()``, retrying up to ``retry`` times on retryable errors."""
    attempts = max(retry, 0) + 1
    for attempt in range(attempts):
        try:
            return await fn()
        except Exception as exc:
            if attempt < attempts - 1 and is_retryable(exc):
                logger.info("%s failed (%s); retrying (%d/%d)", label, exc, attempt + 1, retry)
                continue
            raise

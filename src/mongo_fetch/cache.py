"""
Optional response cache for read actions.

The cache is off by default. It is enabled by passing ``cache_ttl`` to
:class:`mongo_fetch.MongoClient`, which wraps the executor in a
:class:`CachingExecutor`.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Mapping, NamedTuple

from cachetools import TLRUCache

from .codec import canonical_command
from .ttl import parse_ttl

if TYPE_CHECKING:
    from .executor import CommandExecutor

__all__ = ["CACHEABLE_ACTIONS", "CachingExecutor", "DEFAULT_MAXSIZE", "response_cache"]

logger = logging.getLogger(__name__)

CACHEABLE_ACTIONS = frozenset(
    {
        "find",
        "findOne",
        "aggregate",
        "countDocuments",
        "estimatedDocumentCount",
        "listCollections",
        "listDatabases",
    }
)

DEFAULT_MAXSIZE = 1024


class _Entry(NamedTuple):
    ttl: int
    value: Any


def _time_to_use(key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


def response_cache(
    maxsize: int = DEFAULT_MAXSIZE,
    timer: Callable[[], float] = time.monotonic,
) -> TLRUCache:
    """
    Create the storage used by :class:`CachingExecutor`.

    Each entry carries its own TTL, so a per-call override expires
    independently of the default. Expired entries are purged on every
    insert, and the entry closest to expiry is evicted once ``maxsize``
    is reached.

    Args:
        maxsize: Maximum number of cached responses.
        timer: Clock returning seconds.

    Returns:
        An empty ``cachetools.TLRUCache``.
    """
    return TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)


class CachingExecutor:
    """
    Wraps a :class:`CommandExecutor` and serves repeated reads from a cache.

    Keys are the action name plus the canonical Extended JSON of the
    command, so BSON values such as ObjectId participate in the key.
    Mutating actions always go to the network.
    """

    __slots__ = ("_executor", "_ttl", "_cache")

    def __init__(
        self,
        executor: CommandExecutor,
        ttl: str | int,
        cache: TLRUCache | None = None,
    ) -> None:
        """
        Initialize the caching executor.

        Args:
            executor: The executor performing network calls.
            ttl: Default time-to-live, e.g. ``"5m"``.
            cache: Cache storage (a fresh :func:`response_cache` when omitted).

        Raises:
            InvalidTtlUnit: If ``ttl`` uses an unknown unit.
        """
        self._executor = executor
        self._ttl = parse_ttl(ttl)
        self._cache = cache if cache is not None else response_cache()

    @property
    def executor(self) -> CommandExecutor:
        """Get the wrapped executor."""
        return self._executor

    @property
    def ttl(self) -> int:
        """Get the default TTL in seconds."""
        return self._ttl

    @property
    def cache(self) -> TLRUCache:
        """Get the cache storage."""
        return self._cache

    def cache_key(self, action: str, command: Mapping[str, Any]) -> str:
        return f"{action}-{canonical_command(self._executor.prepare(command))}"

    async def execute(
        self,
        action: str,
        command: Mapping[str, Any],
        *,
        timeout: float | None = None,
        cache_ttl: str | int | None = None,
    ) -> Any:
        """
        Run an action, consulting the cache for read actions.

        Args:
            action: Action name.
            command: Command body without the data source.
            timeout: Passed through to the wrapped executor.
            cache_ttl: Overrides the default TTL for this call.

        Returns:
            The decoded response body (a copy when served from cache).
        """
        if action not in CACHEABLE_ACTIONS:
            return await self._executor.execute(action, command, timeout=timeout)

        key = self.cache_key(action, command)
        entry = self._cache.get(key)
        if entry is not None:
            logger.debug(f"Cache hit for {action}")
            return copy.deepcopy(entry.value)

        result = await self._executor.execute(action, command, timeout=timeout)
        ttl = self._ttl if cache_ttl is None else parse_ttl(cache_ttl)
        # TLRUCache skips entries whose TTL is already over (ttl <= 0).
        self._cache[key] = _Entry(ttl, copy.deepcopy(result))
        return result

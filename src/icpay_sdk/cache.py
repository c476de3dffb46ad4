"""
SessionCache - per-client cache for identifiers that do not change within a session
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionCache:
    """
    Fetch-or-populate cache.

    Concurrent misses for the same key may each run the fetcher; whichever
    finishes last wins. Cached values are identifiers that every fetch returns
    identically, so no lock is taken. Failed fetches are not cached.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._values

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value for ``key`` or populate it with ``fetch()``.

        None results are not cached.
        """
        if key in self._values:
            return self._values[key]
        value = await fetch()
        if value is not None:
            logger.debug("Cached %s", key)
            self._values[key] = value
        return value

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything when ``key`` is None"""
        if key is None:
            self._values.clear()
        else:
            self._values.pop(key, None)

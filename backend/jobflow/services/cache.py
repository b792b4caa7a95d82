from __future__ import annotations

import threading
import time
from typing import Callable, Generic, List, Optional, TypeVar

from jobflow.core.config import settings

T = TypeVar("T")


class ApplicationListCache(Generic[T]):
    """
    In-memory copy of the signed-in identity's application list plus the time it
    was fetched.

    ``get`` only answers within the TTL. ``invalidate`` drops the timestamp but
    keeps the list, so optimistic transforms still have something to act on until
    the next fetch replaces it.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = settings.APPLICATION_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._items: Optional[List[T]] = None
        self._fetched_at: Optional[float] = None
        # Background writes complete on the executor thread.
        self._lock = threading.Lock()

    def get(self) -> Optional[List[T]]:
        with self._lock:
            if self._items is None or self._fetched_at is None:
                return None
            if self._clock() - self._fetched_at >= self.ttl_seconds:
                return None
            return self._items

    def peek(self) -> Optional[List[T]]:
        with self._lock:
            return self._items

    def set(self, items: List[T]) -> List[T]:
        with self._lock:
            self._items = items
            self._fetched_at = self._clock()
            return items

    def invalidate(self) -> None:
        with self._lock:
            self._fetched_at = None

    def apply(self, transform: Callable[[List[T]], List[T]]) -> Optional[List[T]]:
        """
        Replace the held list with ``transform(list)``; the fetch timestamp is kept.
        No-op while nothing has been fetched.
        """
        with self._lock:
            if self._items is None:
                return None
            self._items = transform(self._items)
            return self._items

    def clear(self) -> None:
        with self._lock:
            self._items = None
            self._fetched_at = None

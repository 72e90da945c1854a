"""
Dashboard Listing Cache

Keeps each actor's link listing in memory between mutations. The link
service invalidates an actor's entry after every successful create,
update or delete, so the next listing is read from the store.

Design Decisions:
- Entries expire after a TTL and the cache holds at most maxsize actors,
  which also bounds staleness when another worker process handled the
  mutation
- Every invalidation is stamped; a listing read that started before the
  latest invalidation of its actor is not stored
"""

import logging
import time
from typing import Callable, Optional, Sequence

from cachetools import TTLCache

from shortlinks.core.setting import settings
from shortlinks.db.models import Link

logger = logging.getLogger(__name__)


class LinkListingCache:
    """Per-owner cache of link listings."""

    def __init__(
        self,
        maxsize: int = 10000,
        ttl: float = 30.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            maxsize: Maximum number of owners kept
            ttl: Seconds an entry is served before it expires
            timer: Returns the current time in seconds
        """
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        # Owner -> stamp of its latest invalidation
        self._invalidations: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._stamp = 0

    def get(self, owner_id: str) -> Optional[list[Link]]:
        entry = self._entries.get(owner_id)
        return list(entry) if entry is not None else None

    def begin_read(self, owner_id: str) -> int:
        """Token to pass to set() for a listing read starting now."""
        return self._stamp

    def set(self, owner_id: str, links: Sequence[Link], token: int) -> bool:
        """
        Store a listing read that started at token.

        Returns:
            False if owner_id was invalidated since, in which case the
            listing is discarded
        """
        if self._invalidations.get(owner_id, 0) > token:
            logger.debug(f"Discarded stale link listing for {owner_id}")
            return False
        self._entries[owner_id] = list(links)
        return True

    def invalidate(self, owner_id: str) -> None:
        self._stamp += 1
        self._invalidations[owner_id] = self._stamp
        if self._entries.pop(owner_id, None) is not None:
            logger.debug(f"Invalidated link listing for {owner_id}")

    def clear(self) -> None:
        self._entries.clear()
        self._invalidations.clear()

    def __contains__(self, owner_id: str) -> bool:
        return owner_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# Process-wide listing cache
listing_cache = LinkListingCache(
    maxsize=settings.LISTING_CACHE_MAX_ENTRIES,
    ttl=settings.LISTING_CACHE_TTL_SECONDS,
)


def get_listing_cache() -> LinkListingCache:
    """FastAPI dependency returning the process-wide listing cache."""
    return listing_cache

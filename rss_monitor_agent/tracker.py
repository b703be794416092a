"""In-memory tracking of items already delivered in a notification."""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict

from .date_utils import age_in_minutes, is_fresh, parse_timestamp, utc_now
from .models import FeedItem

logger = logging.getLogger(__name__)

RETENTION = timedelta(hours=1)


class SeenItemTracker:
    """
    Maps item ids to the time they were marked seen.

    Records are only a memory bound: once evicted after ``retention`` an item
    would be offered again if it were still inside the freshness window.
    All operations take the same lock, so overlapping cycles may share one
    tracker.
    """

    def __init__(self, retention: timedelta = RETENTION, clock: Callable[[], datetime] = utc_now):
        self.retention = retention
        self._clock = clock
        self._seen: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def is_new(self, item: FeedItem, window_minutes: int) -> bool:
        """
        Check if an item is recent and has not been seen before.

        Does not mark the item as seen.
        """
        published = parse_timestamp(getattr(item, "published_at", None))
        if not getattr(item, "id", None) or published is None:
            logger.error(f"Invalid feed item (missing id or publish time): {item!r}")
            return False

        now = self._clock()
        if not is_fresh(published, window_minutes, now=now):
            return False

        with self._lock:
            if item.id in self._seen:
                return False

        logger.debug(f"New item detected: {item.id} (age: {age_in_minutes(published, now=now)} minutes)")
        return True

    def mark_seen(self, item_id: str) -> None:
        with self._lock:
            self._seen[item_id] = self._clock()
            total = len(self._seen)
        logger.debug(f"Item marked as seen: {item_id} (total tracked: {total})")

    def evict_stale(self) -> int:
        """
        Remove records older than the retention horizon.

        Returns:
            Number of records removed.
        """
        now = self._clock()
        with self._lock:
            stale = [item_id for item_id, seen_at in self._seen.items() if now - seen_at > self.retention]
            for item_id in stale:
                del self._seen[item_id]
            remaining = len(self._seen)

        if stale:
            logger.info(f"Evicted {len(stale)} old item(s) from memory (remaining: {remaining})")
        return len(stale)

    def size(self) -> int:
        with self._lock:
            return len(self._seen)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._seen

"""
Per-entry read state and search history, persisted in the content cache.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from .content_cache import KEY_READ_FEEDS, KEY_SEARCH_HISTORY, ContentCache
from .notifier import ChangeNotifier

SEARCH_HISTORY_LIMIT = 10


class ReadState:
    """Set of read feed ids with change notifications."""

    def __init__(
        self, cache: ContentCache, notifier: Optional[ChangeNotifier] = None
    ):
        self.cache = cache
        self.changed = notifier or ChangeNotifier("read state")
        self.logger = logging.getLogger(__name__)

    def all(self) -> Set[str]:
        return set(self.cache.get_read_ids())

    def is_read(self, feed_id: str) -> bool:
        return feed_id in self.all()

    def mark_read(self, feed_id: str) -> bool:
        """Mark a feed as read; returns False if it already was."""

        def add(blob: Dict[str, Any]) -> bool:
            read_ids = list(blob.get(KEY_READ_FEEDS) or [])
            if feed_id in read_ids:
                return False
            read_ids.append(feed_id)
            blob[KEY_READ_FEEDS] = read_ids
            return True

        if not self.cache.update(add):
            self.logger.debug("Feed already marked as read: %s", feed_id)
            return False
        self.logger.debug("Marked as read: %s", feed_id)
        self.changed.notify()
        return True

    def mark_unread(self, feed_id: str) -> bool:
        """Clear the read flag; returns False if the feed was not read."""

        def discard(blob: Dict[str, Any]) -> bool:
            read_ids = list(blob.get(KEY_READ_FEEDS) or [])
            if feed_id not in read_ids:
                return False
            read_ids.remove(feed_id)
            blob[KEY_READ_FEEDS] = read_ids
            return True

        if not self.cache.update(discard):
            return False
        self.changed.notify()
        return True


class SearchHistory:
    """Most-recent-first list of past search queries."""

    def __init__(self, cache: ContentCache, limit: int = SEARCH_HISTORY_LIMIT):
        self.cache = cache
        self.limit = limit

    def entries(self) -> List[str]:
        return self.cache.get_search_history()

    def add(self, query: str) -> List[str]:
        """Record a query at the front, dropping duplicates and overflow."""
        query = query.strip()
        if not query:
            return self.entries()

        result: List[str] = []

        def push(blob: Dict[str, Any]) -> bool:
            history = [q for q in blob.get(KEY_SEARCH_HISTORY) or [] if q != query]
            history.insert(0, query)
            result[:] = history[: self.limit]
            blob[KEY_SEARCH_HISTORY] = result
            return True

        self.cache.update(push)
        return list(result)

    def clear(self) -> None:
        self.cache.save_search_history([])

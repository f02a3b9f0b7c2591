"""
Domain-specific repository for favorite feed persistence.

Favorites are stored one entry per line (JSONL) through the Storage layer.
"""

import json
import logging
import threading
import time
from typing import List, Optional, Tuple

from .models import FavoriteEntry, Feed
from .storage import Storage

FAVORITES_FILENAME = "favorites.jsonl"


def _now_ms() -> int:
    return int(time.time() * 1000)


class FavoritesRepository:
    """Favorites keyed by the feed's stable identity."""

    def __init__(self, storage: Storage, path: Optional[str] = None):
        """Initialize with storage instance."""
        self.storage = storage
        self.path = path or storage.join_path(
            storage.base_dir, FAVORITES_FILENAME
        )
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()

    def get_all(self) -> List[FavoriteEntry]:
        """All favorites, most recently favorited first."""
        with self._lock:
            entries = self._load()
        return sorted(entries, key=lambda e: e.favorited_at, reverse=True)

    def get(self, feed_id: str) -> Optional[FavoriteEntry]:
        with self._lock:
            for entry in self._load():
                if entry.feed_id == feed_id:
                    return entry
        return None

    def is_favorited(self, feed_id: str) -> bool:
        return self.get(feed_id) is not None

    def upsert(
        self, feed: Feed, favorited_at: Optional[int] = None
    ) -> List[FavoriteEntry]:
        """Insert or replace the entry for the feed's identity."""
        entry = FavoriteEntry(
            feed_id=feed.feed_id,
            favorited_at=_now_ms() if favorited_at is None else favorited_at,
            feed=feed,
        )
        with self._lock:
            current = self._load()
            index = self._index_of(current, entry.feed_id)
            if index >= 0:
                current[index] = entry
            else:
                current.append(entry)
            self._save(current)
        return self.get_all()

    def remove(self, feed_id: str) -> List[FavoriteEntry]:
        with self._lock:
            current = [e for e in self._load() if e.feed_id != feed_id]
            self._save(current)
        return self.get_all()

    def clear(self) -> None:
        with self._lock:
            self._save([])

    def update_local_podcast_path(
        self, feed_id: str, local_podcast_path: Optional[str]
    ) -> Tuple[bool, List[FavoriteEntry]]:
        """Set ``local_podcast_path`` on an existing entry in place.

        Returns ``(updated, entries)``; ``updated`` is False when the entry
        no longer exists, in which case nothing is written.
        """
        with self._lock:
            current = self._load()
            index = self._index_of(current, feed_id)
            if index < 0:
                return False, self.get_all()
            entry = current[index]
            current[index] = FavoriteEntry(
                feed_id=entry.feed_id,
                favorited_at=entry.favorited_at,
                feed=entry.feed.with_labels(
                    local_podcast_path=local_podcast_path
                ),
            )
            self._save(current)
        return True, self.get_all()

    def clear_all_local_podcast_paths(self) -> List[FavoriteEntry]:
        """Forget every recorded local file, e.g. after the store is wiped."""
        with self._lock:
            current = self._load()
            updated = [
                entry
                if not entry.feed.labels.local_podcast_path
                else FavoriteEntry(
                    feed_id=entry.feed_id,
                    favorited_at=entry.favorited_at,
                    feed=entry.feed.with_labels(local_podcast_path=None),
                )
                for entry in current
            ]
            if current:
                self._save(updated)
        return self.get_all()

    @staticmethod
    def _index_of(entries: List[FavoriteEntry], feed_id: str) -> int:
        for i, entry in enumerate(entries):
            if entry.feed_id == feed_id:
                return i
        return -1

    def _load(self) -> List[FavoriteEntry]:
        lines = self.storage.read_text_lines(self.path)
        if not lines:
            return []

        entries: List[FavoriteEntry] = []
        for line in lines:
            if not line.strip():
                continue
            try:
                entries.append(FavoriteEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                self.logger.warning("Skipping unreadable favorite entry")
                continue
        return entries

    def _save(self, entries: List[FavoriteEntry]) -> None:
        lines = [
            json.dumps(entry.to_json(), ensure_ascii=False)
            for entry in entries
        ]
        if not self.storage.write_text_lines(self.path, lines):
            raise OSError(f"Could not write favorites to {self.path}")

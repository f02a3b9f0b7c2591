"""
TTL cache for the merged feed snapshot, read state and search history.

All three live in one JSON blob so they can be sized and cleared together.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .models import Feed
from .storage import Storage

CACHE_TTL_SECONDS = 60 * 60
CACHE_FILENAME = "feed_cache.json"

KEY_FEEDS = "cached_feeds"
KEY_TIMESTAMP = "cache_timestamp"
KEY_READ_FEEDS = "read_feeds"
KEY_SEARCH_HISTORY = "search_history"


class AuxiliaryCache(Protocol):
    """An on-disk cache reported and cleared together with the content cache."""

    def size_bytes(self) -> int:
        """Bytes used on disk."""
        ...  # pylint: disable=unnecessary-ellipsis

    def clear(self) -> bool:
        """Remove everything."""
        ...  # pylint: disable=unnecessary-ellipsis


def _serialized_size(value: Any) -> int:
    return len(json.dumps(value, ensure_ascii=False).encode("utf-8"))


class ContentCache:
    """Snapshot cache with a fixed one hour TTL."""

    def __init__(
        self,
        storage: Storage,
        path: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        auxiliary_caches: Sequence[AuxiliaryCache] = (),
    ):
        """Initialize with storage, blob path and optional clock override."""
        self.storage = storage
        self.path = path or storage.join_path(storage.base_dir, CACHE_FILENAME)
        self.clock = clock
        self.auxiliary_caches = list(auxiliary_caches)
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()

    def add_auxiliary_cache(self, cache: AuxiliaryCache) -> None:
        with self._lock:
            self.auxiliary_caches.append(cache)

    def is_valid(self) -> bool:
        """True while the stored snapshot is younger than the TTL."""
        with self._lock:
            timestamp = self._load().get(KEY_TIMESTAMP, 0)
        age_ms = self._now_ms() - int(timestamp or 0)
        return age_ms < CACHE_TTL_SECONDS * 1000

    def get(self) -> Optional[List[Feed]]:
        """Return the cached snapshot, or None if nothing is cached."""
        with self._lock:
            raw = self._load().get(KEY_FEEDS)
        if raw is None:
            return None
        try:
            return [Feed.from_dict(item) for item in raw]
        except (KeyError, TypeError, AttributeError) as e:
            self.logger.error("Cached feed snapshot is unreadable: %s", e)
            return None

    def put(self, feeds: List[Feed]) -> None:
        """Replace the snapshot in full and stamp it with the current time."""
        with self._lock:
            blob = self._load()
            blob[KEY_FEEDS] = [feed.to_json() for feed in feeds]
            blob[KEY_TIMESTAMP] = self._now_ms()
            self._save(blob)
        self.logger.debug("Cached %d feeds", len(feeds))

    def get_read_ids(self) -> List[str]:
        with self._lock:
            return list(self._load().get(KEY_READ_FEEDS) or [])

    def save_read_ids(self, read_ids: List[str]) -> None:
        with self._lock:
            blob = self._load()
            blob[KEY_READ_FEEDS] = list(read_ids)
            self._save(blob)

    def get_search_history(self) -> List[str]:
        with self._lock:
            return list(self._load().get(KEY_SEARCH_HISTORY) or [])

    def save_search_history(self, history: List[str]) -> None:
        with self._lock:
            blob = self._load()
            blob[KEY_SEARCH_HISTORY] = list(history)
            self._save(blob)

    def update(self, mutate: Callable[[Dict[str, Any]], bool]) -> bool:
        """Run a read-modify-write on the blob under the cache lock.

        ``mutate`` edits the blob in place and returns True when it changed
        something; only then is the blob written back.
        """
        with self._lock:
            blob = self._load()
            changed = mutate(blob)
            if changed:
                self._save(blob)
            return changed

    def size_bytes(self) -> int:
        """Serialized size of the blob entries plus every auxiliary cache."""
        with self._lock:
            blob = self._load()
            total = 0
            for key in (KEY_FEEDS, KEY_READ_FEEDS, KEY_SEARCH_HISTORY):
                if key in blob:
                    total += _serialized_size(blob[key])
            for cache in self.auxiliary_caches:
                total += cache.size_bytes()
        return total

    def clear(self) -> None:
        """Drop snapshot, read state, search history and auxiliary caches.

        Every cache is attempted; raises OSError naming the ones that could
        not be cleared.
        """
        with self._lock:
            self._save({})
            self.logger.debug("Feed cache blob cleared")
            failed = [
                type(cache).__name__
                for cache in self.auxiliary_caches
                if not cache.clear()
            ]
        if failed:
            self.logger.error("Failed to clear %s", ", ".join(failed))
            raise OSError(f"Could not clear {', '.join(failed)}")
        self.logger.info("All caches cleared")

    def _load(self) -> Dict[str, Any]:
        return self.storage.read_json(self.path) or {}

    def _save(self, blob: Dict[str, Any]) -> None:
        if not self.storage.write_json(self.path, blob):
            raise OSError(f"Could not write cache blob {self.path}")

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

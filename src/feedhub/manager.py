"""
Main orchestration class for the feed reader.
"""

import logging
import threading
from typing import Callable, List, Optional

from .aggregator import Aggregator
from .content_cache import ContentCache
from .favorite_sync import FavoriteSyncController
from .grouping import GroupingEngine
from .models import FavoriteEntry, Feed, FeedResponse, FeedViews
from .read_state import ReadState, SearchHistory
from .settings import SettingsStore


class FeedReaderManager:
    """
    Ties aggregation, caching, read state, favorites and grouping together.

    Views are recomputed explicitly: after a refresh, and whenever the read
    state or the settings publish a change.
    """

    def __init__(
        self,
        settings: SettingsStore,
        cache: ContentCache,
        aggregator: Aggregator,
        read_state: ReadState,
        search_history: SearchHistory,
        favorite_sync: FavoriteSyncController,
        grouping: Optional[GroupingEngine] = None,
    ):
        """Initialize with dependencies."""
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.cache = cache
        self.aggregator = aggregator
        self.read_state = read_state
        self.search_history = search_history
        self.favorite_sync = favorite_sync
        self.grouping = grouping or GroupingEngine()

        self._lock = threading.RLock()
        self._feeds: List[Feed] = []
        self._views = FeedViews()
        self._last_error: Optional[str] = None
        self._unsubscribers: List[Callable[[], None]] = [
            self.read_state.changed.subscribe(self.recompute),
            self.settings.subscribe(self.recompute),
            self.settings.subscribe(self.favorite_sync.on_settings_changed),
        ]

    @property
    def last_error(self) -> Optional[str]:
        """Error attached to the last refresh when cached data was served."""
        return self._last_error

    def refresh(
        self,
        use_cache: bool = True,
        hours: float = 24,
        query: str = "",
        threshold: Optional[float] = None,
        limit: int = 500,
    ) -> FeedResponse:
        """Fetch feeds and recompute views. Raises FetchFailed."""
        if query.strip():
            self.search_history.add(query)

        response = self.aggregator.fetch(
            use_cache=use_cache,
            hours=hours,
            query=query,
            threshold=threshold,
            limit=limit,
        )
        if response.error:
            self.logger.warning("Showing cached feeds: %s", response.error)

        with self._lock:
            self._feeds = list(response.feeds)
            self._last_error = response.error

        labels = [
            label
            for feed in response.feeds
            for label in (feed.labels.category, feed.labels.source)
            if label
        ]
        # Notifies settings subscribers only when a new label was added.
        self.settings.ensure_category_configs(labels)
        self.recompute()
        return response

    def recompute(self) -> FeedViews:
        """Derive views from the current feeds, settings and read state."""
        current = self.settings.current()
        read_ids = self.read_state.all()
        with self._lock:
            feeds = list(self._feeds)
        views = self.grouping.compute_views(
            feeds,
            title_filter_keywords=current.title_filter_keywords,
            category_configs=current.category_filter_configs,
            grouping_mode=current.grouping_mode,
            read_ids=read_ids,
        )
        with self._lock:
            self._views = views
        return views

    def views(self) -> FeedViews:
        with self._lock:
            return self._views

    def mark_read(self, feed: Feed) -> bool:
        return self.read_state.mark_read(feed.feed_id)

    def mark_unread(self, feed: Feed) -> bool:
        return self.read_state.mark_unread(feed.feed_id)

    def toggle_favorite(self, feed: Feed) -> bool:
        return self.favorite_sync.toggle_favorite(feed)

    def favorites(self) -> List[FavoriteEntry]:
        return self.favorite_sync.favorites.get_all()

    def reconcile_offline_audio(self) -> int:
        """Startup pass that restarts missing offline downloads."""
        return self.favorite_sync.ensure_offline_cache_for_favorites()

    def cache_size_bytes(self) -> int:
        return self.cache.size_bytes()

    def clear_cache(self) -> None:
        """Clear every cache; favorites lose their recorded local files.

        Raises OSError when some cache could not be cleared.
        """
        try:
            self.cache.clear()
        finally:
            self.favorite_sync.favorites.clear_all_local_podcast_paths()
            self.recompute()

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.favorite_sync.shutdown()

"""
Factory functions for creating FeedReaderManager instances.

This module provides simple factory functions that wire up dependencies
clearly.
"""

import logging
from typing import Optional

from .aggregator import Aggregator, ClientFactory
from .content_cache import ContentCache
from .favorite_sync import FavoriteSyncController
from .grouping import GroupingEngine
from .manager import FeedReaderManager
from .offline_audio import OfflineAudioStore
from .read_state import ReadState, SearchHistory
from .repository import FavoritesRepository
from .settings import SettingsStore
from .storage import Storage


def create_manager(
    data_dir: str = "./data",
    client_factory: Optional[ClientFactory] = None,
    show_progress: bool = False,
) -> FeedReaderManager:
    """Create a FeedReaderManager whose state lives under data_dir."""
    logger = logging.getLogger(__name__)
    logger.info("Creating FeedReaderManager in %s", data_dir)

    storage = Storage(data_dir)
    storage.ensure_directory(data_dir)
    settings = SettingsStore(storage)

    offline_store = OfflineAudioStore(
        storage,
        timeout=settings.current().request_timeout,
        show_progress=show_progress,
    )
    cache = ContentCache(storage, auxiliary_caches=[offline_store])
    favorites = FavoritesRepository(storage)

    aggregator = Aggregator(settings.current, cache, client_factory)
    favorite_sync = FavoriteSyncController(
        favorites,
        offline_store,
        auto_download=lambda: settings.current().auto_download_to_local,
    )

    manager = FeedReaderManager(
        settings=settings,
        cache=cache,
        aggregator=aggregator,
        read_state=ReadState(cache),
        search_history=SearchHistory(cache),
        favorite_sync=favorite_sync,
        grouping=GroupingEngine(),
    )
    logger.info(
        "FeedReaderManager ready with %d extra servers",
        len(settings.current().server_configs),
    )
    return manager

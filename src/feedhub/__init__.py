"""
Feedhub package - Aggregates feeds from several servers, caches them,
tracks read and favorite state, and keeps offline copies of favorited
podcast audio.

This package provides a modular approach with separate components for
aggregation, caching, grouping, favorites and offline downloads.
"""

from .aggregator import Aggregator
from .content_cache import ContentCache
from .errors import (
    AllSourcesFailed,
    DownloadError,
    FetchFailed,
    SourceUnavailable,
)
from .factory import create_manager
from .favorite_sync import FavoriteSyncController, SyncState
from .grouping import GroupingEngine
from .manager import FeedReaderManager
from .models import (
    CategoryFilterConfig,
    FavoriteEntry,
    Feed,
    FeedLabels,
    FeedResponse,
    FeedViews,
    ServerConfig,
)
from .offline_audio import OfflineAudioStore

__all__ = [
    "Aggregator",
    "AllSourcesFailed",
    "CategoryFilterConfig",
    "ContentCache",
    "create_manager",
    "DownloadError",
    "FavoriteEntry",
    "FavoriteSyncController",
    "Feed",
    "FeedLabels",
    "FeedReaderManager",
    "FeedResponse",
    "FeedViews",
    "FetchFailed",
    "GroupingEngine",
    "OfflineAudioStore",
    "ServerConfig",
    "SourceUnavailable",
    "SyncState",
]

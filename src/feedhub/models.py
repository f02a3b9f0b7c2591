"""
Data models for feeds, servers, favorites and grouping configuration.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional


class GroupingMode:
    """Supported home grouping modes."""

    CATEGORY = "category"
    SOURCE = "source"
    CATEGORY_AND_SOURCE = "category,source"
    NONE = "none"

    ALL = (CATEGORY, SOURCE, CATEGORY_AND_SOURCE, NONE)


def _pick(data: Dict[str, Any], *keys: str) -> Optional[Any]:
    """Return the first non-None value among keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _flag(data: Dict[str, Any], *keys: str) -> bool:
    """Read a boolean that defaults to True when absent."""
    value = _pick(data, *keys)
    return True if value is None else bool(value)


@dataclass(frozen=True)
class FeedLabels:
    """Structured metadata attached to a feed entry.

    Backends send labels in snake_case; camelCase keys written by older
    caches are accepted as well.
    """

    title: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None
    podcast_url: Optional[str] = None
    local_podcast_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FeedLabels":
        """Create labels from a wire or cache dictionary."""
        if not data:
            return cls()
        return cls(
            title=_pick(data, "title"),
            category=_pick(data, "category"),
            source=_pick(data, "source"),
            podcast_url=_pick(data, "podcast_url", "podcastUrl"),
            local_podcast_path=_pick(
                data, "local_podcast_path", "localPodcastPath"
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        """Convert labels to JSON, omitting unset values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Feed:
    """One article or podcast entry."""

    labels: FeedLabels
    time: str
    server_id: str = ""
    is_read: bool = False

    @property
    def feed_id(self) -> str:
        """Stable identity derived from title, time and server."""
        return stable_feed_id(self)

    @property
    def title(self) -> str:
        return self.labels.title or ""

    def with_labels(self, **changes: Any) -> "Feed":
        """Return a copy with some labels replaced."""
        return replace(self, labels=replace(self.labels, **changes))

    def with_server_id(self, server_id: str) -> "Feed":
        return replace(self, server_id=server_id)

    def with_read(self, is_read: bool) -> "Feed":
        return replace(self, is_read=is_read)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feed":
        """Create Feed from dictionary."""
        return cls(
            labels=FeedLabels.from_dict(data.get("labels")),
            time=str(data.get("time") or ""),
            server_id=_pick(data, "server_id", "serverId") or "",
        )

    def to_json(self) -> Dict[str, Any]:
        """Convert feed to JSON-serializable dictionary.

        ``is_read`` is derived at display time and never persisted.
        """
        return {
            "labels": self.labels.to_json(),
            "time": self.time,
            "server_id": self.server_id,
        }


def stable_feed_id(feed: Feed) -> str:
    """Build the ``title-time-serverId`` identity of a feed."""
    return f"{feed.labels.title or ''}-{feed.time}-{feed.server_id or ''}"


@dataclass(frozen=True)
class ServerConfig:
    """An independently configured backend server."""

    id: str
    name: str
    api_url: str
    backend_url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            api_url=str(_pick(data, "api_url", "apiUrl") or ""),
            backend_url=str(_pick(data, "backend_url", "backendUrl") or ""),
        )

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FeedResponse:
    """Result of an aggregated fetch.

    ``error`` is only set when cached feeds are returned because the live
    fetch failed.
    """

    feeds: List[Feed]
    count: int
    error: Optional[str] = None

    @classmethod
    def of(cls, feeds: List[Feed], error: Optional[str] = None) -> "FeedResponse":
        return cls(feeds=feeds, count=len(feeds), error=error)


@dataclass(frozen=True)
class FavoriteEntry:
    """A favorited feed with the time it was favorited (epoch millis)."""

    feed_id: str
    favorited_at: int
    feed: Feed

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FavoriteEntry":
        return cls(
            feed_id=str(_pick(data, "feed_id", "feedId")),
            favorited_at=int(_pick(data, "favorited_at", "favoritedAt") or 0),
            feed=Feed.from_dict(data["feed"]),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "feed_id": self.feed_id,
            "favorited_at": self.favorited_at,
            "feed": self.feed.to_json(),
        }


@dataclass(frozen=True)
class CategoryFilterConfig:
    """Visibility and ordering for one category or source label.

    A ``sort_order`` of 0 means unordered; such groups sort last.
    """

    category_name: str
    show_in_all: bool = True
    show_group: bool = True
    sort_order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryFilterConfig":
        return cls(
            category_name=str(_pick(data, "category_name", "categoryName")),
            show_in_all=_flag(data, "show_in_all", "showInAll"),
            show_group=_flag(data, "show_group", "showGroup"),
            sort_order=int(_pick(data, "sort_order", "sortOrder") or 0),
        )

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FeedViews:
    """Grouped views derived from a merged feed list."""

    flat_filtered: List[Feed] = field(default_factory=list)
    all_feeds: List[Feed] = field(default_factory=list)
    per_category: Dict[str, List[Feed]] = field(default_factory=dict)
    category_order: List[str] = field(default_factory=list)

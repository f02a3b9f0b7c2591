"""
Filtering, sorting and grouping of a merged feed list into views.

Everything here is pure: the same inputs always give the same views.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from .models import CategoryFilterConfig, Feed, FeedViews, GroupingMode
from .time_parsing import sort_key_for_time

UNORDERED = 0
# Untitled feeds sort under this title ("unknown title").
UNTITLED_SORT_TITLE = "未知标题"
_LAST = float("inf")


def keyword_list(keywords: str) -> List[str]:
    """Split a comma-separated keyword string into lower-cased keywords."""
    if not keywords or not keywords.strip():
        return []
    return [k.strip().lower() for k in keywords.split(",") if k.strip()]


def filter_by_title_keywords(feed: Feed, keywords: str) -> bool:
    """True if the feed is kept, i.e. its title contains no keyword."""
    words = keyword_list(keywords)
    title = feed.labels.title
    if not words or not title:
        return True
    title_lower = title.lower()
    return not any(word in title_lower for word in words)


def sort_feeds(feeds: Iterable[Feed]) -> List[Feed]:
    """Newest first, ties broken by title ascending."""
    by_title = sorted(
        feeds, key=lambda f: f.labels.title or UNTITLED_SORT_TITLE
    )
    return sorted(
        by_title, key=lambda f: sort_key_for_time(f.time), reverse=True
    )


def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    seen: Set[str] = set()
    result: List[str] = []
    for value in values:
        if value is not None and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class GroupingEngine:
    """Derives per-category views from a flat multi-source feed list."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)

    def compute_views(
        self,
        feeds: List[Feed],
        title_filter_keywords: str = "",
        category_configs: Optional[List[CategoryFilterConfig]] = None,
        grouping_mode: str = GroupingMode.CATEGORY,
        read_ids: Optional[Set[str]] = None,
    ) -> FeedViews:
        """Filter, sort and group feeds under the given configuration.

        Args:
            feeds: merged feeds from every source
            title_filter_keywords: comma-separated keywords; feeds whose
                title contains any of them are dropped
            category_configs: per-label visibility and ordering
            grouping_mode: one of GroupingMode.ALL; unknown values fall
                back to category grouping
            read_ids: when given, sets ``is_read`` on every output feed

        Returns:
            FeedViews with the title-filtered list, the "all" list, the
            per-group lists and the group order.
        """
        configs: Dict[str, CategoryFilterConfig] = {}
        for config in category_configs or []:
            configs.setdefault(config.category_name, config)

        if read_ids is not None:
            feeds = [f.with_read(f.feed_id in read_ids) for f in feeds]
        ordered = sort_feeds(feeds)

        flat_filtered = [
            f for f in ordered
            if filter_by_title_keywords(f, title_filter_keywords)
        ]
        all_feeds = [
            f for f in flat_filtered
            if self._include_in_all(f, configs, grouping_mode)
        ]

        order = self._group_order(ordered, configs, grouping_mode)
        category_labels = {f.labels.category for f in ordered}
        per_category = {
            name: self._members(
                flat_filtered, name, grouping_mode, category_labels
            )
            for name in order
        }

        self.logger.debug(
            "Grouped by %s: %d feeds, %d in all, %d groups",
            grouping_mode,
            len(flat_filtered),
            len(all_feeds),
            len(order),
        )
        return FeedViews(
            flat_filtered=flat_filtered,
            all_feeds=all_feeds,
            per_category=per_category,
            category_order=order,
        )

    @staticmethod
    def _include_in_all(
        feed: Feed,
        configs: Dict[str, CategoryFilterConfig],
        grouping_mode: str,
    ) -> bool:
        labels = [feed.labels.category]
        if grouping_mode in (
            GroupingMode.SOURCE,
            GroupingMode.CATEGORY_AND_SOURCE,
        ):
            labels.append(feed.labels.source)
        for label in labels:
            config = configs.get(label) if label is not None else None
            if config is not None and not config.show_in_all:
                return False
        return True

    def _group_order(
        self,
        feeds: List[Feed],
        configs: Dict[str, CategoryFilterConfig],
        grouping_mode: str,
    ) -> List[str]:
        if grouping_mode == GroupingMode.NONE:
            return []

        def visible(name: str) -> bool:
            config = configs.get(name)
            return config is None or config.show_group

        def rank(name: str) -> float:
            config = configs.get(name)
            if config is None or config.sort_order == UNORDERED:
                return _LAST
            return config.sort_order

        categories = [
            c for c in _distinct(f.labels.category for f in feeds)
            if visible(c)
        ]
        sources = [
            s for s in _distinct(f.labels.source for f in feeds)
            if visible(s)
        ]

        if grouping_mode == GroupingMode.SOURCE:
            return sorted(sources, key=lambda s: (rank(s), s))
        if grouping_mode != GroupingMode.CATEGORY_AND_SOURCE:
            return sorted(categories, key=lambda c: (rank(c), c))

        category_names = set(categories)
        all_category_labels = {f.labels.category for f in feeds}
        sources = [s for s in sources if s not in category_names]

        def kind(name: str) -> int:
            return 0 if name in all_category_labels else 1

        items = categories + sources
        if all(rank(item) == _LAST for item in items):
            return sorted(items, key=lambda i: (kind(i), i))
        return sorted(items, key=lambda i: (rank(i), kind(i), i))

    @staticmethod
    def _members(
        feeds: List[Feed],
        name: str,
        grouping_mode: str,
        category_labels: Set[Optional[str]],
    ) -> List[Feed]:
        if grouping_mode == GroupingMode.SOURCE:
            return [f for f in feeds if f.labels.source == name]
        if grouping_mode == GroupingMode.CATEGORY_AND_SOURCE:
            # A source sharing a category's name folds into the category.
            if name in category_labels:
                return [f for f in feeds if f.labels.category == name]
            return [f for f in feeds if f.labels.source == name]
        return [f for f in feeds if f.labels.category == name]

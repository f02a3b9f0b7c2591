"""
Tests for filtering, sorting and grouping feeds into views.
"""

import unittest

from feedhub.grouping import (
    GroupingEngine,
    filter_by_title_keywords,
    keyword_list,
    sort_feeds,
)
from feedhub.models import CategoryFilterConfig, GroupingMode
from tests.utils import create_test_feed


def titles(feeds):
    return [f.title for f in feeds]


class TestTitleFilter(unittest.TestCase):
    """Keyword based title exclusion."""

    def test_keyword_list(self) -> None:
        self.assertEqual(keyword_list(" Foo, ,BAR "), ["foo", "bar"])
        self.assertEqual(keyword_list("   "), [])

    def test_case_insensitive_substring(self) -> None:
        keywords = "foo, bar"
        self.assertFalse(
            filter_by_title_keywords(create_test_feed("Foobar News"), keywords)
        )
        self.assertTrue(
            filter_by_title_keywords(create_test_feed("Baz"), keywords)
        )

    def test_untitled_feeds_are_kept(self) -> None:
        self.assertTrue(filter_by_title_keywords(create_test_feed(None), "foo"))


class TestSortFeeds(unittest.TestCase):
    """Newest first, title breaks ties."""

    def test_time_then_title(self) -> None:
        feeds = [
            create_test_feed("b", "2025-08-11T08:00:00Z"),
            create_test_feed("c", "2025-08-11T09:00:00Z"),
            create_test_feed("a", "2025-08-11T08:00:00Z"),
        ]
        self.assertEqual(titles(sort_feeds(feeds)), ["c", "a", "b"])

    def test_untitled_sorts_after_titled_on_tie(self) -> None:
        feeds = [
            create_test_feed(None, "2025-08-11T08:00:00Z"),
            create_test_feed("zebra", "2025-08-11T08:00:00Z"),
            create_test_feed("apple", "2025-08-11T08:00:00Z"),
        ]
        self.assertEqual(
            [f.labels.title for f in sort_feeds(feeds)],
            ["apple", "zebra", None],
        )

    def test_mixed_precision_and_offsets(self) -> None:
        feeds = [
            create_test_feed("utc", "2025-08-11T08:00:00Z"),
            create_test_feed("nanos", "2025-08-11T08:00:00.000000500Z"),
            create_test_feed("offset", "2025-08-11T10:30:00+02:00"),
        ]
        self.assertEqual(
            titles(sort_feeds(feeds)), ["offset", "nanos", "utc"]
        )


class TestGroupingEngine(unittest.TestCase):
    """Test suite for GroupingEngine.compute_views."""

    def setUp(self) -> None:
        self.engine = GroupingEngine()
        self.fa = create_test_feed(
            "fa", "2025-08-11T08:00:00Z", category="A", source="S1"
        )
        self.fb = create_test_feed(
            "fb", "2025-08-11T09:00:00Z", category="B", source="S2"
        )

    def test_hidden_from_all_but_group_visible(self) -> None:
        views = self.engine.compute_views(
            [self.fa, self.fb],
            category_configs=[
                CategoryFilterConfig("A", show_in_all=False),
                CategoryFilterConfig("B", show_in_all=True),
            ],
        )

        self.assertEqual(titles(views.all_feeds), ["fb"])
        self.assertEqual(titles(views.per_category["A"]), ["fa"])
        self.assertEqual(titles(views.flat_filtered), ["fb", "fa"])

    def test_hidden_group(self) -> None:
        views = self.engine.compute_views(
            [self.fa, self.fb],
            category_configs=[CategoryFilterConfig("A", show_group=False)],
        )
        self.assertEqual(views.category_order, ["B"])
        self.assertNotIn("A", views.per_category)
        self.assertEqual(titles(views.all_feeds), ["fb", "fa"])

    def test_sort_order_zero_goes_last(self) -> None:
        feeds = [
            create_test_feed(name, category=name) for name in ("X", "Y", "Z")
        ]
        views = self.engine.compute_views(
            feeds,
            category_configs=[
                CategoryFilterConfig("X", sort_order=2),
                CategoryFilterConfig("Y", sort_order=0),
                CategoryFilterConfig("Z", sort_order=1),
            ],
        )
        self.assertEqual(views.category_order, ["Z", "X", "Y"])

    def test_unconfigured_groups_sort_by_name(self) -> None:
        feeds = [
            create_test_feed(name, category=name) for name in ("b", "c", "a")
        ]
        views = self.engine.compute_views(feeds)
        self.assertEqual(views.category_order, ["a", "b", "c"])

    def test_title_filter_applies_to_every_view(self) -> None:
        spam = create_test_feed(
            "Foobar News", "2025-08-11T10:00:00Z", category="A"
        )
        views = self.engine.compute_views(
            [self.fa, self.fb, spam], title_filter_keywords="foo, bar"
        )

        self.assertEqual(titles(views.flat_filtered), ["fb", "fa"])
        self.assertEqual(titles(views.all_feeds), ["fb", "fa"])
        self.assertEqual(titles(views.per_category["A"]), ["fa"])

    def test_group_survives_when_all_members_filtered(self) -> None:
        spam = create_test_feed("Foobar", category="C")
        views = self.engine.compute_views(
            [self.fa, spam], title_filter_keywords="foo"
        )
        self.assertIn("C", views.category_order)
        self.assertEqual(views.per_category["C"], [])

    def test_source_mode(self) -> None:
        views = self.engine.compute_views(
            [self.fa, self.fb],
            grouping_mode=GroupingMode.SOURCE,
            category_configs=[CategoryFilterConfig("S1", show_in_all=False)],
        )
        self.assertEqual(views.category_order, ["S1", "S2"])
        self.assertEqual(titles(views.per_category["S2"]), ["fb"])
        self.assertEqual(titles(views.all_feeds), ["fb"])

    def test_source_config_ignored_in_category_mode(self) -> None:
        views = self.engine.compute_views(
            [self.fa, self.fb],
            category_configs=[CategoryFilterConfig("S1", show_in_all=False)],
        )
        self.assertEqual(titles(views.all_feeds), ["fb", "fa"])

    def test_none_mode_has_no_groups(self) -> None:
        views = self.engine.compute_views(
            [self.fa, self.fb], grouping_mode=GroupingMode.NONE
        )
        self.assertEqual(views.category_order, [])
        self.assertEqual(views.per_category, {})
        self.assertEqual(titles(views.all_feeds), ["fb", "fa"])

    def test_category_and_source_mode(self) -> None:
        feeds = [
            self.fa,
            self.fb,
            create_test_feed("fs", category="A", source="B"),
        ]
        views = self.engine.compute_views(
            feeds, grouping_mode=GroupingMode.CATEGORY_AND_SOURCE
        )

        # "B" is both a category and a source: it appears once, as a category.
        self.assertEqual(views.category_order, ["A", "B", "S1", "S2"])
        self.assertEqual(titles(views.per_category["B"]), ["fb"])
        self.assertEqual(titles(views.per_category["S1"]), ["fa"])

    def test_category_and_source_mode_ranked(self) -> None:
        views = self.engine.compute_views(
            [self.fa, self.fb],
            grouping_mode=GroupingMode.CATEGORY_AND_SOURCE,
            category_configs=[
                CategoryFilterConfig("S2", sort_order=1),
                CategoryFilterConfig("B", sort_order=2),
            ],
        )
        self.assertEqual(views.category_order, ["S2", "B", "A", "S1"])

    def test_read_ids_mark_feeds(self) -> None:
        views = self.engine.compute_views(
            [self.fa, self.fb], read_ids={self.fa.feed_id}
        )
        read = {f.title: f.is_read for f in views.all_feeds}
        self.assertEqual(read, {"fa": True, "fb": False})

    def test_same_inputs_same_views(self) -> None:
        first = self.engine.compute_views([self.fa, self.fb])
        second = self.engine.compute_views([self.fb, self.fa])
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()

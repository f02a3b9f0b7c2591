"""
Tests for the data models.
"""

import unittest

from feedhub.models import CategoryFilterConfig, FavoriteEntry, Feed
from tests.utils import create_test_feed


class TestFeedModel(unittest.TestCase):
    """Test Feed identity and serialization."""

    def test_feed_id_uses_title_time_and_server(self) -> None:
        feed = create_test_feed(
            title="Hello", time="2025-01-01T00:00:00Z", server_id="s1"
        )
        self.assertEqual(feed.feed_id, "Hello-2025-01-01T00:00:00Z-s1")

    def test_feed_id_with_missing_title_and_primary_server(self) -> None:
        feed = create_test_feed(title=None, time="t")
        self.assertEqual(feed.feed_id, "-t-")

    def test_feed_id_ignores_local_path(self) -> None:
        feed = create_test_feed(podcast_url="http://a/b.mp3")
        updated = feed.with_labels(local_podcast_path="/tmp/x.audio")
        self.assertEqual(feed.feed_id, updated.feed_id)

    def test_from_dict_accepts_camel_case_labels(self) -> None:
        feed = Feed.from_dict(
            {
                "labels": {"title": "A", "podcastUrl": "http://x"},
                "time": "2025-01-01",
                "serverId": "s2",
            }
        )
        self.assertEqual(feed.labels.podcast_url, "http://x")
        self.assertEqual(feed.server_id, "s2")

    def test_to_json_does_not_persist_read_flag(self) -> None:
        feed = create_test_feed(category="Tech").with_read(True)
        data = feed.to_json()
        self.assertNotIn("is_read", data)
        self.assertFalse(Feed.from_dict(data).is_read)
        self.assertEqual(Feed.from_dict(data).labels.category, "Tech")


class TestConfigModels(unittest.TestCase):
    """Test config and favorite entry parsing."""

    def test_category_config_defaults(self) -> None:
        config = CategoryFilterConfig.from_dict({"category_name": "Tech"})
        self.assertTrue(config.show_in_all)
        self.assertTrue(config.show_group)
        self.assertEqual(config.sort_order, 0)

    def test_category_config_keeps_false_flags(self) -> None:
        config = CategoryFilterConfig.from_dict(
            {"categoryName": "Tech", "showInAll": False, "sortOrder": 3}
        )
        self.assertFalse(config.show_in_all)
        self.assertEqual(config.sort_order, 3)

    def test_favorite_entry_from_dict(self) -> None:
        feed = create_test_feed()
        entry = FavoriteEntry(feed.feed_id, 42, feed)
        self.assertEqual(FavoriteEntry.from_dict(entry.to_json()), entry)


if __name__ == "__main__":
    unittest.main()

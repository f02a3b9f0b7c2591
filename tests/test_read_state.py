"""
Tests for read state, search history and change notifications.
"""

import unittest
from unittest.mock import Mock

from feedhub.content_cache import ContentCache
from feedhub.notifier import ChangeNotifier
from feedhub.read_state import ReadState, SearchHistory
from tests.base import FeedTestBase


class TestReadState(FeedTestBase):
    """Test suite for ReadState."""

    def setUp(self) -> None:
        super().setUp()
        self.cache = ContentCache(self.storage)
        self.read_state = ReadState(self.cache)
        self.listener = Mock()
        self.read_state.changed.subscribe(self.listener)

    def test_mark_read_persists_and_notifies(self) -> None:
        self.assertTrue(self.read_state.mark_read("a"))
        self.assertTrue(self.read_state.is_read("a"))
        self.assertEqual(ReadState(self.cache).all(), {"a"})
        self.listener.assert_called_once_with()

    def test_mark_read_twice_notifies_once(self) -> None:
        self.read_state.mark_read("a")
        self.assertFalse(self.read_state.mark_read("a"))
        self.assertEqual(self.listener.call_count, 1)

    def test_mark_unread(self) -> None:
        self.read_state.mark_read("a")
        self.assertTrue(self.read_state.mark_unread("a"))
        self.assertFalse(self.read_state.is_read("a"))
        self.assertFalse(self.read_state.mark_unread("a"))
        self.assertEqual(self.listener.call_count, 2)


class TestChangeNotifier(unittest.TestCase):
    """Test suite for ChangeNotifier."""

    def test_notifications_during_dispatch_collapse(self) -> None:
        notifier = ChangeNotifier()
        calls = []

        def listener() -> None:
            calls.append(1)
            if len(calls) == 1:
                # Three changes while the first dispatch is running
                notifier.notify()
                notifier.notify()
                notifier.notify()

        notifier.subscribe(listener)
        notifier.notify()

        self.assertEqual(len(calls), 2)

    def test_unsubscribe(self) -> None:
        notifier = ChangeNotifier()
        listener = Mock()
        unsubscribe = notifier.subscribe(listener)
        unsubscribe()
        notifier.notify()
        listener.assert_not_called()

    def test_failing_listener_does_not_block_others(self) -> None:
        notifier = ChangeNotifier()
        second = Mock()
        notifier.subscribe(Mock(side_effect=RuntimeError("boom")))
        notifier.subscribe(second)
        notifier.notify()
        second.assert_called_once_with()


class TestSearchHistory(FeedTestBase):
    """Test suite for SearchHistory."""

    def setUp(self) -> None:
        super().setUp()
        self.history = SearchHistory(ContentCache(self.storage))

    def test_most_recent_first_without_duplicates(self) -> None:
        self.history.add("a")
        self.history.add("b")
        self.history.add("a")
        self.assertEqual(self.history.entries(), ["a", "b"])

    def test_blank_queries_ignored(self) -> None:
        self.history.add("   ")
        self.assertEqual(self.history.entries(), [])

    def test_capped_at_ten(self) -> None:
        for i in range(15):
            self.history.add(f"q{i}")
        entries = self.history.entries()
        self.assertEqual(len(entries), 10)
        self.assertEqual(entries[0], "q14")

    def test_clear(self) -> None:
        self.history.add("a")
        self.history.clear()
        self.assertEqual(self.history.entries(), [])


if __name__ == "__main__":
    unittest.main()

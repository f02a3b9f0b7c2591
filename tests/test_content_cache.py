"""
Tests for the TTL content cache.
"""

import unittest

from feedhub.content_cache import CACHE_TTL_SECONDS, ContentCache
from tests.base import FeedTestBase
from tests.utils import FakeClock, create_test_feed


class FakeAuxCache:
    """Auxiliary cache reporting a fixed size."""

    def __init__(self, size: int):
        self.size = size
        self.cleared = False

    def size_bytes(self) -> int:
        return 0 if self.cleared else self.size

    def clear(self) -> bool:
        self.cleared = True
        return True


class BrokenAuxCache(FakeAuxCache):
    """Auxiliary cache whose clear always fails."""

    def clear(self) -> bool:
        return False


class TestContentCache(FeedTestBase):
    """Test suite for ContentCache."""

    def setUp(self) -> None:
        super().setUp()
        self.clock = FakeClock()
        self.cache = ContentCache(self.storage, clock=self.clock)

    def test_empty_cache_is_invalid_and_absent(self) -> None:
        self.assertFalse(self.cache.is_valid())
        self.assertIsNone(self.cache.get())

    def test_valid_immediately_after_put(self) -> None:
        self.cache.put([create_test_feed()])
        self.assertTrue(self.cache.is_valid())

    def test_ttl_boundaries(self) -> None:
        self.cache.put([create_test_feed()])

        self.clock.now += 59 * 60
        self.assertTrue(self.cache.is_valid())

        self.clock.now += 2 * 60
        self.assertFalse(self.cache.is_valid())

    def test_invalid_exactly_at_ttl(self) -> None:
        self.cache.put([create_test_feed()])
        self.clock.now += CACHE_TTL_SECONDS
        self.assertFalse(self.cache.is_valid())

    def test_expired_snapshot_is_still_readable(self) -> None:
        feed = create_test_feed(title="Old")
        self.cache.put([feed])
        self.clock.now += 2 * CACHE_TTL_SECONDS
        self.assertEqual(self.cache.get(), [feed])

    def test_put_overwrites_snapshot(self) -> None:
        self.cache.put([create_test_feed(title="A"), create_test_feed(title="B")])
        self.cache.put([create_test_feed(title="C")])
        cached = self.cache.get()
        assert cached is not None
        self.assertEqual([f.title for f in cached], ["C"])

    def test_put_preserves_read_state(self) -> None:
        self.cache.save_read_ids(["x"])
        self.cache.put([create_test_feed()])
        self.assertEqual(self.cache.get_read_ids(), ["x"])

    def test_size_includes_blob_entries_and_aux_caches(self) -> None:
        aux = FakeAuxCache(1000)
        self.cache.add_auxiliary_cache(aux)
        self.assertEqual(self.cache.size_bytes(), 1000)

        self.cache.put([create_test_feed()])
        self.cache.save_read_ids(["a"])
        self.cache.save_search_history(["q"])
        self.assertGreater(self.cache.size_bytes(), 1000)

    def test_clear_removes_everything(self) -> None:
        aux = FakeAuxCache(1000)
        self.cache.add_auxiliary_cache(aux)
        self.cache.put([create_test_feed()])
        self.cache.save_read_ids(["a"])
        self.cache.save_search_history(["q"])

        self.cache.clear()

        self.assertIsNone(self.cache.get())
        self.assertFalse(self.cache.is_valid())
        self.assertEqual(self.cache.get_read_ids(), [])
        self.assertEqual(self.cache.get_search_history(), [])
        self.assertTrue(aux.cleared)
        self.assertEqual(self.cache.size_bytes(), 0)

    def test_failed_auxiliary_clear_raises(self) -> None:
        broken = BrokenAuxCache(500)
        healthy = FakeAuxCache(1000)
        self.cache.add_auxiliary_cache(broken)
        self.cache.add_auxiliary_cache(healthy)
        self.cache.put([create_test_feed()])

        with self.assertRaises(OSError) as ctx:
            self.cache.clear()

        self.assertIn("BrokenAuxCache", str(ctx.exception))
        self.assertIsNone(self.cache.get())
        self.assertTrue(healthy.cleared)
        self.assertEqual(self.cache.size_bytes(), 500)

    def test_corrupt_blob_is_treated_as_empty(self) -> None:
        self.write_file(self.cache.path, b"{not json")
        self.assertIsNone(self.cache.get())
        self.assertFalse(self.cache.is_valid())

    def test_snapshot_survives_new_instance(self) -> None:
        self.cache.put([create_test_feed(title="Persisted")])
        reopened = ContentCache(self.storage, clock=self.clock)
        cached = reopened.get()
        assert cached is not None
        self.assertEqual(cached[0].title, "Persisted")
        self.assertTrue(reopened.is_valid())


if __name__ == "__main__":
    unittest.main()

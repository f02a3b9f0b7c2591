"""
Keeps the offline audio store in step with the favorites list.

Favoriting a podcast entry starts a background download when auto-download
is enabled; unfavoriting cancels it and removes the file. At most one
download runs per feed id.
"""

import logging
import os
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .errors import DownloadCancelled, DownloadError
from .models import FavoriteEntry, Feed
from .offline_audio import OfflineAudioStore
from .repository import FavoritesRepository


class SyncState(Enum):
    """Offline state of a favorite entry."""

    IDLE = "idle"
    DOWNLOADING = "downloading"
    SYNCED = "synced"
    REMOVED = "removed"


@dataclass
class DownloadResult:
    """Outcome of one background download job."""

    feed_id: str
    success: bool
    file_path: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False


@dataclass
class _DownloadJob:
    future: "Future[DownloadResult]"
    cancel_event: threading.Event
    # A cancelled job stays registered until its worker has exited.
    cancelled: bool = False
    restart: bool = False


def _usable_file(path: Optional[str]) -> bool:
    if not path:
        return False
    try:
        return os.path.getsize(path) > 0
    except OSError:
        return False


class FavoriteSyncController:
    """Drives offline downloads from favorite/unfavorite transitions."""

    def __init__(
        self,
        favorites: FavoritesRepository,
        store: OfflineAudioStore,
        auto_download: Callable[[], bool],
        executor: Optional[Executor] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """Initialize with collaborators.

        Args:
            favorites: persisted favorites
            store: offline audio cache
            auto_download: returns the current auto-download setting
            executor: runs download jobs; a two-worker thread pool by default
            clock: epoch millis for ``favorited_at``
        """
        self.favorites = favorites
        self.store = store
        self.auto_download = auto_download
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="offline-audio"
        )
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self._jobs: Dict[str, _DownloadJob] = {}
        self._lock = threading.Lock()
        self._auto_download_seen = bool(auto_download())

    # Favorite lifecycle

    def is_favorited(self, feed: Feed) -> bool:
        return self.favorites.is_favorited(feed.feed_id)

    def toggle_favorite(self, feed: Feed) -> bool:
        """Favorite or unfavorite; returns the new favorited state."""
        if self.is_favorited(feed):
            self.unfavorite(feed)
            return False
        self.favorite(feed)
        return True

    def favorite(self, feed: Feed) -> List[FavoriteEntry]:
        favorited_at = self.clock() if self.clock else None
        entries = self.favorites.upsert(feed, favorited_at=favorited_at)
        self.logger.info("Favorited %s", feed.feed_id)
        self._maybe_start_download(feed)
        return entries

    def unfavorite(self, feed: Feed) -> List[FavoriteEntry]:
        feed_id = feed.feed_id
        stored = self.favorites.get(feed_id)
        self._cancel(feed_id)
        entries = self.favorites.remove(feed_id)

        podcast_url = feed.labels.podcast_url or ""
        if podcast_url.strip():
            self.store.delete(feed.server_id, podcast_url)

        local_paths = {feed.labels.local_podcast_path}
        if stored is not None:
            local_paths.add(stored.feed.labels.local_podcast_path)
        for path in local_paths:
            if path:
                self._remove_quietly(path)

        self.logger.info("Unfavorited %s", feed_id)
        return entries

    def clear_all(self) -> None:
        """Cancel every download, drop all favorites and the offline cache."""
        with self._lock:
            feed_ids = list(self._jobs)
        for feed_id in feed_ids:
            self._cancel(feed_id)
        self.favorites.clear()
        self.store.clear()
        self.logger.info("Cleared all favorites and offline audio")

    # Reconciliation

    def ensure_offline_cache_for_favorites(self) -> int:
        """Start downloads for favorites lacking a usable local file.

        Returns the number of downloads started.
        """
        if not self.auto_download():
            return 0

        started = 0
        for entry in self.favorites.get_all():
            feed = entry.feed
            podcast_url = feed.labels.podcast_url or ""
            if not podcast_url.strip():
                continue
            if _usable_file(feed.labels.local_podcast_path):
                continue
            if self._defer_if_busy(entry.feed_id):
                continue

            existing = self.store.has(feed.server_id, podcast_url)
            if existing:
                self.favorites.update_local_podcast_path(
                    entry.feed_id, existing
                )
                continue

            if self._start_download(entry.feed_id, feed):
                started += 1

        if started:
            self.logger.info("Started %d offline downloads", started)
        return started

    def on_settings_changed(self) -> None:
        """Reconcile when auto-download has just been switched on."""
        enabled = self.auto_download()
        with self._lock:
            switched_on = enabled and not self._auto_download_seen
            self._auto_download_seen = enabled
        if switched_on:
            self.ensure_offline_cache_for_favorites()

    # Introspection

    def state_of(self, feed_id: str) -> SyncState:
        with self._lock:
            job = self._jobs.get(feed_id)
            if job is not None and (not job.cancelled or job.restart):
                return SyncState.DOWNLOADING
        entry = self.favorites.get(feed_id)
        if entry is None:
            return SyncState.REMOVED
        if _usable_file(entry.feed.labels.local_podcast_path):
            return SyncState.SYNCED
        return SyncState.IDLE

    def active_downloads(self) -> List[str]:
        """Feed ids with a live or pending download, cancelled ones excluded."""
        with self._lock:
            return [
                feed_id
                for feed_id, job in self._jobs.items()
                if not job.cancelled or job.restart
            ]

    def wait_for_downloads(self, timeout: Optional[float] = None) -> None:
        """Block until no job is running, including restarted ones."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = [
                    job.future
                    for job in self._jobs.values()
                    if not job.future.done()
                ]
            if not pending:
                return
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return
            wait(pending, timeout=remaining)

    def shutdown(self) -> None:
        with self._lock:
            jobs = list(self._jobs.values())
            for job in jobs:
                job.cancelled = True
                job.restart = False
        for job in jobs:
            job.cancel_event.set()
        if self._owns_executor:
            self.executor.shutdown(wait=True)

    # Internals

    def _maybe_start_download(self, feed: Feed) -> None:
        podcast_url = feed.labels.podcast_url or ""
        if not podcast_url.strip():
            return
        if not self.auto_download():
            return
        if self._defer_if_busy(feed.feed_id):
            return
        if self.store.has(feed.server_id, podcast_url):
            existing = self.store.path_for(feed.server_id, podcast_url)
            if feed.labels.local_podcast_path != existing:
                self.favorites.update_local_podcast_path(
                    feed.feed_id, existing
                )
            return
        self._start_download(feed.feed_id, feed)

    def _defer_if_busy(self, feed_id: str) -> bool:
        """True when a job is registered for the feed.

        A cancelled job still owns the store key until its worker exits, so
        the new download is queued as a restart instead.
        """
        with self._lock:
            job = self._jobs.get(feed_id)
            if job is None:
                return False
            if job.cancelled:
                job.restart = True
                self.logger.debug(
                    "Queued restart of offline download for %s", feed_id
                )
            return True

    def _start_download(self, feed_id: str, feed: Feed) -> bool:
        with self._lock:
            if feed_id in self._jobs:
                return False
            cancel_event = threading.Event()
            future: "Future[DownloadResult]" = Future()
            job = _DownloadJob(future=future, cancel_event=cancel_event)
            self._jobs[feed_id] = job

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                self._finish(feed_id, job)
                return
            result: Optional[DownloadResult] = None
            error: Optional[BaseException] = None
            try:
                result = self._download(feed_id, feed, cancel_event)
            except BaseException as e:  # pylint: disable=broad-except
                error = e
            finally:
                self._finish(feed_id, job)
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        try:
            self.executor.submit(run)
        except RuntimeError:
            with self._lock:
                if self._jobs.get(feed_id) is job:
                    del self._jobs[feed_id]
            raise
        self.logger.debug("Queued offline download for %s", feed_id)
        return True

    def _download(
        self, feed_id: str, feed: Feed, cancel_event: threading.Event
    ) -> DownloadResult:
        podcast_url = feed.labels.podcast_url or ""
        try:
            path = self.store.download_if_needed(
                feed.server_id, podcast_url, cancel_event=cancel_event
            )
        except DownloadCancelled:
            self.logger.info("Offline download cancelled for %s", feed_id)
            return DownloadResult(feed_id, success=False, cancelled=True)
        except DownloadError as e:
            self.logger.error("Offline download failed for %s: %s", feed_id, e)
            return DownloadResult(feed_id, success=False, error=str(e))

        # Re-check after the transfer: the entry may have been unfavorited
        # while we were downloading.
        updated = False
        if not cancel_event.is_set():
            updated, _ = self.favorites.update_local_podcast_path(
                feed_id, path
            )
        if not updated:
            self.store.delete(feed.server_id, podcast_url)
            self.logger.info(
                "Discarded download for %s, no longer favorited", feed_id
            )
            return DownloadResult(feed_id, success=False, cancelled=True)

        self.logger.info("Offline copy ready for %s: %s", feed_id, path)
        return DownloadResult(feed_id, success=True, file_path=path)

    def _cancel(self, feed_id: str) -> None:
        with self._lock:
            job = self._jobs.get(feed_id)
            if job is None:
                return
            job.cancelled = True
            job.restart = False
        job.cancel_event.set()
        job.future.cancel()
        self.logger.debug("Cancelled offline download for %s", feed_id)

    def _finish(self, feed_id: str, job: _DownloadJob) -> None:
        with self._lock:
            if self._jobs.get(feed_id) is not job:
                return
            del self._jobs[feed_id]
            restart = job.cancelled and job.restart
        if not restart:
            return
        entry = self.favorites.get(feed_id)
        if entry is None:
            return
        try:
            self._maybe_start_download(entry.feed)
        except RuntimeError as e:
            self.logger.warning(
                "Could not restart offline download for %s: %s", feed_id, e
            )

    def _remove_quietly(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning("Could not delete %s: %s", path, e)

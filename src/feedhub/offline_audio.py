"""
Content-addressable offline cache for podcast audio.

Files are keyed by ``sha256(server_id + "|" + url)`` and stored as
``{cache_dir}/{key}.audio``. Downloads land in ``{path}.tmp`` and are only
promoted once complete and non-empty.
"""

import errno
import hashlib
import logging
import os
import shutil
import threading
from typing import Optional

import requests

from .downloader import DEFAULT_TIMEOUT, stream_to_file
from .errors import DownloadError
from .storage import Storage

OFFLINE_AUDIO_DIRNAME = "offline_audio"
AUDIO_SUFFIX = ".audio"
TEMP_SUFFIX = ".tmp"


class OfflineAudioStore:
    """Downloads and keeps podcast audio for offline playback.

    The store does no per-key locking; callers make sure only one
    ``download_if_needed`` runs per key at a time.
    """

    def __init__(
        self,
        storage: Storage,
        cache_dir: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        show_progress: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self.storage = storage
        self.cache_dir = cache_dir or storage.join_path(
            storage.base_dir, OFFLINE_AUDIO_DIRNAME
        )
        self.timeout = timeout
        self.show_progress = show_progress
        self.session = session
        self.logger = logging.getLogger(__name__)
        self.storage.ensure_directory(self.cache_dir)

    @staticmethod
    def key_for(server_id: Optional[str], url: str) -> str:
        payload = f"{server_id or ''}|{url}".encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def local_path(self, key: str) -> str:
        return self.storage.join_path(self.cache_dir, key + AUDIO_SUFFIX)

    def path_for(self, server_id: Optional[str], url: str) -> str:
        return self.local_path(self.key_for(server_id, url))

    def has(self, server_id: Optional[str], url: str) -> Optional[str]:
        """Path of a usable (existing, non-empty) local file, else None."""
        if not url or not url.strip():
            return None
        path = self.path_for(server_id, url)
        if self.storage.file_size(path) > 0:
            return path
        return None

    def download_if_needed(
        self,
        server_id: Optional[str],
        url: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Return the local path, downloading the audio first if missing."""
        if not url or not url.strip():
            raise DownloadError(url, "no podcast URL")

        existing = self.has(server_id, url)
        if existing:
            self.logger.debug("Audio already cached: %s", existing)
            return existing

        self.storage.ensure_directory(self.cache_dir)
        target = self.path_for(server_id, url)
        temp = target + TEMP_SUFFIX

        try:
            stream_to_file(
                url,
                temp,
                timeout=self.timeout,
                cancel_event=cancel_event,
                show_progress=self.show_progress,
                session=self.session,
            )
        except DownloadError:
            self.storage.remove_file(temp)
            raise

        self._promote(temp, target)
        return target

    def save_from_existing_file(
        self, server_id: Optional[str], url: str, source_path: str
    ) -> str:
        """Adopt an already downloaded file into the store."""
        existing = self.has(server_id, url)
        if existing:
            return existing
        if self.storage.file_size(source_path) <= 0:
            raise DownloadError(url, f"source file {source_path} is empty")

        self.storage.ensure_directory(self.cache_dir)
        target = self.path_for(server_id, url)
        staging = target + TEMP_SUFFIX
        shutil.copyfile(source_path, staging)
        self._promote(staging, target)
        return target

    def delete(self, server_id: Optional[str], url: str) -> bool:
        """Remove the cached file; True if it is gone afterwards."""
        if not url or not url.strip():
            return False
        return self.storage.remove_file(self.path_for(server_id, url))

    def size_bytes(self) -> int:
        if not self.storage.file_exists(self.cache_dir):
            return 0
        return self.storage.directory_size(self.cache_dir)

    def clear(self) -> bool:
        """Empty the cache directory."""
        try:
            self.storage.reset_directory(self.cache_dir)
        except OSError as e:
            self.logger.error("Failed to clear offline audio cache: %s", e)
            return False
        self.logger.info("Offline audio cache cleared")
        return True

    def _promote(self, temp: str, target: str) -> None:
        """Move a complete temp file over the final path."""
        try:
            os.replace(temp, target)
            return
        except OSError as e:
            if e.errno != errno.EXDEV:
                self.storage.remove_file(temp)
                raise DownloadError(target, f"could not store file: {e}") from e

        # Cross-device: copy next to the target first so the final path is
        # still replaced in one step.
        staging = target + ".promote"
        try:
            shutil.copyfile(temp, staging)
            os.replace(staging, target)
        except OSError as e:
            self.storage.remove_file(staging)
            raise DownloadError(target, f"could not store file: {e}") from e
        finally:
            self.storage.remove_file(temp)

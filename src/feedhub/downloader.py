"""
Streaming file download for offline podcast audio.
"""

import logging
import os
import threading
from typing import Optional

import requests
from tqdm import tqdm

from .errors import DownloadCancelled, DownloadError, IntegrityViolation

DEFAULT_TIMEOUT = 30
CHUNK_SIZE = 8192


def stream_to_file(
    file_url: str,
    output_path: str,
    timeout: float = DEFAULT_TIMEOUT,
    cancel_event: Optional[threading.Event] = None,
    show_progress: bool = False,
    session: Optional[requests.Session] = None,
) -> int:
    """Download file from URL to a path and return the bytes written.

    The output path is overwritten. Raises DownloadError on transport
    failure or non-2xx status, IntegrityViolation when nothing was written,
    and DownloadCancelled when ``cancel_event`` is set mid-transfer. The
    partially written file is left in place for the caller to discard.
    """
    logger = logging.getLogger(__name__)
    output_filename = os.path.basename(output_path)
    http = session or requests

    logger.info("Downloading %s from %s", output_filename, file_url)
    written = 0
    try:
        with http.get(file_url, stream=True, timeout=timeout) as response:
            response.raise_for_status()

            content_length = int(response.headers.get("content-length", 0))
            logger.debug("Content length: %d bytes", content_length)

            with open(output_path, "wb") as output_file:
                with tqdm(
                    total=content_length,
                    unit="B",
                    unit_scale=True,
                    desc=output_filename,
                    leave=False,
                    disable=not show_progress,
                ) as progress_bar:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if cancel_event is not None and cancel_event.is_set():
                            raise DownloadCancelled(file_url, "cancelled")
                        if chunk:  # Filter out keep-alive chunks
                            output_file.write(chunk)
                            written += len(chunk)
                            progress_bar.update(len(chunk))
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "?"
        raise DownloadError(file_url, f"HTTP {status}") from e
    except (requests.exceptions.RequestException, IOError) as e:
        raise DownloadError(file_url, str(e)) from e

    if written <= 0:
        raise IntegrityViolation(file_url, "empty response body")

    logger.info("Download complete: %s (%d bytes)", output_filename, written)
    return written

"""
Error taxonomy for feed aggregation and offline downloads.
"""

from enum import Enum
from typing import List, Optional

import requests


class TransportErrorKind(Enum):
    """Broad classes of transport failure surfaced to the user."""

    TLS = "tls"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    GENERIC = "generic"


def classify_exception(exc: BaseException) -> TransportErrorKind:
    """Map a requests exception onto a TransportErrorKind by its type."""
    # SSLError subclasses ConnectionError and ConnectTimeout subclasses
    # both ConnectionError and Timeout, so order matters here.
    if isinstance(exc, requests.exceptions.SSLError):
        return TransportErrorKind.TLS
    if isinstance(exc, requests.exceptions.Timeout):
        return TransportErrorKind.TIMEOUT
    if isinstance(exc, requests.exceptions.ConnectionError):
        return TransportErrorKind.CONNECTION
    if isinstance(exc, requests.exceptions.HTTPError):
        return TransportErrorKind.HTTP_STATUS
    return TransportErrorKind.GENERIC


def describe_failure(kind: TransportErrorKind, detail: str = "") -> str:
    """Human-readable message for a failure kind."""
    if kind is TransportErrorKind.TLS:
        return (
            "SSL connection failed: the server may not speak HTTPS, "
            "check whether the API address should use http://"
        )
    if kind is TransportErrorKind.CONNECTION:
        return (
            "Connection failed: unable to reach the server, check the "
            "network, proxy settings and API address"
        )
    if kind is TransportErrorKind.TIMEOUT:
        return (
            "Connection timed out: the server did not respond in time, "
            "check the network connection"
        )
    if kind is TransportErrorKind.HTTP_STATUS:
        return f"Server returned an error: {detail}"
    return f"Network request failed: {detail}"


class FeedhubError(Exception):
    """Base class for all feedhub errors."""


class SourceUnavailable(FeedhubError):
    """A single source could not be queried."""

    def __init__(
        self,
        source: str,
        kind: TransportErrorKind,
        message: str,
    ):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.kind = kind
        self.message = message


class AllSourcesFailed(FeedhubError):
    """Every configured source failed."""

    def __init__(self, failures: List[SourceUnavailable]):
        super().__init__(
            "All servers failed: "
            + "; ".join(str(failure) for failure in failures)
        )
        self.failures = failures

    @property
    def kind(self) -> TransportErrorKind:
        if not self.failures:
            return TransportErrorKind.GENERIC
        return self.failures[0].kind

    def describe(self) -> str:
        detail = self.failures[0].message if self.failures else str(self)
        return describe_failure(self.kind, detail)


class CacheMiss(FeedhubError):
    """No cached snapshot is available."""


class FetchFailed(FeedhubError):
    """A live fetch failed and there was no cache to fall back to."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class DownloadError(FeedhubError):
    """Offline audio download failed."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Download failed for {url}: {message}")
        self.url = url
        self.message = message


class IntegrityViolation(DownloadError):
    """Downloaded body was empty."""


class DownloadCancelled(DownloadError):
    """Download was cancelled before completion."""

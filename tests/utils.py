"""
Shared factories and fakes for feedhub tests.
"""

from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import MagicMock

import requests

from feedhub.errors import SourceUnavailable, TransportErrorKind
from feedhub.models import Feed, FeedLabels
from feedhub.source_client import TimeRange


def create_test_feed(
    title: Optional[str] = "Test Feed",
    time: str = "2025-08-11T08:00:00Z",
    category: Optional[str] = None,
    source: Optional[str] = None,
    podcast_url: Optional[str] = None,
    server_id: str = "",
    **labels: Any,
) -> Feed:
    """Create a Feed with sensible defaults."""
    return Feed(
        labels=FeedLabels(
            title=title,
            category=category,
            source=source,
            podcast_url=podcast_url,
            **labels,
        ),
        time=time,
        server_id=server_id,
    )


def mock_stream_response(
    chunks: Iterable[bytes], status_code: int = 200
) -> MagicMock:
    """A requests response usable as a context manager with iter_content."""
    chunk_list = list(chunks)
    response = MagicMock()
    response.status_code = status_code
    response.headers = {"content-length": str(sum(len(c) for c in chunk_list))}
    response.iter_content.return_value = iter(chunk_list)
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            str(status_code), response=response
        )
    else:
        response.raise_for_status.return_value = None
    response.__enter__.return_value = response
    response.__exit__.return_value = None
    return response


class FakeSourceClient:
    """SourceClient returning canned feeds or raising a failure."""

    def __init__(
        self,
        feeds: Optional[List[Feed]] = None,
        error: Optional[BaseException] = None,
    ):
        self.feeds = feeds or []
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def fetch_feeds(
        self,
        backend_url: str,
        time_range: TimeRange,
        query: str = "",
        threshold: Optional[float] = None,
        limit: int = 500,
    ) -> List[Feed]:
        self.calls.append(
            {
                "backend_url": backend_url,
                "time_range": time_range,
                "query": query,
                "threshold": threshold,
                "limit": limit,
            }
        )
        if self.error is not None:
            raise self.error
        return list(self.feeds)


def unavailable(
    source: str = "test",
    kind: TransportErrorKind = TransportErrorKind.CONNECTION,
) -> SourceUnavailable:
    return SourceUnavailable(source, kind, "refused")


class FakeClientFactory:
    """Maps api_url to a FakeSourceClient."""

    def __init__(self, clients: Dict[str, FakeSourceClient]):
        self.clients = clients
        self.requested: List[str] = []

    def __call__(self, api_url: str, timeout: float) -> FakeSourceClient:
        self.requested.append(api_url)
        return self.clients[api_url]


class FakeClock:
    """Settable clock in seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

"""
Per-server feed query client.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol

import requests

from .errors import (
    SourceUnavailable,
    TransportErrorKind,
    classify_exception,
)
from .models import Feed

DEFAULT_TIMEOUT = 30
QUERY_PATH = "query"


def format_timestamp(value: datetime) -> str:
    """UTC timestamp with millisecond precision, e.g. 2025-01-01T00:00:00.000Z."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class TimeRange:
    """Inclusive query window."""

    start: datetime
    end: datetime

    @classmethod
    def last_hours(
        cls, hours: float, now: Optional[datetime] = None
    ) -> "TimeRange":
        end = now or datetime.now(timezone.utc)
        return cls(start=end - timedelta(hours=hours), end=end)


class SourceClient(Protocol):
    """Fetches feeds from one configured server."""

    def fetch_feeds(
        self,
        backend_url: str,
        time_range: TimeRange,
        query: str = "",
        threshold: Optional[float] = None,
        limit: int = 500,
    ) -> List[Feed]:
        """Return the server's feeds or raise SourceUnavailable."""
        ...  # pylint: disable=unnecessary-ellipsis


class HttpSourceClient:
    """SourceClient speaking the JSON query API over HTTP."""

    def __init__(
        self,
        api_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.session = session
        self.logger = logging.getLogger(__name__)

    @property
    def query_url(self) -> str:
        return self.api_url.rstrip("/") + "/" + QUERY_PATH

    def build_body(
        self,
        time_range: TimeRange,
        query: str,
        threshold: Optional[float],
        limit: int,
    ) -> Dict[str, Any]:
        return {
            "start": format_timestamp(time_range.start),
            "end": format_timestamp(time_range.end),
            "limit": limit,
            "query": query,
            "threshold": threshold,
            "summarize": False,
        }

    def fetch_feeds(
        self,
        backend_url: str,
        time_range: TimeRange,
        query: str = "",
        threshold: Optional[float] = None,
        limit: int = 500,
    ) -> List[Feed]:
        """Query the server and map the response to Feed objects."""
        http = self.session or requests
        body = self.build_body(time_range, query, threshold, limit)
        self.logger.debug("Querying %s (backend %s)", self.query_url, backend_url)
        try:
            response = http.post(
                self.query_url,
                params={"backend_url": backend_url},
                json=body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            kind = classify_exception(e)
            raise SourceUnavailable(self.api_url, kind, str(e)) from e
        except ValueError as e:
            raise SourceUnavailable(
                self.api_url,
                TransportErrorKind.GENERIC,
                f"invalid JSON response: {e}",
            ) from e

        return self.parse_feeds(payload)

    def parse_feeds(self, payload: Any) -> List[Feed]:
        if not isinstance(payload, dict):
            raise SourceUnavailable(
                self.api_url,
                TransportErrorKind.GENERIC,
                "unexpected response shape",
            )
        feeds: List[Feed] = []
        for item in payload.get("feeds") or []:
            try:
                feeds.append(Feed.from_dict(item))
            except (AttributeError, TypeError) as e:
                self.logger.warning("Skipping malformed feed entry: %s", e)
        return feeds

"""
Concurrent multi-server feed aggregation with cache fallback.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .content_cache import ContentCache
from .errors import (
    AllSourcesFailed,
    CacheMiss,
    FetchFailed,
    SourceUnavailable,
    classify_exception,
)
from .models import Feed, FeedResponse
from .settings import Settings
from .source_client import HttpSourceClient, SourceClient, TimeRange
from .time_parsing import sort_key_for_time

PRIMARY_SERVER_ID = ""
PRIMARY_SERVER_NAME = "primary"

ClientFactory = Callable[[str, float], SourceClient]


def default_client_factory(api_url: str, timeout: float) -> SourceClient:
    return HttpSourceClient(api_url, timeout=timeout)


@dataclass(frozen=True)
class Source:
    """One member of the source set."""

    server_id: str
    name: str
    api_url: str
    backend_url: str


def source_set(settings: Settings) -> List[Source]:
    """Primary source first, then every configured server."""
    sources = [
        Source(
            server_id=PRIMARY_SERVER_ID,
            name=PRIMARY_SERVER_NAME,
            api_url=settings.api_base_url,
            backend_url=settings.backend_url,
        )
    ]
    for config in settings.server_configs:
        sources.append(
            Source(
                server_id=config.id,
                name=config.name or config.id,
                api_url=config.api_url,
                backend_url=config.backend_url,
            )
        )
    return sources


class Aggregator:
    """Fans a query out to every source and merges the results."""

    def __init__(
        self,
        settings: Callable[[], Settings],
        cache: ContentCache,
        client_factory: Optional[ClientFactory] = None,
        max_workers: int = 8,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize with a settings provider and the content cache."""
        self.settings = settings
        self.cache = cache
        self.client_factory = client_factory or default_client_factory
        self.max_workers = max_workers
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(__name__)

    def fetch(
        self,
        use_cache: bool = True,
        hours: float = 24,
        query: str = "",
        threshold: Optional[float] = None,
        limit: int = 500,
    ) -> FeedResponse:
        """Fetch merged feeds.

        Returns the cached snapshot when allowed and fresh. Otherwise
        queries all sources; on total failure falls back to the cached
        snapshot with ``error`` set, or raises FetchFailed if nothing is
        cached.
        """
        if use_cache and self.cache.is_valid():
            cached = self.cache.get()
            if cached is not None:
                self.logger.debug("Serving %d feeds from cache", len(cached))
                return FeedResponse.of(cached)

        time_range = TimeRange.last_hours(hours, self.now())
        try:
            feeds = self.fetch_live(time_range, query, threshold, limit)
        except AllSourcesFailed as e:
            return self._fall_back(e.describe(), e)

        try:
            self.cache.put(feeds)
        except OSError as e:
            self.logger.error("Failed to cache feeds: %s", e)
        self.logger.info("Fetched and cached %d feeds", len(feeds))
        return FeedResponse.of(feeds)

    def fetch_live(
        self,
        time_range: TimeRange,
        query: str = "",
        threshold: Optional[float] = None,
        limit: int = 500,
    ) -> List[Feed]:
        """Query every source concurrently; raise if all of them fail."""
        settings = self.settings()
        sources = source_set(settings)
        results: Dict[str, List[Feed]] = {}
        failures: List[SourceUnavailable] = []

        workers = max(1, min(self.max_workers, len(sources)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(
                    self._fetch_source,
                    source,
                    settings.request_timeout,
                    time_range,
                    query,
                    threshold,
                    limit,
                ): source
                for source in sources
            }
            for future in as_completed(futures):
                source = futures[future]
                try:
                    results[source.server_id] = future.result()
                except SourceUnavailable as e:
                    self.logger.error(
                        "Fetching from server %s failed, continuing with "
                        "the others: %s",
                        source.name,
                        e.message,
                    )
                    failures.append(e)

        if not results:
            raise AllSourcesFailed(failures)

        merged: List[Feed] = []
        for source in sources:
            merged.extend(results.get(source.server_id, []))
        return sorted(
            merged, key=lambda f: sort_key_for_time(f.time), reverse=True
        )

    def _fetch_source(
        self,
        source: Source,
        timeout: float,
        time_range: TimeRange,
        query: str,
        threshold: Optional[float],
        limit: int,
    ) -> List[Feed]:
        try:
            client = self.client_factory(source.api_url, timeout)
            feeds = client.fetch_feeds(
                source.backend_url, time_range, query, threshold, limit
            )
        except SourceUnavailable:
            raise
        except Exception as e:  # pylint: disable=broad-except
            kind = classify_exception(e)
            raise SourceUnavailable(source.name, kind, str(e)) from e

        tagged = [feed.with_server_id(source.server_id) for feed in feeds]
        self.logger.debug(
            "Got %d feeds from server %s", len(tagged), source.name
        )
        return tagged

    def _fall_back(self, message: str, cause: Exception) -> FeedResponse:
        self.logger.error("Feed fetch failed: %s", message)
        cached = self.cache.get()
        if cached is not None:
            self.logger.warning(
                "Returning %d cached feeds after network failure", len(cached)
            )
            return FeedResponse.of(cached, error=message)
        raise FetchFailed(
            message, CacheMiss("no cached feeds to fall back to")
        ) from cause

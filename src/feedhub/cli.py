"""
Command-line interface for the feed reader.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from .errors import FetchFailed
from .factory import create_manager
from .logging_config import setup_logging
from .manager import FeedReaderManager
from .models import Feed
from .settings import DATA_DIR_ENV


def format_bytes(size: int) -> str:
    """Human readable byte count."""
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _feed_line(feed: Feed) -> str:
    marker = " " if not feed.is_read else "x"
    server = f" @{feed.server_id}" if feed.server_id else ""
    podcast = " [podcast]" if feed.labels.podcast_url else ""
    return f"  [{marker}] {feed.time}  {feed.title or '(untitled)'}{server}{podcast}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Aggregate feeds from one or more servers"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose logging"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Fetch and show grouped feeds")
    fetch.add_argument("--hours", type=float, default=24)
    fetch.add_argument("--query", default="")
    fetch.add_argument("--threshold", type=float, default=None)
    fetch.add_argument("--limit", type=int, default=500)
    fetch.add_argument(
        "--no-cache", action="store_true", help="Ignore the cached snapshot"
    )
    fetch.add_argument(
        "--group", default=None, help="Only show this category or source"
    )

    favorites = commands.add_parser("favorites", help="Manage favorites")
    favorites.add_argument("action", choices=["list", "sync", "clear"])

    cache = commands.add_parser("cache", help="Inspect or clear caches")
    cache.add_argument("action", choices=["size", "clear"])
    return parser


def _run_fetch(manager: FeedReaderManager, args: argparse.Namespace) -> int:
    response = manager.refresh(
        use_cache=not args.no_cache,
        hours=args.hours,
        query=args.query,
        threshold=args.threshold,
        limit=args.limit,
    )
    if response.error:
        print(f"Warning: {response.error} (showing cached feeds)",
              file=sys.stderr)

    views = manager.views()
    if args.group is not None:
        feeds = views.per_category.get(args.group)
        if feeds is None:
            print(f"No such group: {args.group}", file=sys.stderr)
            return 1
        print(f"{args.group} ({len(feeds)})")
        for feed in feeds:
            print(_feed_line(feed))
        return 0

    print(f"All ({len(views.all_feeds)})")
    for feed in views.all_feeds:
        print(_feed_line(feed))
    for name in views.category_order:
        print(f"\n{name} ({len(views.per_category[name])})")
        for feed in views.per_category[name]:
            print(_feed_line(feed))
    return 0


def _run_favorites(manager: FeedReaderManager, action: str) -> int:
    if action == "list":
        entries = manager.favorites()
        print(f"{len(entries)} favorites")
        for entry in entries:
            local = entry.feed.labels.local_podcast_path
            suffix = f" -> {local}" if local else ""
            print(f"{_feed_line(entry.feed)}{suffix}")
        return 0
    if action == "sync":
        started = manager.reconcile_offline_audio()
        print(f"Started {started} downloads")
        manager.favorite_sync.wait_for_downloads()
        missing = [
            e for e in manager.favorites()
            if e.feed.labels.podcast_url and not e.feed.labels.local_podcast_path
        ]
        print(f"{len(missing)} favorites still without a local copy")
        return 1 if missing else 0
    manager.favorite_sync.clear_all()
    print("Favorites cleared")
    return 0


def _run_cache(manager: FeedReaderManager, action: str) -> int:
    if action == "size":
        print(f"Cache size: {format_bytes(manager.cache_size_bytes())}")
        return 0
    try:
        manager.clear_cache()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print("Cache cleared")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for the feed reader."""
    args = build_parser().parse_args(argv)

    data_dir = os.getenv(DATA_DIR_ENV)
    if not data_dir:
        print(
            f"Error: {DATA_DIR_ENV} environment variable must be set.",
            file=sys.stderr,
        )
        print(
            f"Example: export {DATA_DIR_ENV}=/path/to/feedhub/data",
            file=sys.stderr,
        )
        sys.exit(1)

    setup_logging(Path(data_dir) / "logs", verbose=args.verbose)
    manager = create_manager(data_dir, show_progress=True)
    try:
        if args.command == "fetch":
            code = _run_fetch(manager, args)
        elif args.command == "favorites":
            code = _run_favorites(manager, args.action)
        else:
            code = _run_cache(manager, args.action)
    except FetchFailed as e:
        print(f"Error: {e.message}", file=sys.stderr)
        code = 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        code = 130
    finally:
        manager.close()
    sys.exit(code)


if __name__ == "__main__":
    main()

"""
Timestamp parsing used only to order feeds.

Servers disagree on precision and timezone suffixes, and some send strings
that are not timestamps at all. Every input still gets a deterministic sort
key; the key is never shown to the user.
"""

import logging
import re
import zlib
from datetime import datetime, timezone
from typing import Optional

import dateparser

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")
_NON_DIGITS = re.compile(r"\D")

# Fixed relative base so strings like "yesterday" always map to one value.
_DATEPARSER_SETTINGS = {
    "RELATIVE_BASE": datetime(2000, 1, 1),
    "TIMEZONE": "UTC",
    "RETURN_AS_TIMEZONE_AWARE": True,
    "PREFER_DAY_OF_MONTH": "first",
}


def _to_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def parse_iso_millis(value: str) -> Optional[int]:
    """Strict ISO-8601 parse to epoch millis, None if not ISO-8601."""
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # Nanosecond precision is common; older fromisoformat accepts exactly
    # three or six fraction digits.
    text = _FRACTION.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1
    )
    try:
        return _to_millis(datetime.fromisoformat(text))
    except ValueError:
        return None


def parse_lenient_millis(value: str) -> Optional[int]:
    """Best-effort parse of legacy formats (RFC 822, free text)."""
    try:
        parsed = dateparser.parse(value, settings=_DATEPARSER_SETTINGS)
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug("dateparser failed on %r: %s", value, e)
        return None
    if parsed is None:
        return None
    return _to_millis(parsed)


def digits_key(value: str) -> Optional[int]:
    """First 14 digits as a number, when at least 8 digits are present."""
    digits = _NON_DIGITS.sub("", value)[:14]
    if len(digits) < 8:
        return None
    return int(digits)


def stable_hash(value: str) -> int:
    """Signed 32-bit hash that is identical across processes."""
    unsigned = zlib.crc32(value.encode("utf-8"))
    return unsigned - (1 << 32) if unsigned >= (1 << 31) else unsigned


def sort_key_for_time(value: Optional[str]) -> int:
    """Numeric ordering key for a feed timestamp; larger is newer."""
    text = value or ""
    millis = parse_iso_millis(text)
    if millis is not None:
        return millis

    logger.debug("ISO-8601 parse failed for %r, trying fallbacks", text)
    millis = parse_lenient_millis(text) if text.strip() else None
    if millis is not None:
        return millis

    key = digits_key(text)
    if key is not None:
        logger.debug("Using digit extraction for %r -> %d", text, key)
        return key

    key = stable_hash(text)
    logger.debug("Using hash ordering for %r -> %d", text, key)
    return key

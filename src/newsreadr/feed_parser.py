"""RSS/Atom feed parsing using feedparser."""

from calendar import timegm
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import struct_time
from urllib.parse import urlparse

import feedparser


@dataclass
class FeedEntry:
    """A feed entry normalized to the fields ingestion needs."""

    title: str
    link: str | None
    body: str | None = None
    summary: str | None = None
    published_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ParsedFeed:
    """Result of parsing an RSS/Atom feed."""

    title: str
    entries: list[FeedEntry]
    warnings: list[str] = field(default_factory=list)


class FeedParseError(Exception):
    """Raised when a feed cannot be fetched or parsed."""


def fetch_and_parse(url: str) -> ParsedFeed:
    """Fetch and parse an RSS or Atom feed from a URL.

    Args:
        url: The feed URL to fetch and parse.

    Returns:
        ParsedFeed with the feed title and normalized entries.

    Raises:
        FeedParseError: If the URL is invalid, unreachable, or not a valid feed.
    """
    try:
        parts = urlparse(url)
    except ValueError as e:
        raise FeedParseError(f"Invalid URL {url!r}: {e}") from e
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise FeedParseError(f"Invalid URL {url!r}: expected an absolute http(s) address")
    return parse_feed(url)


def parse_feed(source: str) -> ParsedFeed:
    """Parse a feed from a URL or a raw XML document."""
    parsed = feedparser.parse(source)

    if parsed.get("status", 200) in (401, 403):
        raise FeedParseError(
            "Feed requires authentication. Ensure the URL is publicly accessible."
        )

    if parsed.get("status", 200) >= 400:
        raise FeedParseError(
            f"Could not reach URL: HTTP {parsed.get('status', 'unknown')}"
        )

    if not parsed.entries and not parsed.feed.get("title"):
        if parsed.bozo and parsed.get("bozo_exception") is not None:
            raise FeedParseError(
                f"URL does not point to a valid RSS or Atom feed: {parsed.bozo_exception}"
            )
        raise FeedParseError("URL does not point to a valid RSS or Atom feed")

    warnings: list[str] = []
    if parsed.bozo:
        warnings.append(
            f"Feed has formatting issues: {parsed.get('bozo_exception')}"
        )

    return ParsedFeed(
        title=parsed.feed.get("title", "Untitled Feed"),
        entries=_extract_entries(parsed.entries, warnings),
        warnings=warnings,
    )


def _extract_entries(entries: list, warnings: list[str]) -> list[FeedEntry]:
    """Normalize feedparser entries."""
    result = []
    for entry in entries:
        try:
            result.append(
                FeedEntry(
                    title=entry.get("title", "Untitled"),
                    link=entry.get("link"),
                    body=_content_value(entry),
                    summary=entry.get("summary") or entry.get("description"),
                    published_at=_parse_date(entry, "published_parsed"),
                    updated_at=_parse_date(entry, "updated_parsed"),
                )
            )
        except (AttributeError, KeyError, TypeError) as e:
            warnings.append(f"Skipping malformed entry: {e}")
    return result


def _content_value(entry: dict) -> str | None:
    """Return the first full-content block of an entry, if any."""
    for content in entry.get("content") or []:
        value = content.get("value")
        if value:
            return value
    return None


def _parse_date(entry: dict, field_name: str) -> datetime | None:
    """Parse a feedparser UTC time struct into an aware datetime."""
    time_struct = entry.get(field_name)
    if isinstance(time_struct, struct_time):
        try:
            return datetime.fromtimestamp(timegm(time_struct), tz=timezone.utc)
        except (ValueError, OverflowError):
            return None
    return None

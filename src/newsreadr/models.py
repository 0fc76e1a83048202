"""Data models for NewsReadr."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class Feed:
    """Represents a subscribed RSS/Atom source."""

    url: str
    display_name: str
    enabled: bool = True
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None


@dataclass
class Item:
    """Represents a single entry from a feed."""

    feed_id: int
    title: str
    url: str
    published_at: datetime
    body: str = ""
    summary: str = ""
    fetched_at: datetime = field(default_factory=utcnow)
    relevance_score: float = 0.0
    id: int | None = None


@dataclass
class Interest:
    """A weighted topic the user cares about."""

    description: str
    weight: float = 1.0
    embedding: list[float] | None = None
    id: int | None = None


@dataclass
class ReadMarker:
    """Flags an item as read until it is purged."""

    item_id: int
    read_at: datetime = field(default_factory=utcnow)

"""Feed ingestion: fetch enabled feeds and store their new items."""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Callable

from newsreadr.database import Database, DuplicateItemError
from newsreadr.feed_parser import FeedEntry, FeedParseError, ParsedFeed, fetch_and_parse
from newsreadr.models import Feed, Item

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_CHARS = 500
DEFAULT_MAX_CONCURRENT_FETCHES = 4


@dataclass
class FetchSummary:
    """Outcome of fetching every enabled feed."""

    new_items: int = 0
    failures: dict[str, str] = field(default_factory=dict)


def entry_to_item(entry: FeedEntry, feed_id: int) -> Item | None:
    """Convert a normalized feed entry into an Item.

    Returns None for entries that have no link or no usable timestamp.
    """
    published_at = entry.published_at or entry.updated_at
    if published_at is None or not entry.link:
        return None

    body = entry.body or entry.summary or ""

    summary = entry.summary or ""
    if not summary and entry.body:
        if len(entry.body) > DESCRIPTION_MAX_CHARS:
            summary = entry.body[:DESCRIPTION_MAX_CHARS] + "..."
        else:
            summary = entry.body

    return Item(
        feed_id=feed_id,
        title=entry.title,
        url=entry.link,
        body=body,
        summary=summary,
        published_at=published_at,
    )


class Ingester:
    """Fetches feeds and stores their items, skipping duplicates."""

    def __init__(
        self,
        db: Database,
        fetch: Callable[[str], ParsedFeed] = fetch_and_parse,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT_FETCHES,
    ):
        self.db = db
        self.fetch = fetch
        self.max_concurrent = max_concurrent

    def store_entries(self, feed: Feed, entries: list[FeedEntry]) -> int:
        """Store converted entries for a feed. Returns count of new items."""
        new_items = 0
        for entry in entries:
            item = entry_to_item(entry, feed.id)
            if item is None:
                continue
            try:
                self.db.add_item(item)
            except DuplicateItemError:
                continue
            new_items += 1
        return new_items

    async def fetch_and_store(self, feed: Feed) -> int:
        """Fetch one feed and store its new items.

        Raises:
            FeedParseError: If the feed cannot be fetched or parsed.
        """
        parsed = await asyncio.to_thread(self.fetch, feed.url)
        for warning in parsed.warnings:
            logger.debug("Feed '%s': %s", feed.display_name, warning)

        new_items = self.store_entries(feed, parsed.entries)
        if new_items:
            logger.info("Feed '%s': %d new items", feed.display_name, new_items)
        return new_items

    async def fetch_all_enabled(self) -> FetchSummary:
        """Fetch every enabled feed; one failing feed never stops the others."""
        feeds = self.db.list_feeds(enabled_only=True)
        summary = FetchSummary()
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_one(feed: Feed) -> None:
            async with semaphore:
                try:
                    summary.new_items += await self.fetch_and_store(feed)
                except sqlite3.Error:
                    raise
                except FeedParseError as e:
                    logger.warning("Feed '%s' error: %s", feed.display_name, e)
                    summary.failures[feed.url] = str(e)
                except Exception as e:
                    logger.warning("Feed '%s' unexpected error: %s", feed.display_name, e)
                    summary.failures[feed.url] = str(e)

        await asyncio.gather(*(fetch_one(feed) for feed in feeds))
        return summary

"""Item lifecycle: refresh, consume and housekeeping cycles."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from newsreadr.database import Database
from newsreadr.ingestion import Ingester
from newsreadr.models import Item
from newsreadr.scoring import Scorer

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(days=14)


@dataclass
class RefreshSummary:
    """Outcome of a fetch, score and expire cycle."""

    new_items: int = 0
    scored: int = 0
    expired: int = 0
    failed_feeds: dict[str, str] = field(default_factory=dict)


class Lifecycle:
    """Runs the pipeline stages in order against one store."""

    def __init__(
        self,
        db: Database,
        ingester: Ingester,
        scorer: Scorer,
        max_age: timedelta = DEFAULT_MAX_AGE,
    ):
        self.db = db
        self.ingester = ingester
        self.scorer = scorer
        self.max_age = max_age
        self._refresh_lock = asyncio.Lock()

    def working_set(self) -> list[Item]:
        """Unread, unexpired items in display order."""
        return self.db.unread_items(self.max_age)

    async def refresh(self) -> RefreshSummary:
        """Ingest all enabled feeds, score new items, then expire old ones.

        Concurrent calls run one after another, never interleaved.
        """
        async with self._refresh_lock:
            fetched = await self.ingester.fetch_all_enabled()
            scoring = await asyncio.to_thread(self.scorer.score_all_unscored, self.max_age)
            expired = await asyncio.to_thread(self.db.purge_older_than, self.max_age)

        summary = RefreshSummary(
            new_items=fetched.new_items,
            scored=scoring.scored,
            expired=expired,
            failed_feeds=fetched.failures,
        )
        logger.info(
            "Refresh complete: %d new, %d scored, %d expired, %d feeds failed",
            summary.new_items,
            summary.scored,
            summary.expired,
            len(summary.failed_feeds),
        )
        return summary

    def consume(self, item_id: int) -> int:
        """Mark an item read and purge all read items."""
        self.db.mark_read(item_id)
        return self.db.purge_read()

    def housekeeping(self) -> list[Item]:
        """Purge expired and read items, then return the working set."""
        expired = self.db.purge_older_than(self.max_age)
        read = self.db.purge_read()
        if expired or read:
            logger.info("Housekeeping removed %d expired and %d read items", expired, read)
        return self.working_set()

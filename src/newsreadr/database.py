"""SQLite database operations for NewsReadr."""

import functools
import json
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

from newsreadr.models import Feed, Interest, Item, utcnow

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS feeds (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT UNIQUE NOT NULL,
    display_name TEXT NOT NULL,
    enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    feed_id INTEGER NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    url TEXT UNIQUE NOT NULL,
    body TEXT,
    summary TEXT,
    published_at TEXT NOT NULL,
    fetched_at TEXT NOT NULL,
    relevance_score REAL NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS interests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT UNIQUE NOT NULL,
    weight REAL NOT NULL DEFAULT 1.0,
    embedding TEXT
);

CREATE TABLE IF NOT EXISTS read_markers (
    item_id INTEGER PRIMARY KEY REFERENCES items(id) ON DELETE CASCADE,
    read_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_items_feed_id ON items(feed_id);
CREATE INDEX IF NOT EXISTS idx_items_published_at ON items(published_at);
CREATE INDEX IF NOT EXISTS idx_items_relevance_score ON items(relevance_score);
"""


def _synchronized(method):
    """Serialize access to the shared connection across threads."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class FeedExistsError(ValueError):
    """Raised when adding a feed whose URL is already subscribed."""


class DuplicateItemError(ValueError):
    """Raised when adding an item whose URL is already stored."""


class Database:
    """SQLite store for feeds, items, interests and read markers."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @_synchronized
    def connect(self) -> None:
        """Open database connection and initialize schema."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    @_synchronized
    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    # --- Feed operations ---

    @_synchronized
    def add_feed(self, url: str, display_name: str, enabled: bool = True) -> Feed:
        """Insert a new feed and return it with its assigned id.

        Raises:
            FeedExistsError: If a feed with this URL is already stored.
        """
        feed = Feed(url=url, display_name=display_name, enabled=enabled)
        try:
            cursor = self.conn.execute(
                """INSERT INTO feeds (url, display_name, enabled, created_at)
                   VALUES (?, ?, ?, ?)""",
                (feed.url, feed.display_name, int(feed.enabled), _dt_to_str(feed.created_at)),
            )
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            raise FeedExistsError(f"Already subscribed to {url}") from e
        self.conn.commit()
        feed.id = cursor.lastrowid
        return feed

    @_synchronized
    def get_feed(self, feed_id: int) -> Feed | None:
        """Look up a feed by its id."""
        row = self.conn.execute(
            "SELECT * FROM feeds WHERE id = ?", (feed_id,)
        ).fetchone()
        return _row_to_feed(row) if row else None

    @_synchronized
    def get_feed_by_url(self, url: str) -> Feed | None:
        """Look up a feed by its URL."""
        row = self.conn.execute(
            "SELECT * FROM feeds WHERE url = ?", (url,)
        ).fetchone()
        return _row_to_feed(row) if row else None

    @_synchronized
    def list_feeds(self, enabled_only: bool = False) -> list[Feed]:
        """Return feeds, most recently created first."""
        query = "SELECT * FROM feeds"
        if enabled_only:
            query += " WHERE enabled = 1"
        query += " ORDER BY created_at DESC, id DESC"
        rows = self.conn.execute(query).fetchall()
        return [_row_to_feed(r) for r in rows]

    @_synchronized
    def set_feed_enabled(self, feed_id: int, enabled: bool) -> bool:
        """Enable or disable a feed. Returns True if the feed exists."""
        cursor = self.conn.execute(
            "UPDATE feeds SET enabled = ? WHERE id = ?", (int(enabled), feed_id)
        )
        self.conn.commit()
        return cursor.rowcount > 0

    @_synchronized
    def delete_feed(self, feed_id: int) -> bool:
        """Delete a feed and its items (cascade). Returns True if deleted."""
        cursor = self.conn.execute("DELETE FROM feeds WHERE id = ?", (feed_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    # --- Item operations ---

    @_synchronized
    def add_item(self, item: Item) -> Item:
        """Insert an item and return it with its assigned id.

        This is insert-or-reject: an existing row is never updated.

        Raises:
            DuplicateItemError: If an item with the same URL is already stored.
        """
        try:
            cursor = self.conn.execute(
                """INSERT INTO items (feed_id, title, url, body, summary,
                   published_at, fetched_at, relevance_score)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    item.feed_id,
                    item.title,
                    item.url,
                    item.body,
                    item.summary,
                    _dt_to_str(item.published_at),
                    _dt_to_str(item.fetched_at),
                    item.relevance_score,
                ),
            )
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            if self.item_exists_by_url(item.url):
                raise DuplicateItemError(f"Item already stored: {item.url}") from e
            raise
        self.conn.commit()
        item.id = cursor.lastrowid
        return item

    @_synchronized
    def item_exists_by_url(self, url: str) -> bool:
        """Check if an item with the given URL exists."""
        row = self.conn.execute(
            "SELECT 1 FROM items WHERE url = ?", (url,)
        ).fetchone()
        return row is not None

    @_synchronized
    def get_item(self, item_id: int) -> Item | None:
        """Look up an item by its id."""
        row = self.conn.execute(
            "SELECT * FROM items WHERE id = ?", (item_id,)
        ).fetchone()
        return _row_to_item(row) if row else None

    @_synchronized
    def item_count(self) -> int:
        """Total number of stored items."""
        row = self.conn.execute("SELECT COUNT(*) AS cnt FROM items").fetchone()
        return row["cnt"] if row else 0

    @_synchronized
    def unread_items(
        self, max_age: timedelta, now: datetime | None = None
    ) -> list[Item]:
        """Unread items published within max_age.

        Ordered by relevance (highest first), then by publication date
        (newest first).
        """
        cutoff = (now or utcnow()) - max_age
        rows = self.conn.execute(
            """SELECT items.* FROM items
               LEFT JOIN read_markers ON read_markers.item_id = items.id
               WHERE read_markers.item_id IS NULL AND items.published_at >= ?
               ORDER BY items.relevance_score DESC, items.published_at DESC,
                        items.id DESC""",
            (_dt_to_str(cutoff),),
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    @_synchronized
    def update_relevance(self, item_id: int, score: float) -> None:
        """Overwrite an item's relevance score."""
        self.conn.execute(
            "UPDATE items SET relevance_score = ? WHERE id = ?", (score, item_id)
        )
        self.conn.commit()

    @_synchronized
    def mark_read(self, item_id: int) -> bool:
        """Mark an item read. Returns False if already marked or missing."""
        cursor = self.conn.execute(
            """INSERT OR IGNORE INTO read_markers (item_id, read_at)
               SELECT id, ? FROM items WHERE id = ?""",
            (_dt_to_str(utcnow()), item_id),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    @_synchronized
    def is_read(self, item_id: int) -> bool:
        """Check whether an item currently has a read marker."""
        row = self.conn.execute(
            "SELECT 1 FROM read_markers WHERE item_id = ?", (item_id,)
        ).fetchone()
        return row is not None

    @_synchronized
    def purge_read(self) -> int:
        """Delete every item that has a read marker. Returns count deleted."""
        cursor = self.conn.execute(
            "DELETE FROM items WHERE id IN (SELECT item_id FROM read_markers)"
        )
        self.conn.commit()
        return cursor.rowcount

    @_synchronized
    def purge_older_than(
        self, max_age: timedelta, now: datetime | None = None
    ) -> int:
        """Delete items published before now - max_age, read or not."""
        cutoff = (now or utcnow()) - max_age
        cursor = self.conn.execute(
            "DELETE FROM items WHERE published_at < ?", (_dt_to_str(cutoff),)
        )
        self.conn.commit()
        return cursor.rowcount

    # --- Interest operations ---

    @_synchronized
    def add_interest(self, description: str, weight: float = 1.0) -> Interest | None:
        """Insert an interest. Returns None if the description already exists."""
        if weight < 0:
            raise ValueError("Interest weight must be >= 0")
        cursor = self.conn.execute(
            "INSERT OR IGNORE INTO interests (description, weight) VALUES (?, ?)",
            (description, weight),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            return None
        return Interest(description=description, weight=weight, id=cursor.lastrowid)

    @_synchronized
    def list_interests(self) -> list[Interest]:
        """Return all interests in insertion order."""
        rows = self.conn.execute("SELECT * FROM interests ORDER BY id").fetchall()
        return [_row_to_interest(r) for r in rows]

    @_synchronized
    def set_interest_embedding(self, interest_id: int, embedding: list[float]) -> None:
        """Cache an interest's embedding vector."""
        self.conn.execute(
            "UPDATE interests SET embedding = ? WHERE id = ?",
            (json.dumps(embedding), interest_id),
        )
        self.conn.commit()

    @_synchronized
    def delete_interest(self, interest_id: int) -> bool:
        """Delete an interest. Returns True if deleted."""
        cursor = self.conn.execute(
            "DELETE FROM interests WHERE id = ?", (interest_id,)
        )
        self.conn.commit()
        return cursor.rowcount > 0


# --- Helper functions ---


def _dt_to_str(dt: datetime) -> str:
    """Convert datetime to a fixed-width UTC ISO string for storage."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _str_to_dt(s: str | None) -> datetime | None:
    """Convert stored ISO string back to datetime."""
    if not s:
        return None
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _row_to_feed(row: sqlite3.Row) -> Feed:
    """Convert a database row to a Feed dataclass."""
    return Feed(
        id=row["id"],
        url=row["url"],
        display_name=row["display_name"],
        enabled=bool(row["enabled"]),
        created_at=_str_to_dt(row["created_at"]) or utcnow(),
    )


def _row_to_item(row: sqlite3.Row) -> Item:
    """Convert a database row to an Item dataclass."""
    return Item(
        id=row["id"],
        feed_id=row["feed_id"],
        title=row["title"],
        url=row["url"],
        body=row["body"] or "",
        summary=row["summary"] or "",
        published_at=_str_to_dt(row["published_at"]),
        fetched_at=_str_to_dt(row["fetched_at"]) or utcnow(),
        relevance_score=row["relevance_score"],
    )


def _row_to_interest(row: sqlite3.Row) -> Interest:
    """Convert a database row to an Interest dataclass."""
    embedding = None
    if row["embedding"]:
        try:
            embedding = [float(x) for x in json.loads(row["embedding"])]
        except (ValueError, TypeError):
            # Unreadable cache is recomputed on next use
            embedding = None
    return Interest(
        id=row["id"],
        description=row["description"],
        weight=row["weight"],
        embedding=embedding,
    )

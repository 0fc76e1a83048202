"""Shared test fixtures for NewsReadr tests."""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from newsreadr.database import Database
from newsreadr.embeddings import EmbeddingError
from newsreadr.models import Item


SAMPLE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <description>A test RSS feed</description>
    <item>
      <title>First Article</title>
      <link>https://example.com/article-1</link>
      <guid>article-1</guid>
      <description>Description of the first article</description>
      <pubDate>Fri, 13 Feb 2026 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Second Article</title>
      <link>https://example.com/article-2</link>
      <guid>article-2</guid>
      <description>Description of the second article</description>
      <pubDate>Fri, 13 Feb 2026 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Undated Article</title>
      <link>https://example.com/article-3</link>
      <guid>article-3</guid>
      <description>No date on this one</description>
    </item>
  </channel>
</rss>"""

SAMPLE_ATOM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Test Atom Feed</title>
  <link href="https://example.com"/>
  <subtitle>A test Atom feed</subtitle>
  <entry>
    <title>Atom Entry 1</title>
    <link href="https://example.com/entry-1"/>
    <id>urn:uuid:entry-1</id>
    <summary>Summary of entry 1</summary>
    <content type="html">Full body of entry 1</content>
    <updated>2026-02-13T10:00:00Z</updated>
  </entry>
</feed>"""

SAMPLE_NOT_A_FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<html>
  <body>This is not a feed</body>
</html>"""


class FakeEmbedder:
    """Embedder returning canned vectors and recording every request."""

    def __init__(self, vectors=None, default=None, failing=()):
        self.vectors = dict(vectors or {})
        self.default = default if default is not None else [1.0, 0.0]
        self.failing = set(failing)
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.failing:
            raise EmbeddingError(f"cannot embed {text!r}")
        return list(self.vectors.get(text, self.default))


def make_item(
    feed_id: int,
    url: str = "https://example.com/a",
    title: str = "Title",
    age: timedelta = timedelta(hours=1),
    score: float = 0.0,
    summary: str = "Summary",
    body: str = "Body",
) -> Item:
    """Build an Item published `age` ago."""
    return Item(
        feed_id=feed_id,
        title=title,
        url=url,
        body=body,
        summary=summary,
        published_at=datetime.now(timezone.utc) - age,
        relevance_score=score,
    )


@pytest.fixture
def tmp_db_path():
    """Provide a temporary SQLite database path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    yield path
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture
def db(tmp_db_path):
    """A connected database on a temporary file."""
    database = Database(tmp_db_path)
    database.connect()
    yield database
    database.close()


@pytest.fixture
def feed(db):
    """A stored, enabled feed."""
    return db.add_feed("https://example.com/feed.xml", "Example")


@pytest.fixture
def sample_rss_xml():
    """Sample valid RSS 2.0 XML."""
    return SAMPLE_RSS_XML


@pytest.fixture
def sample_atom_xml():
    """Sample valid Atom XML."""
    return SAMPLE_ATOM_XML


@pytest.fixture
def sample_not_a_feed_xml():
    """Sample XML that is not a feed."""
    return SAMPLE_NOT_A_FEED_XML

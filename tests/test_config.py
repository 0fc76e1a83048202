"""Tests for configuration loading and store seeding."""

from datetime import timedelta

import pytest

from newsreadr.config import (
    Config,
    ConfigError,
    FeedConfig,
    load_config,
    load_or_create,
    parse_interval,
    save_config,
    sync_store,
)

FULL_CONFIG = """
database:
  path: ~/news/data.db
feeds:
  - url: https://example.com/rss
    name: Example
  - https://bare.example/atom.xml
interests:
  - rust programming
  - distributed systems
ollama:
  host: http://gpu-box:11434
  model: nomic-embed-text
raindrop:
  api_token: abc123
ui:
  refresh_interval: 30m
  article_max_age_days: 7
"""


def test_loads_full_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(FULL_CONFIG)

    cfg = load_config(path)

    assert cfg.database.path.endswith("news/data.db")
    assert not cfg.database.path.startswith("~")
    assert cfg.feeds == [
        FeedConfig(url="https://example.com/rss", name="Example"),
        FeedConfig(url="https://bare.example/atom.xml"),
    ]
    assert cfg.interests == ["rust programming", "distributed systems"]
    assert cfg.ollama.model == "nomic-embed-text"
    assert cfg.raindrop.api_token == "abc123"
    assert cfg.ui.max_age == timedelta(days=7)
    assert cfg.ui.refresh_seconds == 1800


def test_defaults_for_missing_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("feeds: []\n")

    cfg = load_config(path)

    assert cfg.ollama.host == "http://localhost:11434"
    assert cfg.ollama.model == "llama2"
    assert cfg.ui.refresh_interval == "15m"
    assert cfg.ui.article_max_age_days == 14
    assert cfg.database.path == str(tmp_path / "data.db")


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("feeds: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_unknown_key_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("ollama:\n  hots: typo\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_save_then_load(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    cfg = Config(feeds=[FeedConfig(url="https://a.example/rss", name="A")], interests=["go"])
    cfg.database.path = str(tmp_path / "db.sqlite")

    save_config(cfg, path)
    loaded = load_config(path)

    assert loaded.feeds == cfg.feeds
    assert loaded.interests == ["go"]
    assert loaded.database.path == str(tmp_path / "db.sqlite")


def test_load_or_create_writes_default(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    monkeypatch.delenv("NEWSREADR_DB_PATH", raising=False)
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    monkeypatch.delenv("NEWSREADR_MODEL", raising=False)
    monkeypatch.delenv("RAINDROP_TOKEN", raising=False)

    cfg = load_or_create(path)

    assert path.exists()
    assert cfg.feeds
    assert cfg.database.path == str(tmp_path / "data.db")


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(FULL_CONFIG)
    monkeypatch.setenv("NEWSREADR_DB_PATH", str(tmp_path / "override.db"))
    monkeypatch.setenv("OLLAMA_HOST", "http://other:11434")
    monkeypatch.setenv("RAINDROP_TOKEN", "from-env")

    cfg = load_or_create(path)

    assert cfg.database.path == str(tmp_path / "override.db")
    assert cfg.ollama.host == "http://other:11434"
    assert cfg.raindrop.api_token == "from-env"


@pytest.mark.parametrize(
    "value, expected",
    [("90s", timedelta(seconds=90)), ("15m", timedelta(minutes=15)), ("1h", timedelta(hours=1))],
)
def test_parse_interval(value, expected):
    assert parse_interval(value) == expected


def test_parse_interval_rejects_garbage():
    with pytest.raises(ConfigError):
        parse_interval("soon")


def test_sync_store_is_repeatable(db):
    cfg = Config(
        feeds=[FeedConfig(url="https://a.example/rss", name="A"), FeedConfig(url="https://b.example/rss")],
        interests=["rust", "go"],
    )

    sync_store(db, cfg)
    sync_store(db, cfg)

    feeds = {f.url: f.display_name for f in db.list_feeds()}
    assert feeds == {"https://a.example/rss": "A", "https://b.example/rss": "https://b.example/rss"}
    assert [i.description for i in db.list_interests()] == ["rust", "go"]
    assert all(i.weight == 1.0 for i in db.list_interests())

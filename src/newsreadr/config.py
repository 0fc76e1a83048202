"""Configuration file loading and saving for NewsReadr."""

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from pathlib import Path

import yaml

from newsreadr.database import Database, FeedExistsError
from newsreadr.embeddings import DEFAULT_HOST, DEFAULT_MODEL

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = "15m"
DEFAULT_MAX_AGE_DAYS = 14

_INTERVAL_RE = re.compile(r"^\s*(\d+)\s*([smhd])\s*$")
_INTERVAL_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""


@dataclass
class FeedConfig:
    url: str
    name: str = ""


@dataclass
class DatabaseConfig:
    path: str = ""


@dataclass
class OllamaConfig:
    host: str = DEFAULT_HOST
    model: str = DEFAULT_MODEL


@dataclass
class RaindropConfig:
    api_token: str = ""


@dataclass
class UIConfig:
    refresh_interval: str = DEFAULT_REFRESH_INTERVAL
    article_max_age_days: int = DEFAULT_MAX_AGE_DAYS

    @property
    def max_age(self) -> timedelta:
        return timedelta(days=self.article_max_age_days)

    @property
    def refresh_seconds(self) -> float:
        return parse_interval(self.refresh_interval).total_seconds()


@dataclass
class Config:
    """Top-level application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    feeds: list[FeedConfig] = field(default_factory=list)
    interests: list[str] = field(default_factory=list)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    raindrop: RaindropConfig = field(default_factory=RaindropConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def default_config_path() -> Path:
    """Default location of the configuration file."""
    return Path.home() / ".config" / "newsreader" / "config.yaml"


def parse_interval(value: str) -> timedelta:
    """Parse an interval such as '90s', '15m' or '1h'."""
    match = _INTERVAL_RE.match(value or "")
    if not match:
        raise ConfigError(f"Invalid refresh interval: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_INTERVAL_UNITS[unit]: int(amount)})


def load_config(path: str | Path) -> Config:
    """Read configuration from a YAML file, filling in defaults.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"Reading config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Parsing config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    try:
        cfg = Config(
            database=DatabaseConfig(**(data.get("database") or {})),
            feeds=[_feed_config(f) for f in data.get("feeds") or []],
            interests=[str(i) for i in data.get("interests") or []],
            ollama=OllamaConfig(**(data.get("ollama") or {})),
            raindrop=RaindropConfig(**(data.get("raindrop") or {})),
            ui=UIConfig(**(data.get("ui") or {})),
        )
    except TypeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    _apply_defaults(cfg, path)
    return cfg


def save_config(cfg: Config, path: str | Path) -> None:
    """Write configuration to a YAML file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(asdict(cfg), sort_keys=False), encoding="utf-8")


def default_config(path: str | Path) -> Config:
    """A starter configuration stored next to the given config path."""
    cfg = Config(
        feeds=[FeedConfig(url="https://news.ycombinator.com/rss", name="Hacker News")],
        interests=["software engineering", "open source"],
    )
    _apply_defaults(cfg, Path(path))
    return cfg


def load_or_create(path: str | Path | None = None) -> Config:
    """Load configuration, writing a default file first if none exists.

    Environment variables override values from the file.
    """
    path = Path(path or os.environ.get("NEWSREADR_CONFIG") or default_config_path())
    if not path.exists():
        logger.info("No config found, writing default config to %s", path)
        save_config(default_config(path), path)
    cfg = load_config(path)
    apply_env_overrides(cfg)
    return cfg


def apply_env_overrides(cfg: Config) -> None:
    """Override configuration values from environment variables."""
    if os.environ.get("NEWSREADR_DB_PATH"):
        cfg.database.path = _expand_path(os.environ["NEWSREADR_DB_PATH"])
    if os.environ.get("OLLAMA_HOST"):
        cfg.ollama.host = os.environ["OLLAMA_HOST"]
    if os.environ.get("NEWSREADR_MODEL"):
        cfg.ollama.model = os.environ["NEWSREADR_MODEL"]
    if os.environ.get("RAINDROP_TOKEN"):
        cfg.raindrop.api_token = os.environ["RAINDROP_TOKEN"]


def sync_store(db: Database, cfg: Config) -> None:
    """Add configured feeds and interests that the store does not have yet."""
    for feed in cfg.feeds:
        try:
            db.add_feed(feed.url, feed.name or feed.url)
            logger.info("Added feed %s", feed.url)
        except FeedExistsError:
            continue
    for description in cfg.interests:
        if db.add_interest(description, 1.0):
            logger.info("Added interest '%s'", description)


def _feed_config(raw) -> FeedConfig:
    if isinstance(raw, str):
        return FeedConfig(url=raw)
    return FeedConfig(**raw)


def _apply_defaults(cfg: Config, path: Path) -> None:
    if not cfg.database.path:
        cfg.database.path = str(path.parent / "data.db")
    cfg.database.path = _expand_path(cfg.database.path)
    if not cfg.ollama.host:
        cfg.ollama.host = DEFAULT_HOST
    if not cfg.ollama.model:
        cfg.ollama.model = DEFAULT_MODEL
    if not cfg.ui.refresh_interval:
        cfg.ui.refresh_interval = DEFAULT_REFRESH_INTERVAL
    if not cfg.ui.article_max_age_days:
        cfg.ui.article_max_age_days = DEFAULT_MAX_AGE_DAYS
    parse_interval(cfg.ui.refresh_interval)


def _expand_path(path: str) -> str:
    """Expand ~ to the home directory."""
    return os.path.expanduser(path)

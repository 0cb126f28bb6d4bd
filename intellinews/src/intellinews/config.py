import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_FETCH_INTERVAL = 60  # minutes
DEFAULT_TOPICS = ["world news", "technology", "science"]
DEFAULT_RETENTION_DAYS = 30
DEFAULT_SEARCH_LIMIT = 10
DEFAULT_FETCH_WORKERS = 4
DEFAULT_AGENT_ID = "default-agent"
DEFAULT_DB_PATH = "intellinews.db"
NEWS_KNOWLEDGE_NAME = "news_knowledge"


def load_env_file(path: str = ".env"):
    """
    Load environment variables from a .env file into os.environ.
    Does not override existing strings.
    """
    p = Path(path)
    if not p.exists():
        return

    try:
        with open(p) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                if '=' in line:
                    key, val = line.split('=', 1)
                    key = key.strip()
                    val = val.strip().strip('"').strip("'")
                    if key not in os.environ:
                        os.environ[key] = val
    except Exception as e:
        logger.warning(f"Failed to load .env: {e}")


class NewsConfig(BaseModel):
    """Validated engine settings."""

    fetch_interval_minutes: int = Field(DEFAULT_FETCH_INTERVAL, gt=0)
    topics: List[str] = Field(default_factory=lambda: list(DEFAULT_TOPICS))
    retention_days: int = Field(DEFAULT_RETENTION_DAYS, gt=0)
    search_limit: int = Field(DEFAULT_SEARCH_LIMIT, gt=0)
    fetch_workers: int = Field(DEFAULT_FETCH_WORKERS, gt=0)
    agent_id: str = DEFAULT_AGENT_ID
    db_path: str = DEFAULT_DB_PATH

    @field_validator("topics")
    @classmethod
    def _check_topics(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("topics must be a non-empty list")
        norm = []
        for t in value:
            if not isinstance(t, str) or not t.strip():
                raise ValueError("all topics must be non-empty strings")
            norm.append(t.strip())
        return norm


def parse_topics(value: Optional[str]) -> List[str]:
    """Split a comma-separated topic list, dropping blanks."""
    if not value or not value.strip():
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def safe_parse_int(value: Optional[str], default: int) -> int:
    """Parse a positive int, falling back to `default` on garbage and clamping to 1."""
    if not value:
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return default
    return max(1, parsed)


def load_topics_file(path: str = "topics.yaml") -> Dict[str, Any]:
    """
    Load topic overrides from YAML.
    Expected shape:
      news:
        topics: [technology, science]
        interval_minutes: 30
    Returns an empty dict if the file does not exist.
    """
    p = Path(path)
    if not p.exists():
        return {}

    try:
        data = yaml.safe_load(p.read_text()) or {}
    except Exception as e:
        raise ConfigurationError(f"Invalid topics YAML: {e}")

    if "news" not in data or not isinstance(data["news"], dict):
        raise ConfigurationError("Topics file must contain a 'news' object.")

    news = data["news"]
    overrides: Dict[str, Any] = {}

    topics = news.get("topics")
    if topics is not None:
        if not isinstance(topics, list) or not topics:
            raise ConfigurationError("'news.topics' must be a non-empty list.")
        for t in topics:
            if not isinstance(t, str) or not t.strip():
                raise ConfigurationError("All topics must be non-empty strings.")
        overrides["topics"] = [t.strip() for t in topics]

    interval = news.get("interval_minutes")
    if interval is not None:
        if not isinstance(interval, int) or isinstance(interval, bool) or interval < 1:
            raise ConfigurationError("'news.interval_minutes' must be a positive integer.")
        overrides["fetch_interval_minutes"] = interval

    return overrides


def load_config(env: Optional[Mapping[str, str]] = None, topics_path: Optional[str] = "topics.yaml") -> NewsConfig:
    """
    Build a NewsConfig from the environment and an optional topics file.
    Never raises: any validation or file error falls back to the defaults.
    """
    env = os.environ if env is None else env
    try:
        raw: Dict[str, Any] = {
            "fetch_interval_minutes": safe_parse_int(env.get("NEWS_FETCH_INTERVAL_MINUTES"), DEFAULT_FETCH_INTERVAL),
            "topics": parse_topics(env.get("NEWS_TOPICS")) or list(DEFAULT_TOPICS),
            "retention_days": safe_parse_int(env.get("NEWS_RETENTION_DAYS"), DEFAULT_RETENTION_DAYS),
            "search_limit": safe_parse_int(env.get("NEWS_SEARCH_LIMIT"), DEFAULT_SEARCH_LIMIT),
            "fetch_workers": safe_parse_int(env.get("NEWS_FETCH_WORKERS"), DEFAULT_FETCH_WORKERS),
            "agent_id": (env.get("INTELLINEWS_AGENT_ID") or DEFAULT_AGENT_ID).strip(),
            "db_path": (env.get("INTELLINEWS_DB_PATH") or DEFAULT_DB_PATH).strip(),
        }
        if topics_path:
            raw.update(load_topics_file(topics_path))
        config = NewsConfig(**raw)
    except Exception as e:
        logger.error(f"News configuration validation failed, using defaults: {e}")
        return NewsConfig()

    logger.info(
        f"Loaded {len(config.topics)} news topics with {config.fetch_interval_minutes} minute fetch interval"
    )
    return config


def get_tavily_key() -> Optional[str]:
    """Get Tavily API key, or None if missing."""
    key = os.environ.get("TAVILY_API_KEY")
    # Handle the template default left by user
    if not key or key == "your_key_here":
        return None
    return key

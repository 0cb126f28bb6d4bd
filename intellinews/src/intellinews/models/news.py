import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_millis(dt: datetime) -> int:
    return int(ensure_utc(dt).timestamp() * 1000)


def from_millis(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def iso_millis(dt: datetime) -> str:
    """Canonical timestamp string, e.g. 2026-01-25T10:00:00.000Z"""
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class NewsItem(BaseModel):
    """
    Transient ingestion record built from a provider hit.
    """
    title: str
    content: str
    source: str
    url: Optional[str] = None
    published_at: datetime
    topics: List[str]
    raw_content: Optional[str] = None

    @field_validator("topics")
    @classmethod
    def _topics_not_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("a news item needs at least one topic")
        return value


class TopicConfig(BaseModel):
    """A configured topic and how often to fetch it."""
    name: str
    interval_minutes: int = Field(gt=0)

    model_config = {"frozen": True}


class SearchOptions(BaseModel):
    """
    Query descriptor for stored news. Date bounds are inclusive on publishedAt.
    """
    query: Optional[str] = None
    conversation_context: Optional[str] = None
    limit: Optional[int] = Field(None, gt=0)
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    sources: Optional[List[str]] = None
    topics: Optional[List[str]] = None

    def cache_key(self) -> str:
        # Arrays keep their given order, so ["a", "b"] and ["b", "a"] are different keys.
        key: Dict[str, Any] = {}
        if self.query is not None:
            key["query"] = self.query
        if self.conversation_context is not None:
            key["conversationContext"] = self.conversation_context
        if self.limit is not None:
            key["limit"] = self.limit
        if self.from_date is not None:
            key["fromDate"] = iso_millis(self.from_date)
        if self.to_date is not None:
            key["toDate"] = iso_millis(self.to_date)
        if self.sources is not None:
            key["sources"] = list(self.sources)
        if self.topics is not None:
            key["topics"] = list(self.topics)
        return json.dumps(key, sort_keys=True, separators=(",", ":"))

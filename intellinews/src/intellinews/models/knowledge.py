import hashlib
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .news import NewsItem, to_millis, utcnow


class Namespace(BaseModel):
    """Agent-scoped table that isolates news from other knowledge kinds."""
    agent_id: str
    table: str = "news_knowledge"

    model_config = {"frozen": True}


class KnowledgeEntry(BaseModel):
    """
    A persisted news record. Written once, never mutated; only created or deleted.
    """
    id: str
    agent_id: str
    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: int  # epoch millis
    # Only set on results of a text query
    similarity: Optional[float] = None

    @property
    def published_at(self) -> int:
        value = self.metadata.get("publishedAt")
        return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0

    @property
    def title(self) -> str:
        return self.metadata.get("title") or ""


def entry_id(url: Optional[str] = None, title: str = "", source: str = "") -> str:
    """
    Stable id from the article url, or from title + source when there is no url.
    Same input gives the same id in every process.
    """
    base = url or f"{title}-{source}"
    digest = hashlib.sha1(base.encode("utf-8")).digest()[:16]
    return str(uuid.UUID(bytes=digest))


def build_entry(item: NewsItem, agent_id: str, *, created_at: Optional[datetime] = None, entry_type: str = "news") -> KnowledgeEntry:
    """Derive the stored form of a news item."""
    metadata: Dict[str, Any] = {
        "title": item.title,
        "source": item.source,
        "url": item.url,
        "publishedAt": to_millis(item.published_at),
        "type": entry_type,
        "topics": list(item.topics),
        "isMain": True,
        "isShared": False,
    }
    return KnowledgeEntry(
        id=entry_id(item.url, item.title, item.source),
        agent_id=agent_id,
        text=f"{item.title}\n\n{item.content}",
        metadata=metadata,
        created_at=to_millis(created_at or utcnow()),
    )


def sort_newest_first(entries: List[KnowledgeEntry]) -> List[KnowledgeEntry]:
    return sorted(entries, key=lambda e: e.published_at, reverse=True)

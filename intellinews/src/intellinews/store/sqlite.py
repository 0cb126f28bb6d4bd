import json
import logging
import re
import sqlite3
from difflib import SequenceMatcher
from pathlib import Path
from typing import Any, List, Optional, Set

from ..errors import StoreError
from ..models.knowledge import KnowledgeEntry, Namespace
from .base import KnowledgeStore

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def _tokens(text: str) -> Set[str]:
    return set(_TOKEN_RE.findall((text or "").lower()))


def _similarity(query: str, query_tokens: Set[str], entry: KnowledgeEntry) -> float:
    """
    Half term overlap against the full text, half character similarity against the title.
    Only a near-identical title scores above 0.95. No shared terms scores 0.
    """
    if not query_tokens:
        return 0.0
    overlap = len(query_tokens & _tokens(entry.text)) / len(query_tokens)
    if overlap == 0:
        return 0.0
    title_ratio = SequenceMatcher(None, query.lower().strip(), entry.title.lower().strip()).ratio()
    return round(0.5 * overlap + 0.5 * title_ratio, 4)


class SQLiteKnowledgeStore(KnowledgeStore):
    """
    Knowledge store backed by SQLite.
    Schema: knowledge(table_name, agent_id, id, text, metadata, url, published_at, created_at)
    Each call opens its own connection, so concurrent writers from worker threads are fine.
    """
    def __init__(self, db_path: str = "intellinews.db"):
        self.db_path = Path(db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=30)

    def _init_db(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS knowledge (
                        table_name TEXT NOT NULL,
                        agent_id TEXT NOT NULL,
                        id TEXT NOT NULL,
                        text TEXT NOT NULL,
                        metadata TEXT,
                        url TEXT,
                        published_at INTEGER,
                        created_at INTEGER,
                        PRIMARY KEY (table_name, agent_id, id)
                    )
                    """
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_knowledge_url ON knowledge (table_name, agent_id, url)"
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to init knowledge store at {self.db_path}: {exc}")

    @staticmethod
    def _row_to_entry(row) -> KnowledgeEntry:
        entry_id, agent_id, text, metadata_json, created_at = row
        return KnowledgeEntry(
            id=entry_id,
            agent_id=agent_id,
            text=text,
            metadata=json.loads(metadata_json) if metadata_json else {},
            created_at=created_at or 0,
        )

    def _select(
        self,
        namespace: Namespace,
        where: str = "",
        params: tuple = (),
        limit: Optional[int] = None,
        order: str = "created_at DESC, id",
    ) -> List[KnowledgeEntry]:
        sql = (
            "SELECT id, agent_id, text, metadata, created_at FROM knowledge "
            "WHERE table_name = ? AND agent_id = ?"
        )
        if where:
            sql += f" AND {where}"
        sql += f" ORDER BY {order}"
        args = (namespace.table, namespace.agent_id) + params
        if limit is not None:
            sql += " LIMIT ?"
            args += (limit,)
        try:
            with self._connect() as conn:
                rows = conn.execute(sql, args).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Knowledge query failed: {exc}", {"table": namespace.table})
        return [self._row_to_entry(r) for r in rows]

    def put(self, namespace: Namespace, entry: KnowledgeEntry) -> str:
        """Insert once; a second put of the same id keeps the first stored row."""
        published_at = entry.metadata.get("publishedAt")
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO knowledge (
                        table_name, agent_id, id, text, metadata, url, published_at, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        namespace.table,
                        namespace.agent_id,
                        entry.id,
                        entry.text,
                        json.dumps(entry.metadata),
                        entry.metadata.get("url"),
                        published_at if isinstance(published_at, int) else None,
                        entry.created_at,
                    ),
                )
                conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise StoreError(f"Failed to store entry {entry.id}: {exc}")
        return entry.id

    def query_by_text(
        self,
        namespace: Namespace,
        text: str,
        limit: int,
        context: Optional[str] = None,
    ) -> List[KnowledgeEntry]:
        query = " ".join(part for part in (text, context) if part)
        query_tokens = _tokens(query)
        if not query_tokens:
            return self._select(namespace, limit=limit)

        scored = []
        for entry in self._select(namespace):
            score = _similarity(text or query, query_tokens, entry)
            if score > 0:
                scored.append(entry.model_copy(update={"similarity": score}))
        scored.sort(key=lambda e: e.similarity, reverse=True)
        return scored[:limit]

    def query_by_metadata(self, namespace: Namespace, key: str, value: Any, limit: int = 10) -> List[KnowledgeEntry]:
        if key == "url":
            return self._select(namespace, "url = ?", (value,), limit=limit)
        matches = [e for e in self._select(namespace) if e.metadata.get(key) == value]
        return matches[:limit]

    def list_all(self, namespace: Namespace, limit: Optional[int] = None, oldest_first: bool = False) -> List[KnowledgeEntry]:
        if oldest_first:
            # Undated rows last so a capped scan reaches expired news first
            return self._select(namespace, limit=limit, order="published_at IS NULL, published_at, created_at, id")
        return self._select(namespace, limit=limit)

    def delete(self, namespace: Namespace, entry_id: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "DELETE FROM knowledge WHERE table_name = ? AND agent_id = ? AND id = ?",
                    (namespace.table, namespace.agent_id, entry_id),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete entry {entry_id}: {exc}")

    def count(self, namespace: Namespace) -> int:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT COUNT(*) FROM knowledge WHERE table_name = ? AND agent_id = ?",
                    (namespace.table, namespace.agent_id),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Knowledge count failed: {exc}")
        return row[0]

"""
Knowledge store interface.
Three narrow read paths (text query, metadata lookup, list) plus put/delete.
Implementations raise StoreError on any failure.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..models.knowledge import KnowledgeEntry, Namespace


class KnowledgeStore(ABC):
    """Append-only semantic store addressed by an agent-scoped namespace"""

    @abstractmethod
    def put(self, namespace: Namespace, entry: KnowledgeEntry) -> str:
        """Persist an entry and return its id."""
        pass

    @abstractmethod
    def query_by_text(
        self,
        namespace: Namespace,
        text: str,
        limit: int,
        context: Optional[str] = None,
    ) -> List[KnowledgeEntry]:
        """Ranked entries for `text`, best first, with `similarity` set."""
        pass

    @abstractmethod
    def query_by_metadata(self, namespace: Namespace, key: str, value: Any, limit: int = 10) -> List[KnowledgeEntry]:
        """Entries whose metadata[key] equals value."""
        pass

    @abstractmethod
    def list_all(self, namespace: Namespace, limit: Optional[int] = None, oldest_first: bool = False) -> List[KnowledgeEntry]:
        """All entries, newest first; `oldest_first` orders by ascending publishedAt instead."""
        pass

    @abstractmethod
    def delete(self, namespace: Namespace, entry_id: str) -> None:
        pass

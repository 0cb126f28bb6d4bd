import logging

from ..models.knowledge import Namespace
from ..models.news import NewsItem
from ..store.base import KnowledgeStore

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.95
TITLE_QUERY_LIMIT = 5


class DuplicateChecker:
    """Decides whether a candidate article is already in the store."""

    def __init__(self, store: KnowledgeStore, namespace: Namespace):
        self.store = store
        self.namespace = namespace

    def is_duplicate(self, item: NewsItem) -> bool:
        """
        Exact url match first, then a title search: same title (case-insensitive)
        or similarity above 0.95 counts as the same article.
        A store failure answers False; storing twice beats dropping an article.
        """
        try:
            if item.url:
                if self.store.query_by_metadata(self.namespace, "url", item.url, limit=1):
                    return True

            title = item.title.lower()
            results = self.store.query_by_text(self.namespace, item.title, limit=TITLE_QUERY_LIMIT)
            for entry in results:
                if entry.title.lower() == title:
                    return True
                if entry.similarity is not None and entry.similarity > SIMILARITY_THRESHOLD:
                    return True
            return False
        except Exception as e:
            logger.error(f"Duplicate check failed for {item.title!r}: {e}")
            return False

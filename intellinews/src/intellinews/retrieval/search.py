"""
Adaptive retrieval over the news store.

The store ranks by relevance but knows nothing about our date/source/topic
filters, so we over-fetch by a complexity multiplier, filter, and if that still
leaves fewer than `limit` matches, escalate exactly once with a 10x batch.
Results come back newest first and are memoized for a few minutes.
"""

import logging
from typing import List, Optional

from ..cache.query_cache import QueryCache
from ..config import DEFAULT_SEARCH_LIMIT
from ..models.knowledge import KnowledgeEntry, Namespace, sort_newest_first
from ..models.news import SearchOptions, to_millis
from ..store.base import KnowledgeStore

logger = logging.getLogger(__name__)

ESCALATION_FACTOR = 10


def estimate_complexity(options: SearchOptions) -> int:
    """Batch-size multiplier: narrower filters lose more of a batch."""
    complexity = 1

    if options.from_date and options.to_date:
        days_between = (to_millis(options.to_date) - to_millis(options.from_date)) / (1000 * 60 * 60 * 24)
        if days_between < 7:
            complexity += 5
        elif days_between < 30:
            complexity += 4
        else:
            complexity += 3
    elif options.from_date or options.to_date:
        complexity += 2

    if options.topics:
        complexity += 1
    if options.sources:
        complexity += 1

    return complexity


def _matches(entry: KnowledgeEntry, options: SearchOptions, from_ms: Optional[int], to_ms: Optional[int]) -> bool:
    metadata = entry.metadata or {}
    if metadata.get("type") != "news":
        return False

    if from_ms is not None or to_ms is not None:
        published_at = metadata.get("publishedAt")
        if not isinstance(published_at, (int, float)) or isinstance(published_at, bool):
            return False
        if from_ms is not None and published_at < from_ms:
            return False
        if to_ms is not None and published_at > to_ms:
            return False

    if options.sources:
        source = metadata.get("source")
        if not source or source not in options.sources:
            return False

    if options.topics:
        topics = metadata.get("topics") or []
        if not any(t in options.topics for t in topics):
            return False

    return True


def filter_entries(entries: List[KnowledgeEntry], options: SearchOptions) -> List[KnowledgeEntry]:
    """Keep news entries satisfying every filter in `options`. A broken entry is dropped, not fatal."""
    from_ms = to_millis(options.from_date) if options.from_date else None
    to_ms = to_millis(options.to_date) if options.to_date else None

    kept = []
    for entry in entries:
        try:
            if _matches(entry, options, from_ms, to_ms):
                kept.append(entry)
        except Exception as e:
            logger.warning(f"Error filtering news item {getattr(entry, 'id', '?')}: {e}")
    return kept


class NewsRetriever:
    def __init__(
        self,
        store: KnowledgeStore,
        namespace: Namespace,
        cache: Optional[QueryCache] = None,
        default_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        self.store = store
        self.namespace = namespace
        self.cache = cache if cache is not None else QueryCache()
        self.default_limit = default_limit

    def search(self, options: Optional[SearchOptions] = None) -> List[KnowledgeEntry]:
        options = options or SearchOptions()
        cached = self.cache.get(options)
        if cached is not None:
            logger.debug("Returning cached news results")
            return cached

        try:
            results = self._search_store(options)
        except Exception as e:
            logger.error(f"Error in news search: {e}")
            return []

        if results is not None:
            self.cache.put(options, results)
            return results
        return []

    def _search_store(self, options: SearchOptions) -> Optional[List[KnowledgeEntry]]:
        """Returns None when the store had nothing at all (not cached)."""
        limit = options.limit or self.default_limit

        if not options.query and not options.conversation_context:
            logger.debug("No query or context provided, listing all news")
            entries = self.store.list_all(self.namespace)
            return sort_newest_first(filter_entries(entries, options))[:limit]

        complexity = estimate_complexity(options)
        batch_size = limit * complexity
        batch = self.store.query_by_text(
            self.namespace, options.query or "", batch_size, context=options.conversation_context
        )
        if not batch:
            logger.debug("No results found in store")
            return None

        matches = filter_entries(batch, options)

        if len(matches) < limit:
            logger.debug(f"Insufficient results ({len(matches)}), trying again with a larger batch")
            larger = self.store.query_by_text(
                self.namespace,
                options.query or "",
                batch_size * ESCALATION_FACTOR,
                context=options.conversation_context,
            )
            # The larger batch usually contains the first one
            seen = {e.id for e in matches}
            matches.extend(e for e in filter_entries(larger, options) if e.id not in seen)

        logger.info(f"Found {len(matches)} matching news items for {limit} requested")
        return sort_newest_first(matches)[:limit]

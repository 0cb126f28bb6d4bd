import concurrent.futures
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from ..models.knowledge import KnowledgeEntry, Namespace, build_entry
from ..models.news import NewsItem, utcnow
from ..models.search import SearchHit
from ..store.base import KnowledgeStore
from .dates import extract_date, parse_date_text
from .dedupe import DuplicateChecker

logger = logging.getLogger(__name__)

RESULTS_PER_TOPIC = 5


class IngestionSummary(BaseModel):
    """Entries stored by one ingestion round, per topic and flattened."""
    by_topic: Dict[str, List[KnowledgeEntry]] = Field(default_factory=dict)
    all_items: List[KnowledgeEntry] = Field(default_factory=list)


def topic_query(topic: str) -> str:
    return f"latest news about {topic}"


def _source_for(hit: SearchHit) -> str:
    if hit.source:
        return hit.source
    if hit.url:
        host = urlparse(hit.url).hostname
        if host:
            return host
    return "unknown"


class IngestionPipeline:
    """
    fetch -> parse -> dedupe -> persist, per topic.
    `provider` is anything with a `search(query, kind=..., limit=...)` method
    returning a SearchResponse.
    """

    def __init__(
        self,
        provider,
        store: KnowledgeStore,
        namespace: Namespace,
        *,
        topics: Optional[List[str]] = None,
        max_workers: int = 4,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.provider = provider
        self.store = store
        self.namespace = namespace
        self.topics = list(topics or [])
        self.max_workers = max(1, max_workers)
        self.clock = clock
        self.dedupe = DuplicateChecker(store, namespace)

    def _published_at(self, hit: SearchHit) -> datetime:
        now = self.clock()
        if hit.published_date:
            parsed = parse_date_text(hit.published_date, now)
            if parsed is not None:
                return parsed
        return extract_date(hit.raw_content, now) or extract_date(hit.content, now) or now

    def fetch_topic(self, topic: str) -> List[KnowledgeEntry]:
        """
        Fetch, dedupe and store up to 5 news results for one topic.
        Provider errors propagate; store errors skip the affected item.
        """
        logger.info(f"Fetching news for topic: {topic}")
        response = self.provider.search(topic_query(topic), kind="news", limit=RESULTS_PER_TOPIC)

        stored: List[KnowledgeEntry] = []
        for hit in response.results:
            if not hit.title or not hit.content:
                logger.debug(f"Skipping result without title or content: {hit.url}")
                continue

            item = NewsItem(
                title=hit.title,
                content=hit.content,
                source=_source_for(hit),
                url=hit.url or None,
                published_at=self._published_at(hit),
                topics=[topic],
                raw_content=hit.raw_content,
            )

            if self.dedupe.is_duplicate(item):
                logger.debug(f"Skipping duplicate news item: {item.title}")
                continue

            entry = build_entry(item, self.namespace.agent_id, created_at=self.clock())
            try:
                self.store.put(self.namespace, entry)
            except Exception as e:
                logger.error(f"Error storing news item {item.title!r}: {e}")
                continue
            stored.append(entry)

        logger.info(f"Fetched and stored {len(stored)} news items for topic: {topic}")
        return stored

    def fetch_topics(self, topics: List[str]) -> IngestionSummary:
        """
        Fetch several topics concurrently. A failing topic is logged and
        contributes an empty list; the others are unaffected.
        """
        topics = list(dict.fromkeys(topics))
        by_topic: Dict[str, List[KnowledgeEntry]] = {t: [] for t in topics}
        if not topics:
            return IngestionSummary()

        workers = min(self.max_workers, len(topics))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fetch") as executor:
            futures = {executor.submit(self.fetch_topic, t): t for t in topics}
            for fut in concurrent.futures.as_completed(futures):
                topic = futures[fut]
                try:
                    by_topic[topic] = fut.result()
                except Exception as e:
                    logger.error(f"Error fetching news for topic {topic}: {e}")

        all_items = [entry for t in topics for entry in by_topic[t]]
        return IngestionSummary(by_topic=by_topic, all_items=all_items)

    def fetch_all(self) -> IngestionSummary:
        logger.info("Fetching news for all topics")
        return self.fetch_topics(self.topics)

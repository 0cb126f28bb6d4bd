import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from .cache.query_cache import QueryCache
from .config import NEWS_KNOWLEDGE_NAME, NewsConfig
from .ingest.pipeline import IngestionPipeline, IngestionSummary
from .models.knowledge import KnowledgeEntry, Namespace
from .models.news import SearchOptions, TopicConfig, utcnow
from .retention import purge_old_news
from .retrieval.search import NewsRetriever
from .scheduler import RepeatingTimer, Scheduler
from .store.base import KnowledgeStore

logger = logging.getLogger(__name__)


class NewsEngine:
    """
    Owns ingestion, retrieval and the schedule for one agent's news table.
    The caller owns the lifecycle: start() installs timers and fetches once,
    stop() cancels them. Everything else works without start().
    """

    def __init__(
        self,
        config: NewsConfig,
        store: KnowledgeStore,
        provider,
        *,
        clock: Callable[[], datetime] = utcnow,
        timer_factory: Callable[..., RepeatingTimer] = RepeatingTimer,
    ):
        self.config = config
        self.store = store
        self.provider = provider
        self.clock = clock
        self.namespace = Namespace(agent_id=config.agent_id, table=NEWS_KNOWLEDGE_NAME)

        self.pipeline = IngestionPipeline(
            provider,
            store,
            self.namespace,
            topics=config.topics,
            max_workers=config.fetch_workers,
            clock=clock,
        )
        self.cache = QueryCache(clock=clock)
        self.retriever = NewsRetriever(store, self.namespace, self.cache, default_limit=config.search_limit)
        self.scheduler = Scheduler(self._scheduled_fetch, self._scheduled_purge, timer_factory=timer_factory)
        self._lock = threading.Lock()
        self._started = False

    @property
    def topics(self) -> List[TopicConfig]:
        return [TopicConfig(name=t, interval_minutes=self.config.fetch_interval_minutes) for t in self.config.topics]

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> IngestionSummary:
        """Install timers and run one full fetch before returning. No-op if already started."""
        with self._lock:
            if self._started:
                return IngestionSummary()
            self._started = True

        summary = IngestionSummary()

        def initial_fetch():
            nonlocal summary
            summary = self.fetch_all()

        self.scheduler.start(self.topics, initial_fetch=initial_fetch)
        logger.info(f"News engine started ({len(summary.all_items)} items stored on startup)")
        return summary

    def stop(self) -> None:
        with self._lock:
            self._started = False
        self.scheduler.stop()

    def fetch_all(self) -> IngestionSummary:
        return self.pipeline.fetch_all()

    def fetch_topics(self, topics: List[str]) -> IngestionSummary:
        return self.pipeline.fetch_topics(topics)

    def fetch_topic(self, topic: str) -> IngestionSummary:
        return self.pipeline.fetch_topics([topic])

    def search(self, options: Optional[SearchOptions] = None) -> List[KnowledgeEntry]:
        return self.retriever.search(options)

    def purge(self, retention_days: Optional[int] = None) -> int:
        """Delete entries past the retention window. Store errors propagate."""
        days = retention_days or self.config.retention_days
        return purge_old_news(self.store, self.namespace, days, now=self.clock())

    def _scheduled_fetch(self, topic: str) -> None:
        try:
            self.pipeline.fetch_topic(topic)
        except Exception as e:
            logger.error(f"Scheduled fetch for topic {topic} failed: {e}")

    def _scheduled_purge(self) -> None:
        try:
            self.purge()
        except Exception as e:
            logger.error(f"Error purging old news, will retry next cycle: {e}")

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from ..models.knowledge import KnowledgeEntry
from ..models.news import SearchOptions, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


class QueryCache:
    """
    In-process memo of search results keyed by normalized SearchOptions.
    An entry is live while now - stored_at < ttl. Expired entries are swept on each put.
    Same-key writes simply overwrite.
    """
    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Callable[[], datetime] = utcnow):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, Tuple[datetime, List[KnowledgeEntry]]] = {}
        self._lock = threading.Lock()

    def get(self, options: SearchOptions) -> Optional[List[KnowledgeEntry]]:
        key = options.cache_key()
        with self._lock:
            cached = self._entries.get(key)
        if cached is None:
            return None
        stored_at, results = cached
        if self.clock() - stored_at >= self.ttl:
            return None
        return list(results)

    def put(self, options: SearchOptions, results: List[KnowledgeEntry]) -> None:
        key = options.cache_key()
        now = self.clock()
        with self._lock:
            self._entries[key] = (now, list(results))
            self._sweep(now)

    def _sweep(self, now: datetime) -> None:
        expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

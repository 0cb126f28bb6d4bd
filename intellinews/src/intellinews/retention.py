import logging
from datetime import datetime, timedelta
from typing import Optional

from .models.knowledge import Namespace
from .models.news import to_millis, utcnow
from .store.base import KnowledgeStore

logger = logging.getLogger(__name__)

# Entries beyond this are not looked at in a single purge run
PURGE_SCAN_LIMIT = 1000


def purge_old_news(store: KnowledgeStore, namespace: Namespace, retention_days: int, now: Optional[datetime] = None) -> int:
    """
    Delete news entries published strictly before now - retention_days.
    Returns the number deleted. A failed delete raises and aborts the run;
    whatever is left is picked up next time.
    """
    cutoff = to_millis((now or utcnow()) - timedelta(days=retention_days))

    entries = store.list_all(namespace, limit=PURGE_SCAN_LIMIT, oldest_first=True)
    expired = []
    for entry in entries:
        published_at = entry.metadata.get("publishedAt")
        if (
            entry.metadata.get("type") == "news"
            and isinstance(published_at, (int, float))
            and not isinstance(published_at, bool)
            and published_at < cutoff
        ):
            expired.append(entry)

    deleted = 0
    for entry in expired:
        store.delete(namespace, entry.id)
        deleted += 1

    logger.info(f"Purged {deleted} expired news items (retention {retention_days}d)")
    return deleted

"""Shared fakes for the test suite: an in-memory store, a canned provider and a settable clock."""

import datetime
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "intellinews" / "src"
sys.path.insert(0, str(SRC))

from intellinews.errors import ProviderError, StoreError
from intellinews.models.knowledge import KnowledgeEntry, Namespace
from intellinews.models.news import to_millis
from intellinews.models.search import SearchHit, SearchResponse
from intellinews.store.base import KnowledgeStore

UTC = datetime.timezone.utc
NOW = datetime.datetime(2026, 1, 25, 12, 0, 0, tzinfo=UTC)
NS = Namespace(agent_id="agent-1")


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + datetime.timedelta(**kwargs)


def make_entry(entry_id, *, published=None, source="example.com", topics=("technology",),
               title=None, entry_type="news", similarity=None):
    published = published or NOW
    title = title or f"Story {entry_id}"
    return KnowledgeEntry(
        id=entry_id,
        agent_id=NS.agent_id,
        text=f"{title}\n\nBody of {entry_id}",
        metadata={
            "title": title,
            "source": source,
            "url": f"https://example.com/{entry_id}",
            "publishedAt": to_millis(published),
            "type": entry_type,
            "topics": list(topics),
            "isMain": True,
            "isShared": False,
        },
        created_at=to_millis(NOW),
        similarity=similarity,
    )


class FakeStore(KnowledgeStore):
    """
    Dict-backed store. `text_results`, when set, is returned (truncated) for every
    text query; each call's limit is recorded in `text_queries`.
    """

    def __init__(self, entries=(), text_results=None):
        self.entries = {e.id: e for e in entries}
        self.text_results = text_results
        self.text_queries = []
        self.deleted = []
        self.fail_on = set()

    def _check(self, op):
        if op in self.fail_on:
            raise StoreError(f"{op} failed")

    def put(self, namespace, entry):
        self._check("put")
        self.entries[entry.id] = entry
        return entry.id

    def query_by_text(self, namespace, text, limit, context=None):
        self._check("query_by_text")
        self.text_queries.append(limit)
        results = self.text_results if self.text_results is not None else list(self.entries.values())
        return list(results)[:limit]

    def query_by_metadata(self, namespace, key, value, limit=10):
        self._check("query_by_metadata")
        return [e for e in self.entries.values() if e.metadata.get(key) == value][:limit]

    def list_all(self, namespace, limit=None, oldest_first=False):
        self._check("list_all")
        items = list(self.entries.values())
        if oldest_first:
            items.sort(key=lambda e: e.published_at)
        return items if limit is None else items[:limit]

    def delete(self, namespace, entry_id):
        self._check("delete")
        self.entries.pop(entry_id, None)
        self.deleted.append(entry_id)


class FakeProvider:
    """Returns canned hits per query; raises ProviderError for queries listed in `failing`."""

    def __init__(self, hits_by_query=None, failing=()):
        self.hits_by_query = hits_by_query or {}
        self.failing = set(failing)
        self.calls = []

    def search(self, query, *, kind="news", limit=5, **kwargs):
        self.calls.append((query, kind, limit))
        if query in self.failing:
            raise ProviderError(f"provider down for {query}")
        hits = [SearchHit(**h) for h in self.hits_by_query.get(query, [])]
        return SearchResponse(query=query, results=hits[:limit])


class FakeTimer:
    """Stands in for RepeatingTimer; never fires on its own."""

    instances = []

    def __init__(self, interval, fn, name=None):
        self.interval = interval
        self.fn = fn
        self.name = name
        self.started = False
        self.cancelled = False
        FakeTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        return self.fn()

import datetime
import tempfile
import unittest
from pathlib import Path

from support import NOW, NS, UTC, FakeClock, FakeProvider, FakeStore

from intellinews.ingest.pipeline import IngestionPipeline
from intellinews.models.news import to_millis
from intellinews.store.sqlite import SQLiteKnowledgeStore

TECH_QUERY = "latest news about technology"

TECH_HITS = [
    {
        "title": "Chipmaker unveils new AI accelerator",
        "url": "https://news.example.com/chip",
        "content": "The accelerator doubles throughput.",
        "published_date": "2026-01-20T08:00:00Z",
    },
    {
        "title": "Open source compiler reaches 1.0",
        "url": "https://blog.example.org/compiler",
        "content": "After five years the project ships a stable release.",
        "raw_content": "Posted 3 hours ago by the release team.",
    },
]


class TestIngestionPipeline(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = SQLiteKnowledgeStore(db_path=str(Path(self._tmp.name) / "news.db"))
        self.clock = FakeClock()

    def tearDown(self):
        self._tmp.cleanup()

    def _pipeline(self, provider, store=None, topics=("technology",)):
        return IngestionPipeline(provider, store or self.store, NS, topics=list(topics), clock=self.clock)

    def test_end_to_end_fetch_is_idempotent(self):
        provider = FakeProvider({TECH_QUERY: TECH_HITS})
        pipeline = self._pipeline(provider)

        stored = pipeline.fetch_topic("technology")

        self.assertEqual(provider.calls, [(TECH_QUERY, "news", 5)])
        self.assertEqual(len(stored), 2)
        self.assertEqual(self.store.count(NS), 2)

        by_url = {e.metadata["url"]: e for e in self.store.list_all(NS)}
        dated = by_url["https://news.example.com/chip"]
        undated = by_url["https://blog.example.org/compiler"]
        self.assertEqual(dated.metadata["publishedAt"], to_millis(datetime.datetime(2026, 1, 20, 8, tzinfo=UTC)))
        self.assertEqual(undated.metadata["publishedAt"], to_millis(NOW - datetime.timedelta(hours=3)))
        self.assertEqual(dated.metadata["source"], "news.example.com")
        self.assertEqual(dated.metadata["topics"], ["technology"])

        again = pipeline.fetch_topic("technology")
        self.assertEqual(again, [])
        self.assertEqual(self.store.count(NS), 2)

    def test_missing_date_falls_back_to_now(self):
        hits = [{"title": "Quiet day", "url": "https://x.example/q", "content": "Nothing dated here."}]
        self._pipeline(FakeProvider({TECH_QUERY: hits})).fetch_topic("technology")
        (entry,) = self.store.list_all(NS)
        self.assertEqual(entry.metadata["publishedAt"], to_millis(NOW))

    def test_unparseable_provider_date_uses_heuristic(self):
        hits = [{
            "title": "Odd date", "url": "https://x.example/o", "content": "Filed 2 days ago.",
            "published_date": "sometime soon",
        }]
        self._pipeline(FakeProvider({TECH_QUERY: hits})).fetch_topic("technology")
        (entry,) = self.store.list_all(NS)
        self.assertEqual(entry.metadata["publishedAt"], to_millis(NOW - datetime.timedelta(days=2)))

    def test_skips_hits_without_title_or_content(self):
        hits = [
            {"title": "", "url": "https://x.example/1", "content": "body"},
            {"title": "No body", "url": "https://x.example/2", "content": ""},
            {"title": "Good", "content": "body"},
        ]
        stored = self._pipeline(FakeProvider({TECH_QUERY: hits})).fetch_topic("technology")
        self.assertEqual([e.metadata["title"] for e in stored], ["Good"])
        self.assertEqual(stored[0].metadata["source"], "unknown")
        self.assertIsNone(stored[0].metadata["url"])

    def test_store_failure_skips_item(self):
        store = FakeStore()
        store.fail_on = {"put"}
        stored = self._pipeline(FakeProvider({TECH_QUERY: TECH_HITS}), store=store).fetch_topic("technology")
        self.assertEqual(stored, [])

    def test_one_failing_topic_does_not_abort_others(self):
        provider = FakeProvider(
            {TECH_QUERY: TECH_HITS},
            failing={"latest news about science"},
        )
        pipeline = self._pipeline(provider, topics=("technology", "science"))

        summary = pipeline.fetch_all()

        self.assertEqual(set(summary.by_topic), {"technology", "science"})
        self.assertEqual(summary.by_topic["science"], [])
        self.assertEqual(len(summary.by_topic["technology"]), 2)
        self.assertEqual(len(summary.all_items), 2)


if __name__ == "__main__":
    unittest.main()

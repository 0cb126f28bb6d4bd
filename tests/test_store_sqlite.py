import tempfile
import unittest
from pathlib import Path

from support import NOW, NS, make_entry

from intellinews.models.knowledge import Namespace
from intellinews.store.sqlite import SQLiteKnowledgeStore


class TestSQLiteKnowledgeStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = SQLiteKnowledgeStore(db_path=str(Path(self._tmp.name) / "news.db"))

    def tearDown(self):
        self._tmp.cleanup()

    def test_put_is_idempotent_per_id(self):
        self.store.put(NS, make_entry("a"))
        self.store.put(NS, make_entry("a"))
        self.assertEqual(self.store.count(NS), 1)

    def test_second_put_keeps_first_row(self):
        self.store.put(NS, make_entry("a", topics=["technology"]))
        self.store.put(NS, make_entry("a", topics=["science"]))
        (entry,) = self.store.list_all(NS)
        self.assertEqual(entry.metadata["topics"], ["technology"])

    def test_oldest_first_listing(self):
        self.store.put(NS, make_entry("new", published=NOW))
        self.store.put(NS, make_entry("old", published=NOW.replace(year=2025)))
        self.assertEqual([e.id for e in self.store.list_all(NS, limit=1, oldest_first=True)], ["old"])

    def test_query_by_metadata_url(self):
        self.store.put(NS, make_entry("a"))
        self.store.put(NS, make_entry("b"))
        found = self.store.query_by_metadata(NS, "url", "https://example.com/b")
        self.assertEqual([e.id for e in found], ["b"])
        self.assertEqual(self.store.query_by_metadata(NS, "url", "https://example.com/zzz"), [])

    def test_query_by_other_metadata(self):
        self.store.put(NS, make_entry("a", source="a.com"))
        self.store.put(NS, make_entry("b", source="b.com"))
        found = self.store.query_by_metadata(NS, "source", "b.com")
        self.assertEqual([e.id for e in found], ["b"])

    def test_text_query_ranks_exact_title_first(self):
        self.store.put(NS, make_entry("a", title="Central bank holds rates steady"))
        self.store.put(NS, make_entry("b", title="New telescope spots distant galaxy"))
        self.store.put(NS, make_entry("c", title="Galaxy survey maps dark matter"))

        results = self.store.query_by_text(NS, "New telescope spots distant galaxy", limit=5)

        self.assertEqual(results[0].id, "b")
        self.assertAlmostEqual(results[0].similarity, 1.0)
        self.assertLess(results[1].similarity, 0.95)
        self.assertNotIn("a", [e.id for e in results])

    def test_text_query_respects_limit(self):
        for i in range(5):
            self.store.put(NS, make_entry(f"e{i}", title=f"Galaxy story {i}"))
        self.assertEqual(len(self.store.query_by_text(NS, "galaxy", limit=2)), 2)

    def test_namespaces_are_isolated(self):
        other = Namespace(agent_id="agent-2")
        self.store.put(NS, make_entry("a"))
        self.assertEqual(self.store.list_all(other), [])
        self.assertEqual(self.store.query_by_metadata(other, "url", "https://example.com/a"), [])

    def test_delete(self):
        self.store.put(NS, make_entry("a"))
        self.store.put(NS, make_entry("b"))
        self.store.delete(NS, "a")
        self.assertEqual([e.id for e in self.store.list_all(NS)], ["b"])


if __name__ == "__main__":
    unittest.main()

import datetime
import tempfile
import unittest
from pathlib import Path

from support import NOW, NS, FakeStore, make_entry

from intellinews.errors import StoreError
from intellinews.retention import PURGE_SCAN_LIMIT, purge_old_news
from intellinews.store.sqlite import SQLiteKnowledgeStore


class TestPurge(unittest.TestCase):
    def test_purge_boundary(self):
        cutoff = NOW - datetime.timedelta(days=30)
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SQLiteKnowledgeStore(db_path=str(Path(tmpdir) / "news.db"))
            store.put(NS, make_entry("expired", published=cutoff - datetime.timedelta(milliseconds=1)))
            store.put(NS, make_entry("at-cutoff", published=cutoff))
            store.put(NS, make_entry("fresh", published=NOW))
            store.put(NS, make_entry("old-doc", published=cutoff - datetime.timedelta(days=5), entry_type="doc"))

            deleted = purge_old_news(store, NS, 30, now=NOW)

            self.assertEqual(deleted, 1)
            remaining = {e.id for e in store.list_all(NS)}
            self.assertEqual(remaining, {"at-cutoff", "fresh", "old-doc"})

    def test_capped_scan_reaches_oldest_entries(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SQLiteKnowledgeStore(db_path=str(Path(tmpdir) / "news.db"))
            stale = make_entry("stale", published=NOW - datetime.timedelta(days=60))
            store.put(NS, stale.model_copy(update={"created_at": stale.created_at - 1}))
            for i in range(PURGE_SCAN_LIMIT):
                store.put(NS, make_entry(f"fresh{i}", published=NOW))

            self.assertEqual(purge_old_news(store, NS, 30, now=NOW), 1)
            self.assertEqual(store.query_by_metadata(NS, "url", "https://example.com/stale"), [])
            self.assertEqual(store.count(NS), PURGE_SCAN_LIMIT)

    def test_entries_without_timestamp_are_kept(self):
        entry = make_entry("undated", published=NOW - datetime.timedelta(days=90))
        entry.metadata["publishedAt"] = "yesterday"
        store = FakeStore([entry])
        self.assertEqual(purge_old_news(store, NS, 30, now=NOW), 0)

    def test_delete_failure_aborts(self):
        old = NOW - datetime.timedelta(days=60)
        store = FakeStore([make_entry("a", published=old), make_entry("b", published=old)])
        store.fail_on = {"delete"}
        with self.assertRaises(StoreError):
            purge_old_news(store, NS, 30, now=NOW)
        self.assertEqual(len(store.entries), 2)

    def test_scan_is_capped(self):
        old = NOW - datetime.timedelta(days=60)
        store = FakeStore([make_entry(f"e{i}", published=old) for i in range(1005)])
        self.assertEqual(purge_old_news(store, NS, 30, now=NOW), 1000)
        self.assertEqual(len(store.entries), 5)


if __name__ == "__main__":
    unittest.main()

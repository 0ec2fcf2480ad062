"""
Tests for the in-memory item store.
"""

import asyncio
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from bridge.errors import StoreError
from bridge.models.item import Item
from bridge.tests.sample_library import ARTICLE_KEY, PDF_KEY, build_sample_store
from bridge.zotero.memory_store import KEY_ALPHABET, InMemoryItemStore, generate_key
from bridge.zotero.store import SearchCondition, item_type_is_not, quicksearch


class TestInMemoryItemStore(unittest.IsolatedAsyncioTestCase):
    """Test InMemoryItemStore."""

    async def asyncSetUp(self):
        self.store = build_sample_store()

    def test_generate_key(self):
        key = generate_key()
        self.assertEqual(len(key), 8)
        self.assertTrue(all(c in KEY_ALPHABET for c in key))

    async def test_get_by_key(self):
        item = await self.store.get_by_key(1, ARTICLE_KEY)
        self.assertEqual(item.id, 1)
        self.assertIsNone(await self.store.get_by_key(2, ARTICLE_KEY))
        self.assertIsNone(await self.store.get_by_key(1, "MISSING2"))

    async def test_reads_return_copies(self):
        """Test that mutating a fetched item does not change the store."""
        item = await self.store.get_by_key(1, ARTICLE_KEY)
        item.set_field("title", "Changed")

        again = await self.store.get(1)
        self.assertEqual(again.get_field("title"), "Deep Learning for Citation Analysis")

    async def test_get_many_preserves_order_and_skips_missing(self):
        items = await self.store.get_many([6, 999, 1])
        self.assertEqual([i.id for i in items], [6, 1])

    async def test_search_conditions(self):
        ids = await self.store.search(1, [item_type_is_not("attachment"), quicksearch("BISHOP")])
        self.assertEqual(ids, [6])

        ids = await self.store.search(1, [SearchCondition("itemType", "is", "attachment")])
        self.assertEqual(ids, [2, 3, 7])

    async def test_unsupported_condition(self):
        with self.assertRaises(StoreError):
            await self.store.search(1, [SearchCondition("tag", "is", "x")])

    async def test_children(self):
        article = await self.store.get(1)
        pdf = await self.store.get(2)

        self.assertEqual(await self.store.get_attachments(article), [2, 3])
        self.assertEqual(await self.store.get_notes(article), [4])
        self.assertEqual([a.id for a in await self.store.get_annotations(pdf)], [5])

    async def test_save_new_item_assigns_identity(self):
        item = Item(item_type="annotation", parent_id=2, annotation_type="highlight")
        saved = await self.store.save(item)

        self.assertEqual(saved.id, 8)
        self.assertEqual(len(saved.key), 8)
        self.assertIsNotNone(saved.date_added)

        stored = await self.store.get_by_key(1, saved.key)
        self.assertEqual(stored.parent_id, 2)

    async def test_save_with_missing_parent(self):
        with self.assertRaises(StoreError):
            await self.store.save(Item(item_type="annotation", parent_id=999))

    async def test_save_existing_item(self):
        item = await self.store.get_by_key(1, ARTICLE_KEY)
        item.set_field("title", "Updated")
        await self.store.save(item)

        self.assertEqual((await self.store.get(1)).get_field("title"), "Updated")

    def test_duplicate_key_rejected(self):
        with self.assertRaises(StoreError):
            self.store.add_item(Item(item_type="book", key=ARTICLE_KEY))


class TestSnapshotPersistence(unittest.IsolatedAsyncioTestCase):
    """Test JSON snapshot loading and saving."""

    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "library.json"

    async def asyncTearDown(self):
        self._tmp.cleanup()

    async def test_save_persists_and_reloads(self):
        store = build_sample_store(snapshot_path=self.path)
        saved = await store.save(Item(item_type="annotation", parent_id=2, annotation_text="kept"))

        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(data["hostVersion"], "7.0.11")
        self.assertEqual(len(data["items"]), 8)

        reloaded = InMemoryItemStore(snapshot_path=self.path)
        item = await reloaded.get_by_key(1, saved.key)
        self.assertEqual(item.annotation_text, "kept")
        self.assertEqual(reloaded.host_version, "7.0.11")

        pdf = await reloaded.get_by_key(1, PDF_KEY)
        self.assertEqual(len(await reloaded.get_annotations(pdf)), 2)

    async def test_failed_write_leaves_no_record(self):
        """Test that a failed snapshot write rolls back the new item."""
        store = build_sample_store(snapshot_path=self.path)
        item = Item(item_type="annotation", parent_id=2)

        with patch.object(store, "_write_snapshot", side_effect=OSError("read-only file system")):
            with self.assertRaises(StoreError):
                await store.save(item)

        pdf = await store.get(2)
        self.assertEqual([a.id for a in await store.get_annotations(pdf)], [5])
        self.assertIsNone(await store.get_by_key(1, item.key))

    def test_unreadable_snapshot(self):
        self.path.write_text("{broken", encoding="utf-8")
        with self.assertRaises(StoreError):
            InMemoryItemStore(snapshot_path=self.path)

    def test_invalid_snapshot_records(self):
        """Test that records failing validation are reported as store errors."""
        for data in (
            {"items": [{"id": 1, "item_type": "book", "library_id": "not a number"}]},
            {"items": [{"id": 1, "key": "BOOK2345", "item_type": {"nested": True}}]},
            {"items": ["not a record"]},
            ["not", "an", "object"],
        ):
            with self.subTest(data=data):
                self.path.write_text(json.dumps(data), encoding="utf-8")
                with self.assertRaises(StoreError):
                    InMemoryItemStore(snapshot_path=self.path)

    async def test_snapshot_written_off_the_event_loop(self):
        """Test that the blocking file write runs in a worker thread."""
        store = build_sample_store(snapshot_path=self.path)

        with patch("bridge.zotero.memory_store.asyncio.to_thread", wraps=asyncio.to_thread) as to_thread:
            saved = await store.save(Item(item_type="note", parent_id=1, note="threaded"))

        to_thread.assert_called_once()
        self.assertEqual(to_thread.call_args[0][0], store._write_snapshot)
        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertIn(saved.key, [entry["key"] for entry in data["items"]])

    async def test_concurrent_saves_all_persisted(self):
        store = build_sample_store(snapshot_path=self.path)

        saved = await asyncio.gather(*(
            store.save(Item(item_type="note", parent_id=1, note=f"note {i}"))
            for i in range(5)
        ))

        data = json.loads(self.path.read_text(encoding="utf-8"))
        keys = {entry["key"] for entry in data["items"]}
        self.assertTrue({item.key for item in saved} <= keys)


if __name__ == "__main__":
    unittest.main()

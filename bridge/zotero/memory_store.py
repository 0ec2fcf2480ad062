"""
In-memory item store with optional JSON snapshot persistence.

This is the store the bridge runs against when no external store is
injected. When a snapshot path is configured, the library is loaded from it
on startup and every save rewrites it before returning, so a saved item
survives restarts.
"""

import asyncio
import json
import logging
import os
import random
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from bridge.errors import StoreError
from bridge.models.item import ANNOTATION, ATTACHMENT, NOTE, Item
from bridge.zotero.store import ItemStore, SearchCondition

logger = logging.getLogger(__name__)

KEY_ALPHABET = "23456789ABCDEFGHIJKLMNPQRSTUVWXYZ"
KEY_LENGTH = 8


def generate_key() -> str:
    """Generate a random item key in Zotero's key alphabet."""
    return "".join(random.choice(KEY_ALPHABET) for _ in range(KEY_LENGTH))


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class InMemoryItemStore(ItemStore):
    """
    Item store keeping all records in process memory.

    Reads hand out copies, so a caller can only change stored records
    through ``save``.
    """

    def __init__(
        self,
        snapshot_path: Optional[Path] = None,
        host_version: str = "memory",
    ):
        """
        Initialize the store.

        Args:
            snapshot_path: JSON file to load from and persist to. If None,
                the store is purely in-memory.
            host_version: Version reported as the host application version
        """
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        self._host_version = host_version
        self._items: dict[int, Item] = {}
        self._keys: dict[tuple[int, str], int] = {}
        self._next_id = 1
        self._write_lock = asyncio.Lock()

        if self.snapshot_path and self.snapshot_path.exists():
            self._load_snapshot()

        logger.info(
            f"Initialized InMemoryItemStore with {len(self._items)} items"
            + (f" from {self.snapshot_path}" if self.snapshot_path else "")
        )

    @property
    def host_version(self) -> str:
        return self._host_version

    # ------------------------------------------------------------------
    # Seeding and snapshots
    # ------------------------------------------------------------------

    def add_item(self, item: Item) -> Item:
        """
        Insert an item without persisting the snapshot.

        Used for seeding the store. Assigns ``id``, ``key`` and timestamps
        where they are missing and returns the stored copy.
        """
        if item.id is None:
            item.id = self._next_id
        if item.id in self._items:
            raise StoreError(f"Duplicate item ID {item.id}")
        if item.key is None:
            item.key = self._unique_key(item.library_id)
        elif (item.library_id, item.key) in self._keys:
            raise StoreError(f"Duplicate item key {item.key} in library {item.library_id}")
        if item.parent_id is not None and item.parent_id not in self._items:
            raise StoreError(f"Parent item {item.parent_id} does not exist")

        now = _timestamp()
        item.date_added = item.date_added or now
        item.date_modified = item.date_modified or now

        self._items[item.id] = item.model_copy(deep=True)
        self._keys[(item.library_id, item.key)] = item.id
        self._next_id = max(self._next_id, item.id + 1)
        return item

    def _unique_key(self, library_id: int) -> str:
        while True:
            key = generate_key()
            if (library_id, key) not in self._keys:
                return key

    def _load_snapshot(self):
        try:
            with open(self.snapshot_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Unable to read library snapshot {self.snapshot_path}: {e}") from e

        try:
            self._host_version = data.get("hostVersion", self._host_version)
            # Parents must be inserted before their children
            entries = sorted(data.get("items", []), key=lambda e: e.get("id") or 0)
            items = [Item.model_validate(entry) for entry in entries]
        except (AttributeError, TypeError, ValidationError) as e:
            raise StoreError(f"Invalid library snapshot {self.snapshot_path}: {e}") from e

        for item in items:
            self.add_item(item)

    def _snapshot(self) -> dict[str, Any]:
        return {
            "hostVersion": self._host_version,
            "items": [item.model_dump() for item in self._items.values()],
        }

    def _write_snapshot(self, data: dict[str, Any]):
        """Atomically replace the snapshot file with ``data``. Blocking."""
        directory = self.snapshot_path.parent
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".snapshot-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.snapshot_path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # ------------------------------------------------------------------
    # ItemStore interface
    # ------------------------------------------------------------------

    async def get_by_key(self, library_id: int, key: str) -> Optional[Item]:
        item_id = self._keys.get((library_id, key))
        if item_id is None:
            return None
        return await self.get(item_id)

    async def get(self, item_id: int) -> Optional[Item]:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item else None

    async def search(self, library_id: int, conditions: list[SearchCondition]) -> list[int]:
        return [
            item.id
            for item in self._items.values()
            if item.library_id == library_id
            and all(self._matches(item, condition) for condition in conditions)
        ]

    def _matches(self, item: Item, condition: SearchCondition) -> bool:
        if condition.condition == "itemType":
            if condition.operator == "is":
                return item.item_type == condition.value
            if condition.operator == "isNot":
                return item.item_type != condition.value
        elif condition.condition == "quicksearch-everything" and condition.operator == "contains":
            needle = condition.value.lower()
            return any(needle in text.lower() for text in self._indexed_text(item))

        raise StoreError(
            f"Unsupported search condition: {condition.condition} {condition.operator}"
        )

    @staticmethod
    def _indexed_text(item: Item) -> list[str]:
        texts = [value for value in item.fields.values() if value]
        for creator in item.creators:
            texts.extend(
                creator[name] for name in ("firstName", "lastName", "name") if creator.get(name)
            )
        texts.extend(
            value
            for value in (item.note, item.annotation_text, item.annotation_comment)
            if value
        )
        return texts

    def _children(self, item: Item, item_type: str) -> list[Item]:
        return [
            child
            for child in self._items.values()
            if child.parent_id == item.id and child.item_type == item_type
        ]

    async def get_attachments(self, item: Item) -> list[int]:
        return [child.id for child in self._children(item, ATTACHMENT)]

    async def get_notes(self, item: Item) -> list[int]:
        return [child.id for child in self._children(item, NOTE)]

    async def get_annotations(self, item: Item) -> list[Item]:
        return [child.model_copy(deep=True) for child in self._children(item, ANNOTATION)]

    async def save(self, item: Item) -> Item:
        is_new = item.id is None or item.id not in self._items
        previous = None if is_new else self._items[item.id]

        if is_new:
            self.add_item(item)
        else:
            item.date_modified = _timestamp()
            self._items[item.id] = item.model_copy(deep=True)

        if self.snapshot_path:
            try:
                # Serialized so the file always ends with the latest state
                async with self._write_lock:
                    await asyncio.to_thread(self._write_snapshot, self._snapshot())
            except OSError as e:
                # Undo the in-memory change so no partial record is left behind
                if is_new:
                    del self._items[item.id]
                    del self._keys[(item.library_id, item.key)]
                else:
                    self._items[item.id] = previous
                raise StoreError(f"Unable to persist item {item.key}: {e}") from e

        logger.debug(f"Saved {item.item_type} item {item.key} (id {item.id})")
        return item

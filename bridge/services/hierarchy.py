"""
Item hierarchy traversal: child listings and item details.
"""

import logging
from typing import Any

from bridge.errors import MissingField, NotFound
from bridge.models.item import Item
from bridge.services.shaping import (
    annotation_child,
    attachment_child,
    attachment_summary,
    note_child,
)
from bridge.zotero.store import ItemStore

logger = logging.getLogger(__name__)


class HierarchyWalker:
    """Resolves items by key and walks their children."""

    def __init__(self, store: ItemStore, library_id: int):
        self.store = store
        self.library_id = library_id

    async def _resolve(self, data: dict[str, Any]) -> Item:
        key = data.get("key")
        if not key:
            raise MissingField("key")
        # Keys are strings; anything else cannot name an item
        if not isinstance(key, str):
            raise NotFound("Item not found", key=key)

        item = await self.store.get_by_key(self.library_id, key)
        if item is None:
            raise NotFound("Item not found", key=key)
        return item

    async def children(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        List the children of an item.

        Regular items yield their attachments followed by their notes,
        attachments yield their annotations. Both checks run independently
        of each other, and children keep the store's order.

        Raises:
            MissingField: If ``key`` is absent
            NotFound: If no item has that key
        """
        item = await self._resolve(data)
        children = []

        if item.is_regular_item():
            for attachment in await self.store.get_many(await self.store.get_attachments(item)):
                children.append(attachment_child(attachment))
            for note in await self.store.get_many(await self.store.get_notes(item)):
                children.append(note_child(note))

        if item.is_attachment():
            for annotation in await self.store.get_annotations(item):
                children.append(annotation_child(annotation))

        return {"parentKey": item.key, "children": children}

    async def detail(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Describe a single item.

        Regular items include bibliographic fields and all attachments;
        attachments include their content type, path and parent.
        """
        item = await self._resolve(data)

        item_data: dict[str, Any] = {
            "id": item.id,
            "key": item.key,
            "itemType": item.item_type,
            "title": item.get_field("title"),
            "dateAdded": item.date_added,
            "dateModified": item.date_modified,
        }

        if item.is_regular_item():
            item_data.update({
                "creators": item.get_creators_json(),
                "date": item.get_field("date"),
                "abstractNote": item.get_field("abstractNote"),
                "url": item.get_field("url"),
                "DOI": item.get_field("DOI"),
                "extra": item.get_field("extra"),
            })
            attachments = await self.store.get_many(await self.store.get_attachments(item))
            item_data["attachments"] = [attachment_summary(att) for att in attachments]

        if item.is_attachment():
            item_data["contentType"] = item.attachment_content_type
            item_data["path"] = item.attachment_path
            item_data["parentItemID"] = item.parent_id

        return item_data

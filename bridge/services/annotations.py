"""
Annotation creation.

Builds a well-formed annotation item from a partial external description:
applies defaults, synthesizes the sort index and the stored position text,
and persists the record through the item store.
"""

import logging
from typing import Any

from bridge.errors import InternalError, MissingField, NotFound, StoreError
from bridge.models.item import ANNOTATION, DEFAULT_ANNOTATION_COLOR, Item
from bridge.services.sort_index import serialize_position, synthesize_sort_index
from bridge.zotero.store import ItemStore

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATION_TYPE = "highlight"


class AnnotationBuilder:
    """Creates annotation items on PDF attachments."""

    def __init__(self, store: ItemStore, library_id: int):
        self.store = store
        self.library_id = library_id

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Create and persist an annotation.

        Args:
            data: Normalized request with ``parentItemKey`` and optional
                ``annotationType``, ``text``, ``comment``, ``color``,
                ``pageLabel``, ``sortIndex`` and ``position``

        Returns:
            Summary of the created annotation

        Raises:
            MissingField: If ``parentItemKey`` is absent
            NotFound: If the parent item does not exist
            InternalError: If the store fails to persist the annotation
        """
        parent_key = data.get("parentItemKey")
        if not parent_key:
            raise MissingField("parentItemKey")

        parent = None
        if isinstance(parent_key, str):
            parent = await self.store.get_by_key(self.library_id, parent_key)
        if parent is None:
            raise NotFound("Parent item not found", key=parent_key)

        annotation = self.build(parent, data)

        try:
            await self.store.save(annotation)
        except StoreError as e:
            logger.error(f"Failed to save annotation on item {parent_key}: {e}")
            raise InternalError(str(e)) from e

        logger.info(f"Created annotation: {annotation.key} on item {parent_key}")

        return {
            "id": annotation.id,
            "key": annotation.key,
            "parentItemKey": parent_key,
            "type": annotation.annotation_type,
            "text": annotation.annotation_text,
            "color": annotation.annotation_color,
            "pageLabel": annotation.annotation_page_label,
        }

    @staticmethod
    def build(parent: Item, data: dict[str, Any]) -> Item:
        """Build the unsaved annotation item for ``parent``."""
        position = data.get("position")
        page_label = data.get("pageLabel")

        annotation = Item(
            item_type=ANNOTATION,
            library_id=parent.library_id,
            parent_id=parent.id,
        )
        annotation.annotation_type = data.get("annotationType") or DEFAULT_ANNOTATION_TYPE
        annotation.annotation_color = data.get("color") or DEFAULT_ANNOTATION_COLOR

        if data.get("text"):
            annotation.annotation_text = data["text"]
        if data.get("comment"):
            annotation.annotation_comment = data["comment"]
        if page_label:
            annotation.annotation_page_label = str(page_label)

        annotation.annotation_sort_index = synthesize_sort_index(
            data.get("sortIndex"), position, page_label
        )
        if position not in (None, ""):
            annotation.annotation_position = serialize_position(position)

        return annotation

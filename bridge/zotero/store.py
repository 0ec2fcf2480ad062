"""
Item store interface.

The item store owns every item, attachment, note and annotation record. The
bridge only talks to it through this interface and never persists state of
its own.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from bridge.models.item import Item


@dataclass(frozen=True)
class SearchCondition:
    """A single search condition, e.g. ``itemType isNot attachment``."""

    condition: str
    operator: str
    value: str


def quicksearch(text: str) -> SearchCondition:
    """Match items whose indexed text contains ``text``."""
    return SearchCondition("quicksearch-everything", "contains", text)


def item_type_is_not(item_type: str) -> SearchCondition:
    return SearchCondition("itemType", "isNot", item_type)


class ItemStore(ABC):
    """Abstract base class for item stores."""

    @property
    @abstractmethod
    def host_version(self) -> str:
        """Version string of the application hosting the store."""
        pass

    @abstractmethod
    async def get_by_key(self, library_id: int, key: str) -> Optional[Item]:
        """
        Fetch an item by library and key.

        Args:
            library_id: Library ID
            key: Item key

        Returns:
            The item, or None if no item has that key
        """
        pass

    @abstractmethod
    async def get(self, item_id: int) -> Optional[Item]:
        """Fetch an item by its internal ID."""
        pass

    async def get_many(self, item_ids: list[int]) -> list[Item]:
        """
        Fetch several items, preserving the order of ``item_ids``.

        IDs with no matching item are skipped.
        """
        items = []
        for item_id in item_ids:
            item = await self.get(item_id)
            if item is not None:
                items.append(item)
        return items

    @abstractmethod
    async def search(self, library_id: int, conditions: list[SearchCondition]) -> list[int]:
        """
        Run a search where all conditions must match.

        Args:
            library_id: Library to search
            conditions: Conditions joined with AND

        Returns:
            Matching item IDs in store order
        """
        pass

    @abstractmethod
    async def get_attachments(self, item: Item) -> list[int]:
        """IDs of the attachment children of a regular item."""
        pass

    @abstractmethod
    async def get_notes(self, item: Item) -> list[int]:
        """IDs of the note children of a regular item."""
        pass

    @abstractmethod
    async def get_annotations(self, item: Item) -> list[Item]:
        """Annotation children of an attachment item."""
        pass

    @abstractmethod
    async def save(self, item: Item) -> Item:
        """
        Persist a new or modified item.

        The item is durably visible to subsequent reads once this returns.
        New items get their ``id`` and ``key`` assigned.

        Raises:
            StoreError: If the item could not be persisted
        """
        pass

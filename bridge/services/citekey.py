"""
Citation key resolution.

Resolves a citation key to a library item. A configured citation-key index
(e.g. Better BibTeX) is asked first. If it is absent, fails, or has no
answer, the ``extra`` field of regular items is scanned for a
``Citation Key: <key>`` or ``citekey: <key>`` line.
"""

import logging
from typing import Any, Optional

from bridge.errors import MissingField, NotFound
from bridge.models.item import PDF_CONTENT_TYPE, Item
from bridge.services.query import top_level_conditions
from bridge.services.shaping import attachment_summary, item_summary
from bridge.zotero.citekey_index import CitationKeyIndex
from bridge.zotero.store import ItemStore

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 5000


def extra_mentions_citekey(extra: str, citekey: str) -> bool:
    """Check whether an ``extra`` field carries the given citation key."""
    if not extra:
        return False
    return (
        f"Citation Key: {citekey}" in extra
        or f"citekey: {citekey.lower()}" in extra.lower()
    )


class CitekeyResolver:
    """Resolves citation keys to items with their PDF attachments."""

    def __init__(
        self,
        store: ItemStore,
        library_id: int,
        index: Optional[CitationKeyIndex] = None,
        scan_limit: int = DEFAULT_SCAN_LIMIT,
    ):
        self.store = store
        self.library_id = library_id
        self.index = index
        self.scan_limit = scan_limit

    async def resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Look up an item by citation key.

        Returns:
            Item summary with ``citekey`` and its PDF attachments

        Raises:
            MissingField: If ``citekey`` is absent
            NotFound: If neither the index nor the fallback finds the key
        """
        citekey = data.get("citekey")
        if not citekey:
            raise MissingField("citekey")
        citekey = str(citekey)

        item = await self._from_index(citekey)
        if item is None:
            item = await self._from_extra_field(citekey)
        if item is None:
            raise NotFound("Item not found for citekey", citekey=citekey)

        item_data = item_summary(item)
        item_data["citekey"] = citekey

        attachments = await self.store.get_many(await self.store.get_attachments(item))
        item_data["attachments"] = [
            attachment_summary(att)
            for att in attachments
            if att.attachment_content_type == PDF_CONTENT_TYPE
        ]
        return item_data

    async def _from_index(self, citekey: str) -> Optional[Item]:
        if self.index is None:
            return None

        try:
            match = await self.index.find_one(citekey)
        except Exception as e:
            logger.warning(f"Citation key index lookup failed: {e}")
            return None

        if match is None:
            return None
        if match.item_id is not None:
            return await self.store.get(match.item_id)
        if match.item_key is not None:
            return await self.store.get_by_key(self.library_id, match.item_key)
        return None

    async def _from_extra_field(self, citekey: str) -> Optional[Item]:
        ids = await self.store.search(self.library_id, top_level_conditions())
        for item in await self.store.get_many(ids[:self.scan_limit]):
            if extra_mentions_citekey(item.get_field("extra"), citekey):
                return item
        return None

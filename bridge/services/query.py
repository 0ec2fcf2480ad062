"""
Translation of search requests into item store searches.
"""

import logging
from typing import Any

from bridge.errors import MissingField
from bridge.models.item import CHILD_ITEM_TYPES
from bridge.services.shaping import item_summary
from bridge.services.sort_index import parse_leading_int
from bridge.zotero.store import ItemStore, SearchCondition, item_type_is_not, quicksearch

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 25
DEFAULT_ITEMS_LIMIT = 50


def parse_limit(value: Any, default: int) -> int:
    """
    Parse a result limit.

    Non-numeric, zero or negative values fall back to ``default``.
    """
    limit = parse_leading_int(value)
    if limit is None or limit <= 0:
        return default
    return limit


def top_level_conditions() -> list[SearchCondition]:
    """Conditions selecting regular (non-child) items."""
    return [item_type_is_not(item_type) for item_type in CHILD_ITEM_TYPES]


class QueryTranslator:
    """Runs free-text searches and top-level listings."""

    def __init__(
        self,
        store: ItemStore,
        library_id: int,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        items_limit: int = DEFAULT_ITEMS_LIMIT,
    ):
        self.store = store
        self.library_id = library_id
        self.search_limit = search_limit
        self.items_limit = items_limit

    async def search(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Search all indexed text of the library.

        The ID list is truncated to the limit before records are fetched, so
        the work done is bounded by the limit rather than the library size.
        Only regular items are returned.

        Raises:
            MissingField: If neither ``query`` nor ``q`` is given
        """
        query = data.get("query") or data.get("q")
        if not query:
            raise MissingField("query")
        limit = parse_limit(data.get("limit"), self.search_limit)

        ids = await self.store.search(self.library_id, [quicksearch(str(query))])
        items = await self.store.get_many(ids[:limit])
        results = [item_summary(item) for item in items if item.is_regular_item()]

        logger.debug(f"Search '{query}' matched {len(ids)} items, returning {len(results)}")
        return {"results": results, "total": len(results)}

    async def list_top_level(self, data: dict[str, Any]) -> dict[str, Any]:
        """List regular items of the library, up to ``limit``."""
        limit = parse_limit(data.get("limit"), self.items_limit)

        ids = await self.store.search(self.library_id, top_level_conditions())
        items = await self.store.get_many(ids[:limit])
        results = [item_summary(item) for item in items]

        return {"items": results, "total": len(results)}

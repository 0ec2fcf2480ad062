"""
Citation-key indexes.

A citation-key index is an optional capability: when one is configured, the
citekey resolver asks it first and only scans the library's ``extra`` fields
when the index has no answer.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CitekeyMatch:
    """Reference to the item an index resolved a citation key to."""

    item_id: Optional[int] = None
    item_key: Optional[str] = None


class CitationKeyIndex(ABC):
    """Abstract base class for citation-key indexes."""

    @abstractmethod
    async def find_one(self, citekey: str) -> Optional[CitekeyMatch]:
        """
        Look up an exact citation key.

        Args:
            citekey: Citation key to resolve

        Returns:
            Match referencing the item, or None if the key is unknown
        """
        pass

    async def close(self):
        """Release any resources held by the index."""
        pass


class MappingCitationKeyIndex(CitationKeyIndex):
    """Index backed by a static citekey -> item ID mapping."""

    def __init__(self, mapping: dict[str, int]):
        self.mapping = dict(mapping)

    @classmethod
    def from_snapshot(cls, snapshot_path: Path) -> Optional["MappingCitationKeyIndex"]:
        """
        Build an index from the ``citationKeys`` table of a library snapshot.

        Returns:
            The index, or None if the snapshot has no citation keys
        """
        with open(snapshot_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        mapping = data.get("citationKeys") or {}
        if not mapping:
            return None
        logger.info(f"Loaded {len(mapping)} citation keys from {snapshot_path}")
        return cls({str(k): int(v) for k, v in mapping.items()})

    async def find_one(self, citekey: str) -> Optional[CitekeyMatch]:
        item_id = self.mapping.get(citekey)
        return CitekeyMatch(item_id=item_id) if item_id is not None else None


class BetterBibTexIndex(CitationKeyIndex):
    """
    Index backed by the Better BibTeX JSON-RPC API.

    Better BibTeX runs inside Zotero and serves JSON-RPC on Zotero's local
    HTTP port.
    """

    def __init__(self, rpc_url: str, timeout: float = 10.0):
        """
        Initialize the index client.

        Args:
            rpc_url: JSON-RPC endpoint, e.g. http://localhost:23119/better-bibtex/json-rpc
            timeout: Total request timeout in seconds
        """
        self.rpc_url = rpc_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None
        logger.info(f"Initialized BetterBibTexIndex with URL: {rpc_url}")

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Make a JSON-RPC request and return its result."""
        await self._ensure_session()
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": 1}

        async with self.session.post(self.rpc_url, json=payload) as response:
            if response.status != 200:
                error_text = await response.text()
                raise ConnectionError(
                    f"Better BibTeX returned {response.status}: {error_text}"
                )
            data = await response.json(content_type=None)

        if "error" in data:
            error_msg = str(data["error"].get("message", "Unknown error"))
            raise RuntimeError(f"Better BibTeX API error: {error_msg}")
        return data.get("result")

    @staticmethod
    def _item_key(entry: dict[str, Any]) -> Optional[str]:
        if entry.get("itemKey"):
            return entry["itemKey"]
        # Entries carry the item URI, e.g. http://zotero.org/users/local/abc/items/KEY
        for field in ("id", "uri"):
            value = entry.get(field)
            if isinstance(value, str) and "/items/" in value:
                return value.rsplit("/items/", 1)[-1].split("?")[0]
        return None

    async def find_one(self, citekey: str) -> Optional[CitekeyMatch]:
        results = await self._call("item.search", [citekey]) or []
        for entry in results:
            if entry.get("citekey") == citekey or entry.get("citation-key") == citekey:
                item_id = entry.get("itemID")
                item_key = self._item_key(entry)
                if item_id is None and item_key is None:
                    continue
                return CitekeyMatch(item_id=item_id, item_key=item_key)
        return None

"""
HTTP client for the bridge's MCP endpoints.

Lets Python tools (MCP servers, scripts) create annotations and query the
library through a running bridge.
"""

import logging
from typing import Any, Optional

import aiohttp

from bridge.models.annotation import (
    AttachmentRecord,
    ChildrenResponse,
    CreateAnnotationRequest,
    CreateAnnotationResponse,
    ItemRecord,
    PingResponse,
)
from bridge.models.item import PDF_CONTENT_TYPE

logger = logging.getLogger(__name__)


class BridgeClientError(Exception):
    """The bridge answered with a non-success status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"API error (status {status}): {message}")
        self.status = status
        self.message = message


class ItemNotFoundError(BridgeClientError):
    """The requested item does not exist."""

    def __init__(self, key: str):
        super().__init__(404, f"item not found: {key}")
        self.key = key


class BridgeClient:
    """
    Client for the bridge's ``/mcp`` endpoints.

    Connection failures surface as ``aiohttp.ClientError``; error statuses
    as ``BridgeClientError``.
    """

    def __init__(self, base_url: Optional[str] = None):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the endpoints, e.g. http://localhost:23120/mcp.
                If None, BRIDGE_URL from settings, or one built from
                API_HOST and API_PORT.
        """
        if base_url is None:
            from bridge.config.settings import get_settings
            settings = get_settings()
            base_url = settings.bridge_url or f"http://{settings.api_host}:{settings.api_port}/mcp"

        self.base_url = base_url.rstrip("/")
        self.session: Optional[aiohttp.ClientSession] = None
        logger.info(f"Initialized BridgeClient with base URL: {self.base_url}")

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _post(self, endpoint: str, body: dict[str, Any], not_found_key: Optional[str] = None) -> Any:
        """
        POST a JSON body and return the decoded response.

        Args:
            endpoint: Endpoint name below the base URL
            body: JSON body
            not_found_key: If set, a 404 raises ItemNotFoundError for this key
        """
        await self._ensure_session()
        async with self.session.post(f"{self.base_url}/{endpoint}", json=body) as response:
            if response.status == 404 and not_found_key is not None:
                raise ItemNotFoundError(not_found_key)
            if response.status >= 400:
                raise BridgeClientError(response.status, await response.text())
            return await response.json()

    async def ping(self) -> PingResponse:
        """
        Check if the bridge is active.

        Raises:
            BridgeClientError: If the bridge answers with an error status
        """
        await self._ensure_session()
        async with self.session.get(f"{self.base_url}/ping") as response:
            if response.status >= 400:
                raise BridgeClientError(response.status, await response.text())
            return PingResponse.model_validate(await response.json())

    async def search_items(self, query: str, limit: int = 25) -> list[ItemRecord]:
        """
        Search for items matching a query.

        Args:
            query: Search text (matches titles, creators, notes, etc.)
            limit: Maximum number of results
        """
        data = await self._post("search", {"query": query, "limit": limit})
        return [ItemRecord.model_validate(item) for item in data.get("results", [])]

    async def list_items(self, limit: int = 50) -> list[ItemRecord]:
        """List top-level items of the library."""
        data = await self._post("items", {"limit": limit})
        return [ItemRecord.model_validate(item) for item in data.get("items", [])]

    async def get_item(self, key: str) -> dict[str, Any]:
        """
        Get the details of an item.

        Raises:
            ItemNotFoundError: If no item has that key
        """
        return await self._post("item", {"key": key}, not_found_key=key)

    async def get_children(self, key: str) -> ChildrenResponse:
        """
        Get the attachments, notes or annotations of an item.

        Raises:
            ItemNotFoundError: If no item has that key
        """
        data = await self._post("children", {"key": key}, not_found_key=key)
        return ChildrenResponse.model_validate(data)

    async def get_pdf_attachments(self, key: str) -> list[AttachmentRecord]:
        """Get the PDF attachments of a regular item."""
        children = await self.get_children(key)
        return [
            AttachmentRecord.model_validate(child)
            for child in children.children
            if child.get("itemType") == "attachment"
            and child.get("contentType") == PDF_CONTENT_TYPE
        ]

    async def create_annotation(self, request: CreateAnnotationRequest) -> CreateAnnotationResponse:
        """
        Create an annotation on a PDF attachment.

        Raises:
            ItemNotFoundError: If the parent attachment does not exist
        """
        data = await self._post(
            "annotations",
            request.to_wire(),
            not_found_key=request.parent_item_key,
        )
        return CreateAnnotationResponse.model_validate(data)

    async def find_by_citation_key(self, citekey: str) -> Optional[ItemRecord]:
        """
        Find an item by citation key.

        Returns:
            The item with its PDF attachments, or None if the key is unknown
        """
        try:
            data = await self._post("citekey", {"citekey": citekey}, not_found_key=citekey)
        except ItemNotFoundError:
            return None
        return ItemRecord.model_validate(data)

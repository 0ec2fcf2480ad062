"""
Tool implementations for the Zotero MCP server.

Each tool talks to a running bridge through ``BridgeClient`` and returns
plain text for the model. Failures are raised as ``ToolError`` so the MCP
layer reports them as tool errors instead of protocol errors.
"""

import logging
from typing import Optional

import aiohttp
from fastmcp.exceptions import ToolError

from bridge.models.annotation import CreateAnnotationRequest, CreateAnnotationResponse, HighlightColor
from bridge.zotero.client import BridgeClient, BridgeClientError, ItemNotFoundError

logger = logging.getLogger(__name__)

COLOR_NAMES = ("section1", "section2", "section3", "positive", "detail", "negative", "code")


def page_to_index(page: int) -> int:
    """Convert a 1-based page number to a 0-based page index."""
    return max(page - 1, 0)


def resolve_color(name: str) -> HighlightColor:
    try:
        return HighlightColor.from_name(name)
    except ValueError as e:
        raise ToolError(f"{e}. Use one of: {', '.join(COLOR_NAMES)}") from e


async def lookup_item(client: BridgeClient, citekey: str) -> str:
    """Find an item by citation key and describe it with its PDF attachments."""
    try:
        item = await client.find_by_citation_key(citekey)
    except (BridgeClientError, aiohttp.ClientError) as e:
        raise ToolError(f"Zotero bridge error: {e}") from e
    if item is None:
        raise ToolError(f"Item not found for citekey: {citekey}")

    pdf_lines = [
        f"  - Key: {pdf.key}, Title: {pdf.title or '(no title)'}, Path: {pdf.path or '(no path)'}"
        for pdf in item.attachments
    ]

    return "\n".join([
        "Found item:",
        f"Key: {item.key}",
        f"Title: {item.title or '(no title)'}",
        f"Type: {item.item_type}",
        f"Date: {item.date or '(no date)'}",
        "",
        f"PDF Attachments ({len(pdf_lines)}):",
        "\n".join(pdf_lines) if pdf_lines else "  (none)",
    ])


async def _submit(client: BridgeClient, request: CreateAnnotationRequest) -> str:
    """Send an annotation request and return the new annotation's key."""
    try:
        response: CreateAnnotationResponse = await client.create_annotation(request)
    except ItemNotFoundError as e:
        raise ToolError(f"PDF attachment not found for key: {e.key}") from e
    except (BridgeClientError, aiohttp.ClientError) as e:
        raise ToolError(f"Zotero bridge error: {e}") from e

    if not response.success:
        raise ToolError(response.error or "Unknown error")

    key = response.annotation.key if response.annotation else None
    logger.info(f"Created {request.annotation_type} annotation {key} on {request.parent_item_key}")
    return key or "(unknown)"


async def create_highlight(
    client: BridgeClient,
    attachment_key: str,
    text: str,
    page: int,
    color: str,
    rects: Optional[list[list[float]]] = None,
    comment: Optional[str] = None,
) -> str:
    """
    Create a text highlight on a PDF attachment.

    Args:
        client: Bridge client
        attachment_key: Key of the PDF attachment
        text: Highlighted text
        page: 1-based page number
        color: Semantic color name (see ``COLOR_NAMES``)
        rects: Highlight rectangles [x1, y1, x2, y2] in PDF coordinates
        comment: Optional comment
    """
    semantic_color = resolve_color(color)
    request = CreateAnnotationRequest.highlight(
        attachment_key, text, page_to_index(page), rects or []
    ).with_semantic_color(semantic_color)
    if comment:
        request = request.with_comment(comment)

    key = await _submit(client, request)

    return "\n".join([
        f"Created highlight annotation: {key}",
        f"Text: {text}",
        f"Page: {page}",
        f"Color: {semantic_color.hex} ({semantic_color.description})",
    ])


async def create_area_annotation(
    client: BridgeClient,
    attachment_key: str,
    page: int,
    rect: list[float],
    color: str,
    comment: Optional[str] = None,
) -> str:
    """Create an area annotation selecting a figure or diagram."""
    if len(rect) != 4:
        raise ToolError("rect must be [x1, y1, x2, y2]")

    semantic_color = resolve_color(color)
    request = CreateAnnotationRequest.area(
        attachment_key, page_to_index(page), rect
    ).with_semantic_color(semantic_color)
    if comment:
        request = request.with_comment(comment)

    key = await _submit(client, request)

    x1, y1, x2, y2 = rect
    return "\n".join([
        f"Created area annotation: {key}",
        f"Page: {page}",
        f"Rect: [{x1:.1f}, {y1:.1f}, {x2:.1f}, {y2:.1f}]",
        f"Color: {semantic_color.hex} ({semantic_color.description})",
        f"Comment: {comment or '(none)'}",
    ])

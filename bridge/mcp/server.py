"""
MCP server exposing the bridge as tools for AI agents.

Usage:
    zotero-mcp-bridge-mcp           # stdio server talking to a running bridge

The tools use one shared ``BridgeClient``; BRIDGE_URL (or API_HOST and
API_PORT) selects the bridge. Logs go to stderr, stdout carries the protocol.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Annotated, Literal, Optional

from fastmcp import FastMCP
from pydantic import Field

from bridge.config.settings import get_settings
from bridge.mcp.tools import create_area_annotation, create_highlight, lookup_item
from bridge.zotero.client import BridgeClient

logger = logging.getLogger(__name__)

ColorName = Literal["section1", "section2", "section3", "positive", "detail", "negative", "code"]

_client: Optional[BridgeClient] = None


def get_client() -> BridgeClient:
    """Lazily create the shared bridge client."""
    global _client
    if _client is None:
        _client = BridgeClient(get_settings().bridge_url)
    return _client


@asynccontextmanager
async def server_lifespan(server: FastMCP):
    """Manage server startup and shutdown lifecycle."""
    logger.info("Starting Zotero MCP server")
    yield {}
    if _client is not None:
        await _client.close()
    logger.info("Shutting down Zotero MCP server")


mcp = FastMCP(
    "zotero-mcp-bridge",
    instructions=(
        "Zotero tools for critical reading. "
        "Use zotero_lookup to find items and their PDF attachment keys by citation key, "
        "zotero_create_highlight and zotero_create_area_annotation to annotate PDFs. "
        "Colors: section1/2/3, positive, detail, negative, code."
    ),
    lifespan=server_lifespan,
)


@mcp.tool(
    name="zotero_lookup",
    description=(
        "Find a Zotero item by its BetterBibTeX citation key. "
        "Returns item metadata including PDF attachment keys."
    ),
)
async def zotero_lookup(
    citekey: Annotated[str, Field(
        description='Citation key, e.g. "smithMachineLearning2023"',
    )],
) -> str:
    return await lookup_item(get_client(), citekey)


@mcp.tool(
    name="zotero_create_highlight",
    description=(
        "Create a text highlight annotation on a PDF attachment. "
        "Colors: section1/2/3, positive, detail, negative, code."
    ),
)
async def zotero_create_highlight(
    attachment_key: Annotated[str, Field(description="Zotero attachment key for the PDF")],
    text: Annotated[str, Field(description="Text to highlight")],
    page: Annotated[int, Field(ge=1, description="1-based page number")],
    color: Annotated[ColorName, Field(description="Semantic color for the highlight")],
    rects: Annotated[Optional[list[list[float]]], Field(
        description="Highlight rectangles [x1, y1, x2, y2] in PDF coordinates",
    )] = None,
    comment: Annotated[Optional[str], Field(description="Optional comment")] = None,
) -> str:
    return await create_highlight(
        get_client(), attachment_key, text, page, color, rects=rects, comment=comment
    )


@mcp.tool(
    name="zotero_create_area_annotation",
    description=(
        "Create an area annotation for figures/diagrams. "
        "Specify rect as [x1, y1, x2, y2] in PDF coordinates."
    ),
)
async def zotero_create_area_annotation(
    attachment_key: Annotated[str, Field(description="Zotero attachment key for the PDF")],
    page: Annotated[int, Field(ge=1, description="1-based page number")],
    rect: Annotated[list[float], Field(
        min_length=4,
        max_length=4,
        description="Bounding box [x1, y1, x2, y2] in PDF coordinates",
    )],
    color: Annotated[ColorName, Field(description="Semantic color for the annotation")],
    comment: Annotated[Optional[str], Field(description="Optional comment")] = None,
) -> str:
    return await create_area_annotation(
        get_client(), attachment_key, page, rect, color, comment=comment
    )


def main():
    """Run the MCP server over stdio."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )
    mcp.run()


if __name__ == "__main__":
    main()

"""
Tests for the MCP tools and server.

The bridge client is mocked, so no running bridge is required.
"""

import unittest
from unittest.mock import AsyncMock, patch

import aiohttp
from fastmcp import Client
from fastmcp.exceptions import ToolError

from bridge.mcp.server import mcp
from bridge.mcp.tools import (
    create_area_annotation,
    create_highlight,
    lookup_item,
    page_to_index,
    resolve_color,
)
from bridge.models.annotation import (
    AnnotationRecord,
    AttachmentRecord,
    CreateAnnotationResponse,
    HighlightColor,
    ItemRecord,
)
from bridge.zotero.client import BridgeClient, BridgeClientError, ItemNotFoundError


def mock_bridge_client() -> AsyncMock:
    client = AsyncMock(spec=BridgeClient)
    client.find_by_citation_key.return_value = ItemRecord(
        id=1,
        key="ABCD2345",
        item_type="journalArticle",
        title="Deep Learning for Citation Analysis",
        date="2020-03-01",
        citekey="smith2020",
        attachments=[AttachmentRecord(
            id=2, key="PDFA2345", title="Full Text PDF",
            content_type="application/pdf", path="/library/smith2020.pdf",
        )],
    )
    client.create_annotation.return_value = CreateAnnotationResponse(
        success=True,
        annotation=AnnotationRecord(key="NEWK2345", parent_item_key="PDFA2345"),
    )
    return client


class TestHelpers(unittest.TestCase):

    def test_page_to_index(self):
        self.assertEqual(page_to_index(1), 0)
        self.assertEqual(page_to_index(12), 11)
        self.assertEqual(page_to_index(0), 0)

    def test_resolve_color(self):
        self.assertIs(resolve_color("positive"), HighlightColor.POSITIVE)
        self.assertIs(resolve_color("Section2"), HighlightColor.SECTION2)
        self.assertEqual(resolve_color("code").description, "Code / Technical content")

        with self.assertRaises(ToolError) as ctx:
            resolve_color("purple")
        self.assertIn("section1", str(ctx.exception))


class TestLookupItem(unittest.IsolatedAsyncioTestCase):
    """Test the citation key lookup tool."""

    async def asyncSetUp(self):
        self.client = mock_bridge_client()

    async def test_found(self):
        text = await lookup_item(self.client, "smith2020")

        self.client.find_by_citation_key.assert_awaited_once_with("smith2020")
        self.assertIn("Key: ABCD2345", text)
        self.assertIn("Title: Deep Learning for Citation Analysis", text)
        self.assertIn("Type: journalArticle", text)
        self.assertIn("PDF Attachments (1):", text)
        self.assertIn("  - Key: PDFA2345, Title: Full Text PDF, Path: /library/smith2020.pdf", text)

    async def test_without_pdfs(self):
        self.client.find_by_citation_key.return_value = ItemRecord(key="BKPR2345", item_type="book")
        text = await lookup_item(self.client, "bishop2006")

        self.assertIn("Title: (no title)", text)
        self.assertIn("Date: (no date)", text)
        self.assertTrue(text.endswith("PDF Attachments (0):\n  (none)"))

    async def test_not_found(self):
        self.client.find_by_citation_key.return_value = None
        with self.assertRaises(ToolError) as ctx:
            await lookup_item(self.client, "nobody1999")
        self.assertEqual(str(ctx.exception), "Item not found for citekey: nobody1999")

    async def test_bridge_unreachable(self):
        self.client.find_by_citation_key.side_effect = aiohttp.ClientConnectionError("refused")
        with self.assertRaises(ToolError) as ctx:
            await lookup_item(self.client, "smith2020")
        self.assertIn("Zotero bridge error", str(ctx.exception))


class TestAnnotationTools(unittest.IsolatedAsyncioTestCase):
    """Test the highlight and area annotation tools."""

    async def asyncSetUp(self):
        self.client = mock_bridge_client()

    async def test_create_highlight(self):
        text = await create_highlight(
            self.client, "PDFA2345", "Key finding", 3, "negative",
            rects=[[10, 20, 30, 40]], comment="Disagree",
        )

        request = self.client.create_annotation.call_args[0][0]
        self.assertEqual(request.to_wire(), {
            "parentItemKey": "PDFA2345",
            "annotationType": "highlight",
            "text": "Key finding",
            "comment": "Disagree",
            "color": "#ff6666",
            "pageLabel": "3",
            "position": {"pageIndex": 2, "rects": [[10.0, 20.0, 30.0, 40.0]]},
        })
        self.assertEqual(text, "\n".join([
            "Created highlight annotation: NEWK2345",
            "Text: Key finding",
            "Page: 3",
            "Color: #ff6666 (Negative point / Criticism)",
        ]))

    async def test_create_highlight_without_rects(self):
        await create_highlight(self.client, "PDFA2345", "passage", 1, "detail")

        request = self.client.create_annotation.call_args[0][0]
        self.assertEqual(request.position.rects, [])
        self.assertIsNone(request.comment)

    async def test_create_area_annotation(self):
        text = await create_area_annotation(
            self.client, "PDFA2345", 5, [100, 200, 300.5, 400], "section1"
        )

        request = self.client.create_annotation.call_args[0][0]
        wire = request.to_wire()
        self.assertEqual(wire["annotationType"], "image")
        self.assertEqual(wire["color"], "#2ea8e5")
        self.assertEqual(wire["position"], {"pageIndex": 4, "rects": [[100.0, 200.0, 300.5, 400.0]]})
        self.assertIn("Rect: [100.0, 200.0, 300.5, 400.0]", text)
        self.assertIn("Comment: (none)", text)

    async def test_area_rect_must_have_four_values(self):
        with self.assertRaises(ToolError):
            await create_area_annotation(self.client, "PDFA2345", 1, [1, 2, 3], "code")
        self.client.create_annotation.assert_not_awaited()

    async def test_unknown_attachment(self):
        self.client.create_annotation.side_effect = ItemNotFoundError("NOPE2345")
        with self.assertRaises(ToolError) as ctx:
            await create_highlight(self.client, "NOPE2345", "x", 1, "positive")
        self.assertEqual(str(ctx.exception), "PDF attachment not found for key: NOPE2345")

    async def test_bridge_error(self):
        self.client.create_annotation.side_effect = BridgeClientError(500, "Internal error")
        with self.assertRaises(ToolError):
            await create_area_annotation(self.client, "PDFA2345", 1, [1, 2, 3, 4], "code")

    async def test_unsuccessful_response(self):
        self.client.create_annotation.return_value = CreateAnnotationResponse(
            success=False, error="Parent is not a PDF"
        )
        with self.assertRaises(ToolError) as ctx:
            await create_highlight(self.client, "PDFA2345", "x", 1, "positive")
        self.assertEqual(str(ctx.exception), "Parent is not a PDF")


class TestMcpServer(unittest.IsolatedAsyncioTestCase):
    """Test the tools through an in-memory MCP client."""

    async def test_tools_registered(self):
        async with Client(mcp) as client:
            tools = await client.list_tools()

        self.assertEqual(
            {tool.name for tool in tools},
            {"zotero_lookup", "zotero_create_highlight", "zotero_create_area_annotation"},
        )

    @patch("bridge.mcp.server.get_client")
    async def test_lookup(self, mock_get_client):
        mock_get_client.return_value = mock_bridge_client()

        async with Client(mcp) as client:
            result = await client.call_tool("zotero_lookup", {"citekey": "smith2020"})

        self.assertIn("Key: ABCD2345", result.content[0].text)

    @patch("bridge.mcp.server.get_client")
    async def test_create_area_annotation(self, mock_get_client):
        bridge_client = mock_bridge_client()
        mock_get_client.return_value = bridge_client

        async with Client(mcp) as client:
            result = await client.call_tool("zotero_create_area_annotation", {
                "attachment_key": "PDFA2345",
                "page": 2,
                "rect": [1, 2, 3, 4],
                "color": "positive",
                "comment": "Figure 1",
            })

        self.assertIn("Created area annotation: NEWK2345", result.content[0].text)
        request = bridge_client.create_annotation.call_args[0][0]
        self.assertEqual(request.comment, "Figure 1")
        self.assertEqual(request.color, "#5fb236")

    @patch("bridge.mcp.server.get_client")
    async def test_tool_error_reported(self, mock_get_client):
        bridge_client = mock_bridge_client()
        bridge_client.find_by_citation_key.return_value = None
        mock_get_client.return_value = bridge_client

        async with Client(mcp) as client:
            with self.assertRaises(ToolError) as ctx:
                await client.call_tool("zotero_lookup", {"citekey": "nobody1999"})

        self.assertIn("Item not found for citekey: nobody1999", str(ctx.exception))

    @patch("bridge.mcp.server.get_client")
    async def test_unknown_color_rejected(self, mock_get_client):
        bridge_client = mock_bridge_client()
        mock_get_client.return_value = bridge_client

        async with Client(mcp) as client:
            with self.assertRaises(ToolError):
                await client.call_tool("zotero_create_highlight", {
                    "attachment_key": "PDFA2345",
                    "text": "x",
                    "page": 1,
                    "color": "purple",
                })

        bridge_client.create_annotation.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()

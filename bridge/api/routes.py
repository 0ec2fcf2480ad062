"""
MCP bridge endpoints.

The endpoints are declared in an explicit route table (``ROUTES``) which the
application turns into a router once at startup. Handlers read the raw body,
normalize it and delegate to the bridge services held by the application's
``BridgeContext``.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from bridge.config.settings import Settings
from bridge.errors import BridgeError, InternalError
from bridge.services.annotations import AnnotationBuilder
from bridge.services.citekey import CitekeyResolver
from bridge.services.hierarchy import HierarchyWalker
from bridge.services.query import QueryTranslator
from bridge.services.request_normalizer import normalize_body
from bridge.zotero.citekey_index import CitationKeyIndex
from bridge.zotero.store import ItemStore

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[JSONResponse]]


@dataclass
class BridgeContext:
    """Services shared by all handlers of one application instance."""

    settings: Settings
    store: ItemStore
    annotations: AnnotationBuilder
    query: QueryTranslator
    hierarchy: HierarchyWalker
    citekeys: CitekeyResolver
    citekey_index: Optional[CitationKeyIndex] = None

    @classmethod
    def create(
        cls,
        settings: Settings,
        store: ItemStore,
        citekey_index: Optional[CitationKeyIndex] = None,
    ) -> "BridgeContext":
        library_id = settings.library_id
        return cls(
            settings=settings,
            store=store,
            annotations=AnnotationBuilder(store, library_id),
            query=QueryTranslator(
                store,
                library_id,
                search_limit=settings.search_limit,
                items_limit=settings.items_limit,
            ),
            hierarchy=HierarchyWalker(store, library_id),
            citekeys=CitekeyResolver(
                store,
                library_id,
                index=citekey_index,
                scan_limit=settings.citekey_scan_limit,
            ),
            citekey_index=citekey_index,
        )


@dataclass(frozen=True)
class Route:
    """One entry of the route table."""

    path: str
    method: str
    handler: Handler


def _context(request: Request) -> BridgeContext:
    return request.app.state.bridge


async def _run(context: BridgeContext, operation: Awaitable[dict[str, Any]], action: str) -> dict[str, Any]:
    """
    Await a bridge operation under the store timeout.

    Bridge errors pass through; anything else is logged and reported as an
    internal error so no failure escapes the handler.
    """
    timeout = context.settings.store_timeout
    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except BridgeError:
        raise
    except asyncio.TimeoutError as e:
        logger.error(f"Error {action}: item store did not respond within {timeout}s")
        raise InternalError(f"Item store did not respond within {timeout} seconds") from e
    except Exception as e:
        logger.exception(f"Error {action}: {e}")
        raise InternalError(str(e)) from e


async def ping(request: Request) -> JSONResponse:
    """Check if the bridge is active."""
    context = _context(request)
    return JSONResponse({
        "status": "ok",
        "plugin": context.settings.plugin_name,
        "version": context.settings.version,
        "hostVersion": context.store.host_version,
    })


async def create_annotation(request: Request) -> JSONResponse:
    """Create a new annotation on a PDF attachment."""
    context = _context(request)
    data = normalize_body(await request.body())
    annotation = await _run(context, context.annotations.create(data), "creating annotation")
    return JSONResponse({"success": True, "annotation": annotation}, status_code=201)


async def get_item(request: Request) -> JSONResponse:
    """Get item details by key."""
    context = _context(request)
    data = normalize_body(await request.body())
    return JSONResponse(await _run(context, context.hierarchy.detail(data), "getting item"))


async def search_items(request: Request) -> JSONResponse:
    """Search items across all indexed text."""
    context = _context(request)
    data = normalize_body(await request.body())
    return JSONResponse(await _run(context, context.query.search(data), "searching items"))


async def get_children(request: Request) -> JSONResponse:
    """Get child attachments, notes or annotations of an item."""
    context = _context(request)
    data = normalize_body(await request.body())
    return JSONResponse(await _run(context, context.hierarchy.children(data), "getting children"))


async def list_items(request: Request) -> JSONResponse:
    """List top-level items. Malformed bodies fall back to defaults."""
    context = _context(request)
    data = normalize_body(await request.body(), tolerant=True)
    return JSONResponse(await _run(context, context.query.list_top_level(data), "getting items"))


async def lookup_citekey(request: Request) -> JSONResponse:
    """Look up an item by citation key."""
    context = _context(request)
    data = normalize_body(await request.body())
    return JSONResponse(await _run(context, context.citekeys.resolve(data), "looking up citekey"))


ROUTES: tuple[Route, ...] = (
    Route("/mcp/ping", "GET", ping),
    Route("/mcp/annotations", "POST", create_annotation),
    Route("/mcp/item", "POST", get_item),
    Route("/mcp/search", "POST", search_items),
    Route("/mcp/children", "POST", get_children),
    Route("/mcp/items", "POST", list_items),
    Route("/mcp/citekey", "POST", lookup_citekey),
)


def build_router(routes: tuple[Route, ...] = ROUTES) -> APIRouter:
    """Build a router from a route table."""
    router = APIRouter()
    for route in routes:
        router.add_api_route(route.path, route.handler, methods=[route.method])
        logger.debug(f"Registered endpoint: {route.method} {route.path}")
    return router

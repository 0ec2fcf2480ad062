"""
FastAPI application entry point for the Zotero MCP bridge.
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import sys

from bridge.api.routes import ROUTES, BridgeContext, build_router
from bridge.config.settings import Settings, get_settings
from bridge.errors import BridgeError
from bridge.zotero.citekey_index import (
    BetterBibTexIndex,
    CitationKeyIndex,
    MappingCitationKeyIndex,
)
from bridge.zotero.memory_store import InMemoryItemStore
from bridge.zotero.store import ItemStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings):
    """Configure logging with console and optional file output."""
    # Use UTF-8 so titles and notes with non-ASCII characters log cleanly
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    if hasattr(console_handler.stream, 'reconfigure'):
        try:
            console_handler.stream.reconfigure(encoding='utf-8', errors='replace')
        except Exception:
            pass  # Ignore if reconfigure fails

    handlers = [console_handler]

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    # Suppress overly verbose third-party loggers
    logging.getLogger("aiohttp").setLevel(logging.INFO)
    logging.getLogger("httpcore").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.INFO)

    # Route uvicorn's loggers through the root logger's handlers and format
    for name in ("uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


settings = get_settings()
configure_logging(settings)

logger = logging.getLogger(__name__)


def default_citekey_index(settings: Settings) -> Optional[CitationKeyIndex]:
    """
    Pick the citation-key index for the configured environment.

    Better BibTeX is used when its URL is configured, otherwise the
    ``citationKeys`` table of the library snapshot if it has one.
    """
    if settings.better_bibtex_url:
        return BetterBibTexIndex(settings.better_bibtex_url)
    if settings.library_snapshot and settings.library_snapshot.exists():
        return MappingCitationKeyIndex.from_snapshot(settings.library_snapshot)
    return None


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    """Render bridge errors as ``{error, ...}`` JSON bodies."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ItemStore] = None,
    citekey_index: Optional[CitationKeyIndex] = None,
) -> FastAPI:
    """
    Create the bridge application.

    Args:
        settings: Settings to use. If None, uses the global settings.
        store: Item store. If None, an in-memory store backed by the
            configured library snapshot is created.
        citekey_index: Citation-key index. If None, one is chosen from the
            settings (see ``default_citekey_index``).
    """
    settings = settings or get_settings()
    if store is None:
        store = InMemoryItemStore(snapshot_path=settings.library_snapshot)
    if citekey_index is None:
        citekey_index = default_citekey_index(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(f"Starting {settings.plugin_name} v{settings.version}")
        logger.info(f"Serving library {settings.library_id} (host {store.host_version})")
        if citekey_index is not None:
            logger.info(f"Citation key index: {type(citekey_index).__name__}")
        yield
        if citekey_index is not None:
            await citekey_index.close()
        logger.info(f"Shutting down {settings.plugin_name}")

    app = FastAPI(
        title="Zotero MCP Bridge",
        description="JSON endpoints for creating annotations and querying a Zotero library",
        version=settings.version,
        lifespan=lifespan
    )

    # Local-only service, so accept all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.bridge = BridgeContext.create(settings, store, citekey_index)
    app.add_exception_handler(BridgeError, bridge_error_handler)
    app.include_router(build_router(ROUTES))

    logger.debug(f"Registered {len(ROUTES)} MCP endpoints")
    return app


app = create_app(settings)


def run():
    """Run the bridge with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        "bridge.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )

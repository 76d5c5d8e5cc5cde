"""FastAPI application entry points: development server and static server."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from bam import __version__
from bam.api.health import router as health_router
from bam.api.pages import router as pages_router
from bam.api.pages import site_router
from bam.config import Settings
from bam.exceptions import (
    ConversionError,
    LayoutMarkerError,
    LayoutMissingError,
)
from bam.filesystem.page_resolver import PageResolver
from bam.rendering.renderer import load_layout

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

INTERNAL_ERROR_TEXT = "Internal server error"


def configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Development server lifespan: validate the project before serving."""
    settings: Settings = app.state.settings
    configure_logging(settings.debug)
    logger.info("Starting BAM dev server for %s", settings.project_dir.resolve())

    try:
        await load_layout(settings.layout_path)
    except (LayoutMissingError, LayoutMarkerError) as exc:
        logger.critical("Not able to detect BAM application: %s", exc)
        raise

    if not settings.pages_root.is_dir():
        logger.warning("Pages directory %s not found; serving no pages", settings.pages_root)

    yield

    logger.info("BAM dev server stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the development server, which renders pages on every request."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="BAM",
        description="Development server for a BAM static site",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url="/_bam/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.resolver = PageResolver(
        pages_root=settings.pages_root,
        script_extension=settings.script_extension,
    )

    app.include_router(health_router)
    app.include_router(pages_router)
    # Catch-all page route goes last
    app.include_router(site_router)

    @app.exception_handler(LayoutMissingError)
    async def layout_missing_handler(
        request: Request, exc: LayoutMissingError
    ) -> PlainTextResponse:
        logger.critical("LayoutMissingError in %s %s: %s", request.method, request.url.path, exc)
        return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)

    @app.exception_handler(LayoutMarkerError)
    async def layout_marker_handler(
        request: Request, exc: LayoutMarkerError
    ) -> PlainTextResponse:
        logger.critical("LayoutMarkerError in %s %s: %s", request.method, request.url.path, exc)
        return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)

    @app.exception_handler(ConversionError)
    async def conversion_error_handler(
        request: Request, exc: ConversionError
    ) -> PlainTextResponse:
        logger.error(
            "ConversionError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError) -> PlainTextResponse:
        if isinstance(exc, (ConnectionError, TimeoutError)):
            raise exc
        logger.error("OSError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)

    @app.exception_handler(UnicodeDecodeError)
    async def unicode_error_handler(
        request: Request, exc: UnicodeDecodeError
    ) -> PlainTextResponse:
        logger.error(
            "UnicodeDecodeError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> PlainTextResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)

    return app


def create_static_app(settings: Settings | None = None) -> FastAPI:
    """Create a server for the generated site, as a static host would serve it.

    Raises FileNotFoundError if the output directory has not been generated.
    """
    if settings is None:
        settings = Settings()

    output_root = settings.output_root
    if not output_root.is_dir():
        msg = f"Generated site not found at {output_root}. Run 'bam gen' first."
        raise FileNotFoundError(msg)

    app = FastAPI(
        title="BAM static server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.mount("/", StaticFiles(directory=str(output_root), html=True), name="static")
    return app


app = create_app()


def run_server(server_app: FastAPI, settings: Settings) -> None:
    """Run ``server_app`` with uvicorn until interrupted."""
    import uvicorn

    logger.info("Visit http://%s:%d to view your site", settings.host, settings.port)
    logger.info("Press CTRL-C to exit")
    uvicorn.run(
        server_app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )


def cli_entry() -> None:
    """Entry point for running the development server with environment settings."""
    settings: Settings = app.state.settings
    configure_logging(settings.debug)
    run_server(app, settings)

"""Page endpoints: inventory and on-demand page rendering."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, Response

from bam.api.deps import get_resolver, get_settings
from bam.config import Settings
from bam.exceptions import PagesRootMissingError
from bam.filesystem.page_resolver import PageResolver, PageSource, canonical_pages
from bam.rendering.renderer import load_layout, render_page
from bam.schemas.page import PageListResponse, PageSummary
from bam.services.assets import ASSET_DIRS

logger = logging.getLogger(__name__)

NOT_FOUND_TEXT = "404 - Page not found"

router = APIRouter(prefix="/_bam", tags=["pages"])
site_router = APIRouter(tags=["site"])


def _summary(source: PageSource) -> PageSummary:
    return PageSummary(
        relative_path=source.relative_path,
        format=source.format,
        output_name=source.output_name,
    )


@router.get("/pages", response_model=PageListResponse)
async def list_pages(
    resolver: Annotated[PageResolver, Depends(get_resolver)],
) -> PageListResponse:
    """List the pages the project would generate."""
    try:
        sources = await resolver.list_all()
    except PagesRootMissingError:
        logger.warning("No pages directory at %s", resolver.pages_root)
        return PageListResponse(pages=[], shadowed=[])
    pages, shadowed = canonical_pages(sources)
    return PageListResponse(
        pages=[_summary(p) for p in pages],
        shadowed=[_summary(p) for p in shadowed],
    )


def is_asset_path(path: str) -> bool:
    """Whether a request path points into one of the asset directories."""
    first = path.lstrip("/").split("/", 1)[0]
    return first in ASSET_DIRS


async def not_found_response(settings: Settings) -> Response:
    """The project's 404.html with status 404, or a plain-text fallback."""
    not_found_path = settings.not_found_path
    if await asyncio.to_thread(not_found_path.is_file):
        content = await asyncio.to_thread(not_found_path.read_text, encoding="utf-8")
        return HTMLResponse(content, status_code=404)
    return PlainTextResponse(NOT_FOUND_TEXT, status_code=404)


def _asset_file(settings: Settings, path: str) -> FileResponse | None:
    project_root = settings.project_dir.resolve()
    full_path = (project_root / path.lstrip("/")).resolve()
    if not full_path.is_relative_to(project_root) or not full_path.is_file():
        return None
    return FileResponse(full_path)


@site_router.get("/{path:path}")
async def serve_page(
    path: str,
    settings: Annotated[Settings, Depends(get_settings)],
    resolver: Annotated[PageResolver, Depends(get_resolver)],
) -> Response:
    """Render the page for ``path`` through the layout, or stream an asset."""
    if is_asset_path(path):
        asset = await asyncio.to_thread(_asset_file, settings, path)
        if asset is None:
            return PlainTextResponse("File not found", status_code=404)
        return asset

    source = await resolver.resolve(path)
    if source is None:
        logger.info("Unable to locate page for /%s", path)
        return await not_found_response(settings)

    layout = await load_layout(settings.layout_path)
    rendered = await render_page(source, layout, settings.project_dir)
    return HTMLResponse(rendered)

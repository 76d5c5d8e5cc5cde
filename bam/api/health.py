"""Health check endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bam import __version__
from bam.api.deps import get_settings
from bam.config import Settings

router = APIRouter(prefix="/_bam", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    layout: str
    pages: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """Report whether the project has what it needs to render pages."""
    layout_status = "ok" if settings.layout_path.is_file() else "missing"
    pages_status = "ok" if settings.pages_root.is_dir() else "missing"
    return HealthResponse(
        status="ok" if layout_status == "ok" else "degraded",
        version=__version__,
        layout=layout_status,
        pages=pages_status,
    )

"""Page-related schemas."""

from __future__ import annotations

from pydantic import BaseModel

from bam.filesystem.page_resolver import PageFormat


class PageSummary(BaseModel):
    """One entry of the page inventory."""

    relative_path: str
    format: PageFormat
    output_name: str


class PageListResponse(BaseModel):
    """Page inventory response."""

    pages: list[PageSummary]
    shadowed: list[PageSummary]

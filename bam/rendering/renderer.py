"""Page rendering: format dispatch and layout substitution."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bam.exceptions import (
    ConversionError,
    LayoutMarkerError,
    LayoutMissingError,
    SourceFileMissingError,
)
from bam.filesystem.page_resolver import PageFormat
from bam.rendering.markdown import render_markdown
from bam.rendering.script import ScriptRenderer

if TYPE_CHECKING:
    from pathlib import Path

    from bam.filesystem.page_resolver import PageSource

logger = logging.getLogger(__name__)

# <%- @body %>, <%= body %> and the other eco/EJS spellings of the body slot.
BODY_MARKER_RE = re.compile(r"<%[-=]\s*@?body\s*%>")


@dataclass(frozen=True)
class Layout:
    """A validated layout template, read once and shared by many renders."""

    path: Path
    template: str

    def __post_init__(self) -> None:
        count = len(BODY_MARKER_RE.findall(self.template))
        if count != 1:
            raise LayoutMarkerError(self.path, count)

    def substitute(self, fragment: str) -> str:
        """Insert ``fragment`` at the body marker, leaving the rest verbatim."""
        before, after = BODY_MARKER_RE.split(self.template, maxsplit=1)
        return before + fragment + after


def read_layout(layout_path: Path) -> Layout:
    """Read and validate the layout template.

    Raises LayoutMissingError if the file is absent and LayoutMarkerError if
    it does not hold exactly one body marker.
    """
    if not layout_path.is_file():
        raise LayoutMissingError(layout_path)
    return Layout(path=layout_path, template=layout_path.read_text(encoding="utf-8"))


async def load_layout(layout_path: Path) -> Layout:
    """Read the layout template without blocking the event loop."""
    return await asyncio.to_thread(read_layout, layout_path)


def convert(fmt: PageFormat, raw_content: str, project_dir: Path | None = None) -> str:
    """Convert raw page content to an HTML fragment according to ``fmt``."""
    if fmt is PageFormat.HTML:
        return raw_content
    if fmt is PageFormat.MARKDOWN:
        return render_markdown(raw_content)
    if fmt is PageFormat.SCRIPT:
        return ScriptRenderer(base_dir=project_dir).render(raw_content)
    msg = f"Pages of format {fmt.value!r} have no content to convert"
    raise ValueError(msg)


def _read_source(source: PageSource) -> str:
    try:
        return source.source_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SourceFileMissingError(source.source_path) from None


def render_page_sync(
    source: PageSource, layout: Layout, project_dir: Path | None = None
) -> str:
    """Render one page into the layout.

    Raises SourceFileMissingError if the backing file vanished and
    ConversionError if its converter failed.
    """
    if source.is_directory:
        msg = f"{source.relative_path!r} is a directory, not a page"
        raise ValueError(msg)
    raw_content = _read_source(source)
    try:
        fragment = convert(source.format, raw_content, project_dir)
    except Exception as exc:
        raise ConversionError(source.relative_path, str(exc)) from exc
    return layout.substitute(fragment)


async def render_page(
    source: PageSource, layout: Layout, project_dir: Path | None = None
) -> str:
    """Render one page into the layout without blocking the event loop."""
    return await asyncio.to_thread(render_page_sync, source, layout, project_dir)

"""Page source discovery and request-path resolution."""

from __future__ import annotations

import asyncio
import enum
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from bam.exceptions import PagesRootMissingError

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT_EXTENSION = ".coffee"
INDEX_PAGE = "index"


class PageFormat(enum.StrEnum):
    """Rendering strategy of a page source, fixed at discovery time."""

    HTML = "html"
    MARKDOWN = "markdown"
    SCRIPT = "script"
    DIRECTORY = "directory"


_EXTENSION_FORMATS: dict[str, PageFormat] = {
    ".html": PageFormat.HTML,
    ".htm": PageFormat.HTML,
    ".md": PageFormat.MARKDOWN,
    ".markdown": PageFormat.MARKDOWN,
}

# Lower value wins when several sources share a relative path.
FORMAT_PRIORITY: dict[PageFormat, int] = {
    PageFormat.HTML: 0,
    PageFormat.MARKDOWN: 1,
    PageFormat.SCRIPT: 2,
}


@dataclass(frozen=True)
class PageSource:
    """One discoverable entry under the pages root."""

    relative_path: str
    format: PageFormat
    source_path: Path

    @property
    def is_directory(self) -> bool:
        return self.format is PageFormat.DIRECTORY

    @property
    def output_name(self) -> str:
        """Slash-separated output path relative to the output root."""
        if self.is_directory:
            return self.relative_path
        return f"{self.relative_path}.html"


def detect_format(path: Path, script_extension: str = DEFAULT_SCRIPT_EXTENSION) -> PageFormat:
    """Classify a page file by extension.

    Unknown extensions, and files without one, are HTML passthrough.
    """
    suffix = path.suffix.lower()
    if suffix == script_extension:
        return PageFormat.SCRIPT
    return _EXTENSION_FORMATS.get(suffix, PageFormat.HTML)


def _strip_extension(rel_path: str) -> str:
    head, sep, name = rel_path.rpartition("/")
    stem, dot, _ext = name.rpartition(".")
    if not dot or not stem:
        return rel_path
    return f"{head}{sep}{stem}"


def list_all(
    pages_root: Path, script_extension: str = DEFAULT_SCRIPT_EXTENSION
) -> list[PageSource]:
    """Recursively list every page source and subdirectory under ``pages_root``.

    Hidden entries (names starting with ``.``) are skipped.
    Raises PagesRootMissingError if ``pages_root`` is not a directory.
    """
    if not pages_root.is_dir():
        raise PagesRootMissingError(pages_root)

    sources: list[PageSource] = []
    for root, dirs, files in os.walk(pages_root):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        root_path = Path(root)
        for dirname in dirs:
            full = root_path / dirname
            sources.append(
                PageSource(
                    relative_path=full.relative_to(pages_root).as_posix(),
                    format=PageFormat.DIRECTORY,
                    source_path=full,
                )
            )
        for filename in sorted(files):
            if filename.startswith("."):
                continue
            full = root_path / filename
            rel_path = full.relative_to(pages_root).as_posix()
            sources.append(
                PageSource(
                    relative_path=_strip_extension(rel_path),
                    format=detect_format(full, script_extension),
                    source_path=full,
                )
            )
    return sources


def canonical_pages(sources: list[PageSource]) -> tuple[list[PageSource], list[PageSource]]:
    """Split renderable sources into winners and shadowed duplicates.

    When several files share a relative path, the one with the best
    ``FORMAT_PRIORITY`` wins (html > markdown > script). Directory entries are
    not included in either list.
    """
    best: dict[str, PageSource] = {}
    shadowed: list[PageSource] = []
    for source in sources:
        if source.is_directory:
            continue
        current = best.get(source.relative_path)
        if current is None:
            best[source.relative_path] = source
        elif FORMAT_PRIORITY[source.format] < FORMAT_PRIORITY[current.format]:
            shadowed.append(current)
            best[source.relative_path] = source
        else:
            shadowed.append(source)
    for dup in shadowed:
        winner = best[dup.relative_path]
        logger.warning(
            "Duplicate page %r: using %s, ignoring %s",
            dup.relative_path,
            winner.source_path.name,
            dup.source_path.name,
        )
    return list(best.values()), shadowed


def normalize_request_path(request_path: str) -> str | None:
    """Map a request path to a candidate relative page path.

    ``/`` maps to ``index``, a trailing ``.html`` is dropped, and a trailing
    slash names the directory's index page. Returns None for paths that try
    to leave the pages root.
    """
    path = request_path.split("?", 1)[0].split("#", 1)[0]
    trailing_slash = path.endswith("/")
    path = path.strip("/")
    path = path.removesuffix(".html")
    if not path:
        return INDEX_PAGE
    segments = path.split("/")
    if any(seg in {"", ".", ".."} for seg in segments):
        return None
    if trailing_slash:
        segments.append(INDEX_PAGE)
    return "/".join(segments)


def resolve(
    request_path: str,
    pages_root: Path,
    script_extension: str = DEFAULT_SCRIPT_EXTENSION,
) -> PageSource | None:
    """Find the page source serving ``request_path``, or None on a miss."""
    candidate = normalize_request_path(request_path)
    if candidate is None:
        return None
    try:
        sources = list_all(pages_root, script_extension)
    except PagesRootMissingError:
        logger.warning("No pages directory at %s; nothing to serve", pages_root)
        return None

    pages, _shadowed = canonical_pages(sources)
    by_path = {page.relative_path: page for page in pages}
    match = by_path.get(candidate)
    if match is not None:
        return match

    # /blog serves blog/index when blog is a directory
    if any(s.is_directory and s.relative_path == candidate for s in sources):
        return by_path.get(f"{candidate}/{INDEX_PAGE}")
    return None


@dataclass
class PageResolver:
    """Async facade over the page inventory of one pages root."""

    pages_root: Path
    script_extension: str = DEFAULT_SCRIPT_EXTENSION

    async def list_all(self) -> list[PageSource]:
        """Enumerate page sources without blocking the event loop."""
        return await asyncio.to_thread(list_all, self.pages_root, self.script_extension)

    async def resolve(self, request_path: str) -> PageSource | None:
        """Resolve a request path without blocking the event loop."""
        return await asyncio.to_thread(
            resolve, request_path, self.pages_root, self.script_extension
        )

"""Static site generation: render every page into the output directory."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bam.exceptions import ConversionError, UnsafeOutputDirError
from bam.filesystem.page_resolver import PageResolver, canonical_pages
from bam.filesystem.site_config import parse_site_config
from bam.rendering.renderer import load_layout, render_page
from bam.services.assets import (
    copy_assets,
    copy_misc_files,
    write_build_info,
    write_robots_txt,
    write_sitemap,
)

if TYPE_CHECKING:
    from pathlib import Path

    from bam.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class PageFailure:
    """A page that could not be generated."""

    relative_path: str
    error: str


@dataclass
class GenerationResult:
    """Outcome of one generation run."""

    output_root: Path
    pages: list[str] = field(default_factory=list)
    directories: list[str] = field(default_factory=list)
    failures: list[PageFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    assets: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether every page rendered."""
        return not self.failures


def check_output_root(settings: Settings) -> None:
    """Refuse an output directory whose clearing would delete project sources.

    The output root may not be, or contain, the project directory, the pages
    directory or the layout, and may not sit inside the pages directory.
    """
    output_root = settings.output_root.resolve()
    for protected in (settings.project_dir, settings.pages_root, settings.layout_path):
        if protected.resolve().is_relative_to(output_root):
            raise UnsafeOutputDirError(settings.output_root, protected)
    if output_root.is_relative_to(settings.pages_root.resolve()):
        raise UnsafeOutputDirError(settings.output_root, settings.pages_root)


def clear_output_dir(output_root: Path) -> None:
    """Remove a previous run's output so stale pages never persist."""
    if output_root.is_dir() and not output_root.is_symlink():
        logger.info("Cleaning previous build at %s", output_root)
        shutil.rmtree(output_root)
    elif output_root.exists():
        msg = f"Output path exists but is not a directory: {output_root}"
        raise NotADirectoryError(msg)


def write_page(target: Path, content: str) -> None:
    """Write a rendered page, never leaving a partially written file behind."""
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_name(f".{target.name}.tmp")
    try:
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, target)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


async def generate_site(settings: Settings) -> GenerationResult:
    """Generate the static site for the project described by ``settings``.

    An unsafe output directory (UnsafeOutputDirError) or a malformed bam.toml
    (ValueError) aborts the run before anything is touched. Otherwise the
    output directory is cleared first, and a missing layout or pages
    directory aborts the run before anything is written (LayoutMissingError,
    LayoutMarkerError, PagesRootMissingError). A page that fails to read,
    convert, or write is logged and recorded in the result; the remaining
    pages are still generated.
    """
    output_root = settings.output_root
    project_dir = settings.project_dir
    check_output_root(settings)
    site_config = await asyncio.to_thread(parse_site_config, project_dir)
    await asyncio.to_thread(clear_output_dir, output_root)

    layout = await load_layout(settings.layout_path)
    resolver = PageResolver(settings.pages_root, settings.script_extension)
    sources = await resolver.list_all()

    output_root.mkdir(parents=True)
    result = GenerationResult(output_root=output_root)
    logger.info("Generating %d page entries into %s", len(sources), output_root)

    for source in sources:
        if source.is_directory:
            (output_root / source.output_name).mkdir(parents=True, exist_ok=True)
            result.directories.append(source.output_name)

    pages, shadowed = canonical_pages(sources)
    result.skipped = [str(dup.source_path.relative_to(settings.pages_root)) for dup in shadowed]

    for page in pages:
        try:
            rendered = await render_page(page, layout, project_dir)
            await asyncio.to_thread(write_page, output_root / page.output_name, rendered)
        except (ConversionError, OSError, UnicodeDecodeError) as exc:
            logger.exception("Error processing page %s", page.relative_path)
            result.failures.append(PageFailure(relative_path=page.relative_path, error=str(exc)))
            continue
        logger.debug("Wrote %s", page.output_name)
        result.pages.append(page.output_name)

    result.assets = await asyncio.to_thread(copy_assets, project_dir, output_root)
    await asyncio.to_thread(copy_misc_files, project_dir, output_root)
    await asyncio.to_thread(write_robots_txt, output_root, site_config.base_url)
    await asyncio.to_thread(write_sitemap, output_root, site_config.base_url, result.pages)
    await asyncio.to_thread(write_build_info, output_root, len(result.pages))

    if result.failures:
        logger.warning(
            "Generated %d pages with %d failures", len(result.pages), len(result.failures)
        )
    else:
        logger.info("Generated %d pages", len(result.pages))
    return result

"""Asset copying and generated site metadata files."""

from __future__ import annotations

import html
import json
import logging
import platform
import shutil
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from bam import __version__

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

ASSET_DIRS: tuple[str, ...] = ("stylesheets", "css", "javascripts", "js", "images", "img", "ico")
MISC_FILES: tuple[str, ...] = ("404.html", "robots.txt")

_DEFAULT_ROBOTS_TXT = "User-agent: *\nAllow: /\n\nSitemap: {sitemap_url}\n"


def copy_assets(project_dir: Path, output_root: Path) -> list[str]:
    """Copy asset directories verbatim into the output directory.

    A directory that fails to copy is logged and skipped. Returns the names
    of the directories copied.
    """
    copied: list[str] = []
    for name in ASSET_DIRS:
        source = project_dir / name
        if not source.is_dir():
            continue
        try:
            shutil.copytree(source, output_root / name, dirs_exist_ok=True)
        except OSError:
            logger.exception("Failed to copy asset directory %s", source)
            continue
        logger.info("Copied %s", output_root / name)
        copied.append(name)
    return copied


def copy_misc_files(project_dir: Path, output_root: Path) -> list[str]:
    """Copy top-level files such as 404.html and robots.txt into the output."""
    copied: list[str] = []
    for name in MISC_FILES:
        source = project_dir / name
        if not source.is_file():
            continue
        try:
            shutil.copyfile(source, output_root / name)
        except OSError:
            logger.exception("Failed to copy %s", source)
            continue
        logger.info("Copied %s", output_root / name)
        copied.append(name)
    return copied


def write_robots_txt(output_root: Path, base_url: str) -> bool:
    """Write a permissive robots.txt unless the project supplied one.

    Returns True if a file was written.
    """
    robots_path = output_root / "robots.txt"
    if robots_path.exists():
        return False
    robots_path.write_text(
        _DEFAULT_ROBOTS_TXT.format(sitemap_url=f"{base_url}sitemap.xml"), encoding="utf-8"
    )
    logger.info("Generated %s", robots_path)
    return True


def page_url(base_url: str, output_name: str) -> str:
    """Public URL of a generated page; index pages map to their directory."""
    if output_name == "index.html":
        return base_url
    if output_name.endswith("/index.html"):
        return base_url + output_name.removesuffix("index.html")
    return base_url + output_name


def build_sitemap(base_url: str, output_names: list[str], lastmod: str) -> str:
    """Build sitemap.xml content for the generated pages."""
    entries = []
    for name in sorted(output_names):
        loc = html.escape(page_url(base_url, name))
        entries.append(
            f"  <url>\n    <loc>{loc}</loc>\n    <lastmod>{lastmod}</lastmod>\n  </url>"
        )
    body = "\n".join(entries)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{body}\n"
        "</urlset>\n"
    )


def write_sitemap(output_root: Path, base_url: str, output_names: list[str]) -> None:
    """Write sitemap.xml listing every generated page."""
    lastmod = datetime.now(UTC).date().isoformat()
    sitemap_path = output_root / "sitemap.xml"
    sitemap_path.write_text(build_sitemap(base_url, output_names, lastmod), encoding="utf-8")
    logger.info("Generated %s", sitemap_path)


def write_build_info(output_root: Path, page_count: int) -> None:
    """Write build-info.json describing this generation run."""
    info = {
        "generator": "BAM",
        "version": __version__,
        "build_time": datetime.now(UTC).isoformat(),
        "python_version": platform.python_version(),
        "pages": page_count,
    }
    info_path = output_root / "build-info.json"
    info_path.write_text(json.dumps(info, indent=2) + "\n", encoding="utf-8")
    logger.info("Generated %s", info_path)

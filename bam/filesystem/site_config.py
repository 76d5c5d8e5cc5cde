"""TOML reader/writer for the optional bam.toml site configuration."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import tomli_w

if TYPE_CHECKING:
    from pathlib import Path

SITE_CONFIG_FILE = "bam.toml"


@dataclass
class SiteConfig:
    """Parsed site configuration from bam.toml."""

    title: str = "BAM Site"
    description: str = ""
    base_url: str = "http://localhost/"


def parse_site_config(project_dir: Path) -> SiteConfig:
    """Parse bam.toml from the project directory.

    A missing file yields the defaults. Raises ValueError naming the file if
    it is not valid TOML or ``[site]`` is not a table.
    """
    config_path = project_dir / SITE_CONFIG_FILE
    if not config_path.exists():
        return SiteConfig()

    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_path}: {exc}"
        raise ValueError(msg) from exc
    site_data: dict[str, Any] = data.get("site", {})
    if not isinstance(site_data, dict):
        msg = f"[site] in {config_path} must be a table"
        raise ValueError(msg)

    base_url = str(site_data.get("base_url", SiteConfig.base_url))
    if not base_url.endswith("/"):
        base_url += "/"

    return SiteConfig(
        title=str(site_data.get("title", SiteConfig.title)),
        description=str(site_data.get("description", "")),
        base_url=base_url,
    )


def write_site_config(project_dir: Path, config: SiteConfig) -> None:
    """Write site configuration to bam.toml."""
    site_data: dict[str, Any] = {
        "title": config.title,
        "description": config.description,
        "base_url": config.base_url,
    }
    config_path = project_dir / SITE_CONFIG_FILE
    config_path.write_bytes(tomli_w.dumps({"site": site_data}).encode("utf-8"))

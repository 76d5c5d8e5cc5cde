"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """BAM project settings."""

    model_config = SettingsConfigDict(
        env_prefix="BAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False

    # Project layout
    project_dir: Path = Path(".")
    pages_dir: str = "pages"
    layout_file: str = "layout.html"
    output_dir: str = "gen"
    not_found_file: str = "404.html"
    script_extension: str = ".coffee"

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)

    @field_validator("script_extension")
    @classmethod
    def _normalize_script_extension(cls, value: str) -> str:
        value = value.strip().lower()
        if not value or value == ".":
            msg = "script_extension must not be empty"
            raise ValueError(msg)
        if not value.startswith("."):
            value = f".{value}"
        if value in {".html", ".htm", ".md", ".markdown"}:
            msg = f"script_extension {value!r} collides with a built-in page format"
            raise ValueError(msg)
        return value

    @property
    def pages_root(self) -> Path:
        """Directory holding page sources."""
        return self.project_dir / self.pages_dir

    @property
    def layout_path(self) -> Path:
        """Path of the shared layout template."""
        return self.project_dir / self.layout_file

    @property
    def output_root(self) -> Path:
        """Directory generation writes into."""
        return self.project_dir / self.output_dir

    @property
    def not_found_path(self) -> Path:
        """Path of the optional 404 page."""
        return self.project_dir / self.not_found_file

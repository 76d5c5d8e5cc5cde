"""Shared API dependencies: settings and page resolver."""

from __future__ import annotations

from fastapi import Request

from bam.config import Settings
from bam.filesystem.page_resolver import PageResolver


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_resolver(request: Request) -> PageResolver:
    """Get the page resolver from app state."""
    resolver: PageResolver = request.app.state.resolver
    return resolver

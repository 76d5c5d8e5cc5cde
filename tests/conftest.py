"""Shared test fixtures for BAM."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from bam.config import Settings
from bam.main import create_app

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

TEST_LAYOUT = (
    "<!DOCTYPE html>\n<html>\n<head><title>Test</title></head>\n"
    "<body><nav>menu</nav><%- @body %><script src=\"/js/app.js\"></script></body>\n</html>\n"
)


@asynccontextmanager
async def create_test_client(settings: Settings) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client for the development server.

    ASGITransport does not run the lifespan, so no startup validation happens.
    """
    app = create_app(settings)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Create a temporary project with a layout and an empty pages directory."""
    project = tmp_path / "site"
    project.mkdir()
    (project / "pages").mkdir()
    (project / "layout.html").write_text(TEST_LAYOUT, encoding="utf-8")
    return project


@pytest.fixture
def pages_dir(tmp_project_dir: Path) -> Path:
    return tmp_project_dir / "pages"


@pytest.fixture
def test_settings(tmp_project_dir: Path) -> Settings:
    """Create test settings rooted at the temporary project."""
    return Settings(_env_file=None, project_dir=tmp_project_dir, debug=True)


@pytest.fixture
async def client(test_settings: Settings) -> AsyncGenerator[AsyncClient]:
    """Create test HTTP client."""
    async with create_test_client(test_settings) as ac:
        yield ac

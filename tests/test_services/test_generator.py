"""Tests for static site generation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from bam.config import Settings
from bam.exceptions import (
    LayoutMarkerError,
    LayoutMissingError,
    PagesRootMissingError,
    UnsafeOutputDirError,
)
from bam.services.generator import (
    check_output_root,
    clear_output_dir,
    generate_site,
    write_page,
)
from tests.conftest import TEST_LAYOUT

if TYPE_CHECKING:
    from pathlib import Path


def _write(pages_dir: Path, rel_path: str, content: str) -> None:
    path = pages_dir / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestGenerateSite:
    @pytest.mark.asyncio
    async def test_renders_every_format(self, test_settings: Settings, pages_dir: Path) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        _write(pages_dir, "about.md", "# About")
        _write(pages_dir, "slides.coffee", "section ->\n  h1 'Slides'\n")

        result = await generate_site(test_settings)

        gen = test_settings.output_root
        assert result.ok
        assert sorted(result.pages) == ["about.html", "index.html", "slides.html"]
        assert (gen / "index.html").read_text() == TEST_LAYOUT.replace(
            "<%- @body %>", "<p>home</p>"
        )
        assert "<h1>About</h1>" in (gen / "about.html").read_text()
        slides = (gen / "slides.html").read_text()
        assert "<section>" in slides
        assert "</section>" in slides

    @pytest.mark.asyncio
    async def test_preserves_directory_structure(
        self, test_settings: Settings, pages_dir: Path
    ) -> None:
        _write(pages_dir, "blog/post1.md", "# Post 1")
        _write(pages_dir, "docs/api/ref.md", "# Ref")
        (pages_dir / "empty").mkdir()

        result = await generate_site(test_settings)

        gen = test_settings.output_root
        assert (gen / "blog" / "post1.html").is_file()
        assert (gen / "docs" / "api" / "ref.html").is_file()
        assert (gen / "docs").is_dir()
        assert (gen / "empty").is_dir()
        assert set(result.directories) == {"blog", "docs", "docs/api", "empty"}

    @pytest.mark.asyncio
    async def test_clears_previous_output(self, test_settings: Settings, pages_dir: Path) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        stale = test_settings.output_root / "stale.html"
        stale.parent.mkdir()
        stale.write_text("old")

        await generate_site(test_settings)

        assert not stale.exists()
        assert (test_settings.output_root / "index.html").exists()

    @pytest.mark.asyncio
    async def test_missing_layout_is_fatal(self, test_settings: Settings, pages_dir: Path) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        test_settings.layout_path.unlink()

        with pytest.raises(LayoutMissingError, match="layout.html"):
            await generate_site(test_settings)

        assert not test_settings.output_root.exists()

    @pytest.mark.asyncio
    async def test_missing_layout_removes_stale_output(
        self, test_settings: Settings, pages_dir: Path
    ) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        await generate_site(test_settings)
        test_settings.layout_path.unlink()

        with pytest.raises(LayoutMissingError):
            await generate_site(test_settings)

        assert not test_settings.output_root.exists()

    @pytest.mark.asyncio
    async def test_layout_without_marker_is_fatal(self, test_settings: Settings) -> None:
        test_settings.layout_path.write_text("<html></html>")
        with pytest.raises(LayoutMarkerError):
            await generate_site(test_settings)

    @pytest.mark.asyncio
    async def test_missing_pages_root_is_fatal(self, test_settings: Settings) -> None:
        test_settings.pages_root.rmdir()

        with pytest.raises(PagesRootMissingError, match="pages"):
            await generate_site(test_settings)

        assert not test_settings.output_root.exists()

    @pytest.mark.asyncio
    async def test_partial_failure_isolated(self, test_settings: Settings, pages_dir: Path) -> None:
        _write(pages_dir, "a.html", "<p>first</p>")
        _write(pages_dir, "b.md", "# second")
        _write(pages_dir, "c.html", "<p>third</p>")

        from bam.rendering import renderer

        original = renderer.render_markdown

        def flaky(text: str) -> str:
            if "second" in text:
                raise RuntimeError("malformed")
            return original(text)

        with patch("bam.rendering.renderer.render_markdown", side_effect=flaky):
            result = await generate_site(test_settings)

        gen = test_settings.output_root
        assert not result.ok
        assert [f.relative_path for f in result.failures] == ["b"]
        assert "malformed" in result.failures[0].error
        assert (gen / "a.html").is_file()
        assert (gen / "c.html").is_file()
        assert not (gen / "b.html").exists()

    @pytest.mark.asyncio
    async def test_undecodable_page_isolated(
        self, test_settings: Settings, pages_dir: Path
    ) -> None:
        (pages_dir / "bin.html").write_bytes(b"\xff\xfe\xfa")
        _write(pages_dir, "ok.html", "<p>ok</p>")

        result = await generate_site(test_settings)

        assert [f.relative_path for f in result.failures] == ["bin"]
        assert result.pages == ["ok.html"]

    @pytest.mark.asyncio
    async def test_duplicate_pages_use_priority(
        self, test_settings: Settings, pages_dir: Path
    ) -> None:
        _write(pages_dir, "about.html", "<p>from html</p>")
        _write(pages_dir, "about.md", "from markdown")

        result = await generate_site(test_settings)

        assert result.pages == ["about.html"]
        assert result.skipped == ["about.md"]
        content = (test_settings.output_root / "about.html").read_text()
        assert "from html" in content
        assert "from markdown" not in content

    @pytest.mark.asyncio
    async def test_copies_assets_and_writes_metadata(
        self, test_settings: Settings, tmp_project_dir: Path, pages_dir: Path
    ) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        (tmp_project_dir / "css").mkdir()
        (tmp_project_dir / "css" / "site.css").write_text("body{}")
        (tmp_project_dir / "404.html").write_text("<h1>missing</h1>")
        (tmp_project_dir / "bam.toml").write_text('[site]\nbase_url = "https://example.com"\n')

        result = await generate_site(test_settings)

        gen = test_settings.output_root
        assert result.assets == ["css"]
        assert (gen / "css" / "site.css").read_text() == "body{}"
        assert (gen / "404.html").read_text() == "<h1>missing</h1>"
        assert "Sitemap: https://example.com/sitemap.xml" in (gen / "robots.txt").read_text()
        assert "<loc>https://example.com/</loc>" in (gen / "sitemap.xml").read_text()
        info = json.loads((gen / "build-info.json").read_text())
        assert info["generator"] == "BAM"
        assert info["pages"] == 1

    @pytest.mark.asyncio
    async def test_custom_output_dir(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        settings = Settings(_env_file=None, project_dir=tmp_project_dir, output_dir="public")

        await generate_site(settings)

        assert (tmp_project_dir / "public" / "index.html").is_file()


class TestHelpers:
    def test_clear_output_dir_missing_is_noop(self, tmp_path: Path) -> None:
        clear_output_dir(tmp_path / "gen")
        assert not (tmp_path / "gen").exists()

    def test_clear_output_dir_rejects_file(self, tmp_path: Path) -> None:
        (tmp_path / "gen").write_text("not a dir")
        with pytest.raises(NotADirectoryError):
            clear_output_dir(tmp_path / "gen")

    def test_write_page_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "page.html"
        write_page(target, "<p>x</p>")
        assert target.read_text() == "<p>x</p>"
        assert list(target.parent.iterdir()) == [target]


class TestOutputRootGuard:
    @pytest.mark.parametrize("output_dir", [".", "..", "pages", "layout.html", "pages/gen"])
    @pytest.mark.asyncio
    async def test_unsafe_output_dir_leaves_project_intact(
        self, tmp_project_dir: Path, pages_dir: Path, output_dir: str
    ) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        settings = Settings(_env_file=None, project_dir=tmp_project_dir, output_dir=output_dir)

        with pytest.raises(UnsafeOutputDirError, match="Refusing to use"):
            await generate_site(settings)

        assert (tmp_project_dir / "layout.html").read_text() == TEST_LAYOUT
        assert (pages_dir / "index.html").read_text() == "<p>home</p>"

    def test_nested_output_dir_allowed(self, tmp_project_dir: Path) -> None:
        settings = Settings(
            _env_file=None, project_dir=tmp_project_dir, output_dir="build/site"
        )
        check_output_root(settings)

    @pytest.mark.asyncio
    async def test_malformed_site_config_keeps_previous_output(
        self, test_settings: Settings, tmp_project_dir: Path, pages_dir: Path
    ) -> None:
        _write(pages_dir, "index.html", "<p>home</p>")
        await generate_site(test_settings)
        (tmp_project_dir / "bam.toml").write_text("[site\n")

        with pytest.raises(ValueError, match="bam.toml"):
            await generate_site(test_settings)

        assert (test_settings.output_root / "index.html").is_file()

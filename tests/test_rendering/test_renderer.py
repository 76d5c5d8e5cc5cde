"""Tests for format dispatch and layout substitution."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from bam.exceptions import (
    ConversionError,
    LayoutMarkerError,
    LayoutMissingError,
    SourceFileMissingError,
)
from bam.filesystem.page_resolver import PageFormat, PageSource, resolve
from bam.rendering.renderer import (
    Layout,
    convert,
    load_layout,
    read_layout,
    render_page,
    render_page_sync,
)
from tests.conftest import TEST_LAYOUT

if TYPE_CHECKING:
    from pathlib import Path


class TestLayout:
    @pytest.mark.parametrize(
        "marker",
        ["<%- @body %>", "<%= @body %>", "<%- body %>", "<%= body %>", "<%-@body%>"],
    )
    def test_marker_spellings(self, tmp_path: Path, marker: str) -> None:
        layout = Layout(path=tmp_path / "layout.html", template=f"<main>{marker}</main>")
        assert layout.substitute("X") == "<main>X</main>"

    def test_missing_marker_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(LayoutMarkerError, match="found 0"):
            Layout(path=tmp_path / "layout.html", template="<html></html>")

    def test_two_markers_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(LayoutMarkerError, match="found 2"):
            Layout(path=tmp_path / "layout.html", template="<%- @body %><%- @body %>")

    def test_fragment_is_inserted_literally(self, tmp_path: Path) -> None:
        layout = Layout(path=tmp_path / "layout.html", template="a<%- @body %>b")
        assert layout.substitute(r"\1 \g<0> $&") == r"a\1 \g<0> $&b"

    def test_read_layout_missing(self, tmp_path: Path) -> None:
        with pytest.raises(LayoutMissingError, match="layout.html"):
            read_layout(tmp_path / "layout.html")

    @pytest.mark.asyncio
    async def test_load_layout(self, tmp_project_dir: Path) -> None:
        layout = await load_layout(tmp_project_dir / "layout.html")
        assert layout.template == TEST_LAYOUT


class TestConvert:
    def test_html_is_identity(self) -> None:
        content = "<h1>Test HTML</h1><p>Content</p>"
        assert convert(PageFormat.HTML, content) == content

    def test_markdown(self) -> None:
        html = convert(PageFormat.MARKDOWN, "# Test Header\n\nThis is **bold** text.")
        assert "<h1>Test Header</h1>" in html
        assert "<strong>bold</strong>" in html

    def test_script(self) -> None:
        assert convert(PageFormat.SCRIPT, "h1 'hi'") == "<h1>hi</h1>"

    def test_directory_has_no_content(self) -> None:
        with pytest.raises(ValueError, match="directory"):
            convert(PageFormat.DIRECTORY, "")


class TestRenderPage:
    def test_html_round_trip(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        body = "<div>HTML Content</div>\n"
        (pages_dir / "page.html").write_text(body)
        layout = read_layout(tmp_project_dir / "layout.html")
        source = resolve("/page", pages_dir)
        assert source is not None

        result = render_page_sync(source, layout)

        assert result == TEST_LAYOUT.replace("<%- @body %>", body)

    def test_layout_content_passes_through(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        (pages_dir / "md.md").write_text("# Markdown Content")
        layout = read_layout(tmp_project_dir / "layout.html")
        source = resolve("/md", pages_dir)
        assert source is not None

        result = render_page_sync(source, layout)

        assert result.startswith("<!DOCTYPE html>")
        assert "<nav>menu</nav>" in result
        assert "<h1>Markdown Content</h1>" in result
        assert result.rstrip().endswith("</html>")

    def test_vanished_source(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        layout = read_layout(tmp_project_dir / "layout.html")
        source = PageSource("gone", PageFormat.HTML, pages_dir / "gone.html")
        with pytest.raises(SourceFileMissingError, match="gone.html"):
            render_page_sync(source, layout)

    def test_converter_failure_wrapped(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        (pages_dir / "bad.md").write_text("# Bad")
        layout = read_layout(tmp_project_dir / "layout.html")
        source = PageSource("bad", PageFormat.MARKDOWN, pages_dir / "bad.md")
        with (
            patch("bam.rendering.renderer.render_markdown", side_effect=RuntimeError("boom")),
            pytest.raises(ConversionError, match="'bad'.*boom"),
        ):
            render_page_sync(source, layout)

    def test_directory_not_renderable(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        layout = read_layout(tmp_project_dir / "layout.html")
        source = PageSource("blog", PageFormat.DIRECTORY, pages_dir / "blog")
        with pytest.raises(ValueError, match="directory"):
            render_page_sync(source, layout)

    def test_script_get_reads_from_project(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        (tmp_project_dir / "nav.html").write_text("<ul>nav</ul>")
        (pages_dir / "index.coffee").write_text("get('nav.html')")
        layout = read_layout(tmp_project_dir / "layout.html")
        source = resolve("/", pages_dir)
        assert source is not None

        result = render_page_sync(source, layout, tmp_project_dir)

        assert "<ul>nav</ul>" in result

    @pytest.mark.asyncio
    async def test_async_render(self, tmp_project_dir: Path, pages_dir: Path) -> None:
        (pages_dir / "index.html").write_text("<p>hi</p>")
        layout = await load_layout(tmp_project_dir / "layout.html")
        source = resolve("/", pages_dir)
        assert source is not None

        result = await render_page(source, layout)

        assert "<p>hi</p>" in result

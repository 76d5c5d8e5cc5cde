"""Project scaffolding for ``bam new``."""

from __future__ import annotations

import html
import logging
import shutil
from typing import TYPE_CHECKING

from bam.filesystem.site_config import SiteConfig, write_site_config

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "skeleton"

_LAYOUT_HTML = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <title>{title}</title>
  <link rel="stylesheet" href="/stylesheets/style.css" />
</head>
<body>
  <%- @body %>
</body>
</html>
"""

_NOT_FOUND_HTML = """\
<!DOCTYPE html>
<html>
<head><meta charset="utf-8" /><title>Page not found</title></head>
<body><h1>404</h1><p>Sorry, that page does not exist.</p></body>
</html>
"""

_ROBOTS_TXT = "User-agent: *\nAllow: /\n"

_STYLE_CSS = "body {\n  font-family: sans-serif;\n  margin: 2em auto;\n  max-width: 48em;\n}\n"

_SKELETON_INDEX_MD = "# {title}\n\nWelcome to your new BAM site. Edit `pages/index.md` to begin.\n"

_PAGEDOWN_INDEX = """\
section 'container hero-unit', ->
  h1 style: 'margin-bottom: 20px;', '{title}'
  center ->
    jpg2('goodmorning')
"""

# template name -> (index page filename, index page body)
TEMPLATES: dict[str, tuple[str, str]] = {
    "skeleton": ("index.md", _SKELETON_INDEX_MD),
    "pagedown": ("index.coffee", _PAGEDOWN_INDEX),
}


def create_project(target: Path, template: str = DEFAULT_TEMPLATE, *, force: bool = False) -> Path:
    """Create a new project directory from a built-in template.

    Raises ValueError for an unknown template and FileExistsError if
    ``target`` exists and is not empty, unless ``force`` is set, in which
    case it is replaced.
    """
    if template not in TEMPLATES:
        known = ", ".join(sorted(TEMPLATES))
        msg = f"Unknown template {template!r} (available: {known})"
        raise ValueError(msg)

    if target.exists():
        if not target.is_dir():
            msg = f"Project path exists but is not a directory: {target}"
            raise NotADirectoryError(msg)
        if any(target.iterdir()):
            if not force:
                msg = f"Project directory is not empty: {target}"
                raise FileExistsError(msg)
            logger.info("Replacing existing project directory %s", target)
            shutil.rmtree(target)

    title = target.name
    target.mkdir(parents=True, exist_ok=True)
    (target / "pages").mkdir()
    (target / "stylesheets").mkdir()

    write_site_config(target, SiteConfig(title=title))
    layout_html = _LAYOUT_HTML.format(title=html.escape(title))
    (target / "layout.html").write_text(layout_html, encoding="utf-8")
    (target / "404.html").write_text(_NOT_FOUND_HTML, encoding="utf-8")
    (target / "robots.txt").write_text(_ROBOTS_TXT, encoding="utf-8")
    (target / "stylesheets" / "style.css").write_text(_STYLE_CSS, encoding="utf-8")

    index_name, index_body = TEMPLATES[template]
    page_title = title
    if index_name.endswith(".coffee"):
        # the title lands inside a single-quoted script string
        page_title = title.replace("\\", "\\\\").replace("'", "\\'")
    (target / "pages" / index_name).write_text(
        index_body.format(title=page_title), encoding="utf-8"
    )

    logger.info("Created %s project at %s", template, target)
    return target

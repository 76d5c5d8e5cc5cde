"""GitHub-flavored Markdown to HTML conversion."""

from __future__ import annotations

import mistune

# GFM extensions on top of CommonMark: tables, task lists, ~~strike~~, bare URLs.
GFM_PLUGINS: tuple[str, ...] = ("table", "task_lists", "strikethrough", "url")

_markdown = mistune.create_markdown(escape=False, plugins=list(GFM_PLUGINS))


def render_markdown(text: str) -> str:
    """Render Markdown to an HTML fragment.

    Raw HTML in the source is passed through, as GitHub does for trusted
    content.
    """
    result = _markdown(text)
    if not isinstance(result, str):
        msg = f"Markdown renderer returned {type(result).__name__}, expected str"
        raise TypeError(msg)
    return result

"""Application-level exception types.

Convention:
- Fatal errors (``PagesRootMissingError`` during generation,
  ``LayoutMissingError``, ``LayoutMarkerError``, ``UnsafeOutputDirError``)
  abort the whole run. The CLI prints the message, which always names the
  offending path, and exits nonzero.
- Per-page errors (``SourceFileMissingError``, ``ConversionError``) are
  caught by the generation loop, logged with the page path, and recorded in
  the run result. The dev server turns them into a generic 500 response.
- A resolution miss is not an error: resolvers return ``None``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class PagesRootMissingError(FileNotFoundError):
    """Raised when the pages directory does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Pages directory not found: {path}")
        self.path = path


class LayoutMissingError(FileNotFoundError):
    """Raised when the layout template is absent.

    Every page depends on the layout, so this is fatal for serving and
    generation alike.
    """

    def __init__(self, path: Path) -> None:
        super().__init__(f"Layout template not found: {path}")
        self.path = path


class LayoutMarkerError(ValueError):
    """Raised when the layout does not contain exactly one body marker."""

    def __init__(self, path: Path, count: int) -> None:
        super().__init__(
            f"Layout template {path} must contain exactly one body marker, found {count}"
        )
        self.path = path
        self.count = count


class SourceFileMissingError(FileNotFoundError):
    """Raised when a discovered page's backing file vanished before it was read."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Page source not found: {path}")
        self.path = path


class ConversionError(RuntimeError):
    """Raised when a format converter fails on a page's content."""

    def __init__(self, relative_path: str, reason: str) -> None:
        super().__init__(f"Failed to convert page {relative_path!r}: {reason}")
        self.relative_path = relative_path


class UnsafeOutputDirError(ValueError):
    """Raised when clearing the output directory would delete project sources."""

    def __init__(self, output_root: Path, protected: Path) -> None:
        super().__init__(
            f"Refusing to use {output_root} as the output directory: "
            f"clearing it would delete {protected}"
        )
        self.output_root = output_root
        self.protected = protected

"""BAM: a minimal static-site generator."""

__version__ = "1.0.0"

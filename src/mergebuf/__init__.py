"""Synchronized multi-pane text buffers for file comparison and merging."""

__all__ = [
    "buffer",
    "config",
    "document",
    "errors",
    "files",
    "runtime",
    "syncpoints",
    "text",
]

__version__ = "0.1.0"

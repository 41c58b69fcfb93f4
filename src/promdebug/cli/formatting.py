"""Shared Rich styling for CLI output."""

from __future__ import annotations


class RichStyles:
    ACCENT = "bold cyan"
    SECONDARY = "magenta"
    EMPHASIS = "bold"
    DETAIL = "white"


__all__ = ["RichStyles"]

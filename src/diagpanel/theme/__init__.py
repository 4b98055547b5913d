"""Highlight style models for the diagnostics panel."""

from .models import DEFAULT_HIGHLIGHTS, ColorTuple, HighlightStyle, color_to_hex, normalize_color

__all__ = ["ColorTuple", "DEFAULT_HIGHLIGHTS", "HighlightStyle", "color_to_hex", "normalize_color"]

"""Panel sizing, line truncation and change detection."""

from __future__ import annotations

import math
import unicodedata
from dataclasses import dataclass
from typing import Sequence

from ..host.protocols import Viewport
from ..services.settings import PanelSettings

Fingerprint = tuple[int, str]

TRUNCATION_MARK = "…"


def char_width(char: str) -> int:
    if unicodedata.category(char) in ("Mn", "Me", "Cf"):
        return 0
    if unicodedata.east_asian_width(char) in ("W", "F"):
        return 2
    return 1


def display_width(text: str) -> int:
    """Number of terminal cells ``text`` occupies."""

    return sum(char_width(char) for char in text)


def truncate_to_width(text: str, width: int, mark: str = TRUNCATION_MARK) -> str:
    """Cut ``text`` so it fits in ``width`` cells, ending with ``mark``.

    Text that already fits is returned untouched.
    """

    if display_width(text) <= width:
        return text
    budget = max(0, width - display_width(mark))
    used = 0
    kept: list[str] = []
    for char in text:
        cells = char_width(char)
        if used + cells > budget:
            break
        kept.append(char)
        used += cells
    return "".join(kept) + mark


def fingerprint(lines: Sequence[str]) -> Fingerprint:
    return (len(lines), lines[0] if lines else "")


@dataclass(slots=True, frozen=True)
class PanelLayout:
    lines: tuple[str, ...]
    width: int
    height: int
    fingerprint: Fingerprint
    changed: bool


def max_panel_width(viewport: Viewport, settings: PanelSettings) -> int:
    return max(1, math.floor(viewport.columns * settings.width_fraction))


def max_panel_height(viewport: Viewport, settings: PanelSettings) -> int:
    return max(settings.max_lines_min, math.floor(viewport.rows * settings.height_fraction))


def compute_layout(
    lines: Sequence[str],
    viewport: Viewport,
    settings: PanelSettings,
    *,
    current: Fingerprint | None = None,
    same_document: bool = False,
) -> PanelLayout:
    """Size the panel for ``lines`` and decide whether a redraw is needed.

    ``current`` is the fingerprint of what is on screen; ``same_document``
    says whether it belongs to the document being laid out. The fingerprint
    is taken before truncation so a viewport resize alone never counts as a
    content change.
    """

    print_key = fingerprint(lines)
    longest = max((display_width(line) for line in lines), default=0)
    width = min(longest, max_panel_width(viewport, settings))
    rendered = tuple(truncate_to_width(line, width) for line in lines)
    height = min(len(lines), max_panel_height(viewport, settings))
    changed = not (same_document and current == print_key)
    return PanelLayout(
        lines=rendered,
        width=width,
        height=height,
        fingerprint=print_key,
        changed=changed,
    )


def frame_size(width: int, height: int, border: str) -> tuple[int, int]:
    """Outer size of the overlay: one padding column per side plus the border."""

    edge = 0 if border == "none" else 2
    return width + 2 + edge, height + edge


def place_overlay(width: int, height: int, viewport: Viewport, settings: PanelSettings) -> tuple[int, int]:
    """Top-left ``(row, col)`` of the overlay in the configured corner.

    The top-right placement matches row ``margin`` and a right edge flush
    with the viewport.
    """

    frame_width, frame_height = frame_size(width, height, settings.border)
    margin = settings.margin
    vertical, horizontal = settings.corner.split("-")
    if vertical == "top":
        row = margin
    else:
        row = max(margin, viewport.rows - frame_height - margin)
    if horizontal == "right":
        col = max(margin, viewport.columns - frame_width)
    else:
        col = margin
    return row, col


__all__ = [
    "Fingerprint",
    "PanelLayout",
    "TRUNCATION_MARK",
    "compute_layout",
    "display_width",
    "fingerprint",
    "frame_size",
    "max_panel_height",
    "max_panel_width",
    "place_overlay",
    "truncate_to_width",
]

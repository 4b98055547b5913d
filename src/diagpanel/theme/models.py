"""Highlight styles applied to panel rows and the overlay border."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Tuple

ColorTuple = Tuple[int, int, int]

# Host notation for "inherit the background underneath".
TRANSPARENT = "NONE"


def _clamp_channel(value: Any) -> int:
    channel = int(value)
    if channel < 0:
        return 0
    if channel > 255:
        return 255
    return channel


def normalize_color(value: Any) -> ColorTuple | None:
    """Convert ``value`` into an RGB tuple, accepting hex strings or sequences.

    ``None`` and the ``"NONE"`` marker both mean transparent and return ``None``.
    """

    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Color strings cannot be empty")
        if text.upper() == TRANSPARENT:
            return None
        if text.startswith("#"):
            text = text[1:]
        if "," in text:
            parts = [part.strip() for part in text.split(",") if part.strip()]
            if len(parts) != 3:
                raise ValueError(f"Color '{value}' must have exactly 3 components")
            return tuple(_clamp_channel(int(part, 0)) for part in parts)  # type: ignore[return-value]
        if len(text) in (3, 6):
            if len(text) == 3:
                text = "".join(ch * 2 for ch in text)
            try:
                return tuple(int(text[i : i + 2], 16) for i in range(0, 6, 2))  # type: ignore[return-value]
            except ValueError as exc:
                raise ValueError(f"Unsupported color format: {value!r}") from exc
        raise ValueError(f"Unsupported color format: {value!r}")

    if isinstance(value, Sequence):
        items = list(value)
        if len(items) != 3:
            raise ValueError(f"RGB sequences must contain 3 values, received {value!r}")
        return tuple(_clamp_channel(component) for component in items)  # type: ignore[return-value]

    raise TypeError(f"Cannot convert {type(value)!r} to an RGB color")


def color_to_hex(value: ColorTuple | None) -> str:
    if value is None:
        return TRANSPARENT
    return "#" + "".join(f"{component:02x}" for component in value)


@dataclass(slots=True, frozen=True)
class HighlightStyle:
    """Foreground/background pair plus font flags for one highlight group."""

    fg: ColorTuple | None = None
    bg: ColorTuple | None = None
    bold: bool = False
    italic: bool = False

    @classmethod
    def from_value(cls, value: Any) -> HighlightStyle:
        if isinstance(value, HighlightStyle):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"Highlight styles must be mappings, received {type(value)!r}")
        return cls(
            fg=normalize_color(value.get("fg")),
            bg=normalize_color(value.get("bg")),
            bold=bool(value.get("bold", False)),
            italic=bool(value.get("italic", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fg": color_to_hex(self.fg),
            "bg": color_to_hex(self.bg),
            "bold": self.bold,
            "italic": self.italic,
        }


DEFAULT_HIGHLIGHTS: Mapping[str, Mapping[str, Any]] = {
    "error": {"fg": "#ff6b6b", "bg": TRANSPARENT, "bold": True},
    "warn": {"fg": "#e0af68", "bg": TRANSPARENT, "italic": True},
    "info": {"fg": "#7aa2f7", "bg": TRANSPARENT},
    "hint": {"fg": "#9ece6a", "bg": TRANSPARENT, "italic": True},
    "border": {"fg": "#88c0d0", "bg": TRANSPARENT, "bold": True},
}


__all__ = [
    "ColorTuple",
    "DEFAULT_HIGHLIGHTS",
    "HighlightStyle",
    "TRANSPARENT",
    "color_to_hex",
    "normalize_color",
]

"""Translate declarative style specs into openpyxl style objects."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from .models import (
    AlignmentSpec,
    BorderEdgeSpec,
    BorderSpec,
    DataType,
    FillSpec,
    FontSpec,
    StyleSpec,
)

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "FF000000"
DEFAULT_FONT_NAME = "Calibri"
DEFAULT_FONT_SIZE = 11
DEFAULT_BORDER_STYLE = "thin"

NUMBER_FORMATS: Dict[DataType, str] = {
    DataType.NUMBER: "0.00",
    DataType.CURRENCY: "$#,##0.00",
    DataType.PERCENTAGE: "0.00%",
    DataType.DATE: "mm/dd/yyyy",
    DataType.DATETIME: "mm/dd/yyyy hh:mm:ss",
    DataType.TIME: "hh:mm:ss",
    DataType.TEXT: "@",
}

# openpyxl follows the OOXML vocabulary, the document format uses CSS-like names
_VERTICAL_ALIASES = {"middle": "center"}

DEFAULT_HEADER_STYLE = StyleSpec(
    font=FontSpec(bold=True, color="FFFFFFFF"),
    fill=FillSpec(color="FF366092"),
    alignment=AlignmentSpec(horizontal="center", vertical="middle"),
)


def normalize_color(color: Optional[str]) -> str:
    """Return ``color`` as an uppercase ARGB hex string.

    ``"#abc123"`` becomes ``"FFABC123"``; an already normalised ARGB value is
    returned unchanged and a missing color is opaque black.
    """

    if not color:
        return DEFAULT_COLOR
    text = str(color).strip()
    if text.startswith("#"):
        text = text[1:]
    if len(text) == 6:
        text = f"FF{text}"
    return text.upper()


def build_font(spec: FontSpec) -> Font:
    return Font(
        name=spec.name or DEFAULT_FONT_NAME,
        size=spec.size or DEFAULT_FONT_SIZE,
        bold=bool(spec.bold),
        italic=bool(spec.italic),
        underline=_underline(spec.underline),
        color=normalize_color(spec.color) if spec.color else None,
    )


def _underline(value) -> Optional[str]:
    # openpyxl takes the OOXML names: single, double, singleAccounting, doubleAccounting
    if isinstance(value, str):
        return value or None
    return "single" if value else None


def build_fill(spec: FillSpec) -> PatternFill:
    color = normalize_color(spec.color)
    return PatternFill(fill_type="solid", start_color=color, end_color=color)


def build_alignment(spec: AlignmentSpec) -> Alignment:
    vertical = spec.vertical or "top"
    return Alignment(
        horizontal=spec.horizontal or "left",
        vertical=_VERTICAL_ALIASES.get(vertical, vertical),
        wrap_text=bool(spec.wrap_text),
        indent=spec.indent or 0,
    )


def build_border(spec: BorderSpec) -> Border:
    """All four edges are always set; unspecified edges are thin lines."""

    def side(edge: Optional[BorderEdgeSpec]) -> Side:
        if edge is None:
            return Side(style=DEFAULT_BORDER_STYLE)
        color = normalize_color(edge.color) if edge.color else None
        return Side(style=edge.style or DEFAULT_BORDER_STYLE, color=color)

    return Border(
        top=side(spec.top),
        left=side(spec.left),
        bottom=side(spec.bottom),
        right=side(spec.right),
    )


def apply_cell_style(cell, style: Optional[StyleSpec]) -> None:
    """Apply the present parts of ``style`` to ``cell``.

    Each sub-style is applied independently.  A sub-style that openpyxl
    rejects is skipped with a warning; the cell value is never touched.
    """

    if style is None or style.is_empty():
        return

    if style.font is not None:
        _apply(cell, "font", lambda: build_font(style.font))
    if style.fill is not None:
        _apply(cell, "fill", lambda: build_fill(style.fill))
    if style.alignment is not None:
        _apply(cell, "alignment", lambda: build_alignment(style.alignment))
    if style.border is not None:
        _apply(cell, "border", lambda: build_border(style.border))
    if style.num_fmt:
        _apply(cell, "number_format", lambda: style.num_fmt)


def apply_layered_styles(cell, *styles: Optional[StyleSpec]) -> None:
    """Apply ``styles`` in order so that later styles override earlier ones."""

    for style in styles:
        apply_cell_style(cell, style)


def apply_data_type(cell, data_type: Optional[DataType], fmt: Optional[str] = None) -> None:
    """Set the number format for ``data_type``; an explicit ``fmt`` wins."""

    if data_type is None:
        return
    number_format = fmt or NUMBER_FORMATS.get(data_type)
    if number_format:
        _apply(cell, "number_format", lambda: number_format)


def _apply(cell, attribute: str, factory) -> None:
    try:
        setattr(cell, attribute, factory())
    except Exception as exc:
        logger.warning(
            "Style application failed for %s (%s): %s",
            getattr(cell, "coordinate", "?"),
            attribute,
            exc,
        )


__all__ = [
    "DEFAULT_HEADER_STYLE",
    "NUMBER_FORMATS",
    "apply_cell_style",
    "apply_data_type",
    "apply_layered_styles",
    "normalize_color",
]

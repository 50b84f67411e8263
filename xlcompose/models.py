"""Declarative workbook documents and request payloads.

Every payload arrives as a JSON-shaped mapping.  The ``parse_*`` functions turn
those mappings into dataclasses and are the only validation step: they run
before any workbook is touched and raise :class:`ValidationError` naming the
offending path (``sheets[0].cells[2].cell``).  JSON keys are camelCase as in
the public document format; snake_case spellings are accepted as well.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .addressing import ADDRESS_PATTERN, is_valid_reference
from .errors import ValidationError


class DataType(str, Enum):
    """Data-type tags that map onto default number formats."""

    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    TEXT = "text"


@dataclass
class FontSpec:
    name: Optional[str] = None
    size: Optional[float] = None
    bold: bool = False
    italic: bool = False
    underline: Union[bool, str] = False
    color: Optional[str] = None


@dataclass
class FillSpec:
    color: Optional[str] = None


@dataclass
class AlignmentSpec:
    horizontal: Optional[str] = None
    vertical: Optional[str] = None
    wrap_text: bool = False
    indent: float = 0


@dataclass
class BorderEdgeSpec:
    style: str = "thin"
    color: Optional[str] = None


@dataclass
class BorderSpec:
    """Per-edge border request; missing edges fall back to a thin line."""

    top: Optional[BorderEdgeSpec] = None
    left: Optional[BorderEdgeSpec] = None
    bottom: Optional[BorderEdgeSpec] = None
    right: Optional[BorderEdgeSpec] = None


@dataclass
class StyleSpec:
    """Partial cell style.  ``None`` sub-styles leave the cell untouched."""

    font: Optional[FontSpec] = None
    fill: Optional[FillSpec] = None
    alignment: Optional[AlignmentSpec] = None
    border: Optional[BorderSpec] = None
    num_fmt: Optional[str] = None

    def is_empty(self) -> bool:
        return (
            self.font is None
            and self.fill is None
            and self.alignment is None
            and self.border is None
            and self.num_fmt is None
        )


@dataclass
class TableStyleSpec:
    header: Optional[StyleSpec] = None
    rows: Optional[StyleSpec] = None
    alternate_rows: Optional[StyleSpec] = None


@dataclass
class CellSpec:
    cell: str
    value: Any = None
    formula: Optional[str] = None
    style: Optional[StyleSpec] = None
    data_type: Optional[DataType] = None
    format: Optional[str] = None


@dataclass
class RangeSpec:
    range: str
    data: List[Any] = field(default_factory=list)
    style: Optional[StyleSpec] = None


@dataclass
class TableSpec:
    data: List[Mapping[str, Any]]
    name: Optional[str] = None
    range: Optional[str] = None
    style: Optional[TableStyleSpec] = None

    @property
    def anchor(self) -> str:
        return self.range or "A1"


@dataclass
class PageSetupSpec:
    orientation: str = "portrait"
    paper_size: int = 9
    margins: Optional[Dict[str, float]] = None


@dataclass
class FormattingSpec:
    auto_width: bool = False
    freeze_rows: int = 0
    freeze_cols: int = 0
    page_setup: Optional[PageSetupSpec] = None


@dataclass
class SheetSpec:
    name: str
    cells: Optional[List[CellSpec]] = None
    ranges: Optional[List[RangeSpec]] = None
    tables: Optional[List[TableSpec]] = None
    formatting: Optional[FormattingSpec] = None


@dataclass
class WorkbookSpec:
    sheets: List[SheetSpec]
    template: Optional[str] = None
    filename: str = "generated.xlsx"


@dataclass
class QueryRequest:
    query: str
    params: List[Any] = field(default_factory=list)
    sheet_name: str = "QueryResults"
    table_name: str = "DataTable"
    filename: str = "query-results.xlsx"
    start_cell: str = "A1"
    style: Optional[TableStyleSpec] = None


@dataclass
class FillRequest:
    template: str
    data: Dict[str, Any]
    filename: str = "filled-template.xlsx"


@dataclass
class MultiSheetEntry:
    name: str
    query: Optional[str] = None
    params: List[Any] = field(default_factory=list)
    data: Optional[List[Mapping[str, Any]]] = None
    style: Optional[TableStyleSpec] = None


@dataclass
class MultiSheetRequest:
    sheets: List[MultiSheetEntry]
    filename: str = "multi-sheet.xlsx"


@dataclass
class StyledSheet:
    name: str
    data: List[Mapping[str, Any]]
    styles: Optional[TableStyleSpec] = None
    formatting: Optional[FormattingSpec] = None


@dataclass
class StyledRequest:
    sheets: List[StyledSheet]
    filename: str = "styled-excel.xlsx"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_workbook_spec(payload: Any) -> WorkbookSpec:
    """Validate ``payload`` and return a :class:`WorkbookSpec`."""

    root = _require_mapping(payload, "payload")
    sheets = [
        parse_sheet_spec(item, f"sheets[{index}]")
        for index, item in enumerate(_require_list(_get(root, "sheets"), "sheets"))
    ]
    return WorkbookSpec(
        sheets=sheets,
        template=_optional_str(_get(root, "template"), "template"),
        filename=_optional_str(_get(root, "filename"), "filename") or "generated.xlsx",
    )


def parse_sheet_spec(raw: Any, path: str = "sheet") -> SheetSpec:
    sheet = _require_mapping(raw, path)
    name = _require_str(_get(sheet, "name"), f"{path}.name")

    cells = ranges = tables = None
    if _get(sheet, "cells") is not None:
        cells = [
            _parse_cell(item, f"{path}.cells[{index}]")
            for index, item in enumerate(_require_list(_get(sheet, "cells"), f"{path}.cells"))
        ]
    if _get(sheet, "ranges") is not None:
        ranges = [
            _parse_range(item, f"{path}.ranges[{index}]")
            for index, item in enumerate(_require_list(_get(sheet, "ranges"), f"{path}.ranges"))
        ]
    if _get(sheet, "tables") is not None:
        tables = [
            parse_table_spec(item, f"{path}.tables[{index}]")
            for index, item in enumerate(_require_list(_get(sheet, "tables"), f"{path}.tables"))
        ]
    formatting = None
    if _get(sheet, "formatting") is not None:
        formatting = parse_formatting(_get(sheet, "formatting"), f"{path}.formatting")

    return SheetSpec(name=name, cells=cells, ranges=ranges, tables=tables, formatting=formatting)


def _parse_cell(raw: Any, path: str) -> CellSpec:
    cell = _require_mapping(raw, path)
    address = _require_str(_get(cell, "cell"), f"{path}.cell")
    if not ADDRESS_PATTERN.match(address):
        raise ValidationError(f"{path}.cell must be a cell address like 'B2', got '{address}'")

    data_type = None
    raw_type = _get(cell, "dataType", "data_type")
    if raw_type is not None:
        data_type = parse_data_type(raw_type, f"{path}.dataType")

    return CellSpec(
        cell=address,
        value=cell.get("value"),
        formula=_optional_str(_get(cell, "formula"), f"{path}.formula"),
        style=_optional_style(_get(cell, "style"), f"{path}.style"),
        data_type=data_type,
        format=_optional_str(_get(cell, "format"), f"{path}.format"),
    )


def _parse_range(raw: Any, path: str) -> RangeSpec:
    entry = _require_mapping(raw, path)
    reference = _require_reference(_get(entry, "range"), f"{path}.range")
    data = _require_list(_get(entry, "data"), f"{path}.data")
    return RangeSpec(
        range=reference,
        data=list(data),
        style=_optional_style(_get(entry, "style"), f"{path}.style"),
    )


def parse_table_spec(raw: Any, path: str = "table") -> TableSpec:
    entry = _require_mapping(raw, path)
    reference = _get(entry, "range")
    if reference is not None:
        reference = _require_reference(reference, f"{path}.range")
    return TableSpec(
        data=_parse_rows(_get(entry, "data"), f"{path}.data"),
        name=_optional_str(_get(entry, "name"), f"{path}.name"),
        range=reference,
        style=parse_table_style(_get(entry, "style"), f"{path}.style"),
    )


def parse_data_type(raw: Any, path: str = "dataType") -> DataType:
    text = str(raw).strip().lower()
    try:
        return DataType(text)
    except ValueError:
        allowed = ", ".join(item.value for item in DataType)
        raise ValidationError(f"{path} must be one of {allowed}, got '{raw}'") from None


def parse_style(raw: Any, path: str = "style") -> StyleSpec:
    style = _require_mapping(raw, path)

    font = None
    if _get(style, "font") is not None:
        font_raw = _require_mapping(_get(style, "font"), f"{path}.font")
        font = FontSpec(
            name=font_raw.get("name"),
            size=font_raw.get("size"),
            bold=bool(font_raw.get("bold", False)),
            italic=bool(font_raw.get("italic", False)),
            underline=_underline_value(font_raw.get("underline", False)),
            color=_color_value(font_raw.get("color")),
        )

    fill = None
    background = _get(style, "backgroundColor", "background_color")
    fill_raw = _get(style, "fill")
    if background is not None or fill_raw is not None:
        color = _color_value(background)
        if color is None and isinstance(fill_raw, Mapping):
            color = _color_value(_get(fill_raw, "fgColor", "fg_color", "color"))
        elif color is None and isinstance(fill_raw, str):
            color = fill_raw
        fill = FillSpec(color=color)

    alignment = None
    if _get(style, "alignment") is not None:
        align_raw = _require_mapping(_get(style, "alignment"), f"{path}.alignment")
        alignment = AlignmentSpec(
            horizontal=align_raw.get("horizontal"),
            vertical=align_raw.get("vertical"),
            wrap_text=bool(_get(align_raw, "wrapText", "wrap_text") or False),
            indent=_get(align_raw, "indent") or 0,
        )

    border = None
    if _get(style, "border") is not None:
        border_raw = _require_mapping(_get(style, "border"), f"{path}.border")
        border = BorderSpec(
            **{
                edge: _border_edge(border_raw.get(edge))
                for edge in ("top", "left", "bottom", "right")
            }
        )

    return StyleSpec(
        font=font,
        fill=fill,
        alignment=alignment,
        border=border,
        num_fmt=_optional_str(_get(style, "numFmt", "num_fmt"), f"{path}.numFmt"),
    )


def parse_table_style(raw: Any, path: str = "style") -> Optional[TableStyleSpec]:
    if raw is None:
        return None
    style = _require_mapping(raw, path)
    return TableStyleSpec(
        header=_optional_style(_get(style, "header"), f"{path}.header"),
        rows=_optional_style(_get(style, "rows"), f"{path}.rows"),
        alternate_rows=_optional_style(
            _get(style, "alternateRows", "alternate_rows"), f"{path}.alternateRows"
        ),
    )


def parse_formatting(raw: Any, path: str = "formatting", auto_width_default: bool = False) -> FormattingSpec:
    formatting = _require_mapping(raw, path)
    page_setup = None
    page_raw = _get(formatting, "pageSetup", "page_setup")
    if page_raw is not None:
        page = _require_mapping(page_raw, f"{path}.pageSetup")
        margins = page.get("margins")
        if margins is not None:
            margins = dict(_require_mapping(margins, f"{path}.pageSetup.margins"))
        page_setup = PageSetupSpec(
            orientation=str(page.get("orientation") or "portrait"),
            paper_size=_optional_int(_get(page, "paperSize", "paper_size"), f"{path}.pageSetup.paperSize") or 9,
            margins=margins,
        )

    auto_width = _get(formatting, "autoWidth", "auto_width")
    return FormattingSpec(
        auto_width=auto_width_default if auto_width is None else bool(auto_width),
        freeze_rows=_optional_int(_get(formatting, "freezeRows", "freeze_rows"), f"{path}.freezeRows") or 0,
        freeze_cols=_optional_int(_get(formatting, "freezeCols", "freeze_cols"), f"{path}.freezeCols") or 0,
        page_setup=page_setup,
    )


def parse_query_request(payload: Any) -> QueryRequest:
    root = _require_mapping(payload, "payload")
    start_cell = _get(root, "startCell", "start_cell") or "A1"
    start_cell = _require_reference(start_cell, "startCell")
    return QueryRequest(
        query=_require_str(_get(root, "query"), "query"),
        params=list(_require_list(_get(root, "params") or [], "params")),
        sheet_name=_optional_str(_get(root, "sheetName", "sheet_name"), "sheetName") or "QueryResults",
        table_name=_optional_str(_get(root, "tableName", "table_name"), "tableName") or "DataTable",
        filename=_optional_str(_get(root, "filename"), "filename") or "query-results.xlsx",
        start_cell=start_cell,
        style=parse_table_style(_get(root, "style"), "style"),
    )


def parse_fill_request(payload: Any) -> FillRequest:
    root = _require_mapping(payload, "payload")
    return FillRequest(
        template=_require_str(_get(root, "template"), "template"),
        data=dict(_require_mapping(_get(root, "data"), "data")),
        filename=_optional_str(_get(root, "filename"), "filename") or "filled-template.xlsx",
    )


def parse_multi_sheet_request(payload: Any) -> MultiSheetRequest:
    root = _require_mapping(payload, "payload")
    sheets: List[MultiSheetEntry] = []
    for index, item in enumerate(_require_list(_get(root, "sheets"), "sheets")):
        path = f"sheets[{index}]"
        entry = _require_mapping(item, path)
        data = _get(entry, "data")
        if data is not None:
            data = _parse_rows(data, f"{path}.data", allow_empty=True)
        sheets.append(
            MultiSheetEntry(
                name=_require_str(_get(entry, "name"), f"{path}.name"),
                query=_optional_str(_get(entry, "query"), f"{path}.query"),
                params=list(_require_list(_get(entry, "params") or [], f"{path}.params")),
                data=data,
                style=parse_table_style(_get(entry, "style"), f"{path}.style"),
            )
        )
    return MultiSheetRequest(
        sheets=sheets,
        filename=_optional_str(_get(root, "filename"), "filename") or "multi-sheet.xlsx",
    )


def parse_styled_request(payload: Any) -> StyledRequest:
    root = _require_mapping(payload, "payload")
    sheets: List[StyledSheet] = []
    for index, item in enumerate(_require_list(_get(root, "sheets"), "sheets")):
        path = f"sheets[{index}]"
        entry = _require_mapping(item, path)
        formatting = _get(entry, "formatting")
        if formatting is not None:
            formatting = parse_formatting(formatting, f"{path}.formatting", auto_width_default=True)
        sheets.append(
            StyledSheet(
                name=_require_str(_get(entry, "name"), f"{path}.name"),
                data=_parse_rows(_get(entry, "data"), f"{path}.data"),
                styles=parse_table_style(_get(entry, "styles"), f"{path}.styles"),
                formatting=formatting,
            )
        )
    return StyledRequest(
        sheets=sheets,
        filename=_optional_str(_get(root, "filename"), "filename") or "styled-excel.xlsx",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def _require_mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{path} must be an object")
    return value


def _require_list(value: Any, path: str) -> Sequence[Any]:
    if not isinstance(value, list):
        raise ValidationError(f"{path} must be an array")
    return value


def _require_str(value: Any, path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{path} is required and must be a non-empty string")
    return value


def _require_reference(value: Any, path: str) -> str:
    reference = _require_str(value, path)
    if not is_valid_reference(reference):
        raise ValidationError(f"{path} must look like 'A1' or 'A1:C5', got '{reference}'")
    return reference


def _optional_str(value: Any, path: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{path} must be a string")
    return value


def _optional_int(value: Any, path: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{path} must be a number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{path} must be a number") from None
    if number < 0:
        raise ValidationError(f"{path} must not be negative")
    return number


def _optional_style(value: Any, path: str) -> Optional[StyleSpec]:
    if value is None:
        return None
    return parse_style(value, path)


def _parse_rows(value: Any, path: str, allow_empty: bool = False) -> List[Mapping[str, Any]]:
    rows = _require_list(value, path)
    if not rows and not allow_empty:
        raise ValidationError(f"{path} must be a non-empty array of row objects")
    for index, row in enumerate(rows):
        _require_mapping(row, f"{path}[{index}]")
    return list(rows)


def _color_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = value.get("argb") or value.get("rgb")
        if value is None:
            return None
    return str(value)


def _underline_value(value: Any) -> Union[bool, str]:
    if isinstance(value, str):
        return value.strip()
    return bool(value)


def _border_edge(value: Any) -> Optional[BorderEdgeSpec]:
    if value is None:
        return None
    if isinstance(value, str):
        return BorderEdgeSpec(style=value)
    if isinstance(value, Mapping):
        return BorderEdgeSpec(
            style=str(value.get("style") or "thin"),
            color=_color_value(value.get("color")),
        )
    raise ValidationError("border edges must be a style name or an object")

"""Write cells, rectangular ranges and header+rows tables onto a worksheet."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, List, Mapping, Sequence

import numpy as np
from openpyxl.worksheet.filters import AutoFilter
from openpyxl.worksheet.table import Table, TableColumn, TableStyleInfo

from .addressing import range_anchor, resolve_address, split_address
from .errors import ProcessingError, XlComposeError
from .models import CellSpec, RangeSpec, TableSpec
from .styles import (
    DEFAULT_HEADER_STYLE,
    apply_cell_style,
    apply_data_type,
    apply_layered_styles,
)

logger = logging.getLogger(__name__)

DEFAULT_TABLE_STYLE = "TableStyleMedium2"


def coerce_value(value: Any) -> Any:
    """Convert ``value`` into something openpyxl can store in a cell."""

    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return value


def set_literal(cell, value: Any) -> None:
    """Store ``value`` as a literal, even when it is text starting with ``=``."""

    cell.value = coerce_value(value)
    if isinstance(cell.value, str) and cell.value.startswith("="):
        cell.data_type = "s"


def write_cell(ws, spec: CellSpec):
    """Write one :class:`CellSpec` and return the openpyxl cell.

    Formulas are stored as-is; openpyxl keeps no cached result, so the
    supplied display value is left to the caller to report.
    """

    try:
        split_address(spec.cell)
        cell = ws[spec.cell]
        if spec.formula:
            formula = spec.formula.strip()
            cell.value = formula if formula.startswith("=") else f"={formula}"
        else:
            set_literal(cell, spec.value)
    except XlComposeError:
        raise
    except Exception as exc:
        raise ProcessingError(
            f"Cell processing failed for {spec.cell}: {exc}", address=spec.cell
        ) from exc

    apply_cell_style(cell, spec.style)
    apply_data_type(cell, spec.data_type, spec.format)
    return cell


def write_range(ws, spec: RangeSpec) -> int:
    """Write a 2-D block anchored at the start of ``spec.range``.

    The end component of the range is ignored; the extent comes from the data.
    Returns the number of cells written.
    """

    anchor_column, anchor_row = range_anchor(spec.range)
    written = 0
    try:
        for row_index, row_data in enumerate(spec.data):
            if not isinstance(row_data, (list, tuple)):
                continue
            for col_index, value in enumerate(row_data):
                address = resolve_address(anchor_column, anchor_row + row_index, col_index)
                cell = ws[address]
                set_literal(cell, value)
                apply_cell_style(cell, spec.style)
                written += 1
    except XlComposeError:
        raise
    except Exception as exc:
        raise ProcessingError(
            f"Range processing failed for {spec.range}: {exc}", address=spec.range
        ) from exc
    return written


def table_headers(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Column headers are the keys of the first row, in insertion order."""

    if not rows:
        raise ProcessingError("Table data is required and must be a non-empty array")
    return [str(key) for key in rows[0].keys()]


def table_display_name(name: str) -> str:
    """Return ``name`` reduced to characters Excel accepts in a table name."""

    cleaned = re.sub(r"\W", "_", name.strip())
    if not cleaned or not (cleaned[0].isalpha() or cleaned[0] == "_"):
        cleaned = f"_{cleaned}"
    return cleaned


def write_table(ws, spec: TableSpec) -> int:
    """Write a header row plus one row per mapping; returns cells written.

    Body cells receive ``style.rows``; odd body rows (0-indexed) additionally
    receive ``style.alternate_rows`` on top.  A named table also registers an
    Excel table over the header+body rectangle.
    """

    anchor = spec.anchor.split(":", 1)[0]
    try:
        headers = table_headers(spec.data)
        anchor_column, anchor_row = split_address(anchor)
    except ProcessingError as exc:
        exc.address = exc.address or anchor
        raise

    table_style = spec.style
    header_style = table_style.header if table_style and table_style.header else DEFAULT_HEADER_STYLE
    body_style = table_style.rows if table_style else None
    alternate_style = table_style.alternate_rows if table_style else None

    written = 0
    try:
        for col_index, header in enumerate(headers):
            cell = ws[resolve_address(anchor_column, anchor_row, col_index)]
            cell.value = header
            apply_cell_style(cell, header_style)
            written += 1

        for row_index, row_data in enumerate(spec.data):
            for col_index, header in enumerate(headers):
                address = resolve_address(anchor_column, anchor_row + row_index + 1, col_index)
                cell = ws[address]
                set_literal(cell, row_data.get(header))
                if row_index % 2 == 1:
                    apply_layered_styles(cell, body_style, alternate_style)
                else:
                    apply_cell_style(cell, body_style)
                written += 1

        if spec.name:
            _register_table(ws, spec.name, anchor, anchor_column, anchor_row, headers, len(spec.data))
    except XlComposeError:
        raise
    except Exception as exc:
        raise ProcessingError(
            f"Table processing failed at {anchor}: {exc}", address=anchor
        ) from exc

    logger.debug("Wrote table at %s with %d columns and %d rows", anchor, len(headers), len(spec.data))
    return written


def _register_table(
    ws,
    name: str,
    anchor: str,
    anchor_column: str,
    anchor_row: int,
    headers: Sequence[str],
    row_count: int,
) -> None:
    end = resolve_address(anchor_column, anchor_row + row_count, len(headers) - 1)
    ref = f"{anchor}:{end}"
    table = Table(displayName=table_display_name(name), ref=ref)
    table.autoFilter = AutoFilter(ref=ref)
    table.tableColumns = [
        TableColumn(id=index, name=header) for index, header in enumerate(headers, start=1)
    ]
    table.tableStyleInfo = TableStyleInfo(
        name=DEFAULT_TABLE_STYLE,
        showFirstColumn=False,
        showLastColumn=False,
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(table)


__all__ = [
    "coerce_value",
    "set_literal",
    "table_display_name",
    "table_headers",
    "write_cell",
    "write_range",
    "write_table",
]

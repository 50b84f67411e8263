"""Fill ``{{placeholder}}`` templates, expanding ``{{#key}}`` rows for arrays.

A cell text ``{{name}}`` is replaced by ``data["name"]``.  A row holding a
``{{#items}}`` marker where ``data["items"]`` is a list becomes one row per
element: the first element reuses the template row, each further element gets
a copy of the template row inserted below the previous one.  Inside those rows
``{{field}}`` resolves against the element first, then against ``data``.
Unknown placeholders are left as literal text.

When a row holds several markers, the first marker (left to right) whose key
is a list drives the expansion; any other marker in that row stays literal.
"""

from __future__ import annotations

import logging
import re
from copy import copy
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.cell.cell import MergedCell

from .composer import serialize_workbook
from .errors import ProcessingError, XlComposeError
from .templates import TemplateStore

logger = logging.getLogger(__name__)

SCALAR_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")
BLOCK_MARKER = re.compile(r"\{\{#(\w+)\}\}")


@dataclass
class FillResult:
    content: bytes
    sheet_count: int
    rows_added: int


def render_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def substitute(text: str, *sources: Mapping[str, Any]) -> str:
    """Replace ``{{key}}`` with the first source that defines ``key``."""

    def replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        for source in sources:
            if key in source:
                return render_value(source[key])
        return match.group(0)

    return SCALAR_PLACEHOLDER.sub(replace, text)


def find_block_key(cells: Sequence[Any], data: Mapping[str, Any]) -> Optional[str]:
    """Return the key of the first array-backed ``{{#key}}`` marker in ``cells``."""

    for cell in cells:
        if not isinstance(cell.value, str):
            continue
        for match in BLOCK_MARKER.finditer(cell.value):
            if isinstance(data.get(match.group(1)), list):
                return match.group(1)
    return None


def fill_worksheet(worksheet, data: Mapping[str, Any]) -> int:
    """Fill ``worksheet`` in place and return the number of rows inserted."""

    rows_added = 0
    row_index = 1
    while row_index <= worksheet.max_row:
        cells = [cell for cell in worksheet[row_index] if not isinstance(cell, MergedCell)]
        key = find_block_key(cells, data)

        if key is None:
            for cell in cells:
                if isinstance(cell.value, str):
                    cell.value = substitute(cell.value, data)
            row_index += 1
            continue

        items = data[key]
        if not items:
            _delete_row(worksheet, row_index)
            rows_added -= 1
            continue

        template = _snapshot_row(cells)
        height = worksheet.row_dimensions[row_index].height
        marker = "{{#%s}}" % key
        for offset, item in enumerate(items):
            target_row = row_index + offset
            if offset:
                _insert_row(worksheet, target_row)
                if height is not None:
                    worksheet.row_dimensions[target_row].height = height
            fields = item if isinstance(item, Mapping) else {}
            for column, value, style in template:
                cell = worksheet.cell(row=target_row, column=column)
                if offset:
                    cell._style = copy(style)
                if isinstance(value, str):
                    cell.value = substitute(value.replace(marker, ""), fields, data)
                elif offset:
                    cell.value = value

        logger.debug(
            "Expanded {{#%s}} at %s!%d into %d rows", key, worksheet.title, row_index, len(items)
        )
        rows_added += len(items) - 1
        row_index += len(items)
    return rows_added


def fill_workbook(workbook: Workbook, data: Mapping[str, Any]) -> FillResult:
    """Fill every sheet of ``workbook`` and serialize it."""

    rows_added = 0
    for worksheet in workbook.worksheets:
        try:
            rows_added += fill_worksheet(worksheet, data)
        except XlComposeError:
            raise
        except Exception as exc:
            raise ProcessingError(
                f"Template filling failed for sheet {worksheet.title}: {exc}",
                sheet=worksheet.title,
            ) from exc
    return FillResult(
        content=serialize_workbook(workbook),
        sheet_count=len(workbook.worksheets),
        rows_added=rows_added,
    )


def fill_template(store: TemplateStore, name: str, data: Mapping[str, Any]) -> FillResult:
    workbook = store.load(name)
    result = fill_workbook(workbook, data)
    logger.info("Template filled successfully: %s", name)
    return result


def _snapshot_row(cells: Sequence[Any]) -> List[Tuple[int, Any, Any]]:
    return [(cell.column, cell.value, copy(cell._style)) for cell in cells]


def _insert_row(worksheet, index: int) -> None:
    """Insert one empty row at ``index`` and move merged ranges and heights below it."""

    worksheet.insert_rows(index)
    _shift_merged_ranges(worksheet, index, 1)
    _shift_row_dimensions(worksheet, index, 1)


def _delete_row(worksheet, index: int) -> None:
    worksheet.delete_rows(index)
    _shift_merged_ranges(worksheet, index + 1, -1)
    worksheet.row_dimensions.pop(index, None)
    _shift_row_dimensions(worksheet, index + 1, -1)


def _shift_row_dimensions(worksheet, first_row: int, amount: int) -> None:
    # row heights are keyed by row index and stay put on insert/delete as well
    dimensions = worksheet.row_dimensions
    moved = sorted((row for row in dimensions if row >= first_row), reverse=amount > 0)
    for row in moved:
        dimension = dimensions.pop(row)
        dimension.index = row + amount
        dimensions[row + amount] = dimension


def _shift_merged_ranges(worksheet, first_row: int, amount: int) -> None:
    # openpyxl moves cells on insert/delete but leaves merged ranges in place
    moved = [merged for merged in worksheet.merged_cells.ranges if merged.min_row >= first_row]
    for merged in moved:
        worksheet.merged_cells.remove(merged)
    for merged in moved:
        merged.shift(row_shift=amount)
        worksheet.merged_cells.add(merged)


__all__ = [
    "FillResult",
    "fill_template",
    "fill_workbook",
    "fill_worksheet",
    "find_block_key",
    "substitute",
]

"""Compose workbooks from declarative documents."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.page import PageMargins

from .addressing import resolve_address
from .errors import ProcessingError, TemplateNotFoundError, XlComposeError
from .models import (
    FillSpec,
    FontSpec,
    FormattingSpec,
    MultiSheetRequest,
    SheetSpec,
    StyledRequest,
    StyleSpec,
    TableSpec,
    TableStyleSpec,
    WorkbookSpec,
)
from .templates import TemplateStore
from .writers import write_cell, write_range, write_table

logger = logging.getLogger(__name__)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EMPTY_CELL_WIDTH = 10
MAX_COLUMN_WIDTH = 50
DEFAULT_MARGINS: Dict[str, float] = {
    "left": 0.7,
    "right": 0.7,
    "top": 0.75,
    "bottom": 0.75,
    "header": 0.3,
    "footer": 0.3,
}

QUERY_HEADER_STYLE = StyleSpec(
    font=FontSpec(bold=True, color="FFFFFFFF"),
    fill=FillSpec(color="FF366092"),
)
NO_DATA_ROWS: List[Dict[str, Any]] = [{"message": "No data available"}]

RowFetcher = Callable[[str, Sequence[Any]], List[Mapping[str, Any]]]


@dataclass
class CompositionResult:
    """Serialized workbook plus counters for the caller's log line."""

    content: bytes
    filename: str
    sheet_count: int
    cell_count: int
    formula_results: Dict[str, Any] = field(default_factory=dict)

    @property
    def mime_type(self) -> str:
        return XLSX_MIME_TYPE


def compose_workbook(
    spec: WorkbookSpec,
    templates: Optional[TemplateStore] = None,
    application_name: str = "xlcompose",
) -> CompositionResult:
    """Materialise ``spec`` into an XLSX buffer.

    Sheets named in ``spec`` that already exist in the template are updated in
    place.  A failure in any sheet aborts the composition with a single
    :class:`ProcessingError` naming that sheet.
    """

    workbook = _start_workbook(spec, templates)
    now = datetime.now()
    workbook.properties.creator = application_name
    workbook.properties.lastModifiedBy = application_name
    workbook.properties.created = now
    workbook.properties.modified = now

    cell_count = 0
    formula_results: Dict[str, Any] = {}
    for sheet_spec in spec.sheets:
        try:
            cell_count += compose_sheet(workbook, sheet_spec, formula_results)
        except ProcessingError as exc:
            logger.error("Sheet processing failed for %s: %s", sheet_spec.name, exc.message)
            raise ProcessingError(
                f"Sheet processing failed for {sheet_spec.name}: {exc.message}",
                sheet=sheet_spec.name,
                address=exc.address,
            ) from exc
        except XlComposeError:
            raise
        except Exception as exc:
            raise ProcessingError(
                f"Sheet processing failed for {sheet_spec.name}: {exc}",
                sheet=sheet_spec.name,
            ) from exc

    content = serialize_workbook(workbook)
    logger.info(
        "Excel workbook created successfully with %d sheets and %d cells",
        len(spec.sheets),
        cell_count,
    )
    return CompositionResult(
        content=content,
        filename=spec.filename,
        sheet_count=len(spec.sheets),
        cell_count=cell_count,
        formula_results=formula_results,
    )


def _start_workbook(spec: WorkbookSpec, templates: Optional[TemplateStore]) -> Workbook:
    if spec.template:
        if templates is None:
            raise TemplateNotFoundError(
                f"Template not found: {spec.template} (no template directory configured)"
            )
        return templates.load(spec.template)

    workbook = Workbook()
    requested = {sheet.name for sheet in spec.sheets}
    default_sheet = workbook.active
    if spec.sheets and default_sheet is not None and default_sheet.title not in requested:
        workbook.remove(default_sheet)
    return workbook


def compose_sheet(
    workbook: Workbook,
    spec: SheetSpec,
    formula_results: Optional[Dict[str, Any]] = None,
) -> int:
    """Apply cells, ranges, tables and formatting to the sheet named ``spec.name``.

    Returns the number of cells written.
    """

    if spec.name in workbook.sheetnames:
        worksheet = workbook[spec.name]
    else:
        worksheet = workbook.create_sheet(title=spec.name)

    written = 0
    if spec.cells is not None:
        for cell_spec in spec.cells:
            write_cell(worksheet, cell_spec)
            if cell_spec.formula and formula_results is not None:
                formula_results[f"{worksheet.title}!{cell_spec.cell}"] = cell_spec.value
            written += 1
    if spec.ranges is not None:
        for range_spec in spec.ranges:
            written += write_range(worksheet, range_spec)
    if spec.tables is not None:
        for table_spec in spec.tables:
            written += write_table(worksheet, table_spec)
    if spec.formatting is not None:
        apply_sheet_formatting(worksheet, spec.formatting)

    logger.info("Sheet processed: %s", spec.name)
    return written


def column_width(values: Sequence[Any]) -> int:
    """Width for a column holding ``values``: longest text plus two, capped."""

    longest = 0
    for value in values:
        length = EMPTY_CELL_WIDTH if value is None or value == "" else len(str(value))
        longest = max(longest, length)
    return min(longest + 2, MAX_COLUMN_WIDTH)


def apply_sheet_formatting(worksheet, formatting: FormattingSpec) -> None:
    """Apply auto width, freeze panes and page setup.

    Failures are logged and leave the rest of the sheet untouched.
    """

    if formatting.auto_width:
        try:
            _auto_width(worksheet)
        except Exception as exc:
            logger.warning("Auto width failed for %s: %s", worksheet.title, exc)

    if formatting.freeze_rows or formatting.freeze_cols:
        try:
            worksheet.freeze_panes = resolve_address(
                "A", formatting.freeze_rows + 1, formatting.freeze_cols
            )
        except Exception as exc:
            logger.warning("Freeze panes failed for %s: %s", worksheet.title, exc)

    if formatting.page_setup is not None:
        page = formatting.page_setup
        try:
            worksheet.page_setup.orientation = page.orientation or "portrait"
            worksheet.page_setup.paperSize = page.paper_size or 9
            margins = dict(DEFAULT_MARGINS)
            margins.update(page.margins or {})
            worksheet.page_margins = PageMargins(**margins)
        except Exception as exc:
            logger.warning("Page setup failed for %s: %s", worksheet.title, exc)


def _auto_width(worksheet) -> None:
    # an empty sheet still reports A1:A1 as its dimension
    if worksheet.calculate_dimension() == "A1:A1" and worksheet["A1"].value is None:
        return
    columns = worksheet.iter_cols(
        min_row=1,
        max_row=worksheet.max_row,
        min_col=1,
        max_col=worksheet.max_column,
    )
    for column_index, column_cells in enumerate(columns, start=1):
        letter = get_column_letter(column_index)
        worksheet.column_dimensions[letter].width = column_width([cell.value for cell in column_cells])


def serialize_workbook(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Convenience builders
# ---------------------------------------------------------------------------


def build_query_workbook(
    rows: Sequence[Mapping[str, Any]],
    *,
    sheet_name: str = "QueryResults",
    table_name: str = "DataTable",
    start_cell: str = "A1",
    style: Optional[TableStyleSpec] = None,
    filename: str = "query-results.xlsx",
) -> CompositionResult:
    """One sheet holding one named table built from query ``rows``."""

    table = TableSpec(
        data=list(rows),
        name=table_name,
        range=start_cell,
        style=style or TableStyleSpec(header=QUERY_HEADER_STYLE),
    )
    spec = WorkbookSpec(sheets=[SheetSpec(name=sheet_name, tables=[table])], filename=filename)
    return compose_workbook(spec)


def build_multi_sheet_workbook(
    request: MultiSheetRequest,
    fetch_rows: Optional[RowFetcher] = None,
) -> CompositionResult:
    """One named table per sheet, taken from inline data or ``fetch_rows``."""

    sheets: List[SheetSpec] = []
    for entry in request.sheets:
        data = entry.data
        if not data and entry.query and fetch_rows is not None:
            data = fetch_rows(entry.query, entry.params)
        if not data:
            data = list(NO_DATA_ROWS)
        table = TableSpec(data=list(data), name=f"{entry.name}Table", range="A1", style=entry.style)
        sheets.append(SheetSpec(name=entry.name, tables=[table]))
    return compose_workbook(WorkbookSpec(sheets=sheets, filename=request.filename))


def build_styled_workbook(request: StyledRequest) -> CompositionResult:
    sheets = [
        SheetSpec(
            name=sheet.name,
            tables=[
                TableSpec(
                    data=sheet.data,
                    name=f"{sheet.name}Table",
                    range="A1",
                    style=sheet.styles,
                )
            ],
            formatting=sheet.formatting,
        )
        for sheet in request.sheets
    ]
    return compose_workbook(WorkbookSpec(sheets=sheets, filename=request.filename))


__all__ = [
    "CompositionResult",
    "XLSX_MIME_TYPE",
    "apply_sheet_formatting",
    "build_multi_sheet_workbook",
    "build_query_workbook",
    "build_styled_workbook",
    "column_width",
    "compose_sheet",
    "compose_workbook",
    "serialize_workbook",
]

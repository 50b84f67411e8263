"""xlcompose package.

Turns declarative JSON workbook documents into XLSX files: cells, ranges and
tables with styling, sheet formatting, stored templates and ``{{placeholder}}``
template filling with repeating rows.  The command line interface in
:mod:`xlcompose.cli` is one consumer; any service can reuse the same building
blocks.
"""

from .addressing import range_anchor, resolve_address, split_address
from .composer import (
    XLSX_MIME_TYPE,
    CompositionResult,
    apply_sheet_formatting,
    build_multi_sheet_workbook,
    build_query_workbook,
    build_styled_workbook,
    compose_workbook,
)
from .config import AppConfig, DatabaseConfig, OutputConfig, TemplateConfig, load_config
from .database import QueryDatabase, validate_query
from .errors import (
    DatabaseError,
    NoDataError,
    ProcessingError,
    TemplateNotFoundError,
    UnsafeQueryError,
    ValidationError,
    XlComposeError,
)
from .filler import FillResult, fill_template, fill_workbook
from .models import WorkbookSpec, parse_workbook_spec
from .styles import apply_cell_style, apply_data_type, normalize_color
from .templates import TemplateStore
from .writers import write_cell, write_range, write_table

__all__ = [
    "AppConfig",
    "CompositionResult",
    "DatabaseConfig",
    "DatabaseError",
    "FillResult",
    "NoDataError",
    "OutputConfig",
    "ProcessingError",
    "QueryDatabase",
    "TemplateConfig",
    "TemplateNotFoundError",
    "TemplateStore",
    "UnsafeQueryError",
    "ValidationError",
    "WorkbookSpec",
    "XLSX_MIME_TYPE",
    "XlComposeError",
    "apply_cell_style",
    "apply_data_type",
    "apply_sheet_formatting",
    "build_multi_sheet_workbook",
    "build_query_workbook",
    "build_styled_workbook",
    "compose_workbook",
    "fill_template",
    "fill_workbook",
    "load_config",
    "normalize_color",
    "parse_workbook_spec",
    "range_anchor",
    "resolve_address",
    "split_address",
    "validate_query",
    "write_cell",
    "write_range",
    "write_table",
]

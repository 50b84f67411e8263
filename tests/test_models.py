import pytest

from xlcompose.errors import ValidationError
from xlcompose.models import (
    DataType,
    parse_fill_request,
    parse_multi_sheet_request,
    parse_query_request,
    parse_style,
    parse_styled_request,
    parse_workbook_spec,
)


def test_parse_workbook_spec_full_document():
    spec = parse_workbook_spec(
        {
            "template": "base.xlsx",
            "filename": "out.xlsx",
            "sheets": [
                {
                    "name": "Data",
                    "cells": [{"cell": "B2", "value": 0.25, "dataType": "percentage", "format": "0.0%"}],
                    "ranges": [{"range": "A3:C5", "data": [[1, 2]]}],
                    "tables": [{"data": [{"a": 1}], "style": {"alternateRows": {"font": {"italic": True}}}}],
                    "formatting": {"freezeRows": 2, "pageSetup": {"orientation": "landscape"}},
                }
            ],
        }
    )

    assert spec.template == "base.xlsx"
    assert spec.filename == "out.xlsx"
    sheet = spec.sheets[0]
    assert sheet.cells[0].data_type is DataType.PERCENTAGE
    assert sheet.cells[0].format == "0.0%"
    assert sheet.ranges[0].range == "A3:C5"
    assert sheet.tables[0].anchor == "A1"
    assert sheet.tables[0].style.alternate_rows.font.italic is True
    assert sheet.formatting.freeze_rows == 2
    assert sheet.formatting.auto_width is False
    assert sheet.formatting.page_setup.orientation == "landscape"
    assert sheet.formatting.page_setup.paper_size == 9


def test_absent_lists_stay_none():
    spec = parse_workbook_spec({"sheets": [{"name": "Empty"}]})

    assert spec.filename == "generated.xlsx"
    assert spec.sheets[0].cells is None
    assert spec.sheets[0].tables is None


def test_snake_case_keys_are_accepted():
    spec = parse_workbook_spec(
        {"sheets": [{"name": "S", "cells": [{"cell": "A1", "value": 1, "data_type": "currency"}]}]}
    )

    assert spec.sheets[0].cells[0].data_type is DataType.CURRENCY


@pytest.mark.parametrize(
    "payload,path",
    [
        ([], "payload"),
        ({}, "sheets"),
        ({"sheets": [{"name": ""}]}, "sheets[0].name"),
        ({"sheets": [{"name": "S", "cells": [{"cell": "b2"}]}]}, "sheets[0].cells[0].cell"),
        ({"sheets": [{"name": "S", "cells": [{"cell": "A1", "dataType": "money"}]}]}, "sheets[0].cells[0].dataType"),
        ({"sheets": [{"name": "S", "ranges": [{"range": "A1:"}]}]}, "sheets[0].ranges[0].range"),
        ({"sheets": [{"name": "S", "tables": [{"data": []}]}]}, "sheets[0].tables[0].data"),
        ({"sheets": [{"name": "S", "tables": [{"data": [1]}]}]}, "sheets[0].tables[0].data[0]"),
        ({"sheets": [{"name": "S", "formatting": {"freezeRows": -1}}]}, "sheets[0].formatting.freezeRows"),
    ],
)
def test_validation_errors_name_the_path(payload, path):
    with pytest.raises(ValidationError) as excinfo:
        parse_workbook_spec(payload)

    assert path in excinfo.value.message
    assert excinfo.value.status == 400


def test_parse_style_colors_and_fill_shapes():
    style = parse_style(
        {
            "font": {"bold": True, "color": {"argb": "FFFF0000"}},
            "backgroundColor": "#00FF00",
            "alignment": {"horizontal": "center", "wrapText": True},
            "border": {"top": "thick", "bottom": {"style": "dashed", "color": "0000FF"}},
            "numFmt": "0.00",
        }
    )

    assert style.font.bold is True
    assert style.font.color == "FFFF0000"
    assert style.fill.color == "#00FF00"
    assert style.alignment.wrap_text is True
    assert style.border.top.style == "thick"
    assert style.border.bottom.color == "0000FF"
    assert style.border.left is None
    assert style.num_fmt == "0.00"

    nested = parse_style({"fill": {"fgColor": {"argb": "FF123456"}}})
    assert nested.fill.color == "FF123456"
    assert parse_style({}).is_empty()


def test_parse_query_request_defaults():
    request = parse_query_request({"query": "SELECT 1"})

    assert request.params == []
    assert request.sheet_name == "QueryResults"
    assert request.table_name == "DataTable"
    assert request.start_cell == "A1"
    assert request.filename == "query-results.xlsx"

    with pytest.raises(ValidationError):
        parse_query_request({"query": "SELECT 1", "startCell": "1A"})
    with pytest.raises(ValidationError):
        parse_query_request({"query": ""})


def test_parse_fill_request():
    request = parse_fill_request({"template": "t.xlsx", "data": {"a": 1}})

    assert request.filename == "filled-template.xlsx"
    assert request.data == {"a": 1}
    with pytest.raises(ValidationError):
        parse_fill_request({"template": "t.xlsx", "data": [1]})


def test_parse_multi_sheet_request_allows_empty_data():
    request = parse_multi_sheet_request(
        {"sheets": [{"name": "A", "data": []}, {"name": "B", "query": "SELECT 1", "params": [5]}]}
    )

    assert request.filename == "multi-sheet.xlsx"
    assert request.sheets[0].data == []
    assert request.sheets[1].params == [5]


def test_parse_styled_request_auto_width_default():
    request = parse_styled_request(
        {
            "sheets": [
                {"name": "A", "data": [{"x": 1}], "formatting": {}},
                {"name": "B", "data": [{"x": 1}], "formatting": {"autoWidth": False}},
                {"name": "C", "data": [{"x": 1}]},
            ]
        }
    )

    assert request.sheets[0].formatting.auto_width is True
    assert request.sheets[1].formatting.auto_width is False
    assert request.sheets[2].formatting is None


def test_parse_style_keeps_underline_names():
    assert parse_style({"font": {"underline": "double"}}).font.underline == "double"
    assert parse_style({"font": {"underline": True}}).font.underline is True

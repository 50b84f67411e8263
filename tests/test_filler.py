import pytest
from openpyxl import Workbook
from openpyxl.styles import Font

from xlcompose.errors import TemplateNotFoundError
from xlcompose.filler import fill_template, fill_worksheet, find_block_key, substitute


def _sheet(*rows):
    ws = Workbook().active
    for row in rows:
        ws.append(list(row))
    return ws


def test_substitute_scalars():
    assert substitute("Hello {{name}}", {"name": "World"}) == "Hello World"
    assert substitute("{{missing}} stays", {"name": "World"}) == "{{missing}} stays"
    assert substitute("n={{n}}", {"n": None}) == "n="
    assert substitute("{{a}}-{{b}}", {"a": 1}, {"a": 2, "b": 3}) == "1-3"


def test_scalar_placeholders_are_replaced_in_place():
    ws = _sheet(["Hello {{name}}", 5], ["{{missing}}"])

    added = fill_worksheet(ws, {"name": "World"})

    assert added == 0
    assert ws["A1"].value == "Hello World"
    assert ws["B1"].value == 5
    assert ws["A2"].value == "{{missing}}"


def test_block_marker_expands_rows():
    ws = _sheet(
        ["Report {{title}}"],
        ["{{#items}}{{name}}: {{qty}}"],
        ["Total: {{total}}"],
    )
    data = {"title": "Q1", "items": [{"name": "A", "qty": 1}, {"name": "B", "qty": 2}], "total": 3}

    added = fill_worksheet(ws, data)

    assert added == 1
    assert [ws.cell(row=index, column=1).value for index in range(1, 5)] == [
        "Report Q1",
        "A: 1",
        "B: 2",
        "Total: 3",
    ]


def test_block_marker_in_later_column_expands_whole_row():
    ws = _sheet(["Item", "Qty"], ["{{name}}", "{{#items}}{{qty}}", "fixed"])
    data = {"items": [{"name": "A", "qty": 1}, {"name": "B", "qty": 2}, {"name": "C", "qty": 3}]}

    assert fill_worksheet(ws, data) == 2
    assert [ws.cell(row=r, column=1).value for r in (2, 3, 4)] == ["A", "B", "C"]
    assert [ws.cell(row=r, column=2).value for r in (2, 3, 4)] == ["1", "2", "3"]
    assert [ws.cell(row=r, column=3).value for r in (2, 3, 4)] == ["fixed"] * 3


def test_expanded_rows_fall_back_to_top_level_data():
    ws = _sheet(["{{#items}}{{name}} ({{currency}})"])

    fill_worksheet(ws, {"currency": "EUR", "items": [{"name": "A"}, {"name": "B", "currency": "USD"}]})

    assert ws["A1"].value == "A (EUR)"
    assert ws["A2"].value == "B (USD)"


def test_inserted_rows_copy_style_and_height():
    ws = _sheet(["{{#items}}{{name}}"])
    ws["A1"].font = Font(bold=True)
    ws.row_dimensions[1].height = 30

    fill_worksheet(ws, {"items": [{"name": "A"}, {"name": "B"}]})

    assert ws["A2"].value == "B"
    assert ws["A2"].font.bold is True
    assert ws.row_dimensions[2].height == 30


def test_marker_without_list_stays_literal():
    ws = _sheet(["{{#items}}{{name}}"], ["{{#absent}}"])

    assert fill_worksheet(ws, {"items": "not a list", "name": "N"}) == 0
    assert ws["A1"].value == "{{#items}}N"
    assert ws["A2"].value == "{{#absent}}"


def test_first_list_marker_in_row_wins():
    ws = _sheet(["{{#first}}{{v}}", "{{#second}}x"])
    data = {"first": [{"v": 1}, {"v": 2}], "second": [{"v": 9}]}

    assert find_block_key(list(ws[1]), data) == "first"
    assert fill_worksheet(ws, data) == 1
    assert [ws["A1"].value, ws["A2"].value] == ["1", "2"]
    assert ws["B1"].value == "{{#second}}x"
    assert ws["B2"].value == "{{#second}}x"


def test_empty_list_removes_template_row():
    ws = _sheet(["Header"], ["{{#items}}{{name}}"], ["Footer"])

    assert fill_worksheet(ws, {"items": []}) == -1
    assert ws["A1"].value == "Header"
    assert ws["A2"].value == "Footer"
    assert ws["A3"].value is None


def test_merged_ranges_below_expansion_move_down():
    ws = _sheet(["Title"], ["{{#items}}{{name}}"], [None], ["Footer"])
    ws.merge_cells("A4:B4")

    fill_worksheet(ws, {"items": [{"name": "A"}, {"name": "B"}]})

    assert [str(merged) for merged in ws.merged_cells.ranges] == ["A5:B5"]
    assert ws["A5"].value == "Footer"


def test_fill_template_from_store(store, save_template, reload):
    template = Workbook()
    template.active.title = "Invoice"
    template.active.append(["Customer: {{customer}}"])
    template.active.append(["{{#lines}}{{item}}", "{{price}}"])
    extra = template.create_sheet("Notes")
    extra.append(["Prepared for {{customer}}"])
    save_template("invoice.xlsx", template)

    result = fill_template(
        store,
        "invoice.xlsx",
        {"customer": "ACME", "lines": [{"item": "Bolts", "price": 3}, {"item": "Nuts", "price": 2}]},
    )

    assert result.sheet_count == 2
    assert result.rows_added == 1
    workbook = reload(result.content)
    invoice = workbook["Invoice"]
    assert invoice["A1"].value == "Customer: ACME"
    assert [invoice["A2"].value, invoice["B2"].value] == ["Bolts", "3"]
    assert [invoice["A3"].value, invoice["B3"].value] == ["Nuts", "2"]
    assert workbook["Notes"]["A1"].value == "Prepared for ACME"


def test_fill_template_missing(store):
    with pytest.raises(TemplateNotFoundError):
        fill_template(store, "missing.xlsx", {})


def test_row_heights_below_expansion_move_with_their_rows():
    ws = _sheet(["{{#items}}{{name}}"], ["Footer"])
    ws.row_dimensions[2].height = 40

    fill_worksheet(ws, {"items": [{"name": "A"}, {"name": "B"}, {"name": "C"}]})

    assert [ws.cell(row=r, column=1).value for r in range(1, 5)] == ["A", "B", "C", "Footer"]
    assert ws.row_dimensions[4].height == 40
    assert ws.row_dimensions[2].height is None
    assert ws.row_dimensions[3].height is None


def test_row_heights_move_up_when_template_row_is_removed():
    ws = _sheet(["Header"], ["{{#items}}{{name}}"], ["Footer"])
    ws.row_dimensions[2].height = 15
    ws.row_dimensions[3].height = 40

    fill_worksheet(ws, {"items": []})

    assert ws["A2"].value == "Footer"
    assert ws.row_dimensions[2].height == 40
    assert ws.row_dimensions[3].height is None

import pytest

from xlcompose.addressing import (
    column_index,
    is_valid_reference,
    range_anchor,
    resolve_address,
    split_address,
)
from xlcompose.errors import ProcessingError


def test_resolve_address_offsets_column_and_keeps_row():
    assert resolve_address("A", 3, 0) == "A3"
    assert resolve_address("A", 3, 1) == "B3"
    assert resolve_address("C", 10, 4) == "G10"


def test_resolve_address_round_trips_within_one_span():
    for anchor_index in range(26):
        anchor = chr(ord("A") + anchor_index)
        for offset in range(26 - anchor_index):
            column, row = split_address(resolve_address(anchor, 7, offset))
            assert row == 7
            assert column_index(column) - 1 == (anchor_index + offset) % 26


def test_resolve_address_carries_into_multi_letter_columns():
    assert resolve_address("Z", 1, 1) == "AA1"
    assert resolve_address("A", 1, 27) == "AB1"
    assert resolve_address("AA", 2, -1) == "Z2"


def test_resolve_address_rejects_columns_left_of_a():
    with pytest.raises(ProcessingError):
        resolve_address("B", 1, -2)


def test_split_address_and_range_anchor():
    assert split_address("B12") == ("B", 12)
    assert range_anchor("A3:Z99") == ("A", 3)
    assert range_anchor("D4") == ("D", 4)


def test_split_address_reports_offending_address():
    with pytest.raises(ProcessingError) as excinfo:
        split_address("12B")
    assert excinfo.value.address == "12B"


def test_is_valid_reference():
    assert is_valid_reference("B2")
    assert is_valid_reference("A1:C5")
    assert not is_valid_reference("b2")
    assert not is_valid_reference("A1:")
    assert not is_valid_reference("Sheet1!A1")

"""Cell address arithmetic.

Addresses are plain A1-style strings.  Columns are handled with proper
base-26 arithmetic, so offsets past ``Z`` carry into ``AA``, ``AB`` and so on
instead of wrapping back to ``A``.
"""

from __future__ import annotations

import re
from typing import Tuple

from openpyxl.utils import column_index_from_string, get_column_letter

from .errors import ProcessingError

ADDRESS_PATTERN = re.compile(r"^([A-Z]+)([0-9]+)$")
RANGE_PATTERN = re.compile(r"^[A-Z]+[0-9]+(?::[A-Z]+[0-9]+)?$")

MAX_COLUMN_INDEX = 16384  # XFD


def is_valid_reference(value: str) -> bool:
    """Return ``True`` for ``B2`` and ``B2:D9`` style references."""

    return isinstance(value, str) and bool(RANGE_PATTERN.match(value))


def column_index(column: str) -> int:
    """Return the one-based index of ``column`` (``A`` -> 1)."""

    try:
        return column_index_from_string(column)
    except ValueError as exc:
        raise ProcessingError(f"Invalid column '{column}'", address=column) from exc


def split_address(address: str) -> Tuple[str, int]:
    """Split ``"B12"`` into ``("B", 12)``."""

    match = ADDRESS_PATTERN.match(address or "")
    if not match:
        raise ProcessingError(f"Invalid cell address '{address}'", address=address)
    row = int(match.group(2))
    if row < 1:
        raise ProcessingError(f"Invalid cell address '{address}'", address=address)
    return match.group(1), row


def range_anchor(reference: str) -> Tuple[str, int]:
    """Return the column and row of the start component of ``reference``.

    The end component of ``"A3:C9"`` is ignored; only the start anchors.
    """

    start = (reference or "").split(":", 1)[0]
    return split_address(start)


def resolve_address(anchor_column: str, anchor_row: int, column_offset: int = 0) -> str:
    """Return the address ``column_offset`` columns right of ``anchor_column``.

    The row is returned unchanged; callers add row offsets themselves.
    """

    target = column_index(anchor_column) + column_offset
    if target < 1 or target > MAX_COLUMN_INDEX:
        raise ProcessingError(
            f"Column offset {column_offset} from '{anchor_column}' is outside the sheet",
            address=f"{anchor_column}{anchor_row}",
        )
    return f"{get_column_letter(target)}{anchor_row}"


__all__ = [
    "column_index",
    "is_valid_reference",
    "range_anchor",
    "resolve_address",
    "split_address",
]

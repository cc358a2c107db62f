"""Spreadsheet-style column labels (A..Z, AA, AB, ...)."""

from __future__ import annotations

from openpyxl.utils import get_column_letter


def column_label(index: int) -> str:
    """Return the label for a zero-based column index: 0 -> A, 25 -> Z, 26 -> AA."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    return get_column_letter(index + 1)


def header_coordinates(columns: int, row: int = 1) -> list[str]:
    """Cell coordinates of the first ``columns`` cells of ``row``."""
    return [f"{column_label(i)}{row}" for i in range(columns)]

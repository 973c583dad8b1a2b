# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Positional block extractor for Clinic Dashboard.

Each function in this module reads one kind of block (see ``layout.py``) from
the tokenized export and returns typed records. The functions share the same
failure policy:

- a malformed numeric cell becomes 0.0 (``clean_number``),
- a header cell that is not a month is skipped, without shifting the other
  columns,
- a missing line or a missing cell is treated as empty,
- a block whose lines lie beyond the end of the export is omitted
  (the reader returns None or an empty result).

No function in this module raises on malformed input.

Column resolution
-----------------
``read_month_columns`` pairs every month column of the layout with the
``MonthKey`` found in the block's header line. The year of a column is the
year written in the header cell when there is one, otherwise
``base_year + year_offset`` of the column group. All readers then iterate
over these (column, key) pairs, so a stray caption in the header never
moves a month onto the wrong column.
"""

import re
from collections.abc import Sequence
from typing import Optional

from .layout import BlockSpec, SheetLayout
from .model import (
    AverageStats,
    Balances,
    DailyIncomePoint,
    ExpenseCategory,
    MonthKey,
    SummaryRecord,
)
from .normalize import MONTH_NAMES, clean_number, parse_month_header

Rows = Sequence[Sequence[str]]
MonthColumns = list[tuple[int, MonthKey]]

_LEADING_INT = re.compile(r"^[+-]?\d+")

# ---------------------------------------------------------------------------
# Cell access helpers
# ---------------------------------------------------------------------------


def _row(rows: Rows, index: Optional[int]) -> Optional[Sequence[str]]:
    """Return line ``index`` or None when it does not exist."""
    if index is None or index < 0 or index >= len(rows):
        return None
    return rows[index]


def _cell(row: Optional[Sequence[str]], col: int) -> str:
    """Return the cell at ``col`` or "" when the row is too short."""
    if row is None or col < 0 or col >= len(row):
        return ""
    return row[col]


def _is_data_label(label: str, sentinels: Sequence[str]) -> bool:
    """False for empty labels, "-" placeholders and section captions."""
    if not label or label == "-":
        return False
    lowered = label.lower()
    return not any(fragment in lowered for fragment in sentinels)


def _parse_day(cell: str) -> Optional[int]:
    """Leading integer of a cell (like JavaScript parseInt), if it is a day."""
    m = _LEADING_INT.match(cell.strip())
    if m is None:
        return None
    day = int(m.group(0))
    if not 1 <= day <= 31:
        return None
    return day


# ---------------------------------------------------------------------------
# Month headers
# ---------------------------------------------------------------------------


def find_header_year(rows: Rows, layout: SheetLayout) -> Optional[int]:
    """
    Return the base year written in line 0, if any header carries a year.

    The year of the first dated column is shifted back by the year offset of
    its column group, so that the result always designates the first year of
    the sheet.
    """
    header = _row(rows, 0)
    if header is None:
        return None

    for col, year_offset in layout.month_columns():
        name, year = parse_month_header(_cell(header, col))
        if name and year is not None:
            return year - year_offset
    return None


def read_month_columns(
    rows: Rows,
    header_row: Optional[int],
    layout: SheetLayout,
    base_year: int,
) -> MonthColumns:
    """
    Pair each month column of the layout with its MonthKey.

    Columns whose header does not normalize to a month are left out. An
    absent header line yields an empty list.
    """
    header = _row(rows, header_row)
    if header is None:
        return []

    columns: MonthColumns = []
    for col, year_offset in layout.month_columns():
        name, year = parse_month_header(_cell(header, col))
        if not name:
            continue
        if year is None:
            year = base_year + year_offset
        columns.append((col, MonthKey(year, MONTH_NAMES.index(name) + 1)))
    return columns


# ---------------------------------------------------------------------------
# Block readers
# ---------------------------------------------------------------------------


def extract_monthly_totals(
    rows: Rows, block: BlockSpec, columns: MonthColumns
) -> list[SummaryRecord]:
    """
    Read the income / expense / delta lines into SummaryRecords.

    One record per resolved month column, in column order. ``delta`` is
    taken from its own line, never recomputed.
    """
    income_row = _row(rows, block.first_row)
    expense_row = _row(rows, block.first_row + 1)
    delta_row = _row(rows, block.first_row + 2)

    return [
        SummaryRecord(
            month=key.name,
            year=key.year,
            income=clean_number(_cell(income_row, col)),
            expense=clean_number(_cell(expense_row, col)),
            delta=clean_number(_cell(delta_row, col)),
        )
        for col, key in columns
    ]


def extract_categories(
    rows: Rows, block: BlockSpec, columns: MonthColumns
) -> dict[MonthKey, list[ExpenseCategory]]:
    """
    Read a category breakdown (income or expense structure).

    For every data line and every month column, a non-zero amount becomes an
    ExpenseCategory appended to that month's list (line order preserved).
    A zero amount means "no entry" and is not stored.
    """
    result: dict[MonthKey, list[ExpenseCategory]] = {}

    for index in block.rows():
        row = _row(rows, index)
        if row is None:
            continue

        label = _cell(row, block.label_col)
        if not _is_data_label(label, block.sentinels):
            continue

        for col, key in columns:
            amount = clean_number(_cell(row, col))
            if amount == 0:
                continue
            result.setdefault(key, []).append(ExpenseCategory(name=label, amount=amount))

    return result


def extract_daily_income(
    rows: Rows, block: BlockSpec, columns: MonthColumns
) -> dict[MonthKey, list[DailyIncomePoint]]:
    """
    Read the daily revenue grid (one line per day, one column per month).

    Lines whose first cell is not a day number (1..31) are skipped. Zero
    amounts are kept: a day without revenue is still a point of the series.
    Points keep the source line order.
    """
    result: dict[MonthKey, list[DailyIncomePoint]] = {}

    for index in block.rows():
        row = _row(rows, index)
        if row is None:
            continue

        day = _parse_day(_cell(row, block.label_col))
        if day is None:
            continue

        for col, key in columns:
            amount = clean_number(_cell(row, col))
            result.setdefault(key, []).append(DailyIncomePoint(day=day, amount=amount))

    return result


def extract_averages(
    rows: Rows, block: BlockSpec, columns: MonthColumns, yearly_col: int
) -> Optional[tuple[dict[MonthKey, AverageStats], AverageStats]]:
    """
    Read the revenue / expense / profit average lines.

    Returns the per-month averages and the yearly aggregate (read at
    ``yearly_col``), or None when the block lies beyond the end of the
    export.
    """
    if block.last_row >= len(rows):
        return None

    revenue_row = rows[block.first_row]
    expense_row = rows[block.first_row + 1]
    profit_row = rows[block.first_row + 2]

    def _stats(col: int) -> AverageStats:
        return AverageStats(
            revenue=clean_number(_cell(revenue_row, col)),
            expense=clean_number(_cell(expense_row, col)),
            profit=clean_number(_cell(profit_row, col)),
        )

    per_month = {key: _stats(col) for col, key in columns}
    return per_month, _stats(yearly_col)


def extract_balances(rows: Rows, block: BlockSpec) -> Optional[Balances]:
    """
    Read the total funds / cash / bank account lines.

    Every value is read from its own cell; ``total_funds`` is not derived
    from the two others. Returns None when the block lies beyond the end of
    the export.
    """
    if block.last_row >= len(rows):
        return None

    return Balances(
        total_funds=clean_number(_cell(rows[block.first_row], block.value_col)),
        cash=clean_number(_cell(rows[block.first_row + 1], block.value_col)),
        bank_account=clean_number(_cell(rows[block.first_row + 2], block.value_col)),
    )

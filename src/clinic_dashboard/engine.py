# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core parsing engine for Clinic Dashboard.

This module turns the raw text of the spreadsheet export into a
``DashboardData`` snapshot, and selects the data of one month for display.

1. Parsing
   -------
   ``parse_summary_csv(raw_text)`` is the single entry point of the parsing
   pipeline:
   - the text is split into trimmed, non-empty lines and cells (io.py),
   - the sheet layout is chosen (explicit, or detected from line 0),
   - the base year is resolved (explicit, from the headers, or today),
   - every block of the layout is read by its extractor (extract.py),
   - the results are merged into a fresh DashboardData.

   The function is pure and total: the same text always gives an equal
   result, malformed cells read as zero, blocks beyond the end of the file
   are left at their defaults, and an export shorter than the layout's
   minimum line count gives ``DashboardData()``.

2. Month snapshot
   --------------
   ``month_snapshot(data, key)`` gathers what the dashboard shows for one
   month: the monthly totals, daily averages, category breakdowns sorted by
   amount (descending) and the daily series with its trend line.

Notes
-----
Fetching the export over HTTP and refreshing it periodically belong to
``feed.py``; this module never performs I/O.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from . import extract
from .io import tokenize
from .layout import SheetLayout, detect_layout
from .model import (
    AverageStats,
    DashboardData,
    ExpenseCategory,
    MonthKey,
    SummaryRecord,
)
from .trend import TrendPoint, compute_trend

logger = logging.getLogger(__name__)


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def _merge_lists(target: dict, source: dict) -> None:
    for key, items in source.items():
        target.setdefault(key, []).extend(items)


def parse_summary_csv(
    raw_text: str,
    layout: Optional[SheetLayout] = None,
    base_year: Optional[int] = None,
) -> DashboardData:
    """
    Parse the spreadsheet export into a DashboardData snapshot.

    Parameters
    ----------
    raw_text:
        Full text of the export.
    layout:
        Sheet layout to use. None detects single-year vs dual-year from the
        month header line.
    base_year:
        Year of the first month column group. None takes the first year
        written in the month headers, or the current year when the headers
        carry none.

    Returns
    -------
    DashboardData
        A new instance; ``DashboardData()`` when the export has fewer lines
        than ``layout.min_lines``.
    """
    rows = tokenize(raw_text)

    if layout is None:
        layout = detect_layout(rows)

    data = DashboardData()
    if len(rows) < layout.min_lines:
        logger.debug(
            "Export has %d non-empty lines (< %d), returning empty data.",
            len(rows),
            layout.min_lines,
        )
        return data

    if base_year is None:
        base_year = extract.find_header_year(rows, layout) or _today().year

    # Header lines are shared by several blocks: resolve each one once.
    columns_by_header: dict[Optional[int], extract.MonthColumns] = {}

    def _columns(header_row: Optional[int]) -> extract.MonthColumns:
        if header_row not in columns_by_header:
            columns_by_header[header_row] = extract.read_month_columns(
                rows, header_row, layout, base_year
            )
        return columns_by_header[header_row]

    for block in layout.blocks:
        if block.kind == "monthly_totals":
            data.monthly.extend(
                extract.extract_monthly_totals(rows, block, _columns(block.header_row))
            )

        elif block.kind == "income_categories":
            _merge_lists(
                data.detailed_income,
                extract.extract_categories(rows, block, _columns(block.header_row)),
            )

        elif block.kind == "expense_categories":
            _merge_lists(
                data.detailed_expenses,
                extract.extract_categories(rows, block, _columns(block.header_row)),
            )

        elif block.kind == "daily_income":
            _merge_lists(
                data.daily_income,
                extract.extract_daily_income(rows, block, _columns(block.header_row)),
            )

        elif block.kind == "averages":
            averages = extract.extract_averages(
                rows, block, _columns(block.header_row), layout.yearly_col
            )
            if averages is None:
                logger.debug("Block %r lies beyond the export, skipped.", block.name)
                continue
            per_month, yearly = averages
            data.daily_averages.update(per_month)
            data.yearly_averages = yearly

        elif block.kind == "balances":
            balances = extract.extract_balances(rows, block)
            if balances is None:
                logger.debug("Block %r lies beyond the export, skipped.", block.name)
                continue
            data.balances = balances

    return data


# ---------------------------------------------------------------------------
# Month selection
# ---------------------------------------------------------------------------


@dataclass
class MonthSnapshot:
    """Everything the dashboard displays for one selected month."""

    key: MonthKey
    summary: Optional[SummaryRecord]
    daily_average: AverageStats
    expenses: list[ExpenseCategory] = field(default_factory=list)
    income: list[ExpenseCategory] = field(default_factory=list)
    daily: list[TrendPoint] = field(default_factory=list)


def _sorted_desc(categories: list[ExpenseCategory]) -> list[ExpenseCategory]:
    return sorted(categories, key=lambda c: c.amount, reverse=True)


def month_snapshot(
    data: DashboardData, key: Optional[MonthKey] = None
) -> Optional[MonthSnapshot]:
    """
    Select the data of one month.

    When ``key`` is None, the last month of ``data.monthly`` is selected
    (the most recent column of the sheet). Returns None when no month is
    available at all.

    The trend is recomputed from the daily series of the selected month on
    every call.
    """
    if key is None:
        months = data.months() or data.all_months()
        if not months:
            return None
        key = months[-1]

    summary = next((r for r in data.monthly if r.key == key), None)

    return MonthSnapshot(
        key=key,
        summary=summary,
        daily_average=data.daily_averages.get(key, AverageStats()),
        expenses=_sorted_desc(data.detailed_expenses.get(key, [])),
        income=_sorted_desc(data.detailed_income.get(key, [])),
        daily=compute_trend(data.daily_income.get(key, [])),
    )

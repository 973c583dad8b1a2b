# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Data model for the dashboard side of Clinic Dashboard.

Every record produced by the parser is a plain dataclass, so two parses of
the same export compare equal field by field.

Time-keyed mappings all use ``MonthKey`` (year + month number) rather than
month-name strings. The month name and the "year-month" label are derived
from it.

Records
-------
- MonthKey:          composite (year, month) key,
- SummaryRecord:     monthly totals (income, expense, delta),
- ExpenseCategory:   one named amount of a category breakdown,
- DailyIncomePoint:  revenue of one day,
- AverageStats:      average revenue / expense / profit,
- Balances:          total funds, cash, bank account,
- DashboardData:     the aggregate root returned by ``parse_summary_csv``.
"""

from dataclasses import dataclass, field
from typing import Optional

from .normalize import MONTH_NAMES, month_index


@dataclass(frozen=True, order=True)
class MonthKey:
    """Year and month number (1..12) of a monthly column."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month number out of range: {self.month!r}")

    @property
    def name(self) -> str:
        """Canonical nominative month name (e.g. 'январь')."""
        return MONTH_NAMES[self.month - 1]

    @property
    def code(self) -> int:
        """Sortable integer code: year * 100 + month."""
        return self.year * 100 + self.month

    def __str__(self) -> str:
        return f"{self.year}-{self.name}"


@dataclass
class SummaryRecord:
    """
    Monthly totals for one month column.

    ``delta`` is read from its own source row. It usually equals
    ``income - expense`` but the sheet may carry adjustments, so it is never
    recomputed.
    """

    month: str
    year: int
    income: float
    expense: float
    delta: float

    @property
    def key(self) -> MonthKey:
        return MonthKey(self.year, month_index(self.month))


@dataclass
class ExpenseCategory:
    """One row of a category breakdown for a given month (amount != 0)."""

    name: str
    amount: float


@dataclass
class DailyIncomePoint:
    """Revenue of one day of the month."""

    day: int
    amount: float


@dataclass
class AverageStats:
    """Average revenue, expense and profit (per day, or over the year)."""

    revenue: float = 0.0
    expense: float = 0.0
    profit: float = 0.0


@dataclass
class Balances:
    """
    Current balances.

    ``total_funds`` is a separate source cell and is not required to equal
    ``cash + bank_account``.
    """

    total_funds: float = 0.0
    cash: float = 0.0
    bank_account: float = 0.0


@dataclass
class DashboardData:
    """
    Aggregate root of a parsed export.

    A default instance (all lists/mappings empty, all numbers zero) is the
    documented result for an empty or too short export.
    """

    monthly: list[SummaryRecord] = field(default_factory=list)
    balances: Balances = field(default_factory=Balances)
    detailed_expenses: dict[MonthKey, list[ExpenseCategory]] = field(
        default_factory=dict
    )
    detailed_income: dict[MonthKey, list[ExpenseCategory]] = field(
        default_factory=dict
    )
    daily_income: dict[MonthKey, list[DailyIncomePoint]] = field(
        default_factory=dict
    )
    daily_averages: dict[MonthKey, AverageStats] = field(default_factory=dict)
    yearly_averages: AverageStats = field(default_factory=AverageStats)

    def is_empty(self) -> bool:
        """True when the instance equals the default (nothing was parsed)."""
        return self == DashboardData()

    def months(self) -> list[MonthKey]:
        """Month keys in the column order of the monthly totals."""
        return [record.key for record in self.monthly]

    def all_months(self) -> list[MonthKey]:
        """Every month key present in any block, in chronological order."""
        keys = set(self.months())
        for mapping in (
            self.detailed_expenses,
            self.detailed_income,
            self.daily_income,
            self.daily_averages,
        ):
            keys.update(mapping)
        return sorted(keys)

    def find_month(self, name: str, year: Optional[int] = None) -> Optional[MonthKey]:
        """
        Resolve a month name (any supported form) to a key of this dataset.

        When ``year`` is None and the month appears for several years, the
        latest one is returned.
        """
        number = month_index(name)
        if number == 0:
            return None

        candidates = [
            key
            for key in self.all_months()
            if key.month == number and (year is None or key.year == year)
        ]
        if not candidates:
            return None
        return max(candidates)

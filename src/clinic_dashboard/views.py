# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for Clinic Dashboard.

This module turns parsed dashboard data and margin services into pandas
DataFrames ready for display (``df.to_string``) or CSV export
(``df.to_csv``). It performs no computation beyond simple derived columns
(shares, gaps, margin figures).

The main views are:

- monthly:     one row per month column (income, expense, delta, delta_gap),
- categories:  one month's expense or income breakdown, largest first,
- daily:       one month's daily revenue with its trend line,
- averages:    per-day averages by month, plus the yearly aggregate,
- balances:    the three current balances,
- services:    the margin calculator catalog (one row per service),
- segments:    the price breakdown of one service.
"""

from collections.abc import Sequence
from typing import Optional

import pandas as pd

from .margin import (
    DEFAULT_TARGET_MARGIN,
    MarginService,
    calculate_margin,
    expense_lines,
)
from .model import AverageStats, Balances, DashboardData, ExpenseCategory, MonthKey
from .segments import GradientSegment
from .trend import TrendPoint


def format_rub(value: float, decimals: int = 0) -> str:
    """
    Format an amount in rubles with a space as thousands separator.

    Examples: ``format_rub(1234567)`` -> ``"1 234 567 ₽"``,
    ``format_rub(-1500.5, 2)`` -> ``"-1 500.50 ₽"``.
    """
    text = f"{value:,.{decimals}f}".replace(",", " ")
    return f"{text} ₽"


def monthly_to_dataframe(data: DashboardData) -> pd.DataFrame:
    """
    One row per monthly totals column, in sheet order.

    ``delta_gap`` is ``delta - (income - expense)``: the adjustment carried
    by the sheet's own delta row (usually 0).
    """
    columns = ["month", "year", "income", "expense", "delta", "delta_gap"]
    rows = [
        {
            "month": record.month,
            "year": record.year,
            "income": record.income,
            "expense": record.expense,
            "delta": record.delta,
            "delta_gap": record.delta - (record.income - record.expense),
        }
        for record in data.monthly
    ]
    return pd.DataFrame(rows, columns=columns)


def categories_to_dataframe(categories: Sequence[ExpenseCategory]) -> pd.DataFrame:
    """
    Category breakdown sorted by amount, descending.

    ``share_pct`` is the share of each category in the month total (0 when
    the total is 0).
    """
    df = pd.DataFrame(
        [{"name": c.name, "amount": c.amount} for c in categories],
        columns=["name", "amount"],
    )
    if df.empty:
        df["share_pct"] = pd.Series(dtype=float)
        return df

    df = df.sort_values("amount", ascending=False, kind="stable").reset_index(drop=True)
    total = float(df["amount"].sum())
    df["share_pct"] = df["amount"] / total * 100 if total else 0.0
    return df


def daily_to_dataframe(points: Sequence[TrendPoint]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"day": p.day, "amount": p.amount, "trend": p.trend} for p in points],
        columns=["day", "amount", "trend"],
    )


def averages_to_dataframe(
    daily_averages: dict[MonthKey, AverageStats],
    yearly: Optional[AverageStats] = None,
) -> pd.DataFrame:
    """
    Per-day averages by month (chronological), with an optional last row
    labelled "год" for the yearly aggregate.
    """
    columns = ["month", "year", "revenue", "expense", "profit"]
    rows = [
        {
            "month": key.name,
            "year": key.year,
            "revenue": stats.revenue,
            "expense": stats.expense,
            "profit": stats.profit,
        }
        for key, stats in sorted(daily_averages.items())
    ]
    if yearly is not None:
        rows.append(
            {
                "month": "год",
                "year": None,
                "revenue": yearly.revenue,
                "expense": yearly.expense,
                "profit": yearly.profit,
            }
        )
    df = pd.DataFrame(rows, columns=columns)
    df["year"] = df["year"].astype("Int64")
    return df


def balances_to_dataframe(balances: Balances) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"name": "total_funds", "amount": balances.total_funds},
            {"name": "cash", "amount": balances.cash},
            {"name": "bank_account", "amount": balances.bank_account},
        ],
        columns=["name", "amount"],
    )


def services_to_dataframe(
    services: Sequence[MarginService],
    target_margin_percent: float = DEFAULT_TARGET_MARGIN,
) -> pd.DataFrame:
    """
    Margin calculator catalog, one row per service.

    Columns: id, name, price, two columns per fixed expense slot (amount
    and ``<slot>_pct``), custom_expenses (sum of custom lines),
    total_expenses, profit, margin_pct, recommended_price (at
    ``target_margin_percent``).
    """
    columns = [
        "id",
        "name",
        "price",
        "doctor_salary",
        "doctor_salary_pct",
        "materials",
        "materials_pct",
        "acquiring",
        "acquiring_pct",
        "custom_expenses",
        "total_expenses",
        "profit",
        "margin_pct",
        "recommended_price",
    ]

    rows = []
    for service in services:
        calc = calculate_margin(
            service.current_price,
            service.expenses,
            desired_margin_percent=target_margin_percent,
        )
        rows.append(
            {
                "id": service.id,
                "name": service.name,
                "price": service.current_price,
                "doctor_salary": service.expenses.doctor_salary.rub,
                "doctor_salary_pct": service.expenses.doctor_salary.percent,
                "materials": service.expenses.materials.rub,
                "materials_pct": service.expenses.materials.percent,
                "acquiring": service.expenses.acquiring.rub,
                "acquiring_pct": service.expenses.acquiring.percent,
                "custom_expenses": sum(c.rub for c in service.expenses.custom),
                "total_expenses": calc.total_expenses,
                "profit": calc.current_profit,
                "margin_pct": calc.current_margin_percent,
                "recommended_price": calc.recommended_price,
            }
        )
    return pd.DataFrame(rows, columns=columns)


def expenses_to_dataframe(service: MarginService) -> pd.DataFrame:
    """Expense lines of one service: target, label, rub, percent."""
    return pd.DataFrame(
        list(expense_lines(service.expenses)),
        columns=["target", "label", "rub", "percent"],
    )


def segments_to_dataframe(segments: Sequence[GradientSegment]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"label": s.label, "percent": s.percent, "color": s.color} for s in segments],
        columns=["label", "percent", "color"],
    )

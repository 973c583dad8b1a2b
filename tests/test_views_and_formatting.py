from dataclasses import replace

import pytest

from clinic_dashboard.engine import month_snapshot, parse_summary_csv
from clinic_dashboard.margin import ExpenseItem, ServiceExpenses, new_service
from clinic_dashboard.model import AverageStats, Balances, ExpenseCategory, MonthKey
from clinic_dashboard.segments import create_gradient_segments
from clinic_dashboard.views import (
    averages_to_dataframe,
    balances_to_dataframe,
    categories_to_dataframe,
    daily_to_dataframe,
    expenses_to_dataframe,
    format_rub,
    monthly_to_dataframe,
    segments_to_dataframe,
    services_to_dataframe,
)


def test_format_rub():
    assert format_rub(1234567) == "1 234 567 ₽"
    assert format_rub(-1500.5, 2) == "-1 500.50 ₽"
    assert format_rub(0) == "0 ₽"


def test_monthly_view_exposes_delta_gap(summary_text):
    """The sheet's delta row is kept as is; the gap shows any adjustment."""
    data = parse_summary_csv(summary_text, base_year=2025)
    df = monthly_to_dataframe(data)

    assert list(df.columns) == ["month", "year", "income", "expense", "delta", "delta_gap"]
    assert len(df) == 12
    assert df.loc[0, "delta_gap"] == 0
    # March: 41 000 in the sheet vs 90 000.50 - 50 000 computed.
    assert df.loc[2, "delta_gap"] == pytest.approx(999.5)


def test_categories_view_is_sorted_with_shares():
    df = categories_to_dataframe(
        [ExpenseCategory("Аренда", 25.0), ExpenseCategory("Зарплата", 75.0)]
    )

    assert list(df["name"]) == ["Зарплата", "Аренда"]
    assert list(df["share_pct"]) == pytest.approx([75.0, 25.0])


def test_empty_categories_view():
    df = categories_to_dataframe([])
    assert df.empty
    assert list(df.columns) == ["name", "amount", "share_pct"]


def test_daily_view(summary_text):
    data = parse_summary_csv(summary_text, base_year=2025)
    snapshot = month_snapshot(data, MonthKey(2025, 1))
    df = daily_to_dataframe(snapshot.daily)

    assert list(df.columns) == ["day", "amount", "trend"]
    assert len(df) == 31
    # January grows by 100 a day: the trend matches the amounts.
    assert df.loc[30, "trend"] == pytest.approx(3100)


def test_averages_view_with_yearly_row():
    df = averages_to_dataframe(
        {
            MonthKey(2025, 2): AverageStats(2, 1, 1),
            MonthKey(2025, 1): AverageStats(4, 2, 2),
        },
        AverageStats(3, 1.5, 1.5),
    )

    assert list(df["month"]) == ["январь", "февраль", "год"]
    assert df.loc[2, "revenue"] == 3
    # Years stay integers; the yearly row has none.
    assert str(df["year"].dtype) == "Int64"
    assert df.loc[0, "year"] == 2025
    assert df["year"].isna().tolist() == [False, False, True]
    assert "2025.0" not in df.to_string(index=False)


def test_balances_view():
    df = balances_to_dataframe(Balances(100, 30, 60))
    assert dict(zip(df["name"], df["amount"])) == {
        "total_funds": 100,
        "cash": 30,
        "bank_account": 60,
    }


def test_services_view():
    service = replace(
        new_service("Приём"),
        current_price=1000.0,
        expenses=ServiceExpenses(
            doctor_salary=ExpenseItem(300, 30),
            materials=ExpenseItem(150, 15),
        ),
    )

    df = services_to_dataframe([service], target_margin_percent=55)

    row = df.iloc[0]
    assert row["total_expenses"] == 450
    assert row["doctor_salary"] == 300
    assert row["doctor_salary_pct"] == 30
    assert row["materials_pct"] == 15
    assert row["acquiring_pct"] == 0
    assert row["profit"] == 550
    assert row["margin_pct"] == pytest.approx(55)
    assert row["recommended_price"] == pytest.approx(1000)

    expenses = expenses_to_dataframe(service)
    assert list(expenses["target"]) == ["doctor_salary", "materials", "acquiring"]

    segments = segments_to_dataframe(
        create_gradient_segments(1000, service.expenses, 55)
    )
    assert list(segments["label"])[-1] == "Маржа"

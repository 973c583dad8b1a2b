import pytest

from clinic_dashboard.model import DailyIncomePoint
from clinic_dashboard.trend import compute_trend


def _series(*pairs):
    return [DailyIncomePoint(day, amount) for day, amount in pairs]


def test_empty_series():
    assert compute_trend([]) == []


def test_single_point_trend_equals_amount():
    result = compute_trend(_series((5, 100)))
    assert [p.trend for p in result] == [100]


def test_linear_series_is_fitted_exactly():
    result = compute_trend(_series((1, 10), (2, 20), (3, 30)))

    assert [p.trend for p in result] == pytest.approx([10, 20, 30])
    assert result[1].trend == pytest.approx(20)


def test_all_zero_series_has_zero_trend():
    result = compute_trend(_series((1, 0), (2, 0), (3, 0)))
    assert [p.trend for p in result] == [0, 0, 0]


def test_trailing_empty_days_are_projected_from_the_fit():
    result = compute_trend(_series((1, 10), (2, 20), (3, 30), (4, 0), (5, 0)))

    # Fit uses days 1..3 only; days 4 and 5 continue the line.
    assert result[3].trend == pytest.approx(40)
    assert result[4].trend == pytest.approx(50)
    assert result[4].amount == 0


def test_projection_is_clamped_at_zero():
    result = compute_trend(_series((1, 30), (2, 20), (3, 10), (4, 0), (5, 0)))

    assert result[3].trend == pytest.approx(0)
    assert result[4].trend == 0


def test_same_day_points_fall_back_to_amounts():
    result = compute_trend(_series((3, 10), (3, 30)))
    assert [p.trend for p in result] == [10, 30]


def test_input_order_is_kept():
    result = compute_trend(_series((3, 30), (1, 10), (2, 20)))
    assert [p.day for p in result] == [3, 1, 2]

# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Daily revenue trend for Clinic Dashboard.

The trend line drawn over the daily revenue of a month is an ordinary least
squares fit ``trend = m * day + b``. The fit only uses the days up to the
last day with revenue, because the remaining days of the current month are
still empty in the export; those days are projected from the fitted line.
Revenue cannot be negative, so projected values are clamped at zero.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from .model import DailyIncomePoint


@dataclass
class TrendPoint:
    """A daily revenue point with its fitted trend value."""

    day: int
    amount: float
    trend: float


def compute_trend(series: Sequence[DailyIncomePoint]) -> list[TrendPoint]:
    """
    Attach a linear trend value to every point of a daily series.

    Steps:
        1. Find the last point with ``amount > 0``. If there is none, every
           trend value is 0.
        2. Fit the OLS line on the points up to and including that one,
           using the closed-form slope and intercept.
        3. If the denominator ``n * Σx² - (Σx)²`` is zero (a single point,
           or all points on the same day), the trend equals the amount of
           each point.
        4. Otherwise every point, fitted or not, gets ``max(0, m * day + b)``.

    The input order is kept; the series is not sorted.
    """
    if not series:
        return []

    last_with_data = -1
    for i in range(len(series) - 1, -1, -1):
        if series[i].amount > 0:
            last_with_data = i
            break

    if last_with_data == -1:
        return [TrendPoint(p.day, p.amount, 0.0) for p in series]

    fitted = series[: last_with_data + 1]
    n = len(fitted)
    sum_x = sum(p.day for p in fitted)
    sum_y = sum(p.amount for p in fitted)
    sum_xy = sum(p.day * p.amount for p in fitted)
    sum_x2 = sum(p.day * p.day for p in fitted)

    # Integer arithmetic: days are ints, so the zero test is exact
    denom = n * sum_x2 - sum_x * sum_x
    if denom == 0:
        return [TrendPoint(p.day, p.amount, p.amount) for p in series]

    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n

    return [
        TrendPoint(p.day, p.amount, max(0.0, slope * p.day + intercept))
        for p in series
    ]

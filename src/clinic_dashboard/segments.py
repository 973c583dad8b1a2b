# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Gradient segments for Clinic Dashboard.

A price is drawn as a horizontal bar split into proportional segments: one
per expense line, then the margin. Each segment carries its share of the
price and a color. The shares are not renormalized: when the expenses and
the margin do not add up to 100 % (rounding, or a price below the sum of
its parts), the gap is shown as is.
"""

from dataclasses import dataclass

from .margin import (
    FIXED_LABELS,
    FIXED_SLOTS,
    GOOD_MARGIN_THRESHOLD,
    WARNING_MARGIN_THRESHOLD,
    ServiceExpenses,
    calculate_percent,
    margin_color,
)

MARGIN_LABEL = "Маржа"

SLOT_COLORS: dict[str, str] = {
    "doctor_salary": "#60a5fa",  # blue
    "materials": "#fbbf24",  # yellow
    "acquiring": "#fb923c",  # orange
}
CUSTOM_COLOR = "#a78bfa"  # purple


@dataclass(frozen=True)
class GradientSegment:
    """One labeled slice of a price breakdown."""

    label: str
    percent: float
    color: str


def create_gradient_segments(
    current_price: float,
    expenses: ServiceExpenses,
    margin_percent: float,
    good_threshold: float = GOOD_MARGIN_THRESHOLD,
    warning_threshold: float = WARNING_MARGIN_THRESHOLD,
) -> list[GradientSegment]:
    """
    Split a price into expense segments followed by a margin segment.

    Returns an empty list when the price is zero. Otherwise the segments
    are, in order: the three fixed expense lines, every custom line, then
    the margin, colored by ``margin_color``.
    """
    if current_price == 0:
        return []

    segments = [
        GradientSegment(
            label=FIXED_LABELS[slot],
            percent=calculate_percent(getattr(expenses, slot).rub, current_price),
            color=SLOT_COLORS[slot],
        )
        for slot in FIXED_SLOTS
    ]

    segments.extend(
        GradientSegment(
            label=item.name,
            percent=calculate_percent(item.rub, current_price),
            color=CUSTOM_COLOR,
        )
        for item in expenses.custom
    )

    segments.append(
        GradientSegment(
            label=MARGIN_LABEL,
            percent=margin_percent,
            color=margin_color(margin_percent, good_threshold, warning_threshold),
        )
    )
    return segments

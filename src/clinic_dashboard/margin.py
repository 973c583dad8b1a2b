# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Margin calculator for Clinic Dashboard.

A service (a medical act, a consultation, ...) has a current price and an
expense breakdown made of three fixed lines and any number of custom lines:

    doctor_salary   doctor's pay for the act
    materials       consumables
    acquiring       card payment processing fee
    custom          named extra lines (rent share, lab work, ...)

Every expense line stores a pair (rub, percent) where ``percent`` is the
share of the current price. The pair is kept consistent by the editing
helpers: the field edited last is authoritative and the other one is
recomputed against the current price.

Margin is the profit as a share of the price:

    margin % = (price - total expenses) / price * 100

and the recommended price for a target margin is the price at which the
current expenses leave exactly that margin:

    recommended price = total expenses / (1 - target / 100)

A target of 100 % or more can never be reached (it would require expenses
to be zero or negative); in that case ``recommended_price`` is None.

All functions are pure. Records are frozen dataclasses: editing helpers
return new instances.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Literal, Optional

FIXED_SLOTS: tuple[str, ...] = ("doctor_salary", "materials", "acquiring")

FIXED_LABELS: dict[str, str] = {
    "doctor_salary": "ЗП врача",
    "materials": "Расходники",
    "acquiring": "Эквайринг",
}

EditedField = Literal["rub", "percent"]

DEFAULT_TARGET_MARGIN = 55.0
GOOD_MARGIN_THRESHOLD = 50.0
WARNING_MARGIN_THRESHOLD = 45.0

GOOD_COLOR = "#10b981"
WARNING_COLOR = "#fbbf24"
BAD_COLOR = "#ef4444"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExpenseItem:
    """A fixed expense line as an absolute amount and a share of the price."""

    rub: float = 0.0
    percent: float = 0.0


@dataclass(frozen=True)
class CustomExpense:
    """A named, user-defined expense line."""

    id: str
    name: str
    rub: float = 0.0
    percent: float = 0.0


@dataclass(frozen=True)
class ServiceExpenses:
    """Full expense breakdown of a service."""

    doctor_salary: ExpenseItem = field(default_factory=ExpenseItem)
    materials: ExpenseItem = field(default_factory=ExpenseItem)
    acquiring: ExpenseItem = field(default_factory=ExpenseItem)
    custom: tuple[CustomExpense, ...] = ()


@dataclass(frozen=True)
class MarginService:
    """
    A priced service and its expense breakdown.

    ``id`` is opaque. A new service starts with a zero price and zero
    expenses (see ``new_service``).
    """

    id: str
    name: str
    current_price: float
    expenses: ServiceExpenses
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class MarginCalculation:
    """
    Result of ``calculate_margin``.

    ``recommended_price`` is None when no target margin was requested or
    when the target is 100 % or more. ``new_profit`` and
    ``new_margin_percent`` are None when no new price was given.
    """

    total_expenses: float
    current_profit: float
    current_margin_percent: float
    recommended_price: Optional[float] = None
    new_profit: Optional[float] = None
    new_margin_percent: Optional[float] = None


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def calculate_total_expenses(expenses: ServiceExpenses) -> float:
    """Sum of the three fixed lines and all custom lines (in rub)."""
    fixed = expenses.doctor_salary.rub + expenses.materials.rub + expenses.acquiring.rub
    return fixed + sum(item.rub for item in expenses.custom)


def calculate_percent(part: float, total: float) -> float:
    """``part`` as a percentage of ``total`` (0 when total is 0)."""
    if total == 0:
        return 0.0
    return part / total * 100


def calculate_rub_from_percent(percent: float, total: float) -> float:
    """Absolute amount corresponding to ``percent`` of ``total``."""
    return percent / 100 * total


def recommended_price(total_expenses: float, target_margin_percent: float) -> Optional[float]:
    """
    Price at which ``total_expenses`` leaves ``target_margin_percent``.

    Returns None for targets of 100 % or more, which no price can reach.
    """
    if target_margin_percent >= 100:
        return None
    return total_expenses / (1 - target_margin_percent / 100)


def calculate_margin(
    current_price: float,
    expenses: ServiceExpenses,
    desired_margin_percent: Optional[float] = None,
    new_price: Optional[float] = None,
) -> MarginCalculation:
    """
    Compute the margin of a service at its current price.

    Args:
        current_price: Current selling price.
        expenses: Expense breakdown of the service.
        desired_margin_percent: Optional target margin; when given, the
            recommended price for that margin is computed (0 is a valid
            target and gives a price equal to the total expenses).
        new_price: Optional candidate price; when given, the profit and
            margin at that price are computed.

    Returns:
        A MarginCalculation. The function never raises for numeric input.
    """
    total = calculate_total_expenses(expenses)
    current_profit = current_price - total

    recommended: Optional[float] = None
    if desired_margin_percent is not None:
        recommended = recommended_price(total, desired_margin_percent)

    new_profit: Optional[float] = None
    new_margin: Optional[float] = None
    if new_price is not None:
        new_profit = new_price - total
        new_margin = calculate_percent(new_profit, new_price)

    return MarginCalculation(
        total_expenses=total,
        current_profit=current_profit,
        current_margin_percent=calculate_percent(current_profit, current_price),
        recommended_price=recommended,
        new_profit=new_profit,
        new_margin_percent=new_margin,
    )


def margin_color(
    margin_percent: float,
    good_threshold: float = GOOD_MARGIN_THRESHOLD,
    warning_threshold: float = WARNING_MARGIN_THRESHOLD,
) -> str:
    """Color of the margin: good (>= 50 %), warning (>= 45 %), bad otherwise."""
    if margin_percent >= good_threshold:
        return GOOD_COLOR
    if margin_percent >= warning_threshold:
        return WARNING_COLOR
    return BAD_COLOR


# ---------------------------------------------------------------------------
# Editing contract
# ---------------------------------------------------------------------------


def with_rub(item, rub: float, price: float):
    """Return ``item`` with a new absolute amount; the percent follows."""
    return replace(item, rub=rub, percent=calculate_percent(rub, price))


def with_percent(item, percent: float, price: float):
    """Return ``item`` with a new share of the price; the amount follows."""
    return replace(item, percent=percent, rub=calculate_rub_from_percent(percent, price))


def _apply_edit(item, edited: EditedField, value: float, price: float):
    if edited == "rub":
        return with_rub(item, value, price)
    if edited == "percent":
        return with_percent(item, value, price)
    raise ValueError(f"Unknown expense field: {edited!r}. Expected 'rub' or 'percent'.")


def edit_expense(
    expenses: ServiceExpenses,
    target: str,
    edited: EditedField,
    value: float,
    price: float,
) -> ServiceExpenses:
    """
    Edit one expense line and return the updated breakdown.

    Args:
        expenses: Current breakdown.
        target: One of FIXED_SLOTS, or the id of a custom expense.
        edited: Which field the user changed ("rub" or "percent").
        value: New value of that field.
        price: Current price of the service, used to recompute the other
            field of the pair.

    Raises:
        ValueError: If ``target`` matches no line or ``edited`` is invalid.
    """
    if target in FIXED_SLOTS:
        current = getattr(expenses, target)
        return replace(expenses, **{target: _apply_edit(current, edited, value, price)})

    if not any(item.id == target for item in expenses.custom):
        raise ValueError(f"Unknown expense line: {target!r}.")

    custom = tuple(
        _apply_edit(item, edited, value, price) if item.id == target else item
        for item in expenses.custom
    )
    return replace(expenses, custom=custom)


def reprice_expenses(expenses: ServiceExpenses, price: float) -> ServiceExpenses:
    """
    Recompute every percentage against a new price.

    Absolute amounts are kept: changing the price does not change what the
    doctor is paid or what the materials cost.
    """

    def _reprice(item):
        return replace(item, percent=calculate_percent(item.rub, price))

    return ServiceExpenses(
        doctor_salary=_reprice(expenses.doctor_salary),
        materials=_reprice(expenses.materials),
        acquiring=_reprice(expenses.acquiring),
        custom=tuple(_reprice(item) for item in expenses.custom),
    )


def add_custom_expense(expenses: ServiceExpenses, name: str) -> tuple[ServiceExpenses, CustomExpense]:
    """Append a zero-valued custom line; return the breakdown and the new line."""
    created = new_custom_expense(name)
    return replace(expenses, custom=expenses.custom + (created,)), created


def remove_custom_expense(expenses: ServiceExpenses, custom_id: str) -> ServiceExpenses:
    """
    Remove a custom line by id.

    Raises:
        ValueError: If no custom line has this id.
    """
    remaining = tuple(item for item in expenses.custom if item.id != custom_id)
    if len(remaining) == len(expenses.custom):
        raise ValueError(f"Unknown custom expense: {custom_id!r}.")
    return replace(expenses, custom=remaining)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def default_expenses() -> ServiceExpenses:
    """Breakdown with the three fixed lines at zero and no custom line."""
    return ServiceExpenses()


def new_custom_expense(name: str) -> CustomExpense:
    """A zero-valued custom expense line with a fresh id."""
    return CustomExpense(id=_new_id("custom"), name=name)


def new_service(name: str, now: Optional[datetime] = None) -> MarginService:
    """A new service: fresh id, zero price, zero expenses."""
    if now is None:
        now = datetime.now(timezone.utc).replace(microsecond=0)
    return MarginService(
        id=_new_id("service"),
        name=name,
        current_price=0.0,
        expenses=default_expenses(),
        created_at=now,
        updated_at=now,
    )


def expense_lines(expenses: ServiceExpenses) -> Iterable[tuple[str, str, float, float]]:
    """
    Iterate over (target, label, rub, percent) for every expense line.

    ``target`` is the slot name for fixed lines and the id for custom lines.
    """
    for slot in FIXED_SLOTS:
        item = getattr(expenses, slot)
        yield slot, FIXED_LABELS[slot], item.rub, item.percent
    for item in expenses.custom:
        yield item.id, item.name, item.rub, item.percent


# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for the margin calculator catalog.

This module sits between:
- the low-level database helpers in `db.py`,
- the pure margin arithmetic in `margin.py` and `segments.py`, and
- user-facing layers such as the CLI.

Responsibilities
----------------
1) CRUD Operations
   - Create a service (optional price, zero expenses).
   - Rename a service, change its price.
   - Edit one expense line by amount or by percentage.
   - Add and remove custom expense lines.
   - Delete a service.

2) Evaluation
   - Compute the margin of a service at its current price, the recommended
     price for the configured target margin, and the gradient segments used
     to draw the price breakdown.

Design notes
------------
- Every mutating operation loads the service, applies a pure helper from
  `margin.py` and saves the result once. There is no intermediate state.
- Changing the price keeps the absolute expense amounts and recomputes
  their percentages.
"""

from dataclasses import replace
from typing import Optional

from . import margin
from .config import AppConfig
from .db import DatabaseConfig
from .db import (
    delete_service as _db_delete_service,
)
from .db import (
    get_service as _db_get_service,
)
from .db import (
    insert_service as _db_insert_service,
)
from .db import (
    list_services as _db_list_services,
)
from .db import (
    save_service as _db_save_service,
)
from .margin import EditedField, MarginCalculation, MarginService
from .segments import GradientSegment, create_gradient_segments

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_db_config(app_config: AppConfig) -> DatabaseConfig:
    return app_config.database


def _clean_name(name: str, what: str = "Service") -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError(f"{what} name cannot be empty.")
    return cleaned


def _clean_price(price: float) -> float:
    """Validate a price and round it to kopecks, the precision it is stored at."""
    price = float(price)
    if price < 0:
        raise ValueError("Price cannot be negative.")
    return round(price, 2)


def _require_service(app_config: AppConfig, service_id: str) -> MarginService:
    service = _db_get_service(_get_db_config(app_config), service_id)
    if service is None:
        raise KeyError(f"Unknown service: {service_id!r}")
    return service


def _save(app_config: AppConfig, service: MarginService) -> MarginService:
    return _db_save_service(_get_db_config(app_config), service)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def create_service(
    app_config: AppConfig, name: str, price: Optional[float] = None
) -> MarginService:
    """
    Create and persist a new service with zero expenses.

    The price defaults to 0. Everything is validated before the single
    insert, so a rejected call leaves nothing behind.

    Raises
    ------
    ValueError
        If the name is empty or the price is negative.
    """
    service = margin.new_service(_clean_name(name))
    if price is not None:
        service = replace(service, current_price=_clean_price(price))
    return _db_insert_service(_get_db_config(app_config), service)


def load_service(app_config: AppConfig, service_id: str) -> MarginService:
    """
    Load a service by id.

    Raises
    ------
    KeyError
        If the id is unknown.
    """
    return _require_service(app_config, service_id)


def list_all_services(app_config: AppConfig) -> list[MarginService]:
    """Return every stored service, in creation order."""
    return _db_list_services(_get_db_config(app_config))


def rename_service(app_config: AppConfig, service_id: str, name: str) -> MarginService:
    service = _require_service(app_config, service_id)
    return _save(app_config, replace(service, name=_clean_name(name)))


def set_price(app_config: AppConfig, service_id: str, price: float) -> MarginService:
    """
    Change the current price of a service.

    Expense amounts (rub) are kept; percentages are recomputed against the
    new price.

    Raises
    ------
    ValueError
        If the price is negative.
    KeyError
        If the id is unknown.
    """
    price = _clean_price(price)
    service = _require_service(app_config, service_id)
    updated = replace(
        service,
        current_price=price,
        expenses=margin.reprice_expenses(service.expenses, price),
    )
    return _save(app_config, updated)


def edit_expense(
    app_config: AppConfig,
    service_id: str,
    target: str,
    edited: EditedField,
    value: float,
) -> MarginService:
    """
    Edit one expense line of a service.

    Parameters
    ----------
    target:
        A fixed slot ("doctor_salary", "materials", "acquiring") or the id
        of a custom line.
    edited:
        "rub" to set the amount, "percent" to set the share of the price.
    value:
        New value of the edited field; the other field is recomputed.

    Raises
    ------
    ValueError
        If the target or field is unknown.
    KeyError
        If the service id is unknown.
    """
    service = _require_service(app_config, service_id)
    expenses = margin.edit_expense(
        service.expenses, target, edited, float(value), service.current_price
    )
    return _save(app_config, replace(service, expenses=expenses))


def add_custom_expense(
    app_config: AppConfig, service_id: str, name: str
) -> tuple[MarginService, margin.CustomExpense]:
    """Append a zero-valued custom line; return the saved service and the line."""
    service = _require_service(app_config, service_id)
    expenses, created = margin.add_custom_expense(
        service.expenses, _clean_name(name, what="Expense")
    )
    return _save(app_config, replace(service, expenses=expenses)), created


def remove_custom_expense(
    app_config: AppConfig, service_id: str, custom_id: str
) -> MarginService:
    service = _require_service(app_config, service_id)
    expenses = margin.remove_custom_expense(service.expenses, custom_id)
    return _save(app_config, replace(service, expenses=expenses))


def delete_service(app_config: AppConfig, service_id: str) -> None:
    """
    Delete a service and its expense lines.

    Raises
    ------
    KeyError
        If the id is unknown.
    """
    if not _db_delete_service(_get_db_config(app_config), service_id):
        raise KeyError(f"Unknown service: {service_id!r}")


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def evaluate_service(
    app_config: AppConfig,
    service: MarginService,
    target_margin_percent: Optional[float] = None,
    new_price: Optional[float] = None,
) -> tuple[MarginCalculation, list[GradientSegment]]:
    """
    Compute the margin figures and price breakdown of a service.

    The target margin defaults to `[margin].target_margin_percent` from the
    configuration, and the margin segment is colored with the configured
    thresholds.
    """
    cfg = app_config.margin
    if target_margin_percent is None:
        target_margin_percent = cfg.target_margin_percent

    calc = margin.calculate_margin(
        service.current_price,
        service.expenses,
        desired_margin_percent=target_margin_percent,
        new_price=new_price,
    )
    segments = create_gradient_segments(
        service.current_price,
        service.expenses,
        calc.current_margin_percent,
        good_threshold=cfg.good_threshold,
        warning_threshold=cfg.warning_threshold,
    )
    return calc, segments

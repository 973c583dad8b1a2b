# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for Clinic Dashboard.

This module stores margin services (see ``margin.py``) in a SQLite database.
It is responsible for:

- Initializing the database schema.
- Inserting, loading, listing, saving and deleting services together with
  their expense lines.

The dashboard itself is never stored: it is rebuilt from the spreadsheet
export on every refresh.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) services
   One row per margin service.

   Columns:
   - id           TEXT    PRIMARY KEY      -- opaque id ("service_...")
   - name         TEXT    NOT NULL
   - price_cents  INTEGER NOT NULL         -- current price in cents
   - created_at   TEXT    NOT NULL         -- ISO datetime, UTC
   - updated_at   TEXT    NOT NULL         -- ISO datetime, UTC


2) service_expenses
   One row per expense line of a service: always the three fixed slots,
   plus one row per custom line.

   Columns:
   - id            INTEGER PRIMARY KEY AUTOINCREMENT
   - service_id    TEXT    NOT NULL  -- foreign key to services.id (cascade)
   - slot          TEXT    NOT NULL  -- "doctor_salary" | "materials" |
                                        "acquiring" | "custom"
   - custom_id     TEXT              -- id of a custom line, NULL otherwise
   - name          TEXT              -- label of a custom line
   - position      INTEGER NOT NULL  -- order of custom lines
   - amount        REAL    NOT NULL  -- absolute amount in rubles
   - percent       REAL    NOT NULL  -- share of the price


------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC).
- Prices are stored in cents. Expense amounts stay REAL, like their
  percentages, so an amount derived from a percentage survives a reload.
- Foreign key enforcement is explicitly enabled, so deleting a service
  deletes its expense lines.
- Saving a service rewrites all of its expense lines in one transaction.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .margin import (
    FIXED_SLOTS,
    CustomExpense,
    ExpenseItem,
    MarginService,
    ServiceExpenses,
)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for Clinic Dashboard.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS services (
            id          TEXT    PRIMARY KEY,
            name        TEXT    NOT NULL,
            price_cents INTEGER NOT NULL DEFAULT 0,
            created_at  TEXT    NOT NULL,
            updated_at  TEXT    NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS service_expenses (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            service_id   TEXT    NOT NULL,
            slot         TEXT    NOT NULL,  -- fixed slot name or 'custom'
            custom_id    TEXT,
            name         TEXT,
            position     INTEGER NOT NULL DEFAULT 0,
            amount       REAL    NOT NULL DEFAULT 0,
            percent      REAL    NOT NULL DEFAULT 0,

            FOREIGN KEY (service_id) REFERENCES services(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_service_expenses_service
            ON service_expenses(service_id);
        """
    )

    conn.commit()


def _to_cents(amount: float) -> int:
    return int(round(amount * 100))


def _from_cents(cents: int) -> float:
    return float(cents) / 100.0


def _to_iso(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def _now_utc() -> datetime:
    """Return the current UTC datetime, truncated to the second."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _write_expenses(
    conn: sqlite3.Connection, service_id: str, expenses: ServiceExpenses
) -> None:
    """Replace every expense line of a service (caller commits)."""
    conn.execute("DELETE FROM service_expenses WHERE service_id = ?;", (service_id,))

    rows: list[tuple] = []
    for position, slot in enumerate(FIXED_SLOTS):
        item: ExpenseItem = getattr(expenses, slot)
        rows.append(
            (service_id, slot, None, None, position, float(item.rub), item.percent)
        )
    for position, custom in enumerate(expenses.custom):
        rows.append(
            (
                service_id,
                "custom",
                custom.id,
                custom.name,
                position,
                float(custom.rub),
                custom.percent,
            )
        )

    conn.executemany(
        """
        INSERT INTO service_expenses (
            service_id, slot, custom_id, name, position, amount, percent
        )
        VALUES (?, ?, ?, ?, ?, ?, ?);
        """,
        rows,
    )


def _read_expenses(conn: sqlite3.Connection, service_id: str) -> ServiceExpenses:
    """Rebuild a ServiceExpenses from its rows (missing fixed slots are zero)."""
    cur = conn.execute(
        """
        SELECT slot, custom_id, name, amount, percent
          FROM service_expenses
         WHERE service_id = ?
         ORDER BY slot = 'custom', position, id;
        """,
        (service_id,),
    )

    fixed: dict[str, ExpenseItem] = {}
    custom: list[CustomExpense] = []
    for slot, custom_id, name, amount, percent in cur.fetchall():
        if slot == "custom":
            custom.append(
                CustomExpense(
                    id=custom_id,
                    name=name or "",
                    rub=float(amount),
                    percent=float(percent),
                )
            )
        elif slot in FIXED_SLOTS:
            fixed[slot] = ExpenseItem(rub=float(amount), percent=float(percent))

    return ServiceExpenses(
        doctor_salary=fixed.get("doctor_salary", ExpenseItem()),
        materials=fixed.get("materials", ExpenseItem()),
        acquiring=fixed.get("acquiring", ExpenseItem()),
        custom=tuple(custom),
    )


def _row_to_service(conn: sqlite3.Connection, row: tuple) -> MarginService:
    """
    Convert a `services` row into a MarginService, loading its expenses.

    Expected row layout:
      (id, name, price_cents, created_at, updated_at)
    """
    service_id, name, price_cents, created_at_str, updated_at_str = row
    return MarginService(
        id=service_id,
        name=name,
        current_price=_from_cents(price_cents),
        expenses=_read_expenses(conn, service_id),
        created_at=datetime.fromisoformat(created_at_str),
        updated_at=datetime.fromisoformat(updated_at_str),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def has_services(cfg: DatabaseConfig) -> bool:
    """Return True if the database contains at least one service."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("SELECT 1 FROM services LIMIT 1;")
        return cur.fetchone() is not None
    finally:
        conn.close()


def get_service(cfg: DatabaseConfig, service_id: str) -> MarginService | None:
    """
    Load a single service by id, including its expense lines.

    Returns
    -------
    MarginService | None
        The matching service, or None if not found.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            SELECT id, name, price_cents, created_at, updated_at
              FROM services
             WHERE id = ?;
            """,
            (service_id,),
        )
        row = cur.fetchone()
        if row is None:
            return None
        return _row_to_service(conn, row)
    finally:
        conn.close()


def list_services(cfg: DatabaseConfig) -> list[MarginService]:
    """Return every service, oldest first (creation order)."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            SELECT id, name, price_cents, created_at, updated_at
              FROM services
             ORDER BY created_at, rowid;
            """
        )
        return [_row_to_service(conn, row) for row in cur.fetchall()]
    finally:
        conn.close()


def insert_service(cfg: DatabaseConfig, service: MarginService) -> MarginService:
    """
    Insert a new service and its expense lines.

    Raises
    ------
    sqlite3.IntegrityError
        If a service with the same id already exists.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        conn.execute(
            """
            INSERT INTO services (id, name, price_cents, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                service.id,
                service.name,
                _to_cents(service.current_price),
                _to_iso(service.created_at),
                _to_iso(service.updated_at),
            ),
        )
        _write_expenses(conn, service.id, service.expenses)
        conn.commit()
    finally:
        conn.close()

    result = get_service(cfg, service.id)
    if result is None:
        msg = f"Service {service.id!r} was just inserted but could not be reloaded."
        raise RuntimeError(msg)
    return result


def save_service(cfg: DatabaseConfig, service: MarginService) -> MarginService:
    """
    Persist the name, price and expense lines of an existing service.

    The `updated_at` timestamp is always refreshed.

    Raises
    ------
    KeyError
        If no service with this id exists.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            UPDATE services
               SET name = ?, price_cents = ?, updated_at = ?
             WHERE id = ?;
            """,
            (
                service.name,
                _to_cents(service.current_price),
                _to_iso(_now_utc()),
                service.id,
            ),
        )
        if cur.rowcount == 0:
            conn.rollback()
            raise KeyError(f"Unknown service: {service.id!r}")
        _write_expenses(conn, service.id, service.expenses)
        conn.commit()
    finally:
        conn.close()

    result = get_service(cfg, service.id)
    if result is None:
        msg = f"Service {service.id!r} was updated but could not be reloaded."
        raise RuntimeError(msg)
    return result


def delete_service(cfg: DatabaseConfig, service_id: str) -> bool:
    """
    Delete a service and (by cascade) its expense lines.

    Returns
    -------
    bool
        True if a service was deleted, False if the id was unknown.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("DELETE FROM services WHERE id = ?;", (service_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()

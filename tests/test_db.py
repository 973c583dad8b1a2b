import sqlite3
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from clinic_dashboard.db import (
    DatabaseConfig,
    delete_service,
    get_service,
    has_services,
    init_database,
    insert_service,
    list_services,
    save_service,
)
from clinic_dashboard.margin import (
    CustomExpense,
    ExpenseItem,
    ServiceExpenses,
    new_service,
)


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    return DatabaseConfig(engine="sqlite", path=tmp_path / "db" / "test.sqlite")


def make_service(name: str = "Консультация"):
    created = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
    service = new_service(name, now=created)
    return replace(
        service,
        current_price=1500.0,
        expenses=ServiceExpenses(
            doctor_salary=ExpenseItem(450.0, 30.0),
            materials=ExpenseItem(150.0, 10.0),
            acquiring=ExpenseItem(30.0, 2.0),
            custom=(
                CustomExpense("custom_a", "Аренда", 75.0, 5.0),
                CustomExpense("custom_b", "Лаборатория", 120.5, 120.5 / 15),
            ),
        ),
    )


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the parent directory, file and schema."""
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    init_database(cfg)  # idempotent
    assert cfg.path.exists()
    assert has_services(cfg) is False


def test_unsupported_engine(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.db")
    with pytest.raises(ValueError):
        init_database(cfg)


def test_insert_and_get_round_trip(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    service = make_service()

    stored = insert_service(cfg, service)

    assert stored == service
    assert get_service(cfg, service.id) == service
    assert has_services(cfg) is True
    # Custom lines keep their order.
    assert [c.name for c in stored.expenses.custom] == ["Аренда", "Лаборатория"]


def test_get_unknown_service(tmp_path):
    assert get_service(make_tmp_db_cfg(tmp_path), "service_missing") is None


def test_duplicate_id_is_rejected(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    service = make_service()
    insert_service(cfg, service)

    with pytest.raises(sqlite3.IntegrityError):
        insert_service(cfg, service)


def test_save_service_replaces_expenses_and_bumps_updated_at(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    service = insert_service(cfg, make_service())

    changed = replace(
        service,
        name="Приём",
        current_price=2000.0,
        expenses=replace(service.expenses, custom=service.expenses.custom[1:]),
    )
    saved = save_service(cfg, changed)

    assert saved.name == "Приём"
    assert saved.current_price == 2000.0
    assert [c.id for c in saved.expenses.custom] == ["custom_b"]
    assert saved.created_at == service.created_at
    assert saved.updated_at > service.updated_at


def test_save_unknown_service(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    with pytest.raises(KeyError):
        save_service(cfg, make_service())


def test_list_and_delete(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    first = insert_service(cfg, make_service("A"))
    second = insert_service(cfg, make_service("B"))

    assert [s.name for s in list_services(cfg)] == ["A", "B"]

    assert delete_service(cfg, first.id) is True
    assert delete_service(cfg, first.id) is False
    assert [s.id for s in list_services(cfg)] == [second.id]


def test_delete_cascades_to_expense_lines(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    service = insert_service(cfg, make_service())
    delete_service(cfg, service.id)

    conn = sqlite3.connect(cfg.path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM service_expenses;").fetchone()[0]
    finally:
        conn.close()
    assert count == 0


def test_expense_amounts_keep_full_precision(tmp_path):
    """An amount derived from a percentage is not rounded to cents on save."""
    cfg = make_tmp_db_cfg(tmp_path)
    service = replace(
        make_service(),
        current_price=1999.0,
        expenses=ServiceExpenses(acquiring=ExpenseItem(49.975, 2.5)),
    )

    insert_service(cfg, service)
    reloaded = get_service(cfg, service.id)

    assert reloaded.expenses.acquiring.rub == 49.975
    assert reloaded.expenses.acquiring.percent == 2.5

import pytest

from clinic_dashboard import catalog
from clinic_dashboard.margin import GOOD_COLOR, calculate_rub_from_percent
from clinic_dashboard.segments import MARGIN_LABEL


def test_create_and_load_service(app_config):
    service = catalog.create_service(app_config, "  Консультация  ")

    assert service.name == "Консультация"
    assert service.current_price == 0
    assert catalog.load_service(app_config, service.id) == service
    assert [s.id for s in catalog.list_all_services(app_config)] == [service.id]


def test_create_rejects_empty_name(app_config):
    with pytest.raises(ValueError):
        catalog.create_service(app_config, "   ")


def test_unknown_service_raises_key_error(app_config):
    with pytest.raises(KeyError):
        catalog.load_service(app_config, "service_missing")
    with pytest.raises(KeyError):
        catalog.set_price(app_config, "service_missing", 100)
    with pytest.raises(KeyError):
        catalog.delete_service(app_config, "service_missing")


def test_set_price_keeps_rub_values(app_config):
    service = catalog.create_service(app_config, "Приём")
    catalog.set_price(app_config, service.id, 1000)
    catalog.edit_expense(app_config, service.id, "doctor_salary", "rub", 300)

    repriced = catalog.set_price(app_config, service.id, 2000)

    assert repriced.current_price == 2000
    assert repriced.expenses.doctor_salary.rub == 300
    assert repriced.expenses.doctor_salary.percent == pytest.approx(15)


def test_set_price_rejects_negative(app_config):
    service = catalog.create_service(app_config, "Приём")
    with pytest.raises(ValueError):
        catalog.set_price(app_config, service.id, -1)


def test_create_service_with_price(app_config):
    service = catalog.create_service(app_config, "Приём", price=1500)

    assert service.current_price == 1500
    assert catalog.load_service(app_config, service.id).current_price == 1500


def test_create_service_with_negative_price_stores_nothing(app_config):
    with pytest.raises(ValueError):
        catalog.create_service(app_config, "Приём", price=-5)

    assert catalog.list_all_services(app_config) == []


def test_percent_edit_survives_reload(app_config):
    service = catalog.create_service(app_config, "Приём", price=1999)
    catalog.edit_expense(app_config, service.id, "acquiring", "percent", 2.5)

    acquiring = catalog.load_service(app_config, service.id).expenses.acquiring

    assert acquiring.percent == 2.5
    assert acquiring.rub == calculate_rub_from_percent(2.5, 1999)
    assert acquiring.rub == pytest.approx(49.975)


def test_edit_expense_by_percent(app_config):
    service = catalog.create_service(app_config, "Приём")
    catalog.set_price(app_config, service.id, 1000)

    updated = catalog.edit_expense(app_config, service.id, "materials", "percent", 12.5)

    assert updated.expenses.materials.rub == pytest.approx(125)
    assert updated.expenses.materials.percent == pytest.approx(12.5)
    with pytest.raises(ValueError):
        catalog.edit_expense(app_config, service.id, "rent", "rub", 10)


def test_custom_expense_lifecycle(app_config):
    service = catalog.create_service(app_config, "Приём")
    catalog.set_price(app_config, service.id, 1000)

    updated, created = catalog.add_custom_expense(app_config, service.id, "Аренда")
    assert [c.id for c in updated.expenses.custom] == [created.id]

    updated = catalog.edit_expense(app_config, service.id, created.id, "rub", 50)
    assert updated.expenses.custom[0].percent == pytest.approx(5)

    updated = catalog.remove_custom_expense(app_config, service.id, created.id)
    assert updated.expenses.custom == ()

    with pytest.raises(ValueError):
        catalog.remove_custom_expense(app_config, service.id, created.id)


def test_rename_and_delete(app_config):
    service = catalog.create_service(app_config, "Приём")

    assert catalog.rename_service(app_config, service.id, "Осмотр").name == "Осмотр"

    catalog.delete_service(app_config, service.id)
    assert catalog.list_all_services(app_config) == []


def test_evaluate_service_uses_configured_target(app_config):
    service = catalog.create_service(app_config, "Приём")
    catalog.set_price(app_config, service.id, 1000)
    catalog.edit_expense(app_config, service.id, "doctor_salary", "rub", 300)
    service = catalog.edit_expense(app_config, service.id, "materials", "rub", 150)

    calc, segments = catalog.evaluate_service(app_config, service)

    assert calc.total_expenses == 450
    assert calc.current_margin_percent == pytest.approx(55)
    # Default target margin is 55 %.
    assert calc.recommended_price == pytest.approx(1000)
    assert segments[-1].label == MARGIN_LABEL
    assert segments[-1].color == GOOD_COLOR

    calc, _ = catalog.evaluate_service(app_config, service, 40, new_price=900)
    assert calc.recommended_price == pytest.approx(750)
    assert calc.new_profit == 450

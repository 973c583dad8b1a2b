import pytest

from clinic_dashboard import __version__, catalog, cli
from clinic_dashboard.config import load_app_config


def write_config(tmp_path) -> str:
    path = tmp_path / "clinic_dashboard.toml"
    path.write_text(
        '[client]\nname = "Тест"\n\n[database]\npath = "services.sqlite"\n',
        encoding="utf-8",
    )
    return str(path)


def test_version(capsys):
    cli.main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_dashboard_from_file(tmp_path, capsys, summary_text):
    export = tmp_path / "export.csv"
    export.write_text(summary_text, encoding="utf-8")

    cli.main(
        [
            "--config",
            write_config(tmp_path),
            "dashboard",
            "--file",
            str(export),
            "--base-year",
            "2025",
            "--month",
            "март",
        ]
    )

    out = capsys.readouterr().out
    assert "Clinic: Тест" in out
    assert "Selected month: 2025-март" in out
    assert "=== Expenses by category (2025-март) ===" in out
    assert "Зарплата" in out


def test_dashboard_csv_output(tmp_path, capsys, summary_text):
    export = tmp_path / "export.csv"
    export.write_text(summary_text, encoding="utf-8")
    out_dir = tmp_path / "out"

    cli.main(
        [
            "--config",
            write_config(tmp_path),
            "--display-mode",
            "csv",
            "--output",
            str(out_dir),
            "dashboard",
            "--file",
            str(export),
            "--base-year",
            "2025",
            "--section",
            "summary",
            "--section",
            "balances",
        ]
    )

    written = sorted(p.name for p in out_dir.iterdir())
    assert len(written) == 2
    assert written[0].startswith("balances_")
    assert written[1].startswith("monthly_")


def test_dashboard_unknown_month_exits(tmp_path, summary_text):
    export = tmp_path / "export.csv"
    export.write_text(summary_text, encoding="utf-8")

    with pytest.raises(SystemExit):
        cli.main(
            ["--config", write_config(tmp_path), "dashboard", "--file", str(export), "--month", "Итого"]
        )


def test_dashboard_missing_file_exits(tmp_path):
    with pytest.raises(SystemExit):
        cli.main(
            ["--config", write_config(tmp_path), "dashboard", "--file", str(tmp_path / "no.csv")]
        )


def test_margin_commands(tmp_path, capsys):
    config_path = write_config(tmp_path)

    cli.main(["--config", config_path, "margin", "create", "Консультация", "--price", "1000"])
    config = load_app_config(config_path)
    (service,) = catalog.list_all_services(config)
    assert service.current_price == 1000

    cli.main(["--config", config_path, "margin", "set-expense", service.id, "doctor_salary", "--rub", "300"])
    cli.main(["--config", config_path, "margin", "set-expense", service.id, "materials", "--percent", "15"])
    capsys.readouterr()

    cli.main(["--config", config_path, "margin", "show", service.id])
    out = capsys.readouterr().out
    assert "Margin: 55.0%" in out
    assert "Recommended price for 55% margin: 1 000.00 ₽" in out

    cli.main(["--config", config_path, "margin", "list"])
    assert "Консультация" in capsys.readouterr().out

    cli.main(["--config", config_path, "--output", str(tmp_path / "out"), "margin", "export"])
    assert len(list((tmp_path / "out").glob("services_*.csv"))) == 1

    cli.main(["--config", config_path, "margin", "delete", service.id])
    assert catalog.list_all_services(config) == []


def test_margin_unknown_service_exits(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", write_config(tmp_path), "margin", "show", "service_missing"])
    assert "service_missing" in str(excinfo.value)


def test_margin_create_with_negative_price_leaves_no_service(tmp_path):
    config_path = write_config(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", config_path, "margin", "create", "X", "--price", "-5"])

    assert "negative" in str(excinfo.value)
    assert catalog.list_all_services(load_app_config(config_path)) == []

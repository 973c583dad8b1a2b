import pytest

from clinic_dashboard.layout import (
    DUAL_YEAR,
    SINGLE_YEAR,
    detect_layout,
    get_layout,
    layout_from_mapping,
    load_layout_file,
)

CUSTOM_LAYOUT = """
name = "short-sheet"
min_lines = 5
yearly_col = 4

[[month_groups]]
first_col = 1
last_col = 3

[[blocks]]
kind = "monthly_totals"
first_row = 1
last_row = 3

[[blocks]]
kind = "balances"
first_row = 4
last_row = 6
value_col = 2
"""


def test_builtin_layouts_share_row_ranges():
    assert SINGLE_YEAR.blocks == DUAL_YEAR.blocks
    assert SINGLE_YEAR.yearly_col == 13
    assert DUAL_YEAR.yearly_col == 25
    assert len(SINGLE_YEAR.month_columns()) == 12
    assert DUAL_YEAR.month_columns()[12] == (13, 1)


def test_detect_layout():
    single = [["Показатель", "Январь", "Февраль", *[""] * 10, "Итого"]]
    dual = [["Показатель", *["-"] * 12, "Январь"]]

    assert detect_layout(single) is SINGLE_YEAR
    assert detect_layout(dual) is DUAL_YEAR
    assert detect_layout([]) is SINGLE_YEAR


def test_get_layout():
    assert get_layout("auto") is None
    assert get_layout("single") is SINGLE_YEAR
    assert get_layout("dual") is DUAL_YEAR
    with pytest.raises(ValueError):
        get_layout("triple")


def test_load_layout_file(tmp_path):
    path = tmp_path / "layout.toml"
    path.write_text(CUSTOM_LAYOUT, encoding="utf-8")

    layout = load_layout_file(path)

    assert layout.name == "short-sheet"
    assert layout.min_lines == 5
    assert layout.month_columns() == [(1, 0), (2, 0), (3, 0)]
    balances = layout.blocks_of_kind("balances")[0]
    assert balances.header_row is None
    assert balances.value_col == 2


def test_custom_layout_drives_the_parser(tmp_path):
    from clinic_dashboard.engine import parse_summary_csv
    from clinic_dashboard.model import MonthKey

    path = tmp_path / "layout.toml"
    path.write_text(CUSTOM_LAYOUT, encoding="utf-8")
    text = "\n".join(
        [
            "x,Январь,Февраль,Март",
            "Доходы,10,20,30",
            "Расходы,1,2,3",
            "Дельта,9,18,27",
            "Всего,,100",
            "Наличные,,40",
            "Счёт,,60",
        ]
    )

    data = parse_summary_csv(text, layout=load_layout_file(path), base_year=2025)

    assert [r.key for r in data.monthly] == [MonthKey(2025, m) for m in (1, 2, 3)]
    assert data.monthly[2].income == 30.0
    assert data.balances.total_funds == 100.0


def test_invalid_layouts_are_rejected(tmp_path):
    with pytest.raises(ValueError):
        layout_from_mapping({"yearly_col": 13})

    with pytest.raises(ValueError):
        layout_from_mapping(
            {
                "yearly_col": 13,
                "month_groups": [{"first_col": 1, "last_col": 12}],
                "blocks": [{"kind": "unknown", "first_row": 1, "last_row": 3}],
            }
        )

    with pytest.raises(ValueError):
        layout_from_mapping(
            {
                "yearly_col": 13,
                "month_groups": [{"first_col": 1, "last_col": 12}],
                "blocks": [{"kind": "averages", "first_row": 1, "last_row": 5}],
            }
        )

    broken = tmp_path / "broken.toml"
    broken.write_text("name = ", encoding="utf-8")
    with pytest.raises(ValueError):
        load_layout_file(broken)

    with pytest.raises(FileNotFoundError):
        load_layout_file(tmp_path / "missing.toml")

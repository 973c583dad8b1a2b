# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Sheet layouts for Clinic Dashboard.

The spreadsheet export has no named headers. Semantically unrelated tables
are stacked vertically at fixed line ranges and read at fixed column ranges.
This module describes those positions as data, so that the extractor in
``extract.py`` only contains one generic reader per kind of block.

A layout is made of:

- ColumnGroup:  a range of month columns and the year offset it belongs to
                (0 for the first year of the sheet, 1 for the next one),
- BlockSpec:    one table of the sheet (line range, header line, label and
                value columns, sentinel labels),
- SheetLayout:  the month column groups, the column of the yearly
                aggregate and the list of blocks.

Two layouts exist in the wild:

1) Single-year (``SINGLE_YEAR``)
   12 month columns (B..M, indexes 1..12), yearly aggregate in column N
   (index 13).

2) Dual-year (``DUAL_YEAR``)
   24 month columns (B..Y, indexes 1..24) covering two consecutive years,
   yearly aggregate in column Z (index 25).

Both share the same line ranges (0-based, counted after blank lines are
dropped):

    block               lines     header line
    ------------------  --------  -----------
    monthly_totals      1..3      0
    income_categories   6..14     0
    expense_categories  17..42    0
    averages            45..47    0
    balances            50..52    -
    daily_income        60..90    59

A custom layout can be described in a TOML file and loaded with
``load_layout_file`` (see the function docstring for the format).
"""

import tomllib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .normalize import normalize_month_name

BLOCK_KINDS = (
    "monthly_totals",
    "income_categories",
    "expense_categories",
    "averages",
    "balances",
    "daily_income",
)

# Blocks made of exactly three fixed rows (income/expense/delta,
# revenue/expense/profit, total/cash/bank).
FIXED_ROW_KINDS = ("monthly_totals", "averages", "balances")

DEFAULT_SENTINELS: tuple[str, ...] = ("категориям",)

LAYOUT_VARIANTS = ("auto", "single", "dual")


@dataclass(frozen=True)
class ColumnGroup:
    """Inclusive range of month columns belonging to one year of the sheet."""

    first_col: int
    last_col: int
    year_offset: int = 0

    def columns(self) -> range:
        return range(self.first_col, self.last_col + 1)


@dataclass(frozen=True)
class BlockSpec:
    """
    Position of one table in the sheet.

    Attributes
    ----------
    name:
        Free identifier (used in error messages and logs).
    kind:
        One of BLOCK_KINDS; selects the reader used by the extractor.
    first_row, last_row:
        Inclusive line range of the data rows.
    header_row:
        Line holding the month headers of this block, or None for blocks
        without monthly columns (balances).
    label_col:
        Column of the row label (category name, day number).
    value_col:
        Column of the value for single-value blocks (balances).
    sentinels:
        Lowercase fragments marking caption rows interleaved with data rows.
    """

    name: str
    kind: str
    first_row: int
    last_row: int
    header_row: Optional[int] = 0
    label_col: int = 0
    value_col: int = 1
    sentinels: tuple[str, ...] = DEFAULT_SENTINELS

    def rows(self) -> range:
        return range(self.first_row, self.last_row + 1)


@dataclass(frozen=True)
class SheetLayout:
    """Complete positional description of one sheet variant."""

    name: str
    min_lines: int
    month_groups: tuple[ColumnGroup, ...]
    yearly_col: int
    blocks: tuple[BlockSpec, ...] = field(default_factory=tuple)

    def blocks_of_kind(self, kind: str) -> list[BlockSpec]:
        return [b for b in self.blocks if b.kind == kind]

    def month_columns(self) -> list[tuple[int, int]]:
        """All (column, year_offset) pairs, in column order."""
        return [
            (col, group.year_offset)
            for group in self.month_groups
            for col in group.columns()
        ]


_STANDARD_BLOCKS: tuple[BlockSpec, ...] = (
    BlockSpec("monthly_totals", "monthly_totals", 1, 3),
    BlockSpec("income_categories", "income_categories", 6, 14),
    BlockSpec("expense_categories", "expense_categories", 17, 42),
    BlockSpec("averages", "averages", 45, 47),
    BlockSpec("balances", "balances", 50, 52, header_row=None),
    BlockSpec("daily_income", "daily_income", 60, 90, header_row=59),
)

SINGLE_YEAR = SheetLayout(
    name="single",
    min_lines=10,
    month_groups=(ColumnGroup(1, 12, 0),),
    yearly_col=13,
    blocks=_STANDARD_BLOCKS,
)

DUAL_YEAR = SheetLayout(
    name="dual",
    min_lines=10,
    month_groups=(ColumnGroup(1, 12, 0), ColumnGroup(13, 24, 1)),
    yearly_col=25,
    blocks=_STANDARD_BLOCKS,
)


def detect_layout(rows: Sequence[Sequence[str]]) -> SheetLayout:
    """
    Guess the sheet variant from the month header line (line 0).

    The dual-year layout is selected when at least one cell of columns
    13..24 is a month header. In the single-year layout column 13 holds the
    yearly caption ("Итого", "Среднее", ...) which never normalizes.
    """
    if not rows:
        return SINGLE_YEAR

    header = rows[0]
    for col in DUAL_YEAR.month_groups[1].columns():
        if col < len(header) and normalize_month_name(header[col]):
            return DUAL_YEAR
    return SINGLE_YEAR


def get_layout(variant: str) -> Optional[SheetLayout]:
    """
    Return the built-in layout for a variant name.

    ``"auto"`` returns None, meaning "detect from the export".

    Raises
    ------
    ValueError
        If ``variant`` is not one of LAYOUT_VARIANTS.
    """
    if variant == "auto":
        return None
    if variant == "single":
        return SINGLE_YEAR
    if variant == "dual":
        return DUAL_YEAR
    raise ValueError(
        f"Unknown layout variant: {variant!r}. "
        f"Expected one of: {', '.join(LAYOUT_VARIANTS)}."
    )


def _as_int(section: Mapping[str, Any], key: str, where: str) -> int:
    try:
        return int(section[key])
    except KeyError as exc:
        raise ValueError(f"Missing '{key}' in {where}.") from exc
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer for '{key}' in {where}.") from exc


def _parse_block(raw: Mapping[str, Any], index: int) -> BlockSpec:
    where = f"[[blocks]] #{index + 1}"

    kind = str(raw.get("kind") or "")
    if kind not in BLOCK_KINDS:
        raise ValueError(
            f"Invalid block kind {kind!r} in {where}. "
            f"Expected one of: {', '.join(BLOCK_KINDS)}."
        )

    first_row = _as_int(raw, "first_row", where)
    last_row = _as_int(raw, "last_row", where)
    if first_row < 0 or last_row < first_row:
        raise ValueError(f"Invalid line range {first_row}..{last_row} in {where}.")
    if kind in FIXED_ROW_KINDS and last_row - first_row != 2:
        raise ValueError(f"Block kind {kind!r} needs exactly 3 lines ({where}).")

    if "header_row" in raw:
        header_row: Optional[int] = _as_int(raw, "header_row", where)
    else:
        header_row = None if kind == "balances" else 0

    sentinels_raw = raw.get("sentinels", list(DEFAULT_SENTINELS))
    if not isinstance(sentinels_raw, list):
        raise ValueError(f"'sentinels' must be a list of strings in {where}.")

    return BlockSpec(
        name=str(raw.get("name") or kind),
        kind=kind,
        first_row=first_row,
        last_row=last_row,
        header_row=header_row,
        label_col=int(raw.get("label_col", 0)),
        value_col=int(raw.get("value_col", 1)),
        sentinels=tuple(str(s).lower() for s in sentinels_raw),
    )


def layout_from_mapping(data: Mapping[str, Any]) -> SheetLayout:
    """
    Build a SheetLayout from a parsed TOML document.

    Raises
    ------
    ValueError
        If a required key is missing or a value is out of range.
    """
    groups_raw = data.get("month_groups") or []
    if not isinstance(groups_raw, list) or not groups_raw:
        raise ValueError("Layout must define at least one [[month_groups]] table.")

    groups: list[ColumnGroup] = []
    for i, raw in enumerate(groups_raw):
        where = f"[[month_groups]] #{i + 1}"
        first_col = _as_int(raw, "first_col", where)
        last_col = _as_int(raw, "last_col", where)
        if first_col < 1 or last_col < first_col:
            raise ValueError(f"Invalid column range {first_col}..{last_col} in {where}.")
        groups.append(
            ColumnGroup(first_col, last_col, int(raw.get("year_offset", 0)))
        )

    blocks_raw = data.get("blocks") or []
    if not isinstance(blocks_raw, list):
        raise ValueError("'blocks' must be an array of tables.")

    return SheetLayout(
        name=str(data.get("name") or "custom"),
        min_lines=int(data.get("min_lines", 10)),
        month_groups=tuple(groups),
        yearly_col=_as_int(data, "yearly_col", "layout root"),
        blocks=tuple(_parse_block(raw, i) for i, raw in enumerate(blocks_raw)),
    )


def load_layout_file(path: Union[str, Path]) -> SheetLayout:
    """
    Load a custom layout from a TOML file.

    Expected format::

        name = "clinic-2026"
        min_lines = 10
        yearly_col = 13

        [[month_groups]]
        first_col = 1
        last_col = 12
        year_offset = 0

        [[blocks]]
        kind = "monthly_totals"
        first_row = 1
        last_row = 3

        [[blocks]]
        kind = "daily_income"
        first_row = 60
        last_row = 90
        header_row = 59

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the TOML cannot be parsed or describes an invalid layout.
    """
    layout_path = Path(path)
    if not layout_path.is_file():
        raise FileNotFoundError(f"Layout file not found: {layout_path}")

    try:
        data = tomllib.loads(layout_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse layout file: {layout_path}") from exc

    return layout_from_mapping(data)

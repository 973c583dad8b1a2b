# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cell normalization helpers for Clinic Dashboard.

The spreadsheet export is written by hand in a Russian locale. Numbers carry
currency suffixes ("р.", "₽"), thin or non-breaking spaces as thousands
separators and a decimal comma. Month headers appear either in the
nominative ("январь") or genitive ("января") form, sometimes followed by a
year, and in some sheets as literal dates ("01.02.2025").

This module exposes:
- clean_number:         tolerant number parser (never raises, never NaN),
- normalize_month_name: canonical nominative month name or "" (skip),
- parse_month_header:   canonical month name plus the year, when present,
- MONTH_NAMES:          the 12 canonical month names, January first.
"""

import math
import re
from typing import Optional

import pandas as pd

MONTH_NAMES: tuple[str, ...] = (
    "январь",
    "февраль",
    "март",
    "апрель",
    "май",
    "июнь",
    "июль",
    "август",
    "сентябрь",
    "октябрь",
    "ноябрь",
    "декабрь",
)

_GENITIVE_NAMES: tuple[str, ...] = (
    "января",
    "февраля",
    "марта",
    "апреля",
    "мая",
    "июня",
    "июля",
    "августа",
    "сентября",
    "октября",
    "ноября",
    "декабря",
)

# Any known form -> canonical nominative form
_MONTH_LOOKUP: dict[str, str] = {
    **dict(zip(MONTH_NAMES, MONTH_NAMES)),
    **dict(zip(_GENITIVE_NAMES, MONTH_NAMES)),
}

_ZERO_TOKENS = {"", "-", "0"}
_CURRENCY_MARKERS = ("р.", "₽")
_NUMBER_PREFIX = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_NUMBER_NOISE = re.compile(r"[^0-9.,-]")

_NAME_WITH_YEAR = re.compile(r"^([^\d\s]+)\s*(\d{4})?\s*(?:г\.?|год)?$")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{2}|\d{4})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})(?:-(\d{1,2}))?$")
_MONTH_YEAR = re.compile(r"^(\d{1,2})[./](\d{4})$")


def clean_number(value: Optional[str]) -> float:
    """
    Convert a spreadsheet cell into a float.

    Rules (in order):
      - None, "", "-" and "0" are zero,
      - currency markers ("р.", "₽") and all whitespace are removed,
      - every character other than digits, ",", "." and "-" is removed,
      - the first decimal comma becomes a dot,
      - the longest numeric prefix is parsed.

    Anything that still cannot be read as a finite number yields 0.0.

    Examples:
        "1 234,50 р." → 1234.5
        "-"           → 0.0
        "n/a"         → 0.0
    """
    if value is None:
        return 0.0

    text = str(value).strip()
    if text in _ZERO_TOKENS:
        return 0.0

    for marker in _CURRENCY_MARKERS:
        text = text.replace(marker, "")
    # \s also covers non-breaking (U+00A0) and thin (U+2009, U+202F) spaces
    text = re.sub(r"\s", "", text)
    text = _NUMBER_NOISE.sub("", text)
    text = text.replace(",", ".", 1)

    match = _NUMBER_PREFIX.match(text)
    if match is None:
        return 0.0

    try:
        number = float(match.group(0))
    except ValueError:
        return 0.0

    if not math.isfinite(number):
        return 0.0
    return number


def _month_from_date_string(text: str) -> Optional[tuple[int, int]]:
    """
    Return (year, month) for a literal date header, or None.

    Supported shapes: DD.MM.YYYY, DD/MM/YY, YYYY-MM-DD, YYYY-MM, MM.YYYY.
    """
    candidate: Optional[str] = None
    fmt: Optional[str] = None

    m = _DAY_MONTH_YEAR.match(text)
    if m:
        day, month, year = m.groups()
        candidate = f"{day:0>2}.{month:0>2}.{year}"
        fmt = "%d.%m.%Y" if len(year) == 4 else "%d.%m.%y"
    else:
        m = _ISO_DATE.match(text)
        if m:
            year, month, day = m.groups()
            candidate = f"{year}-{month:0>2}-{day or '01':0>2}"
            fmt = "%Y-%m-%d"
        else:
            m = _MONTH_YEAR.match(text)
            if m:
                month, year = m.groups()
                candidate = f"01.{month:0>2}.{year}"
                fmt = "%d.%m.%Y"

    if candidate is None:
        return None

    parsed = pd.to_datetime(candidate, format=fmt, errors="coerce")
    if pd.isna(parsed):
        return None
    return int(parsed.year), int(parsed.month)


def parse_month_header(raw: Optional[str]) -> tuple[str, Optional[int]]:
    """
    Normalize a month header cell and extract its year, if any.

    Returns:
        (canonical_month_name, year). The name is "" when the cell is not a
        recognizable month; the year is None when the cell carries none.
    """
    if raw is None:
        return "", None

    text = str(raw).strip().lower()
    if not text:
        return "", None

    direct = _MONTH_LOOKUP.get(text)
    if direct:
        return direct, None

    m = _NAME_WITH_YEAR.match(text)
    if m:
        name = _MONTH_LOOKUP.get(m.group(1))
        if name:
            year = int(m.group(2)) if m.group(2) else None
            return name, year

    from_date = _month_from_date_string(text)
    if from_date is not None:
        year, month = from_date
        return MONTH_NAMES[month - 1], year

    return "", None


def normalize_month_name(raw: Optional[str]) -> str:
    """
    Return the canonical nominative month name for a header cell.

    Both genitive ("января") and nominative ("Январь") forms are accepted,
    as well as literal dates. Unrecognized input returns "", which callers
    treat as "skip this column".
    """
    name, _ = parse_month_header(raw)
    return name


def month_index(name: str) -> int:
    """Return the 1-based month number for a canonical month name (0 if unknown)."""
    canonical = normalize_month_name(name)
    if not canonical:
        return 0
    return MONTH_NAMES.index(canonical) + 1

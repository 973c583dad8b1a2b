# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Clinic Dashboard.

This module is responsible for:
- loading the application configuration from a TOML file,
- resolving the sheet layout to use (built-in variant or custom file),
- exposing typed dataclasses used by the rest of the application.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .db import DatabaseConfig
from .layout import LAYOUT_VARIANTS, SheetLayout, get_layout, load_layout_file
from .margin import (
    DEFAULT_TARGET_MARGIN,
    GOOD_MARGIN_THRESHOLD,
    WARNING_MARGIN_THRESHOLD,
)

DEFAULT_CONFIG_FILE = "clinic_dashboard.toml"
DEFAULT_REFRESH_INTERVAL = 300
DEFAULT_TIMEOUT = 15
DISPLAY_MODES = ("table", "csv", "both")


@dataclass(frozen=True)
class ClientConfig:
    """
    The clinic whose spreadsheet is displayed.

    ``csv_url`` is the published CSV export of the summary sheet. It may be
    empty, in which case the CLI must be given a file or a URL explicitly.
    """

    name: str
    csv_url: Optional[str]


@dataclass(frozen=True)
class FeedConfig:
    """Refresh period and HTTP timeout of the CSV feed, in seconds."""

    refresh_interval_seconds: int
    timeout_seconds: float


@dataclass(frozen=True)
class LayoutConfig:
    """
    Sheet layout selection.

    ``file`` (a custom layout TOML) takes precedence over ``variant``.
    ``base_year`` None means "read it from the month headers, or use the
    current year".
    """

    variant: str
    base_year: Optional[int]
    file: Optional[Path]


@dataclass(frozen=True)
class MarginConfig:
    """Target margin and color thresholds of the margin calculator."""

    target_margin_percent: float
    good_threshold: float
    warning_threshold: float


@dataclass(frozen=True)
class DisplayConfig:
    mode: str
    decimals: int


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Clinic Dashboard.

    This aggregates:
    - the clinic and the URL of its spreadsheet export,
    - the feed refresh options,
    - the sheet layout selection,
    - the database configuration (where margin services are stored),
    - the margin calculator options,
    - display options for tables.
    """

    client: ClientConfig
    feed: FeedConfig
    layout: LayoutConfig
    database: DatabaseConfig
    margin: MarginConfig
    display: DisplayConfig


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _as_float(section: Mapping[str, Any], key: str, default: float, where: str) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected a number."
        ) from exc


def _parse_layout(section: Mapping[str, Any], base_dir: Path) -> LayoutConfig:
    variant = str(section.get("variant") or "auto").lower()
    if variant not in LAYOUT_VARIANTS:
        raise ValueError(
            f"Invalid value for 'layout.variant': {variant!r}. "
            f"Expected one of: {', '.join(LAYOUT_VARIANTS)}."
        )

    raw_year = section.get("base_year")
    base_year: Optional[int]
    if raw_year is None or raw_year == "":
        base_year = None
    else:
        try:
            base_year = int(raw_year)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                "Invalid value for 'layout.base_year' in the configuration. "
                "Expected an integer."
            ) from exc

    raw_file = section.get("file")
    layout_file = (base_dir / str(raw_file)).resolve() if raw_file else None

    return LayoutConfig(variant=variant, base_year=base_year, file=layout_file)


def resolve_layout(layout_config: LayoutConfig) -> Optional[SheetLayout]:
    """
    Return the SheetLayout selected by the configuration.

    None means "auto": the parser detects the layout from the export.
    """
    if layout_config.file is not None:
        return load_layout_file(layout_config.file)
    return get_layout(layout_config.variant)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Clinic Dashboard configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [client]
        Clinic name and the published CSV URL of its summary sheet.

    [feed]
        Refresh period and HTTP timeout (seconds).

    [layout]
        Layout variant ("auto", "single", "dual"), optional base year and
        optional custom layout file.

    [database]
        Database engine and SQLite file path for the margin calculator.

    [margin]
        Target margin (percent) and color thresholds.

    [display]
        Display options for the CLI table formatting.

    Notes
    -----
    - Every section is optional; missing values fall back to defaults.
    - All file paths in the TOML are resolved relative to the directory of
      the TOML file itself.

    Parameters
    ----------
    config_path:
        Path to the TOML configuration file. Defaults to
        ``clinic_dashboard.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Client
    client_section = _section(raw, "client")
    csv_url = str(client_section.get("csv_url") or "").strip() or None
    client = ClientConfig(
        name=str(client_section.get("name") or ""),
        csv_url=csv_url,
    )

    # 2) Feed
    feed_section = _section(raw, "feed")
    try:
        refresh_interval = int(
            feed_section.get("refresh_interval_seconds", DEFAULT_REFRESH_INTERVAL)
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'feed.refresh_interval_seconds' in the "
            "configuration. Expected an integer."
        ) from exc
    if refresh_interval <= 0:
        raise ValueError("'feed.refresh_interval_seconds' must be positive.")

    feed = FeedConfig(
        refresh_interval_seconds=refresh_interval,
        timeout_seconds=_as_float(feed_section, "timeout_seconds", DEFAULT_TIMEOUT, "feed"),
    )

    # 3) Layout
    layout = _parse_layout(_section(raw, "layout"), base_dir)

    # 4) Database
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/clinic_dashboard.sqlite"
    database = DatabaseConfig(engine=db_engine, path=(base_dir / str(db_path_raw)).resolve())

    # 5) Margin
    margin_section = _section(raw, "margin")
    margin = MarginConfig(
        target_margin_percent=_as_float(
            margin_section, "target_margin_percent", DEFAULT_TARGET_MARGIN, "margin"
        ),
        good_threshold=_as_float(
            margin_section, "good_threshold", GOOD_MARGIN_THRESHOLD, "margin"
        ),
        warning_threshold=_as_float(
            margin_section, "warning_threshold", WARNING_MARGIN_THRESHOLD, "margin"
        ),
    )

    # 6) Display
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        display_mode = "table"
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    return AppConfig(
        client=client,
        feed=feed,
        layout=layout,
        database=database,
        margin=margin,
        display=DisplayConfig(mode=display_mode, decimals=decimals),
    )


def default_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """
    Configuration used when no TOML file exists.

    The database lives under ``base_dir`` (the current directory by default).
    """
    if base_dir is None:
        base_dir = Path.cwd()
    return AppConfig(
        client=ClientConfig(name="", csv_url=None),
        feed=FeedConfig(
            refresh_interval_seconds=DEFAULT_REFRESH_INTERVAL,
            timeout_seconds=float(DEFAULT_TIMEOUT),
        ),
        layout=LayoutConfig(variant="auto", base_year=None, file=None),
        database=DatabaseConfig(
            engine="sqlite",
            path=(base_dir / "data/db/clinic_dashboard.sqlite").resolve(),
        ),
        margin=MarginConfig(
            target_margin_percent=DEFAULT_TARGET_MARGIN,
            good_threshold=GOOD_MARGIN_THRESHOLD,
            warning_threshold=WARNING_MARGIN_THRESHOLD,
        ),
        display=DisplayConfig(mode="table", decimals=2),
    )

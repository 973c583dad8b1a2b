# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Clinic Dashboard.

This module wires together the main building blocks of Clinic Dashboard:

- configuration (clinic, feed, layout, database, margin and display options),
- the CSV feed and the positional parser (dashboard data),
- the margin calculator catalog stored in SQLite,
- view helpers (tabular rendering and CSV export).

The CLI is intentionally thin: it does not parse or compute anything
itself. It orchestrates the underlying modules based on command-line
arguments and configuration files.


Commands
--------

dashboard
    Read the summary export (``--file`` or ``--url``, or the configured
    ``client.csv_url``), parse it and render the selected sections for one
    month (the most recent one by default).

watch
    Refresh the export periodically and print a one-line summary after each
    refresh. Stops after ``--iterations`` refreshes or on Ctrl+C.

margin
    Manage the margin calculator catalog: list, create, show, set-price,
    set-expense, add-custom, remove-custom, rename, delete, export.


Configuration
-------------

By default, the CLI reads ``clinic_dashboard.toml`` in the current working
directory; built-in defaults are used when that file does not exist. An
explicit ``--config PATH`` must point to an existing file.


Display modes
-------------

- ``table``: print tables to stdout,
- ``csv``:   write timestamped CSV files to the output directory,
- ``both``:  do both.
"""

import argparse
import logging
import threading
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__, catalog
from .config import (
    DEFAULT_CONFIG_FILE,
    DISPLAY_MODES,
    AppConfig,
    default_app_config,
    load_app_config,
    resolve_layout,
)
from .db import has_services, init_database
from .engine import MonthSnapshot, month_snapshot, parse_summary_csv
from .feed import DashboardFeed, FeedError, fetch_summary_csv
from .io import read_summary_text
from .layout import LAYOUT_VARIANTS, get_layout
from .margin import FIXED_SLOTS, MarginService
from .model import DashboardData
from .views import (
    averages_to_dataframe,
    balances_to_dataframe,
    categories_to_dataframe,
    daily_to_dataframe,
    expenses_to_dataframe,
    format_rub,
    monthly_to_dataframe,
    segments_to_dataframe,
    services_to_dataframe,
)

logger = logging.getLogger(__name__)

DASHBOARD_SECTIONS = ("summary", "balances", "averages", "expenses", "income", "daily")


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m clinic_dashboard.cli",
        description=(
            "Clinic Dashboard - Financial dashboard & margin calculator for "
            "small clinics. Parses the clinic's spreadsheet export and manages "
            "the margin calculator catalog."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of clinic_dashboard and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when it "
            "exists."
        ),
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=list(DISPLAY_MODES),
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    subparsers = ap.add_subparsers(
        dest="command",
        metavar="command",
        help="One of 'dashboard', 'watch', 'margin'.",
    )

    # ------------------------------------------------------------------
    # dashboard
    # ------------------------------------------------------------------
    dashboard = subparsers.add_parser(
        "dashboard",
        help="Parse the summary export and render one month.",
    )
    source = dashboard.add_mutually_exclusive_group()
    source.add_argument("--file", dest="file_path", help="Read the export from a local CSV file.")
    source.add_argument("--url", help="Download the export from this URL.")
    dashboard.add_argument(
        "--month",
        help="Month to display (e.g. 'март'). Defaults to the most recent month.",
    )
    dashboard.add_argument(
        "--year",
        type=int,
        help="Year of --month when the export covers several years.",
    )
    _add_layout_arguments(dashboard)
    dashboard.add_argument(
        "--section",
        dest="sections",
        action="append",
        choices=list(DASHBOARD_SECTIONS),
        help="Section to render (repeatable). Defaults to all sections.",
    )

    # ------------------------------------------------------------------
    # watch
    # ------------------------------------------------------------------
    watch = subparsers.add_parser(
        "watch",
        help="Refresh the export periodically and print a summary line.",
    )
    watch.add_argument("--url", help="Export URL. Defaults to client.csv_url.")
    watch.add_argument(
        "--interval",
        type=float,
        help="Seconds between refreshes. Defaults to feed.refresh_interval_seconds.",
    )
    watch.add_argument(
        "--iterations",
        type=int,
        help="Stop after this many refreshes (runs until Ctrl+C by default).",
    )
    _add_layout_arguments(watch)

    # ------------------------------------------------------------------
    # margin
    # ------------------------------------------------------------------
    margin = subparsers.add_parser(
        "margin",
        help="Manage the margin calculator catalog.",
    )
    margin_sub = margin.add_subparsers(
        dest="margin_command",
        metavar="margin-command",
        help="Margin subcommands (e.g. 'list').",
    )

    margin_sub.add_parser("list", help="List services with their margin.")

    m_create = margin_sub.add_parser("create", help="Create a new service.")
    m_create.add_argument("name", help="Service name.")
    m_create.add_argument("--price", type=float, help="Initial price.")

    m_show = margin_sub.add_parser("show", help="Show a service in detail.")
    m_show.add_argument("service_id")
    m_show.add_argument(
        "--target",
        type=float,
        help="Target margin (percent). Defaults to margin.target_margin_percent.",
    )
    m_show.add_argument(
        "--new-price",
        dest="new_price",
        type=float,
        help="Evaluate profit and margin at this candidate price.",
    )

    m_price = margin_sub.add_parser("set-price", help="Change the price of a service.")
    m_price.add_argument("service_id")
    m_price.add_argument("price", type=float)

    m_expense = margin_sub.add_parser(
        "set-expense",
        help="Set an expense line by amount (--rub) or by share (--percent).",
    )
    m_expense.add_argument("service_id")
    m_expense.add_argument(
        "target",
        help=f"One of {', '.join(FIXED_SLOTS)}, or a custom expense id.",
    )
    value_group = m_expense.add_mutually_exclusive_group(required=True)
    value_group.add_argument("--rub", type=float, help="Amount in rubles.")
    value_group.add_argument("--percent", type=float, help="Share of the price.")

    m_add = margin_sub.add_parser("add-custom", help="Add a custom expense line.")
    m_add.add_argument("service_id")
    m_add.add_argument("name")

    m_remove = margin_sub.add_parser("remove-custom", help="Remove a custom expense line.")
    m_remove.add_argument("service_id")
    m_remove.add_argument("custom_id")

    m_rename = margin_sub.add_parser("rename", help="Rename a service.")
    m_rename.add_argument("service_id")
    m_rename.add_argument("name")

    m_delete = margin_sub.add_parser("delete", help="Delete a service.")
    m_delete.add_argument("service_id")

    m_export = margin_sub.add_parser(
        "export",
        help="Write the catalog as CSV (one row per service).",
    )
    m_export.add_argument(
        "--target",
        type=float,
        help="Target margin for the recommended price column.",
    )

    return ap


def _add_layout_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--layout",
        choices=list(LAYOUT_VARIANTS),
        help="Sheet layout. Defaults to layout.variant (usually 'auto').",
    )
    parser.add_argument(
        "--base-year",
        dest="base_year",
        type=int,
        help="Year of the first month column group. Defaults to layout.base_year.",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Optional[str]) -> AppConfig:
    """Explicit paths must exist; the default file is optional."""
    if config_path:
        return load_app_config(config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return default_app_config()


def _layout_and_year(args: argparse.Namespace, config: AppConfig):
    if args.layout:
        layout = get_layout(args.layout)
    else:
        layout = resolve_layout(config.layout)
    base_year = args.base_year if args.base_year is not None else config.layout.base_year
    return layout, base_year


def _render(
    frames: Sequence[tuple[str, str, pd.DataFrame]],
    display_mode: str,
    output_dir: Optional[str],
    decimals: int = 2,
) -> None:
    """
    Print and/or write a list of (title, file_stem, DataFrame).

    Empty frames are printed as a short notice and not written.
    """
    if display_mode in {"table", "both"}:
        for title, _, df in frames:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no data)")
            else:
                print(df.round(decimals).to_string(index=False))

    if display_mode in {"csv", "both"}:
        out = Path(output_dir) if output_dir else Path("data/output")
        out.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, stem, df in frames:
            if df.empty:
                continue
            path = out / f"{stem}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _display_mode(args: argparse.Namespace, config: AppConfig) -> str:
    return args.display_mode or config.display.mode


def _summary_line(data: DashboardData) -> str:
    snapshot = month_snapshot(data)
    if snapshot is None:
        return "no data"
    parts = [str(snapshot.key)]
    if snapshot.summary is not None:
        parts.append(f"income {format_rub(snapshot.summary.income)}")
        parts.append(f"expense {format_rub(snapshot.summary.expense)}")
        parts.append(f"delta {format_rub(snapshot.summary.delta)}")
    parts.append(f"funds {format_rub(data.balances.total_funds)}")
    return " | ".join(parts)


# ---------------------------------------------------------------------------
# dashboard / watch
# ---------------------------------------------------------------------------


def _read_source(args: argparse.Namespace, config: AppConfig, parser) -> str:
    if args.file_path:
        return read_summary_text(args.file_path)

    url = args.url or config.client.csv_url
    if not url:
        parser.error(
            "No export source. Use --file or --url, or set client.csv_url "
            "in the configuration."
        )
    return fetch_summary_csv(url, timeout=config.feed.timeout_seconds)


def _snapshot_frames(
    data: DashboardData, snapshot: MonthSnapshot, sections: Sequence[str]
) -> list[tuple[str, str, pd.DataFrame]]:
    month_label = str(snapshot.key)
    frames: list[tuple[str, str, pd.DataFrame]] = []

    for section in sections:
        if section == "summary":
            frames.append(("Monthly totals", "monthly", monthly_to_dataframe(data)))
        elif section == "balances":
            frames.append(("Balances", "balances", balances_to_dataframe(data.balances)))
        elif section == "averages":
            frames.append(
                (
                    "Daily averages",
                    "averages",
                    averages_to_dataframe(data.daily_averages, data.yearly_averages),
                )
            )
        elif section == "expenses":
            frames.append(
                (
                    f"Expenses by category ({month_label})",
                    f"expenses_{snapshot.key.code}",
                    categories_to_dataframe(snapshot.expenses),
                )
            )
        elif section == "income":
            frames.append(
                (
                    f"Income by category ({month_label})",
                    f"income_{snapshot.key.code}",
                    categories_to_dataframe(snapshot.income),
                )
            )
        elif section == "daily":
            frames.append(
                (
                    f"Daily revenue ({month_label})",
                    f"daily_{snapshot.key.code}",
                    daily_to_dataframe(snapshot.daily),
                )
            )
    return frames


def _handle_dashboard(args: argparse.Namespace, config: AppConfig, parser) -> None:
    layout, base_year = _layout_and_year(args, config)
    text = _read_source(args, config, parser)
    data = parse_summary_csv(text, layout=layout, base_year=base_year)

    if data.is_empty():
        print("The export contains no data (empty or too short).")
        return

    key = None
    if args.month:
        key = data.find_month(args.month, args.year)
        if key is None:
            raise SystemExit(f"Month not found in the export: {args.month!r}")

    snapshot = month_snapshot(data, key)
    if snapshot is None:
        print("The export contains no monthly data.")
        return

    if config.client.name:
        print(f"Clinic: {config.client.name}")
    print(f"Selected month: {snapshot.key}")
    if snapshot.summary is not None:
        s = snapshot.summary
        print(
            f"Income: {format_rub(s.income)} | Expense: {format_rub(s.expense)} "
            f"| Delta: {format_rub(s.delta)}"
        )

    sections = args.sections or list(DASHBOARD_SECTIONS)
    _render(
        _snapshot_frames(data, snapshot, sections),
        _display_mode(args, config),
        args.output_dir,
        config.display.decimals,
    )


def _handle_watch(args: argparse.Namespace, config: AppConfig, parser) -> None:
    url = args.url or config.client.csv_url
    if not url:
        parser.error("No export URL. Use --url or set client.csv_url in the configuration.")

    layout, base_year = _layout_and_year(args, config)
    interval = args.interval or config.feed.refresh_interval_seconds
    feed = DashboardFeed(
        url,
        layout=layout,
        base_year=base_year,
        timeout=config.feed.timeout_seconds,
    )

    def _on_update(current: DashboardFeed, ok: bool) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        if ok:
            print(f"[{stamp}] {_summary_line(current.data)}")
        else:
            print(f"[{stamp}] refresh failed: {current.last_error}")

    stop = threading.Event()
    try:
        feed.run_periodic(interval, stop, _on_update, max_iterations=args.iterations)
    except KeyboardInterrupt:
        stop.set()
        print("Stopped.")
    finally:
        feed.close()


# ---------------------------------------------------------------------------
# margin
# ---------------------------------------------------------------------------


def _print_service(
    config: AppConfig,
    service: MarginService,
    target: Optional[float] = None,
    new_price: Optional[float] = None,
) -> None:
    calc, segments = catalog.evaluate_service(config, service, target, new_price)
    target_used = target if target is not None else config.margin.target_margin_percent

    print(f"Service: {service.name} ({service.id})")
    print(f"Price: {format_rub(service.current_price, 2)}")
    print()
    print(expenses_to_dataframe(service).round(2).to_string(index=False))
    print()
    print(f"Total expenses: {format_rub(calc.total_expenses, 2)}")
    print(f"Profit: {format_rub(calc.current_profit, 2)}")
    print(f"Margin: {calc.current_margin_percent:.1f}%")
    if calc.recommended_price is None:
        print(f"Recommended price for {target_used:g}% margin: unreachable")
    else:
        print(
            f"Recommended price for {target_used:g}% margin: "
            f"{format_rub(calc.recommended_price, 2)}"
        )
    if calc.new_profit is not None and calc.new_margin_percent is not None:
        print(
            f"At {format_rub(new_price or 0.0, 2)}: profit "
            f"{format_rub(calc.new_profit, 2)}, margin {calc.new_margin_percent:.1f}%"
        )
    if segments:
        print()
        print(segments_to_dataframe(segments).round(1).to_string(index=False))


def _handle_margin(args: argparse.Namespace, config: AppConfig) -> None:
    """Dispatch function for the 'margin' subcommands."""
    subcmd = getattr(args, "margin_command", None)
    init_database(config.database)

    if subcmd == "list":
        if not has_services(config.database):
            print("No services yet. Use 'margin create NAME' to add one.")
            return
        df = services_to_dataframe(
            catalog.list_all_services(config), config.margin.target_margin_percent
        )
        print(df.round(config.display.decimals).to_string(index=False))

    elif subcmd == "create":
        service = catalog.create_service(config, args.name, price=args.price)
        print(f"Created service {service.id}: {service.name}")

    elif subcmd == "show":
        service = catalog.load_service(config, args.service_id)
        _print_service(config, service, args.target, args.new_price)

    elif subcmd == "set-price":
        service = catalog.set_price(config, args.service_id, args.price)
        _print_service(config, service)

    elif subcmd == "set-expense":
        if args.rub is not None:
            edited, value = "rub", args.rub
        else:
            edited, value = "percent", args.percent
        service = catalog.edit_expense(config, args.service_id, args.target, edited, value)
        _print_service(config, service)

    elif subcmd == "add-custom":
        service, created = catalog.add_custom_expense(config, args.service_id, args.name)
        print(f"Added custom expense {created.id}: {created.name}")

    elif subcmd == "remove-custom":
        catalog.remove_custom_expense(config, args.service_id, args.custom_id)
        print(f"Removed custom expense {args.custom_id}")

    elif subcmd == "rename":
        service = catalog.rename_service(config, args.service_id, args.name)
        print(f"Renamed service {service.id}: {service.name}")

    elif subcmd == "delete":
        catalog.delete_service(config, args.service_id)
        print(f"Deleted service {args.service_id}")

    elif subcmd == "export":
        target = args.target if args.target is not None else config.margin.target_margin_percent
        df = services_to_dataframe(catalog.list_all_services(config), target)
        mode = "both" if args.display_mode == "both" else "csv"
        _render([("Services", "services", df)], mode, args.output_dir, config.display.decimals)

    else:
        print(
            "No margin subcommand specified. Available subcommands are: "
            "'list', 'create', 'show', 'set-price', 'set-expense', "
            "'add-custom', 'remove-custom', 'rename', 'delete', 'export'."
        )


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the Clinic Dashboard CLI.

    This function parses command-line arguments, loads the configuration and
    dispatches to the selected command. Feed, lookup and validation errors
    are reported as a one-line message with a non-zero exit status.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"clinic_dashboard version {__version__}")
        return

    _configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return

    try:
        config = _load_config(args.config_path)

        if args.command == "dashboard":
            _handle_dashboard(args, config, parser)
        elif args.command == "watch":
            _handle_watch(args, config, parser)
        elif args.command == "margin":
            _handle_margin(args, config)
    except (FeedError, FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}") from exc
    except KeyError as exc:
        raise SystemExit(f"Error: {exc.args[0] if exc.args else exc}") from exc


if __name__ == "__main__":
    main()

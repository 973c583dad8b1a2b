# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Clinic Dashboard
----------------

A Python financial dashboard and pricing toolkit for small businesses such as
clinics. It reads the periodically refreshed spreadsheet export that the
business keeps (revenue, expenses, profit, category breakdowns, daily revenue,
averages and balances) and turns it into a typed, query-ready model.

Main capabilities:
- a positional parser for the spreadsheet export, supporting the single-year
  and the dual-year sheet layouts,
- daily revenue trend estimation (ordinary least squares),
- a margin calculator for services (current margin, recommended price for a
  target margin, margin at a new price),
- gradient segments describing how a price splits into expenses and margin,
- a SQLite store for margin services,
- an HTTP feed with periodic refresh,
- a command-line interface rendering pandas tables and CSV exports.

The parsing and pricing functions are pure and never raise on malformed
input; configuration (TOML), persistence (SQLite) and presentation (CLI) are
kept in separate modules.

Version: 0.2.0

Usage:
    python -m clinic_dashboard.cli --help
"""

__all__ = ["engine", "margin", "segments", "trend", "io", "catalog", "feed", "views"]

__version__ = "0.2.0"

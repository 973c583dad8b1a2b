# Clinic Dashboard - Financial dashboard & margin calculator for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
CSV feed for Clinic Dashboard.

The summary sheet is published as a CSV export at a fixed URL. This module:

- downloads the export (``fetch_summary_csv``), bypassing intermediate
  caches with a ``t=<epoch ms>`` query parameter,
- keeps the latest parsed snapshot (``DashboardFeed``) and refreshes it on
  demand or periodically.

A failed download never replaces the current snapshot: the previous data
stays visible and the error is recorded in ``last_error``.
"""

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional

import requests

from .engine import parse_summary_csv
from .layout import SheetLayout
from .model import DashboardData

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


class FeedError(RuntimeError):
    """Raised when the CSV export cannot be downloaded."""


def _download(http: requests.Session, url: str, timeout: float) -> str:
    params = {"t": str(int(time.time() * 1000))}

    try:
        resp = http.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FeedError(f"Failed to download {url}: {exc}") from exc

    return resp.content.decode("utf-8", errors="replace")


def fetch_summary_csv(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Download the CSV export and return its text.

    Parameters
    ----------
    url:
        Published CSV URL of the summary sheet.
    timeout:
        HTTP timeout in seconds.
    session:
        Optional requests session, left open for the caller. When None, a
        session is opened for this call and closed afterwards.

    Raises
    ------
    FeedError
        If the request fails or the server answers with an error status.
    """
    if session is not None:
        return _download(session, url, timeout)

    with requests.Session() as http:
        return _download(http, url, timeout)


class DashboardFeed:
    """
    Latest DashboardData parsed from a CSV URL.

    ``data`` starts as an empty DashboardData and is replaced as a whole on
    each successful refresh.
    """

    def __init__(
        self,
        url: str,
        layout: Optional[SheetLayout] = None,
        base_year: Optional[int] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.layout = layout
        self.base_year = base_year
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()

        self._lock = threading.Lock()
        self._data = DashboardData()
        self.last_updated: Optional[datetime] = None
        self.last_error: Optional[str] = None

    def close(self) -> None:
        """Close the HTTP session if this feed opened it."""
        if self._owns_session:
            self.session.close()

    @property
    def data(self) -> DashboardData:
        with self._lock:
            return self._data

    def refresh(self) -> bool:
        """
        Download and parse the export, then publish the new snapshot.

        Returns True on success. On failure the previous snapshot is kept,
        the message is stored in ``last_error`` and False is returned.
        """
        try:
            text = fetch_summary_csv(self.url, timeout=self.timeout, session=self.session)
        except FeedError as exc:
            logger.warning("Refresh failed, keeping previous data: %s", exc)
            with self._lock:
                self.last_error = str(exc)
            return False

        data = parse_summary_csv(text, layout=self.layout, base_year=self.base_year)

        with self._lock:
            self._data = data
            self.last_updated = datetime.now(timezone.utc)
            self.last_error = None

        logger.info(
            "Dashboard refreshed: %d months, %d days of daily income.",
            len(data.monthly),
            sum(len(points) for points in data.daily_income.values()),
        )
        return True

    def run_periodic(
        self,
        interval: float,
        stop_event: threading.Event,
        on_update: Optional[Callable[["DashboardFeed", bool], None]] = None,
        max_iterations: Optional[int] = None,
    ) -> int:
        """
        Refresh now, then every ``interval`` seconds until ``stop_event`` is set.

        ``on_update(feed, ok)`` is called after each refresh. When
        ``max_iterations`` is given, the loop also stops after that many
        refreshes. Returns the number of refreshes performed.
        """
        if interval <= 0:
            raise ValueError("Refresh interval must be positive.")

        count = 0
        while not stop_event.is_set():
            ok = self.refresh()
            count += 1
            if on_update is not None:
                on_update(self, ok)
            if max_iterations is not None and count >= max_iterations:
                break
            stop_event.wait(interval)

        logger.debug("Periodic refresh stopped after %d refreshes.", count)
        return count

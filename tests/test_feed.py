import threading
from unittest import mock

import pytest
import requests

from clinic_dashboard.feed import DashboardFeed, FeedError, fetch_summary_csv
from clinic_dashboard.model import DashboardData, MonthKey


def make_session(*responses):
    """A mocked requests.Session whose get() returns/raises ``responses`` in order."""
    session = mock.Mock(spec=requests.Session)
    session.get.side_effect = list(responses)
    return session


def make_response(text: str, status: int = 200):
    response = mock.Mock(spec=requests.Response)
    response.content = text.encode("utf-8")
    response.status_code = status
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        response.raise_for_status.return_value = None
    return response


def test_fetch_adds_cache_buster_and_decodes_utf8():
    session = make_session(make_response("Месяц,Январь\n"))

    text = fetch_summary_csv("https://example.org/pub?output=csv", timeout=3, session=session)

    assert text == "Месяц,Январь\n"
    args, kwargs = session.get.call_args
    assert args == ("https://example.org/pub?output=csv",)
    assert kwargs["timeout"] == 3
    assert kwargs["params"]["t"].isdigit()


def test_fetch_wraps_http_errors():
    session = make_session(make_response("", status=500))

    with pytest.raises(FeedError):
        fetch_summary_csv("https://example.org/x", session=session)


def test_fetch_wraps_connection_errors():
    session = make_session(requests.ConnectionError("offline"))

    with pytest.raises(FeedError) as excinfo:
        fetch_summary_csv("https://example.org/x", session=session)
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


def test_refresh_swaps_snapshot(summary_text):
    session = make_session(make_response(summary_text))
    feed = DashboardFeed("https://example.org/x", base_year=2025, session=session)

    assert feed.data == DashboardData()
    assert feed.last_updated is None

    assert feed.refresh() is True
    assert feed.data.monthly[0].key == MonthKey(2025, 1)
    assert feed.last_updated is not None
    assert feed.last_error is None


def test_failed_refresh_keeps_previous_snapshot(summary_text):
    session = make_session(
        make_response(summary_text),
        requests.Timeout("too slow"),
    )
    feed = DashboardFeed("https://example.org/x", base_year=2025, session=session)

    assert feed.refresh() is True
    before = feed.data
    stamp = feed.last_updated

    assert feed.refresh() is False
    assert feed.data is before
    assert feed.last_updated == stamp
    assert "too slow" in feed.last_error


def test_run_periodic_stops_after_iterations(summary_text):
    session = make_session(*[make_response(summary_text) for _ in range(3)])
    feed = DashboardFeed("https://example.org/x", base_year=2025, session=session)
    calls = []

    count = feed.run_periodic(
        0.001,
        threading.Event(),
        on_update=lambda f, ok: calls.append(ok),
        max_iterations=3,
    )

    assert count == 3
    assert calls == [True, True, True]


def test_run_periodic_honours_stop_event(summary_text):
    session = make_session(make_response(summary_text))
    feed = DashboardFeed("https://example.org/x", session=session)
    stop = threading.Event()

    count = feed.run_periodic(0.001, stop, on_update=lambda f, ok: stop.set())

    assert count == 1
    assert session.get.call_count == 1


def test_run_periodic_rejects_bad_interval():
    feed = DashboardFeed("https://example.org/x", session=make_session())
    with pytest.raises(ValueError):
        feed.run_periodic(0, threading.Event())


def test_fetch_without_session_closes_its_own():
    session = make_session(make_response("Месяц,Январь\n"))
    session.__enter__ = mock.Mock(return_value=session)
    session.__exit__ = mock.Mock(return_value=None)

    with mock.patch("clinic_dashboard.feed.requests.Session", return_value=session):
        assert fetch_summary_csv("https://example.org/x") == "Месяц,Январь\n"

    session.__exit__.assert_called_once()


def test_fetch_leaves_caller_session_open():
    session = make_session(make_response("x\n"))

    fetch_summary_csv("https://example.org/x", session=session)

    session.close.assert_not_called()


def test_feed_closes_only_a_session_it_opened():
    given = make_session()
    DashboardFeed("https://example.org/x", session=given).close()
    given.close.assert_not_called()

    owned = make_session()
    with mock.patch("clinic_dashboard.feed.requests.Session", return_value=owned):
        feed = DashboardFeed("https://example.org/x")
    feed.close()
    owned.close.assert_called_once()

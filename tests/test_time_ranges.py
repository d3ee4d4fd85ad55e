import locale
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from kiwi_dashboard.core.time_ranges import (
    bounded_month_options,
    day_label,
    default_build_range,
    default_view_range,
    load_tz,
    month_key,
    month_label,
    order_month_window,
    parse_month_range,
    recent_month_options,
)

NOW = datetime(2026, 2, 27, 13, 0, 0, tzinfo=timezone.utc)


def _utc(y, m, d, hh=0, mm=0, ss=0):
    return datetime(y, m, d, hh, mm, ss, tzinfo=timezone.utc)


def test_leap_february_range():
    dr = parse_month_range("2024-01", "2024-02", now=NOW)
    assert dr is not None
    assert dr.to_query() == ("2024-01-01T00:00:00.000Z", "2024-02-29T23:59:59.999Z")


def test_end_month_in_future_is_clamped_to_now():
    dr = parse_month_range("2026-01", "2026-06", now=NOW)
    assert dr is not None
    assert dr.dt_from == _utc(2026, 1, 1)
    assert dr.dt_to == NOW


def test_start_after_end_is_invalid():
    assert parse_month_range("2024-05", "2024-04", now=NOW) is None


def test_start_in_future_is_invalid_after_clamp():
    assert parse_month_range("2026-05", "2026-06", now=NOW) is None


def test_malformed_months_are_invalid():
    for start, end in [
        (None, "2024-01"),
        ("2024-01", ""),
        ("2024", "2024-02"),
        ("2024-13", "2024-13"),
        ("2024-00", "2024-01"),
        ("abc-01", "2024-02"),
        ("2024-01-01", "2024-02"),
    ]:
        assert parse_month_range(start, end, now=NOW) is None, (start, end)


def test_valid_ranges_are_ordered_and_never_past_now():
    months = [f"{y}-{m:02d}" for y in (2024, 2025, 2026) for m in range(1, 13)]
    for i, start in enumerate(months):
        for end in months[i:]:
            dr = parse_month_range(start, end, now=NOW)
            if start > "2026-02":
                assert dr is None
                continue
            assert dr is not None
            assert dr.dt_from <= dr.dt_to <= NOW


def test_month_key_uses_local_calendar():
    ts = _utc(2024, 3, 31, 23, 30)
    assert month_key(ts, timezone.utc) == "2024-03"
    # London is already on BST: 00:30 on 1 April
    assert month_key(ts, ZoneInfo("Europe/London")) == "2024-04"


def test_month_label():
    assert month_label("2024-03") == "March 2024"
    assert month_label("not-a-month") == "not-a-month"


def test_bounded_month_options_newest_first():
    opts = bounded_month_options("2024-11", "2025-02")
    assert [o["value"] for o in opts] == ["2025-02", "2025-01", "2024-12", "2024-11"]
    assert opts[0]["label"] == "February 2025"

    assert bounded_month_options("2025-02", "2024-11") == []
    assert bounded_month_options("", "2024-11") == []


def test_recent_month_options_and_build_range():
    opts = recent_month_options(timezone.utc, count=3, now=NOW)
    assert [o["value"] for o in opts] == ["2026-02", "2026-01", "2025-12"]

    assert default_build_range(timezone.utc, now=NOW) == ("2025-02", "2026-02")


def test_default_view_range():
    ts = [_utc(2024, 5, 1), _utc(2024, 2, 10), _utc(2024, 3, 3)]

    assert default_view_range(ts, timezone.utc, stored=("2024-01", "2024-06")) == ("2024-01", "2024-06")
    assert default_view_range(ts, timezone.utc) == ("2024-02", "2024-05")
    assert default_view_range([], timezone.utc, now=NOW) == ("2026-02", "2026-02")


def test_day_label_uses_english_names():
    # 4..10 March 2024 runs Monday to Sunday
    labels = [day_label(date(2024, 3, d)) for d in range(4, 11)]
    assert labels == [
        "Mon 4 Mar 2024",
        "Tue 5 Mar 2024",
        "Wed 6 Mar 2024",
        "Thu 7 Mar 2024",
        "Fri 8 Mar 2024",
        "Sat 9 Mar 2024",
        "Sun 10 Mar 2024",
    ]
    assert day_label(date(2023, 9, 1)) == "Fri 1 Sep 2023"


def test_labels_ignore_process_locale():
    saved = locale.setlocale(locale.LC_TIME)
    try:
        locale.setlocale(locale.LC_TIME, "de_DE.UTF-8")
    except locale.Error:
        pytest.skip("de_DE.UTF-8 locale not available")
    try:
        assert day_label(date(2024, 3, 5)) == "Tue 5 Mar 2024"
        assert month_label("2024-05") == "May 2024"
    finally:
        locale.setlocale(locale.LC_TIME, saved)


def test_order_month_window():
    assert order_month_window("2024-01", "2024-03") == ("2024-01", "2024-03")
    assert order_month_window("2024-03", "2024-01") == ("2024-03", "2024-03")


def test_unknown_zone_falls_back_to_utc():
    assert load_tz("Mars/Olympus_Mons") is timezone.utc
    assert load_tz("Europe/London") == ZoneInfo("Europe/London")

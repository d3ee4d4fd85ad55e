from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, TypedDict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# fixed English names; strftime %a/%b/%B follow the process locale
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
DAY_ABBR = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class DateRange:
    dt_from: datetime
    dt_to: datetime

    def to_query(self) -> tuple[str, str]:
        return to_iso(self.dt_from), to_iso(self.dt_to)


class MonthOption(TypedDict):
    value: str
    label: str


def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix: 2024-02-29T23:59:59.999Z"""
    utc = dt.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_month(value: str | None) -> tuple[int, int] | None:
    if not value:
        return None

    parts = value.split("-")
    if len(parts) != 2:
        return None

    try:
        year = int(parts[0])
        month_index = int(parts[1]) - 1
    except ValueError:
        return None

    if month_index < 0 or month_index > 11:
        return None
    if year < 1 or year > 9999:
        return None

    return year, month_index + 1


def parse_month_range(
    start_month: str | None,
    end_month: str | None,
    now: datetime | None = None,
) -> DateRange | None:
    """
    Resolve a "YYYY-MM".."YYYY-MM" selection into UTC bounds.

    from = first instant of start month, to = last millisecond of end month,
    clamped to now. Returns None for malformed input or an empty range.
    """
    start = _parse_month(start_month)
    end = _parse_month(end_month)
    if start is None or end is None:
        return None

    now = now or datetime.now(tz=timezone.utc)

    dt_from = datetime(start[0], start[1], 1, tzinfo=timezone.utc)
    last_day = calendar.monthrange(end[0], end[1])[1]
    selected_to = datetime(end[0], end[1], last_day, 23, 59, 59, 999000, tzinfo=timezone.utc)
    dt_to = now if selected_to > now else selected_to

    if dt_from > dt_to:
        return None

    return DateRange(dt_from=dt_from, dt_to=dt_to)


def month_key(dt: datetime, tz: tzinfo) -> str:
    local = dt.astimezone(tz)
    return f"{local.year:04d}-{local.month:02d}"


def date_key(dt: datetime, tz: tzinfo) -> str:
    local = dt.astimezone(tz)
    return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def month_label(value: str) -> str:
    parsed = _parse_month(value)
    if parsed is None:
        return value
    return f"{MONTH_NAMES[parsed[1] - 1]} {parsed[0]}"


def _option(year: int, month: int) -> MonthOption:
    value = f"{year:04d}-{month:02d}"
    return {"value": value, "label": month_label(value)}


def recent_month_options(tz: tzinfo, count: int = 24, now: datetime | None = None) -> list[MonthOption]:
    now = (now or datetime.now(tz=timezone.utc)).astimezone(tz)
    return [_option(*shift_month(now.year, now.month, -i)) for i in range(count)]


def bounded_month_options(start_month: str | None, end_month: str | None) -> list[MonthOption]:
    """Months from end_month back to start_month, newest first."""
    if not start_month or not end_month or start_month > end_month:
        return []

    start = _parse_month(start_month)
    end = _parse_month(end_month)
    if start is None or end is None:
        return []

    out: list[MonthOption] = []
    year, month = end
    while (year, month) >= start:
        out.append(_option(year, month))
        year, month = shift_month(year, month, -1)
    return out


def default_build_range(tz: tzinfo, now: datetime | None = None) -> tuple[str, str]:
    """Initial selection before the first dashboard build: the trailing 12 months."""
    now = (now or datetime.now(tz=timezone.utc)).astimezone(tz)
    start = shift_month(now.year, now.month, -12)
    return f"{start[0]:04d}-{start[1]:02d}", f"{now.year:04d}-{now.month:02d}"


def default_view_range(
    timestamps: Iterable[datetime],
    tz: tzinfo,
    stored: tuple[str, str] | None = None,
    now: datetime | None = None,
) -> tuple[str, str]:
    if stored and stored[0] and stored[1]:
        return stored

    months = sorted(month_key(ts, tz) for ts in timestamps)
    if not months:
        current = month_key(now or datetime.now(tz=timezone.utc), tz)
        return current, current

    return months[0], months[-1]


def day_label(day: date) -> str:
    """'Tue 5 Mar 2024', independent of the process locale."""
    return f"{DAY_ABBR[day.weekday()]} {day.day} {MONTH_NAMES[day.month - 1][:3]} {day.year}"


def order_month_window(from_month: str, to_month: str) -> tuple[str, str]:
    # a start past the end drags the end along with it
    if from_month > to_month:
        return from_month, from_month
    return from_month, to_month


def load_tz(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown DISPLAY_TZ %r, falling back to UTC", name)
        return timezone.utc

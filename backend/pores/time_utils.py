from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional


REPORT_PERIODS = ("daily", "weekly", "monthly")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_ms(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the Unix epoch for a UTC-naive datetime (default: now)."""
    dt = dt or utcnow()
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime string and normalize to UTC-naive.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight UTC of that day
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def _start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)


def period_window(period: str, anchor: datetime) -> tuple[datetime, datetime]:
    """
    Inclusive [start, end] window containing `anchor`.

    daily   -> the anchor's calendar day
    weekly  -> Sunday through Saturday of the anchor's week
    monthly -> first through last day of the anchor's month

    Raises ValueError for any other period.
    """
    if period == "daily":
        return _start_of_day(anchor), _end_of_day(anchor)

    if period == "weekly":
        # Python weekday(): Monday=0 .. Sunday=6
        days_since_sunday = (anchor.weekday() + 1) % 7
        start = _start_of_day(anchor - timedelta(days=days_since_sunday))
        return start, _end_of_day(start + timedelta(days=6))

    if period == "monthly":
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        start = _start_of_day(anchor.replace(day=1))
        return start, _end_of_day(anchor.replace(day=last_day))

    raise ValueError(f"Invalid period: {period}")


def parse_date_range(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Parse ?start_date / ?end_date query values.

    A date-only end ("YYYY-MM-DD") covers that whole day.
    Raises ValueError on malformed input.
    """
    start_dt = parse_iso_datetime(start)
    end_dt = parse_iso_datetime(end)
    if end_dt is not None and end and len(end.strip()) == 10:
        end_dt = _end_of_day(end_dt)
    return start_dt, end_dt

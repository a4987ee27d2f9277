from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional


class FiscalPeriod(NamedTuple):
    year: int
    month: int
    quarter: int


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis(dt: Optional[datetime] = None) -> int:
    dt = dt or utcnow()
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)


def fiscal_period(dt: Optional[datetime] = None) -> FiscalPeriod:
    """
    Fiscal breakdown used by account entries.

    Calendar-aligned: quarter 1 is January-March.
    """
    dt = dt or utcnow()
    return FiscalPeriod(year=dt.year, month=dt.month, quarter=(dt.month - 1) // 3 + 1)


def days_from_now(days: int) -> datetime:
    return utcnow() + timedelta(days=days)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
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

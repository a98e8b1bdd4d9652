"""
KST time helpers.

All timestamps written by the service (file names, storage paths, serialized
values, log lines) use KST (UTC+09:00) regardless of the host timezone.
Korea observes no DST, so a fixed offset is exact.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Optional

KST = timezone(timedelta(hours=9), "KST")


def now_kst() -> datetime:
    """Current time as an aware KST datetime."""
    return datetime.now(KST)


def to_kst(value: datetime) -> datetime:
    """Convert a datetime to KST.

    Naive datetimes are interpreted in the host's local timezone, which is how
    the MySQL driver hands back DATETIME/TIMESTAMP columns.
    """
    return value.astimezone(KST)


def kst_date_parts(value: Optional[datetime] = None) -> Dict[str, str]:
    """Zero-padded year/month/day/hour/minute/second strings in KST."""
    kst = to_kst(value) if value is not None else now_kst()
    return {
        "year": f"{kst.year:04d}",
        "month": f"{kst.month:02d}",
        "day": f"{kst.day:02d}",
        "hour": f"{kst.hour:02d}",
        "minute": f"{kst.minute:02d}",
        "second": f"{kst.second:02d}",
    }


def to_kst_string(value: Optional[datetime] = None) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS+09:00``."""
    p = kst_date_parts(value)
    return f"{p['year']}-{p['month']}-{p['day']}T{p['hour']}:{p['minute']}:{p['second']}+09:00"


def date_to_kst_string(value: date) -> str:
    """Format a calendar date as midnight of that day in KST."""
    return to_kst_string(datetime.combine(value, time.min, tzinfo=KST))


def compact_timestamp(value: Optional[datetime] = None) -> str:
    """``YYYYMMDD_HHMMSS`` in KST, safe for file names and object keys."""
    p = kst_date_parts(value)
    return f"{p['year']}{p['month']}{p['day']}_{p['hour']}{p['minute']}{p['second']}"


def log_timestamp(value: Optional[datetime] = None) -> str:
    """``YYYY-MM-DD HH:MM:SS`` in KST, used by the log formatter."""
    p = kst_date_parts(value)
    return f"{p['year']}-{p['month']}-{p['day']} {p['hour']}:{p['minute']}:{p['second']}"

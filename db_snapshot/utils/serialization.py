"""
Snapshot serialization.

Turns driver result trees into plain JSON types: None, bool, int, float, str,
list and str-keyed dict. Output is a fixed point: serializing it again yields
the same tree.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from .time_utils import date_to_kst_string, to_kst_string

# Integers beyond this magnitude lose precision in IEEE-754 based JSON readers.
MAX_SAFE_INTEGER = 2 ** 53 - 1


def _format_timedelta(value: timedelta) -> str:
    # MySQL TIME columns arrive as timedelta; render like the server does.
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"


def serialize_snapshot(obj: Any) -> Any:
    """Recursively convert ``obj`` into a JSON-safe tree.

    - datetime -> ``YYYY-MM-DDTHH:MM:SS+09:00`` (KST)
    - date -> KST midnight in the same format
    - bytes / bytearray / memoryview -> UTF-8 text
    - Decimal and integers beyond 2**53 - 1 -> decimal string
    - timedelta -> ``HH:MM:SS``
    - list / tuple / set -> list, dict -> dict with str keys
    """
    if obj is None or isinstance(obj, (bool, str, float)):
        return obj
    if isinstance(obj, int):
        return str(obj) if abs(obj) > MAX_SAFE_INTEGER else obj
    if isinstance(obj, datetime):
        return to_kst_string(obj)
    if isinstance(obj, date):
        return date_to_kst_string(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, timedelta):
        return _format_timedelta(obj)
    if isinstance(obj, dict):
        return {str(key): serialize_snapshot(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [serialize_snapshot(item) for item in obj]
    return obj

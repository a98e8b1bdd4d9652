# Utils Package
"""
Cross-cutting utilities.

- alert_normalizer.py: Grafana webhook payload parsing
- error_handling.py: Sink errors and exception descriptions
- serialization.py: JSON-safe snapshot conversion
- structured_logging.py: KST log format and correlation ids
- time_utils.py: KST timestamps for names, paths and values
"""

from db_snapshot.utils.alert_normalizer import AlertNormalizer, normalize_alerts
from db_snapshot.utils.error_handling import SinkError, describe_exception
from db_snapshot.utils.serialization import serialize_snapshot
from db_snapshot.utils.structured_logging import ContextManager, configure_logging
from db_snapshot.utils.time_utils import (
    KST,
    compact_timestamp,
    kst_date_parts,
    now_kst,
    to_kst_string,
)

__all__ = [
    "AlertNormalizer",
    "normalize_alerts",
    "SinkError",
    "describe_exception",
    "serialize_snapshot",
    "ContextManager",
    "configure_logging",
    "KST",
    "compact_timestamp",
    "kst_date_parts",
    "now_kst",
    "to_kst_string",
]

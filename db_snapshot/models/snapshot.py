"""
Snapshot Models

A snapshot is a plain dict so it can flow straight into the serializer and
the sinks. These constants name its keys; sections in COLLECTION_ORDER are
filled in that order by the collector.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

DB_TYPE = "MariaDB"

SECTION_PROCESSLIST = "processlist"
SECTION_INNODB_TRX = "innodb_trx"
SECTION_LOCK_WAITS = "lock_waits"
SECTION_LOCKS = "locks"
SECTION_INNODB_STATUS = "innodb_status"
SECTION_GLOBAL_STATUS = "global_status"
SECTION_GLOBAL_VARIABLES = "global_variables"

COLLECTION_ORDER = (
    SECTION_PROCESSLIST,
    SECTION_INNODB_TRX,
    SECTION_LOCK_WAITS,
    SECTION_LOCKS,
    SECTION_INNODB_STATUS,
    SECTION_GLOBAL_STATUS,
    SECTION_GLOBAL_VARIABLES,
)

# Marker keys for a section that holds a single substitute row.
ERROR_KEY = "error"
INFO_KEY = "info"

Snapshot = Dict[str, Any]


def error_marker(message: str) -> List[Dict[str, str]]:
    """Single-row section recording a failed probe."""
    return [{ERROR_KEY: message}]


def info_marker(message: str) -> List[Dict[str, str]]:
    """Single-row section recording information unavailable on this server."""
    return [{INFO_KEY: message}]


def is_marker_section(rows: Any) -> bool:
    """True when ``rows`` is a one-row error/info substitute."""
    return (
        isinstance(rows, list)
        and len(rows) == 1
        and isinstance(rows[0], dict)
        and (ERROR_KEY in rows[0] or INFO_KEY in rows[0])
    )


class AlertInfo(BaseModel):
    """Alert metadata attached to a snapshot."""

    name: str = Field(..., description="Alert name")
    application: Optional[str] = Field(default=None, description="Target application")
    triggered_at: str = Field(..., description="KST trigger timestamp")
    raw_data: Dict[str, Any] = Field(default_factory=dict, description="Original webhook body")


class PipelineOutcome(BaseModel):
    """Result of one pipeline run, recorded by the dispatcher."""

    status: str = Field(..., description="completed, skipped or failed")
    filename: Optional[str] = Field(default=None, description="Base file name (no extension)")
    locations: List[str] = Field(default_factory=list, description="Persisted locations")
    degraded: bool = Field(default=False, description="Snapshot carries a top-level error")
    error: Optional[str] = Field(default=None, description="Failure description")

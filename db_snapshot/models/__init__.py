# Models Package
"""
Pydantic models and key constants for typed data contracts.
"""

from .alert import UNKNOWN_ALERT_NAME, AlertEvent
from .connection import ConnectionDescriptor
from .snapshot import AlertInfo, PipelineOutcome

__all__ = [
    "UNKNOWN_ALERT_NAME",
    "AlertEvent",
    "ConnectionDescriptor",
    "AlertInfo",
    "PipelineOutcome",
]

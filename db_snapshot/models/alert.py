"""
Alert Models - Immutable Event Entities

A normalized alert event derived from a Grafana webhook notification.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

UNKNOWN_ALERT_NAME = "unknown"


class AlertEvent(BaseModel):
    """
    One firing alert, ready to be dispatched to the snapshot pipeline.

    ``raw_payload`` is the whole inbound webhook body, kept verbatim for audit
    and embedded in the snapshot's ``alert_info``.
    """

    alert_name: str = Field(default=UNKNOWN_ALERT_NAME, description="Grafana alert/rule name")
    application: Optional[str] = Field(
        default=None,
        description="Target application/environment from the 'application' label",
    )
    raw_payload: Dict[str, Any] = Field(default_factory=dict, description="Original webhook body")

    model_config = {"frozen": True}

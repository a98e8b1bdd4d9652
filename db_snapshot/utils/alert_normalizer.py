"""
Alert Normalizer - Grafana webhook payload parsing

Converts inbound Grafana webhook bodies into AlertEvent objects.

Two payload shapes are recognized:
- Unified alerting (Grafana 9+): ``{"status": "firing", "alerts": [{"labels": {...}}]}``
- Legacy alerting (Grafana 8 and older): ``{"state": "alerting", "ruleName": "..."}``

Anything else, or a non-firing state, yields no events. The normalizer never
raises on a malformed payload; missing fields fall back to defaults.
"""

import logging
from typing import Any, Dict, List, Optional

from db_snapshot.models.alert import UNKNOWN_ALERT_NAME, AlertEvent

logger = logging.getLogger(__name__)

FIRING_STATUS = "firing"
LEGACY_ALERTING_STATE = "alerting"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _label(labels: Dict[str, Any], key: str) -> Optional[str]:
    value = labels.get(key)
    if value is None or value == "":
        return None
    return str(value)


class AlertNormalizer:
    """
    Extracts firing alerts from Grafana webhook payloads.

    Stateless; one instance can be shared across requests.
    """

    def normalize(self, payload: Any) -> List[AlertEvent]:
        """
        Normalize one webhook body.

        Args:
            payload: Decoded JSON body of unknown shape.

        Returns:
            One AlertEvent per firing alert (possibly empty).
        """
        body = _as_dict(payload)
        alerts = body.get("alerts")

        if isinstance(alerts, list) and alerts:
            return self._normalize_unified(body, alerts)

        if "state" in body:
            return self._normalize_legacy(body)

        logger.info(
            f"Alert status is not firing, skipping. "
            f"Status: {body.get('status') or body.get('state') or 'unknown'}"
        )
        return []

    def _normalize_unified(self, body: Dict[str, Any], alerts: List[Any]) -> List[AlertEvent]:
        status = body.get("status") or ""
        if status != FIRING_STATUS:
            logger.info(f"Alert status is not firing, skipping. Status: {status or 'unknown'}")
            return []

        events = []
        for alert in alerts:
            labels = _as_dict(_as_dict(alert).get("labels"))
            event = AlertEvent(
                alert_name=_label(labels, "alertname") or UNKNOWN_ALERT_NAME,
                application=_label(labels, "application"),
                raw_payload=body,
            )
            logger.info(
                f"Alert firing: {event.alert_name}, application: {event.application or 'unknown'}"
            )
            events.append(event)
        return events

    def _normalize_legacy(self, body: Dict[str, Any]) -> List[AlertEvent]:
        state = body.get("state")
        if state != LEGACY_ALERTING_STATE:
            logger.info(f"Legacy alert state is not alerting, skipping. State: {state or 'unknown'}")
            return []

        rule_name = body.get("ruleName")
        event = AlertEvent(
            alert_name=str(rule_name) if rule_name else UNKNOWN_ALERT_NAME,
            application=None,
            raw_payload=body,
        )
        logger.info(f"Legacy alert firing: {event.alert_name}")
        return [event]


def normalize_alerts(payload: Any) -> List[AlertEvent]:
    """
    Convenience function to normalize one webhook body.

    Args:
        payload: Decoded JSON body.

    Returns:
        List of firing alert events.
    """
    normalizer = AlertNormalizer()
    return normalizer.normalize(payload)

#!/usr/bin/env python3
"""
Send sample Grafana webhook payloads to the snapshot collector.

Useful for checking a deployment end to end: each firing alert should
produce one snapshot under the configured storage.

    python trigger_alert.py --application stg --alert DiskFull
    python trigger_alert.py --legacy --alert ReplicationLag
"""

import argparse
import json
import sys
from typing import Any, Dict, Optional

import httpx

DEFAULT_URL = "http://localhost:8000"


def unified_payload(alertname: str, application: Optional[str], status: str = "firing") -> Dict[str, Any]:
    """Grafana 9+ unified alerting payload with a single alert."""
    labels = {"alertname": alertname, "severity": "critical"}
    if application:
        labels["application"] = application
    return {
        "receiver": "db-snapshot",
        "status": status,
        "alerts": [
            {
                "status": status,
                "labels": labels,
                "annotations": {"summary": f"{alertname} triggered"},
            }
        ],
    }


def legacy_payload(rule_name: str, state: str = "alerting") -> Dict[str, Any]:
    """Grafana 8 legacy alerting payload."""
    return {"ruleName": rule_name, "state": state, "title": f"[Alerting] {rule_name}"}


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--url", default=DEFAULT_URL, help="Collector base URL")
    parser.add_argument("--alert", default="HighConnections", help="Alert name")
    parser.add_argument("--application", default=None, help="Target application label")
    parser.add_argument("--legacy", action="store_true", help="Send a Grafana 8 legacy payload")
    parser.add_argument("--resolved", action="store_true", help="Send a non-firing payload")
    args = parser.parse_args()

    if args.legacy:
        payload = legacy_payload(args.alert, "ok" if args.resolved else "alerting")
    else:
        payload = unified_payload(args.alert, args.application, "resolved" if args.resolved else "firing")

    print(f"Sending to {args.url}/webhook/grafana:")
    print(json.dumps(payload, indent=2))
    try:
        response = httpx.post(f"{args.url}/webhook/grafana", json=payload, timeout=5)
    except httpx.HTTPError as e:
        print(f"Failed to send alert: {e}")
        return 1

    print(f"Response {response.status_code}: {response.text}")
    return 0 if response.is_success else 1


if __name__ == "__main__":
    sys.exit(main())

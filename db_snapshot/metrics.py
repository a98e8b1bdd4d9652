"""
Prometheus metrics definitions for the snapshot collector.
"""

from prometheus_client import Counter, Gauge, Histogram

# Webhook Metrics
ALERT_EVENTS_TOTAL = Counter(
    'db_snapshot_alert_events_total',
    'Firing alert events accepted from webhooks',
    ['source']  # webhook, manual
)

# Pipeline Metrics
SNAPSHOT_PIPELINES_TOTAL = Counter(
    'db_snapshot_pipelines_total',
    'Snapshot pipelines by final status',
    ['status']  # completed, skipped, failed
)

SNAPSHOT_DURATION = Histogram(
    'db_snapshot_pipeline_duration_seconds',
    'Time from dispatch to pipeline completion',
    buckets=[0.5, 1, 2.5, 5, 10, 30, 60, 120]
)

SNAPSHOTS_IN_FLIGHT = Gauge(
    'db_snapshot_in_flight',
    'Number of currently running snapshot pipelines'
)

# Storage Metrics
SINK_FAILURES_TOTAL = Counter(
    'db_snapshot_sink_failures_total',
    'Persistence failures per sink',
    ['sink']
)

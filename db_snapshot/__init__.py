"""
db_snapshot - MariaDB incident snapshot collector

Receives Grafana alert webhooks, captures the database's internal state
(processlist, transactions, locks, InnoDB status, global status/variables)
as close as possible to the firing time, and persists the snapshot to the
local filesystem and/or S3 for later incident analysis.
"""

__version__ = "1.0.0"

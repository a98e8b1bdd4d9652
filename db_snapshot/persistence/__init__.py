# Persistence Package
"""
Snapshot sinks.

- local_saver.py: JSON / TXT files under a date-partitioned directory
- fanout.py: Per-sink isolated writes selected by storage mode
"""

from db_snapshot.persistence.fanout import PersistenceFanout
from db_snapshot.persistence.local_saver import LocalFileSaver

__all__ = ["PersistenceFanout", "LocalFileSaver"]

"""External system clients: MariaDB diagnostics and S3."""

from db_snapshot.tools.db_collector import DBSnapshotCollector
from db_snapshot.tools.s3_uploader import S3Uploader

__all__ = ["DBSnapshotCollector", "S3Uploader"]

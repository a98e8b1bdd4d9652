"""Pipeline services: target resolution and snapshot orchestration."""

from db_snapshot.services.snapshot_service import SnapshotService, build_filename
from db_snapshot.services.target_resolver import TargetResolver

__all__ = ["SnapshotService", "TargetResolver", "build_filename"]

"""
Persistence Fan-out

Writes one snapshot to every configured sink. Sinks are isolated from each
other: a failing destination is logged and the remaining ones still run.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from db_snapshot.config.settings import S3Config, StorageConfig
from db_snapshot.metrics import SINK_FAILURES_TOTAL
from db_snapshot.persistence.local_saver import LocalFileSaver
from db_snapshot.tools.s3_uploader import S3Uploader
from db_snapshot.utils.serialization import serialize_snapshot

logger = logging.getLogger(__name__)

Sink = Tuple[str, Callable[[Any, str], str]]


class PersistenceFanout:
    """Selects sinks from StorageConfig and writes to each independently."""

    def __init__(
        self,
        storage: StorageConfig,
        s3: S3Config,
        local_saver: Optional[LocalFileSaver] = None,
        uploader: Optional[S3Uploader] = None,
    ):
        self.storage = storage
        self.local_saver = local_saver or LocalFileSaver(storage.local_dir)
        self.uploader = uploader or S3Uploader(s3.bucket, s3.region, s3.prefix)

    def sinks(self) -> List[Sink]:
        """Configured sinks in write order: local JSON, local TXT, S3."""
        selected: List[Sink] = []
        if self.storage.uses_local:
            if self.storage.local_format in ("json", "both"):
                selected.append(("Local JSON", self.local_saver.save_json))
            if self.storage.local_format in ("txt", "both"):
                selected.append(("Local TXT", self.local_saver.save_txt))
        if self.storage.uses_s3:
            selected.append(("S3", self.uploader.upload_json))
        return selected

    def persist(self, snapshot: Any, filename: str) -> List[str]:
        """
        Write ``snapshot`` to every configured sink.

        Args:
            snapshot: Snapshot tree (serialized once here, every sink sees the same form).
            filename: Base file name without extension.

        Returns:
            ``"<sink>: <location>"`` for each sink that succeeded.
        """
        serialized = serialize_snapshot(snapshot)
        saved_locations: List[str] = []

        for label, write in self.sinks():
            try:
                location = write(serialized, filename)
            except Exception as e:
                logger.error(f"{label} sink failed for {filename}: {e}", exc_info=True)
                SINK_FAILURES_TOTAL.labels(sink=label).inc()
                continue
            saved_locations.append(f"{label}: {location}")

        return saved_locations

"""
Snapshot Service - collect and persist one snapshot per alert

resolve target -> collect diagnostics -> attach alert info -> fan out to sinks.
Failures never propagate out of ``run``: they are logged and reported in the
returned PipelineOutcome.
"""

import asyncio
import contextvars
import functools
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Optional

from db_snapshot.config.settings import Settings
from db_snapshot.models.alert import AlertEvent
from db_snapshot.models.connection import ConnectionDescriptor
from db_snapshot.models.snapshot import AlertInfo, PipelineOutcome
from db_snapshot.persistence.fanout import PersistenceFanout
from db_snapshot.services.target_resolver import TargetResolver
from db_snapshot.tools.db_collector import DBSnapshotCollector
from db_snapshot.utils.error_handling import describe_exception
from db_snapshot.utils.structured_logging import ContextManager
from db_snapshot.utils.time_utils import compact_timestamp, now_kst, to_kst_string

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]")


def build_filename(event: AlertEvent, when: datetime) -> str:
    """``[<application>_]<alert_name>_<YYYYMMDD_HHMMSS>`` with path-unsafe characters replaced."""
    parts = [event.alert_name, compact_timestamp(when)]
    if event.application:
        parts.insert(0, event.application)
    return "_".join(_UNSAFE_FILENAME_CHARS.sub("_", part) for part in parts)


async def _in_worker(executor: ThreadPoolExecutor, func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking ``func`` on ``executor`` with the caller's context (correlation id)."""
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    return await loop.run_in_executor(executor, functools.partial(ctx.run, func, *args))


class SnapshotService:
    """Runs the snapshot pipeline for a single alert event."""

    def __init__(
        self,
        resolver: TargetResolver,
        fanout: PersistenceFanout,
        collector_factory: Callable[[ConnectionDescriptor], DBSnapshotCollector] = DBSnapshotCollector,
        clock: Callable[[], datetime] = now_kst,
    ):
        self.resolver = resolver
        self.fanout = fanout
        self.collector_factory = collector_factory
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "SnapshotService":
        return cls(
            resolver=TargetResolver(settings.database),
            fanout=PersistenceFanout(settings.storage, settings.s3),
        )

    async def run(self, event: AlertEvent, correlation_id: Optional[str] = None) -> PipelineOutcome:
        """
        Collect and persist one snapshot for ``event``.

        Never raises; unexpected failures are logged and returned as a
        ``failed`` outcome.
        """
        ContextManager.set_correlation_id(correlation_id)
        try:
            return await self._collect_and_persist(event)
        except Exception as e:
            logger.error(f"Failed to collect/upload snapshot: {describe_exception(e)}", exc_info=True)
            return PipelineOutcome(status="failed", error=str(e))

    async def _collect_and_persist(self, event: AlertEvent) -> PipelineOutcome:
        triggered = self.clock()
        filename = build_filename(event, triggered)

        descriptor = self.resolver.resolve(event.application)
        if descriptor is None:
            logger.warning(
                f"Skipping snapshot for alert {event.alert_name}: "
                f"no DB configuration for application '{event.application}'"
            )
            return PipelineOutcome(status="skipped", filename=filename)

        logger.info(
            f"Starting DB snapshot collection for alert: {event.alert_name}, "
            f"application: {event.application or 'default'}, target: {descriptor.host}:{descriptor.port}"
        )
        collector = self.collector_factory(descriptor)
        # One dedicated thread per pipeline: a hung target must not starve other pipelines.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot")
        try:
            return await self._run_in_executor(executor, event, triggered, filename, collector)
        finally:
            executor.shutdown(wait=False)

    async def _run_in_executor(
        self,
        executor: ThreadPoolExecutor,
        event: AlertEvent,
        triggered: datetime,
        filename: str,
        collector: DBSnapshotCollector,
    ) -> PipelineOutcome:
        snapshot = await _in_worker(executor, collector.collect_all)

        snapshot["alert_info"] = AlertInfo(
            name=event.alert_name,
            application=event.application,
            triggered_at=to_kst_string(triggered),
            raw_data=event.raw_payload,
        ).model_dump()

        saved_locations = await _in_worker(executor, self.fanout.persist, snapshot, filename)

        degraded = "error" in snapshot
        if saved_locations:
            logger.info(f"Snapshot saved successfully: {', '.join(saved_locations)}")
        else:
            logger.error(f"Snapshot {filename} was not saved to any destination")

        return PipelineOutcome(
            status="completed",
            filename=filename,
            locations=saved_locations,
            degraded=degraded,
        )

"""
Async Task Manager for snapshot pipelines.

Implements:
- Fire-and-forget dispatch: one asyncio task per alert event
- In-memory task registry (status, outcome) for inspection
- Graceful drain on shutdown
"""

import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Set

from db_snapshot.metrics import SNAPSHOT_DURATION, SNAPSHOT_PIPELINES_TOTAL, SNAPSHOTS_IN_FLIGHT
from db_snapshot.models.alert import AlertEvent
from db_snapshot.models.snapshot import PipelineOutcome
from db_snapshot.services.snapshot_service import SnapshotService
from db_snapshot.utils.time_utils import to_kst_string

logger = logging.getLogger(__name__)

FINISHED_STATUSES = ("completed", "skipped", "failed")


class SnapshotDispatcher:
    """
    Launches snapshot pipelines in the background.

    Concurrency is unbounded and there is no per-target deduplication: every
    dispatched event gets its own task and its own DB connection.
    """

    def __init__(self, service: SnapshotService, history_size: int = 200):
        self.service = service
        self.history_size = history_size
        self.tasks: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._running: Set[asyncio.Task] = set()

    def dispatch(self, event: AlertEvent) -> str:
        """Start a pipeline for ``event`` without waiting for it.

        Must be called from within a running event loop.
        """
        task_id = f"snap_{uuid.uuid4().hex[:12]}"
        self.tasks[task_id] = {
            "id": task_id,
            "status": "pending",
            "alert_name": event.alert_name,
            "application": event.application,
            "created_at": to_kst_string(),
        }

        task = asyncio.create_task(self._run(task_id, event), name=task_id)
        self._running.add(task)
        task.add_done_callback(self._running.discard)

        logger.info(f"Task {task_id} dispatched for alert {event.alert_name}")
        self._prune()
        return task_id

    async def _run(self, task_id: str, event: AlertEvent) -> None:
        info = self.tasks.get(task_id, {})
        info["status"] = "running"
        info["started_at"] = to_kst_string()
        started = time.perf_counter()
        SNAPSHOTS_IN_FLIGHT.inc()
        try:
            outcome: PipelineOutcome = await self.service.run(event, correlation_id=task_id)
            info.update(outcome.model_dump(exclude_none=True))
        except asyncio.CancelledError:
            info["status"] = "failed"
            info["error"] = "cancelled"
            raise
        except Exception as e:
            logger.error(f"Task {task_id} failed: {e}", exc_info=True)
            info["status"] = "failed"
            info["error"] = str(e)
        finally:
            info["completed_at"] = to_kst_string()
            SNAPSHOTS_IN_FLIGHT.dec()
            SNAPSHOT_DURATION.observe(time.perf_counter() - started)
            SNAPSHOT_PIPELINES_TOTAL.labels(status=info["status"]).inc()

    def get_task_status(self, task_id: str) -> Dict[str, Any]:
        """Get status of a dispatched task."""
        return self.tasks.get(task_id, {"status": "not_found"})

    def list_tasks(self) -> List[Dict[str, Any]]:
        """Most recent first."""
        return list(reversed(self.tasks.values()))

    @property
    def in_flight(self) -> int:
        return len(self._running)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight pipelines to finish."""
        if not self._running:
            return
        logger.info(f"Waiting for {len(self._running)} snapshot task(s) to finish")
        done, pending = await asyncio.wait(set(self._running), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"Cancelled {len(pending)} unfinished snapshot task(s)")

    def _prune(self) -> None:
        excess = len(self.tasks) - self.history_size
        if excess <= 0:
            return
        for task_id in [tid for tid, t in self.tasks.items() if t["status"] in FINISHED_STATUSES][:excess]:
            del self.tasks[task_id]

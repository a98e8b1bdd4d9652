"""Unit tests for background pipeline dispatch"""
import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from db_snapshot.async_task_manager import SnapshotDispatcher
from db_snapshot.models.alert import AlertEvent
from db_snapshot.models.connection import ConnectionDescriptor
from db_snapshot.models.snapshot import PipelineOutcome
from db_snapshot.persistence.fanout import PersistenceFanout
from db_snapshot.services.snapshot_service import SnapshotService
from db_snapshot.services.target_resolver import TargetResolver


class GatedService:
    """Pipeline stand-in that blocks until released, to observe concurrency."""

    def __init__(self):
        self.release = asyncio.Event()
        self.started = []

    async def run(self, event, correlation_id=None):
        self.started.append((event.alert_name, correlation_id))
        await self.release.wait()
        return PipelineOutcome(status="completed", filename=f"{event.alert_name}_x", locations=["Local JSON: /x"])


class ExplodingService:
    async def run(self, event, correlation_id=None):
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_dispatch_returns_immediately_and_runs_concurrently():
    service = GatedService()
    dispatcher = SnapshotDispatcher(service)

    ids = [dispatcher.dispatch(AlertEvent(alert_name=name)) for name in ("A", "B", "C")]
    assert all(dispatcher.get_task_status(i)["status"] == "pending" for i in ids)

    await asyncio.sleep(0)
    assert sorted(name for name, _ in service.started) == ["A", "B", "C"]
    assert dispatcher.in_flight == 3
    assert all(dispatcher.get_task_status(i)["status"] == "running" for i in ids)

    service.release.set()
    await dispatcher.drain()

    assert dispatcher.in_flight == 0
    for task_id in ids:
        info = dispatcher.get_task_status(task_id)
        assert info["status"] == "completed"
        assert info["locations"] == ["Local JSON: /x"]
        assert "completed_at" in info


@pytest.mark.asyncio
async def test_task_id_is_used_as_correlation_id():
    service = GatedService()
    dispatcher = SnapshotDispatcher(service)

    task_id = dispatcher.dispatch(AlertEvent(alert_name="A"))
    service.release.set()
    await dispatcher.drain()

    assert service.started == [("A", task_id)]


@pytest.mark.asyncio
async def test_failures_are_recorded_not_raised():
    dispatcher = SnapshotDispatcher(ExplodingService())

    task_id = dispatcher.dispatch(AlertEvent(alert_name="A"))
    await dispatcher.drain()

    info = dispatcher.get_task_status(task_id)
    assert info["status"] == "failed"
    assert info["error"] == "boom"


@pytest.mark.asyncio
async def test_drain_timeout_cancels_stuck_tasks():
    dispatcher = SnapshotDispatcher(GatedService())

    task_id = dispatcher.dispatch(AlertEvent(alert_name="Hung"))
    await asyncio.sleep(0)
    await dispatcher.drain(timeout=0.01)

    assert dispatcher.in_flight == 0
    assert dispatcher.get_task_status(task_id)["error"] == "cancelled"


@pytest.mark.asyncio
async def test_history_is_pruned_to_finished_tasks():
    service = GatedService()
    service.release.set()
    dispatcher = SnapshotDispatcher(service, history_size=2)

    for name in ("A", "B", "C"):
        dispatcher.dispatch(AlertEvent(alert_name=name))
        await dispatcher.drain()
    dispatcher.dispatch(AlertEvent(alert_name="D"))
    await dispatcher.drain()

    assert [t["alert_name"] for t in dispatcher.list_tasks()] == ["D", "C"]


def test_unknown_task():
    dispatcher = SnapshotDispatcher(service=None)
    assert dispatcher.get_task_status("snap_missing") == {"status": "not_found"}


class BarrierCollector:
    """Blocking collector that only returns once ``parties`` collections overlap."""

    def __init__(self, barrier):
        self.barrier = barrier

    def collect_all(self):
        self.barrier.wait()
        return {"db_type": "MariaDB"}


@pytest.mark.asyncio
async def test_slow_collections_all_run_at_once():
    # More pipelines than the event loop's default thread pool can hold.
    count = 40
    barrier = threading.Barrier(count, timeout=10)
    resolver = MagicMock(spec=TargetResolver)
    resolver.resolve.return_value = ConnectionDescriptor(host="db-stg", user="admin")
    fanout = MagicMock(spec=PersistenceFanout)
    fanout.persist.return_value = ["Local JSON: /x"]
    service = SnapshotService(
        resolver=resolver,
        fanout=fanout,
        collector_factory=lambda descriptor: BarrierCollector(barrier),
    )
    dispatcher = SnapshotDispatcher(service)

    ids = [dispatcher.dispatch(AlertEvent(alert_name=f"A{i}", application="stg")) for i in range(count)]
    await dispatcher.drain(timeout=30)

    assert not barrier.broken
    assert [dispatcher.get_task_status(i)["status"] for i in ids] == ["completed"] * count

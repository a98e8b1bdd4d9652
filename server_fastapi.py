import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from db_snapshot.async_task_manager import SnapshotDispatcher
from db_snapshot.config.settings import Settings, get_settings
from db_snapshot.metrics import ALERT_EVENTS_TOTAL
from db_snapshot.models.alert import AlertEvent
from db_snapshot.services.snapshot_service import SnapshotService
from db_snapshot.utils.alert_normalizer import AlertNormalizer
from db_snapshot.utils.structured_logging import configure_logging
from db_snapshot.utils.time_utils import to_kst_string

logger = logging.getLogger("db_snapshot.server")

SHUTDOWN_DRAIN_SECONDS = 60.0


async def _json_body(request: Request) -> Any:
    body = await request.body()
    if not body:
        return {}
    return await request.json()


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[SnapshotDispatcher] = None,
) -> FastAPI:
    """Build the FastAPI application around one settings value."""
    settings = settings or get_settings()
    dispatcher = dispatcher or SnapshotDispatcher(SnapshotService.from_settings(settings))
    normalizer = AlertNormalizer()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Snapshot collector started (storage={settings.storage.mode}, "
            f"local_format={settings.storage.local_format})"
        )
        yield
        await dispatcher.drain(timeout=SHUTDOWN_DRAIN_SECONDS)

    app = FastAPI(
        title="DB Incident Snapshot Collector",
        version="1.0.0",
        description="Captures MariaDB diagnostics when a Grafana alert fires",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    @app.post("/webhook/grafana")
    async def grafana_webhook(request: Request):
        """Grafana webhook receiver. Always acknowledges; collection runs in the background."""
        try:
            payload = await _json_body(request)
            logger.info(f"Received webhook payload: {payload}")
            for event in normalizer.normalize(payload):
                ALERT_EVENTS_TOTAL.labels(source="webhook").inc()
                dispatcher.dispatch(event)
            return {"status": "ok", "message": "Webhook received"}
        except Exception as e:
            logger.error(f"Error processing webhook: {e}", exc_info=True)
            return {"status": "error", "message": str(e)}

    @app.post("/test/collect")
    async def test_collect(request: Request):
        """Manual trigger; ``application`` in the body selects the target."""
        try:
            body = await _json_body(request)
        except ValueError:
            body = {}
        application = (body.get("application") if isinstance(body, dict) else None) \
            or settings.api.default_application
        logger.info(f"Test collection triggered for application: {application}")
        ALERT_EVENTS_TOTAL.labels(source="manual").inc()

        task_id = dispatcher.dispatch(
            AlertEvent(alert_name="manual_test", application=application, raw_payload={"test": True})
        )
        return {
            "status": "ok",
            "message": "Collection triggered",
            "application": application,
            "task_id": task_id,
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": to_kst_string()}

    @app.get("/health/storage")
    async def storage_health():
        """Reports whether the configured S3 bucket is reachable."""
        result: Dict[str, Any] = {
            "status": "healthy",
            "storage_mode": settings.storage.mode,
            "timestamp": to_kst_string(),
        }
        if settings.storage.uses_s3:
            uploader = dispatcher.service.fanout.uploader
            accessible = await asyncio.to_thread(uploader.check_bucket_access)
            result["s3"] = {"bucket": settings.s3.bucket, "accessible": accessible}
            if not accessible:
                result["status"] = "degraded"
        return result

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/tasks")
    async def list_tasks():
        return {"in_flight": dispatcher.in_flight, "tasks": dispatcher.list_tasks()}

    @app.get("/tasks/{task_id}")
    async def get_task(task_id: str):
        task = dispatcher.get_task_status(task_id)
        if task.get("status") == "not_found":
            raise HTTPException(status_code=404, detail="Task not found")
        return task

    return app


configure_logging(get_settings().api.log_level)
app = create_app()

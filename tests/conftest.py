from datetime import datetime, timezone

import pytest

from db_snapshot.config.settings import (
    DatabaseConfig,
    S3Config,
    Settings,
    StorageConfig,
    TargetOverride,
)
from db_snapshot.models.alert import AlertEvent
from tests.fakes import FakeConnect

# 2024-03-02 09:30:00 KST
FIXED_NOW = datetime(2024, 3, 2, 0, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_connect():
    return FakeConnect()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database=DatabaseConfig(
            host="db.default.internal",
            port=3306,
            user="admin",
            password="secret",
            name=None,
            targets={
                "stg": TargetOverride(host="db.stg.internal", user="stg_reader"),
                "dev": TargetOverride(host="db.dev.internal", port=3307, password="devpw", database="app"),
            },
        ),
        storage=StorageConfig(mode="local", local_dir=str(tmp_path / "snapshots"), local_format="both"),
        s3=S3Config(bucket="incidents", region="us-east-1", prefix="db-snapshots"),
    )


@pytest.fixture
def firing_event():
    payload = {
        "status": "firing",
        "alerts": [{"labels": {"alertname": "DiskFull", "application": "stg"}}],
    }
    return AlertEvent(alert_name="DiskFull", application="stg", raw_payload=payload)

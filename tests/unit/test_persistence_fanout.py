"""Unit tests for sink selection and per-sink isolation"""
import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

from db_snapshot.config.settings import S3Config, StorageConfig
from db_snapshot.persistence.fanout import PersistenceFanout
from db_snapshot.persistence.local_saver import LocalFileSaver
from db_snapshot.tools.s3_uploader import S3Uploader
from db_snapshot.utils.error_handling import SinkError

FIXED_NOW = datetime(2024, 3, 2, 0, 30, 0, tzinfo=timezone.utc)
S3 = S3Config(bucket="incidents", region="us-east-1", prefix="db-snapshots")


def _snapshot():
    return {
        "collected_at": FIXED_NOW,
        "db_type": "MariaDB",
        "processlist": [{"Id": 1, "Info": b"SELECT 1"}],
        "global_status": {"Threads_connected": "4"},
    }


def _fanout(tmp_path, mode, local_format="both", uploader=None, local_dir=None):
    storage = StorageConfig(mode=mode, local_dir=str(local_dir or tmp_path), local_format=local_format)
    return PersistenceFanout(
        storage,
        S3,
        local_saver=LocalFileSaver(storage.local_dir, clock=lambda: FIXED_NOW),
        uploader=uploader or MagicMock(spec=S3Uploader),
    )


@pytest.mark.parametrize(
    "mode, local_format, expected",
    [
        ("local", "json", ["Local JSON"]),
        ("local", "txt", ["Local TXT"]),
        ("local", "both", ["Local JSON", "Local TXT"]),
        ("s3", "both", ["S3"]),
        ("both", "json", ["Local JSON", "S3"]),
        ("both", "both", ["Local JSON", "Local TXT", "S3"]),
    ],
)
def test_sink_selection(tmp_path, mode, local_format, expected):
    fanout = _fanout(tmp_path, mode, local_format)
    assert [label for label, _ in fanout.sinks()] == expected


def test_local_both_writes_json_and_txt(tmp_path):
    locations = _fanout(tmp_path, "local").persist(_snapshot(), "stg_DiskFull_20240302_093000")

    day_dir = (tmp_path / "2024" / "03" / "02").resolve()
    assert locations == [
        f"Local JSON: {day_dir / 'stg_DiskFull_20240302_093000.json'}",
        f"Local TXT: {day_dir / 'stg_DiskFull_20240302_093000.txt'}",
    ]
    data = json.loads((day_dir / "stg_DiskFull_20240302_093000.json").read_text(encoding="utf-8"))
    assert data["processlist"][0]["Info"] == "SELECT 1"


def test_every_sink_receives_the_same_serialized_tree(tmp_path):
    local_saver = MagicMock(spec=LocalFileSaver)
    local_saver.save_json.return_value = "/a.json"
    local_saver.save_txt.return_value = "/a.txt"
    uploader = MagicMock(spec=S3Uploader)
    uploader.upload_json.return_value = "s3://incidents/a.json"
    storage = StorageConfig(mode="both", local_dir=str(tmp_path), local_format="both")

    PersistenceFanout(storage, S3, local_saver=local_saver, uploader=uploader).persist(_snapshot(), "a")

    trees = [
        local_saver.save_json.call_args.args[0],
        local_saver.save_txt.call_args.args[0],
        uploader.upload_json.call_args.args[0],
    ]
    assert trees[0] == trees[1] == trees[2]
    assert trees[0]["collected_at"] == "2024-03-02T09:30:00+09:00"


def test_s3_failure_does_not_block_local_sinks(tmp_path):
    uploader = MagicMock(spec=S3Uploader)
    uploader.upload_json.side_effect = SinkError("S3", "Access Denied")

    locations = _fanout(tmp_path, "both", uploader=uploader).persist(_snapshot(), "x")

    assert [loc.split(":")[0] for loc in locations] == ["Local JSON", "Local TXT"]
    uploader.upload_json.assert_called_once()


def test_local_failure_does_not_block_s3(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    uploader = MagicMock(spec=S3Uploader)
    uploader.upload_json.return_value = "s3://incidents/db-snapshots/2024/03/02/x.json"

    locations = _fanout(tmp_path, "both", uploader=uploader, local_dir=blocker).persist(_snapshot(), "x")

    assert locations == ["S3: s3://incidents/db-snapshots/2024/03/02/x.json"]


def test_json_failure_does_not_block_txt(tmp_path):
    local_saver = LocalFileSaver(str(tmp_path), clock=lambda: FIXED_NOW)
    local_saver.save_json = MagicMock(side_effect=RuntimeError("disk quota exceeded"))
    storage = StorageConfig(mode="local", local_dir=str(tmp_path), local_format="both")

    locations = PersistenceFanout(storage, S3, local_saver=local_saver).persist(_snapshot(), "x")

    assert len(locations) == 1
    assert locations[0].startswith("Local TXT: ")
    assert Path(locations[0].split(": ", 1)[1]).exists()


def test_all_sinks_failing_returns_empty_outcome(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    uploader = MagicMock(spec=S3Uploader)
    uploader.upload_json.side_effect = SinkError("S3", "down")

    assert _fanout(tmp_path, "both", uploader=uploader, local_dir=blocker).persist(_snapshot(), "x") == []


def test_s3_mode_uploads_date_partitioned_object(monkeypatch, tmp_path):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="incidents")
        uploader = S3Uploader("incidents", "us-east-1", "db-snapshots", client=client, clock=lambda: FIXED_NOW)

        locations = _fanout(tmp_path, "s3", uploader=uploader).persist(_snapshot(), "ReplicationLag_20240302_093000")

        key = "db-snapshots/2024/03/02/ReplicationLag_20240302_093000.json"
        assert locations == [f"S3: s3://incidents/{key}"]
        client.head_object(Bucket="incidents", Key=key)
    assert not any(tmp_path.iterdir())

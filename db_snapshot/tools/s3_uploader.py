"""
S3 Uploader - IAM role based authentication

Uploads serialized snapshots as JSON objects under
``<prefix>/<YYYY>/<MM>/<DD>/<filename>.json`` (KST date). No credentials are
passed explicitly; boto3 resolves them from the environment / instance role.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from db_snapshot.utils.error_handling import SinkError
from db_snapshot.utils.serialization import serialize_snapshot
from db_snapshot.utils.time_utils import kst_date_parts, now_kst

logger = logging.getLogger(__name__)


class S3Uploader:
    """S3 uploader using the ambient AWS credential chain."""

    def __init__(
        self,
        bucket: str,
        region: str = "ap-northeast-2",
        prefix: str = "db-snapshots",
        client: Any = None,
        clock: Callable[[], datetime] = now_kst,
    ):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix.strip("/")
        self._client = client
        self._clock = clock

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def build_key(self, filename: str, when: Optional[datetime] = None) -> str:
        """Date-partitioned object key for ``filename`` (no extension)."""
        p = kst_date_parts(when or self._clock())
        parts = [p["year"], p["month"], p["day"], f"{filename}.json"]
        if self.prefix:
            parts.insert(0, self.prefix)
        return "/".join(parts)

    def upload_json(self, data: Any, filename: str) -> str:
        """
        Upload ``data`` as a pretty-printed JSON object.

        Args:
            data: Snapshot tree (serialized here).
            filename: Base file name without extension.

        Returns:
            The object's ``s3://bucket/key`` URL.

        Raises:
            SinkError: If the upload fails.
        """
        key = self.build_key(filename)
        try:
            body = json.dumps(serialize_snapshot(data), indent=2, ensure_ascii=False)
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body.encode("utf-8"),
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload to S3: {e}")
            raise SinkError("S3", str(e)) from e

        s3_url = f"s3://{self.bucket}/{key}"
        logger.info(f"Successfully uploaded to {s3_url}")
        return s3_url

    def check_bucket_access(self) -> bool:
        """HEAD the bucket and report whether it is reachable with current credentials."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"Bucket {self.bucket} is accessible")
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in ("403", "AccessDenied", "Forbidden"):
                logger.error(f"Access denied to bucket {self.bucket}")
            elif code in ("404", "NoSuchBucket", "NotFound"):
                logger.error(f"Bucket {self.bucket} does not exist")
            else:
                logger.error(f"Error accessing bucket: {e}")
            return False
        except BotoCoreError as e:
            logger.error(f"Error accessing bucket: {e}")
            return False

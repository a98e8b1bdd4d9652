"""
Structured Logging - Logging with a per-snapshot correlation ID

Each pipeline instance runs in its own asyncio task, so a ContextVar holds
the snapshot id and a logging.Filter stamps it on every record. Interleaved
output from concurrent collections stays attributable.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from .time_utils import log_timestamp

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(correlation_id)s] %(name)s - %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Injects the current correlation id into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


class KSTFormatter(logging.Formatter):
    """Formats ``asctime`` as ``YYYY-MM-DD HH:MM:SS`` in KST."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return log_timestamp(datetime.fromtimestamp(record.created, tz=timezone.utc))


class ContextManager:
    """Sets and reads the per-task correlation id."""

    @staticmethod
    def set_correlation_id(correlation_id: Optional[str] = None) -> str:
        """Define the correlation id for the current context.

        Args:
            correlation_id: Custom id (a new ``snap_<hex>`` id is generated if None)

        Returns:
            The correlation id now in effect
        """
        if correlation_id is None:
            correlation_id = f"snap_{uuid.uuid4().hex[:12]}"

        correlation_id_var.set(correlation_id)
        return correlation_id

    @staticmethod
    def get_correlation_id() -> str:
        return correlation_id_var.get()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure root logging once for the whole process."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(KSTFormatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )

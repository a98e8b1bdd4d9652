"""
Local File Saver

Writes snapshots under ``<base_dir>/<YYYY>/<MM>/<DD>/`` (KST date) as
pretty-printed JSON and/or a human-readable TXT report.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List

from db_snapshot.models.snapshot import (
    ERROR_KEY,
    INFO_KEY,
    SECTION_GLOBAL_STATUS,
    SECTION_INNODB_STATUS,
    SECTION_INNODB_TRX,
    SECTION_LOCK_WAITS,
    SECTION_LOCKS,
    SECTION_PROCESSLIST,
)
from db_snapshot.utils.error_handling import SinkError
from db_snapshot.utils.serialization import serialize_snapshot
from db_snapshot.utils.time_utils import kst_date_parts, now_kst

logger = logging.getLogger(__name__)

SEPARATOR = "=" * 80
CELL_WIDTH = 50

TABLE_SECTIONS = (
    (SECTION_PROCESSLIST, "PROCESS LIST (SHOW FULL PROCESSLIST)"),
    (SECTION_INNODB_TRX, "INNODB TRANSACTIONS"),
    (SECTION_LOCK_WAITS, "LOCK WAITS"),
    (SECTION_LOCKS, "CURRENT LOCKS"),
)

KEY_METRICS = (
    "Threads_connected",
    "Threads_running",
    "Connections",
    "Aborted_clients",
    "Aborted_connects",
    "Slow_queries",
    "Questions",
    "Queries",
    "Innodb_row_lock_waits",
    "Innodb_row_lock_time",
    "Innodb_buffer_pool_reads",
    "Innodb_buffer_pool_read_requests",
    "Table_locks_waited",
    "Table_locks_immediate",
)


class LocalFileSaver:
    """Saves snapshots to the local filesystem."""

    def __init__(self, base_dir: str = "./snapshots", clock: Callable[[], datetime] = now_kst):
        self.base_dir = Path(base_dir).resolve()
        self._clock = clock

    def _date_dir(self) -> Path:
        p = kst_date_parts(self._clock())
        date_dir = self.base_dir / p["year"] / p["month"] / p["day"]
        date_dir.mkdir(parents=True, exist_ok=True)
        return date_dir

    def _write(self, sink: str, filename: str, suffix: str, content: str) -> str:
        try:
            filepath = self._date_dir() / f"{filename}{suffix}"
            filepath.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save file: {e}")
            raise SinkError(sink, str(e)) from e

        logger.info(f"Successfully saved to {filepath}")
        return str(filepath.resolve())

    def save_json(self, data: Any, filename: str) -> str:
        """
        Save ``data`` as pretty-printed JSON.

        Returns:
            Absolute path of the written file.

        Raises:
            SinkError: If the directory or file cannot be written.
        """
        content = json.dumps(serialize_snapshot(data), indent=2, ensure_ascii=False)
        return self._write("Local JSON", filename, ".json", content)

    def save_txt(self, data: Any, filename: str) -> str:
        """
        Save ``data`` as a readable TXT report.

        Returns:
            Absolute path of the written file.

        Raises:
            SinkError: If the directory or file cannot be written.
        """
        content = self.format_as_txt(serialize_snapshot(data))
        return self._write("Local TXT", filename, ".txt", content)

    def format_as_txt(self, data: Dict[str, Any]) -> str:
        """Render a serialized snapshot as the fixed-layout text report."""
        lines: List[str] = []

        lines.extend([SEPARATOR, "DB INCIDENT SNAPSHOT REPORT", SEPARATOR])
        lines.append(f"Collected At: {data.get('collected_at') or 'N/A'}")
        lines.append(f"DB Type: {data.get('db_type') or 'N/A'}")
        lines.append(f"DB Version: {data.get('db_version') or 'N/A'}")
        if data.get("error"):
            lines.append(f"Collection Error: {data['error']}")
        lines.append("")

        alert_info = data.get("alert_info")
        if alert_info:
            lines.extend([SEPARATOR, "ALERT INFORMATION", SEPARATOR])
            lines.append(f"Alert Name: {alert_info.get('name') or 'N/A'}")
            lines.append(f"Application: {alert_info.get('application') or 'N/A'}")
            lines.append(f"Triggered At: {alert_info.get('triggered_at') or 'N/A'}")
            lines.append("")

        for section, title in TABLE_SECTIONS:
            lines.extend([SEPARATOR, title, SEPARATOR])
            self._format_table(lines, data.get(section) or [])
            lines.append("")

        lines.extend([SEPARATOR, "INNODB STATUS (SHOW ENGINE INNODB STATUS)", SEPARATOR])
        innodb_status = data.get(SECTION_INNODB_STATUS) or ""
        lines.append(innodb_status if isinstance(innodb_status, str) else str(innodb_status))
        lines.append("")

        global_status = data.get(SECTION_GLOBAL_STATUS) or {}
        lines.extend([SEPARATOR, "GLOBAL STATUS (Key Metrics)", SEPARATOR])
        for key in KEY_METRICS:
            if key in global_status:
                lines.append(f"{key}: {global_status[key]}")
        lines.append("")

        lines.extend([SEPARATOR, "FULL GLOBAL STATUS (JSON)", SEPARATOR])
        lines.append(json.dumps(global_status, indent=2, ensure_ascii=False))
        lines.append("")

        lines.extend([SEPARATOR, "END OF REPORT", SEPARATOR])
        return "\n".join(lines)

    @staticmethod
    def _format_table(lines: List[str], rows: List[Any]) -> None:
        if not rows:
            lines.append("(No data)")
            return

        first = rows[0]
        if not isinstance(first, dict):
            lines.extend(str(row) for row in rows)
            return

        if ERROR_KEY in first or INFO_KEY in first:
            lines.append(json.dumps(first, ensure_ascii=False))
            return

        headers = list(first.keys())
        lines.append(" | ".join(headers))
        lines.append("-" * 80)
        for row in rows:
            values = []
            for header in headers:
                value = row.get(header)
                values.append("" if value is None else str(value)[:CELL_WIDTH])
            lines.append(" | ".join(values))

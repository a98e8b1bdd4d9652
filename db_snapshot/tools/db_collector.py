"""
DB Snapshot Collector - MariaDB 10.6 compatible

Captures the database's internal state at incident time over a single
connection. Every probe is isolated: a failing query is recorded as a
one-row ``{"error": ...}`` marker and collection moves on.
"""

import json
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

import pymysql
import pymysql.cursors

from db_snapshot.models.connection import ConnectionDescriptor
from db_snapshot.models.snapshot import (
    DB_TYPE,
    ERROR_KEY,
    SECTION_GLOBAL_STATUS,
    SECTION_GLOBAL_VARIABLES,
    SECTION_INNODB_STATUS,
    SECTION_INNODB_TRX,
    SECTION_LOCK_WAITS,
    SECTION_LOCKS,
    SECTION_PROCESSLIST,
    Snapshot,
    error_marker,
    info_marker,
)
from db_snapshot.utils.time_utils import now_kst

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class ProbeQuery(NamedTuple):
    """One candidate query of a fallback chain."""

    sql: str
    description: str


# Tried in order; the first query the server accepts wins.
LOCK_WAIT_QUERIES: Sequence[ProbeQuery] = (
    ProbeQuery("SELECT * FROM sys.innodb_lock_waits", "sys.innodb_lock_waits"),
    ProbeQuery(
        """SELECT
                r.trx_id AS waiting_trx_id,
                r.trx_mysql_thread_id AS waiting_thread,
                r.trx_query AS waiting_query,
                b.trx_id AS blocking_trx_id,
                b.trx_mysql_thread_id AS blocking_thread,
                b.trx_query AS blocking_query
              FROM information_schema.innodb_lock_waits w
              JOIN information_schema.innodb_trx b ON b.trx_id = w.blocking_trx_id
              JOIN information_schema.innodb_trx r ON r.trx_id = w.requesting_trx_id""",
        "information_schema lock waits",
    ),
)

LOCK_QUERIES: Sequence[ProbeQuery] = (
    ProbeQuery("SELECT * FROM information_schema.INNODB_LOCKS", "INNODB_LOCKS"),
    ProbeQuery("SELECT * FROM performance_schema.data_locks", "performance_schema.data_locks"),
)

LOCK_WAITS_UNAVAILABLE = "Lock wait information not available in this MariaDB version"
LOCKS_UNAVAILABLE = "Lock information not available in this MariaDB version"


class DBSnapshotCollector:
    """
    MariaDB snapshot collector.

    Owns exactly one connection per ``collect_all`` call and closes it on
    every exit path.
    """

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        connect: Optional[Callable[..., Any]] = None,
    ):
        """
        Args:
            descriptor: Resolved connection parameters.
            connect: DB-API connect callable (defaults to ``pymysql.connect``).
        """
        self.descriptor = descriptor
        self._connect = connect or pymysql.connect

    def _connection_params(self) -> Dict[str, Any]:
        d = self.descriptor
        return {
            "host": d.host,
            "port": d.port,
            "user": d.user,
            "password": d.password,
            "database": d.database,
            "charset": "utf8mb4",
            "connect_timeout": d.connect_timeout,
            # pymysql applies these per socket operation, which bounds each probe.
            "read_timeout": d.probe_timeout,
            "write_timeout": d.probe_timeout,
            "cursorclass": pymysql.cursors.DictCursor,
        }

    def _get_connection(self):
        """Open the DB connection."""
        return self._connect(**self._connection_params())

    @staticmethod
    def _fetch(conn, query: str) -> List[Row]:
        with conn.cursor() as cur:
            cur.execute(query)
            return list(cur.fetchall())

    def _execute_query(self, conn, query: str, description: str) -> List[Row]:
        """Run a tabular probe; failures become a one-row error marker."""
        try:
            rows = self._fetch(conn, query)
            logger.info(f"{description}: {len(rows)} rows")
            return rows
        except Exception as e:
            logger.warning(f"Failed to execute {description}: {e}")
            return error_marker(str(e))

    def _execute_fallback_chain(
        self,
        conn,
        candidates: Sequence[ProbeQuery],
        section: str,
        unavailable_message: str,
    ) -> List[Row]:
        """Try ``candidates`` in order; exhaustion yields an info marker."""
        for candidate in candidates:
            try:
                rows = self._fetch(conn, candidate.sql)
                logger.info(f"{section} ({candidate.description}): {len(rows)} rows")
                return rows
            except Exception as e:
                logger.debug(f"{candidate.description} not available: {e}")
                continue

        return info_marker(unavailable_message)

    def _execute_show_command(self, conn, command: str, description: str) -> str:
        """Run a SHOW command whose result is free text in a ``Status`` column."""
        try:
            rows = self._fetch(conn, command)
            if rows:
                result = rows[0]
                if "Status" in result:
                    return result["Status"]
                return json.dumps(result, default=str)
            return ""
        except Exception as e:
            logger.warning(f"Failed to execute {description}: {e}")
            return f"Error: {e}"

    def _execute_key_value(self, conn, query: str, description: str) -> Dict[str, Any]:
        """Reduce ``Variable_name``/``Value`` rows to a flat mapping."""
        try:
            rows = self._fetch(conn, query)
            values = {row["Variable_name"]: row["Value"] for row in rows}
            logger.info(f"{description}: {len(values)} variables")
            return values
        except Exception as e:
            logger.warning(f"Failed to get {description.lower()}: {e}")
            return {ERROR_KEY: str(e)}

    def collect_processlist(self, conn) -> List[Row]:
        """Currently running threads."""
        return self._execute_query(conn, "SHOW FULL PROCESSLIST", "Process List")

    def collect_innodb_trx(self, conn) -> List[Row]:
        """Open InnoDB transactions."""
        return self._execute_query(
            conn,
            "SELECT * FROM information_schema.INNODB_TRX",
            "InnoDB Transactions",
        )

    def collect_lock_waits(self, conn) -> List[Row]:
        """Lock waits; the source view differs between server versions."""
        return self._execute_fallback_chain(conn, LOCK_WAIT_QUERIES, "Lock Waits", LOCK_WAITS_UNAVAILABLE)

    def collect_locks(self, conn) -> List[Row]:
        """Held locks; the source view differs between server versions."""
        return self._execute_fallback_chain(conn, LOCK_QUERIES, "Locks", LOCKS_UNAVAILABLE)

    def collect_innodb_status(self, conn) -> str:
        """InnoDB monitor output (buffer pool, I/O, deadlocks)."""
        return self._execute_show_command(conn, "SHOW ENGINE INNODB STATUS", "InnoDB Status")

    def collect_global_status(self, conn) -> Dict[str, Any]:
        return self._execute_key_value(conn, "SHOW GLOBAL STATUS", "Global Status")

    def collect_global_variables(self, conn) -> Dict[str, Any]:
        return self._execute_key_value(conn, "SHOW GLOBAL VARIABLES", "Global Variables")

    def collect_all(self) -> Snapshot:
        """
        Collect every probe over one connection.

        Returns:
            The snapshot dict. If the connection (or the version query) fails,
            it carries an ``error`` key and no section keys; this method does
            not raise for database failures.
        """
        snapshot: Snapshot = {
            "collected_at": now_kst(),
            "db_type": DB_TYPE,
        }

        conn = None
        try:
            conn = self._get_connection()

            version_rows = self._fetch(conn, "SELECT VERSION() AS version")
            snapshot["db_version"] = version_rows[0]["version"] if version_rows else "unknown"

            snapshot[SECTION_PROCESSLIST] = self.collect_processlist(conn)
            snapshot[SECTION_INNODB_TRX] = self.collect_innodb_trx(conn)
            snapshot[SECTION_LOCK_WAITS] = self.collect_lock_waits(conn)
            snapshot[SECTION_LOCKS] = self.collect_locks(conn)
            snapshot[SECTION_INNODB_STATUS] = self.collect_innodb_status(conn)
            snapshot[SECTION_GLOBAL_STATUS] = self.collect_global_status(conn)
            snapshot[SECTION_GLOBAL_VARIABLES] = self.collect_global_variables(conn)

            logger.info("Snapshot collection completed successfully")
        except Exception as e:
            logger.error(f"Failed to collect snapshot: {e}", exc_info=True)
            snapshot["error"] = str(e)
        finally:
            if conn is not None:
                try:
                    conn.close()
                except Exception as e:
                    logger.warning(f"Failed to close connection: {e}")

        return snapshot

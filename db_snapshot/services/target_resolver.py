"""
Target Resolver - application id to connection parameters

Without an application the default database is used. With an application
that has no DB_<APP>_HOST configured, resolution returns None so nothing is
collected from a database the alert was not about.
"""

import logging
from typing import Optional

from db_snapshot.config.settings import DatabaseConfig
from db_snapshot.models.connection import ConnectionDescriptor

logger = logging.getLogger(__name__)


class TargetResolver:
    """Maps an optional application id to a ConnectionDescriptor."""

    def __init__(self, database: DatabaseConfig):
        self._database = database

    def resolve(self, application: Optional[str]) -> Optional[ConnectionDescriptor]:
        """
        Resolve connection parameters for ``application``.

        Args:
            application: Target application id (e.g. "dev", "stg") or None.

        Returns:
            A fully populated descriptor, or None when the application is unmapped.
        """
        db = self._database

        if not application:
            return ConnectionDescriptor(
                host=db.host,
                port=db.port,
                user=db.user,
                password=db.password,
                database=db.name,
                connect_timeout=db.connect_timeout,
                probe_timeout=db.probe_timeout,
            )

        override = db.targets.get(application.lower())
        if override is None:
            logger.warning(f"No database configured for application '{application}'")
            return None

        return ConnectionDescriptor(
            host=override.host,
            port=override.port or db.port,
            user=override.user or db.user,
            password=override.password or db.password,
            database=override.database or db.name,
            connect_timeout=db.connect_timeout,
            probe_timeout=db.probe_timeout,
        )

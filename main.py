"""
DB Incident Snapshot Collector - Main Entry Point

Listens for Grafana alerts via HTTP webhook and captures a MariaDB snapshot
for each firing alert.
"""

import logging
import sys

import uvicorn


def main() -> None:
    # Importing the server configures logging and builds the one application instance.
    from server_fastapi import app

    settings = app.state.settings
    logger = logging.getLogger("db_snapshot.main")

    logger.info(f"Alert listener starting on {settings.api.host}:{settings.api.port}")
    logger.info(f"   Webhook: POST http://localhost:{settings.api.port}/webhook/grafana")
    logger.info(f"   Health:  GET  http://localhost:{settings.api.port}/health")

    try:
        uvicorn.run(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level=settings.api.log_level.lower(),
            access_log=False,
        )
    except Exception as e:
        logger.error(f"FATAL: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

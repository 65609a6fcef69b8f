"""
Scheduled job entry points.

Installed as the ``checkbook-retention`` console script and meant to be
invoked by an external scheduler (cron, Kubernetes CronJob) once a day.
"""

import asyncio
import logging

from checkbook.core.database import (
    async_session_factory,
    close_database_connection,
    engine,
)
from checkbook.core.logging import setup_logging
from checkbook.services.retention_service import RetentionResult, RetentionService

logger = logging.getLogger(__name__)


async def run_retention() -> RetentionResult:
    """Run one retention pass in its own session, then dispose the engine."""
    try:
        async with async_session_factory() as session:
            result = await RetentionService(session).run_cleanup()
    finally:
        await close_database_connection(engine)

    logger.info(
        f"Retention cleanup finished: {result.audit_logs_deleted} audit logs, "
        f"{result.permission_requests_deleted} permission requests deleted"
    )
    return result


def main() -> None:
    setup_logging()
    asyncio.run(run_retention())


if __name__ == "__main__":
    main()

"""
Background supervision of database connectivity.

Jobs run on an APScheduler background thread so HTTP startup never waits
on the database:
- Initial connect: runs once at startup with bounded retries
- Reconnect: scheduled on demand when the engine reports a lost connection
"""

from apscheduler.schedulers.background import BackgroundScheduler
from app.core.database import ConnectionManager
import logging

logger = logging.getLogger(__name__)

CONNECT_JOB_ID = "db_connect"
RECONNECT_JOB_ID = "db_reconnect"


class ConnectionSupervisor:
    def __init__(self, manager: ConnectionManager):
        self.manager = manager
        self.scheduler = BackgroundScheduler()

    def start(self) -> None:
        """
        Start the background scheduler and kick off the initial connect.

        This should be called when the FastAPI app starts.
        """
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Background scheduler started")
        # No trigger: the job runs once, immediately
        self.scheduler.add_job(
            self.manager.connect_with_retry,
            id=CONNECT_JOB_ID,
            name="Initial database connect",
            replace_existing=True,
            max_instances=1,
        )

    def request_reconnect(self) -> None:
        """Schedule a one-off reconnect; a pending one is replaced, not duplicated"""
        if not self.scheduler.running:
            logger.warning("Reconnect requested while scheduler is stopped")
            return
        self.scheduler.add_job(
            self.manager.reconnect,
            id=RECONNECT_JOB_ID,
            name="Database reconnect",
            replace_existing=True,
            max_instances=1,
        )
        logger.warning("Database reconnect scheduled")

    def stop(self) -> None:
        """
        Stop the background scheduler.

        This should be called when the FastAPI app shuts down.
        """
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Background scheduler stopped")

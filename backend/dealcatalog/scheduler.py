"""APScheduler-based import scheduler.

Runs a full import pass (every store's latest batch file) at a fixed
interval.  Scraping itself happens elsewhere; this only picks up the files
the scrapers leave in DATA_DIR.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dealcatalog.config import settings
from dealcatalog.schemas.ingest import ImportResult
from dealcatalog.services.importer import Importer

logger = structlog.get_logger(__name__)

IMPORT_JOB_ID = "import_all_stores"


class ImportScheduler:
    """Manages the periodic import job.

    Args:
        importer: Importer that performs each pass
        interval_minutes: Minutes between passes
        cleanup: Also delete stale deals after each store's import
    """

    def __init__(
        self,
        importer: Importer,
        interval_minutes: Optional[int] = None,
        cleanup: bool = False,
    ):
        self.importer = importer
        self.interval_minutes = interval_minutes or settings.IMPORT_INTERVAL_MINUTES
        self.cleanup = cleanup
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="import_scheduler")

    def start(self) -> Job:
        """Register the import job and start the scheduler.

        The first pass runs immediately, later ones every ``interval_minutes``.
        """
        trigger = IntervalTrigger(
            minutes=self.interval_minutes,
            start_date=datetime.now(timezone.utc),
            timezone="UTC",
        )
        job = self.scheduler.add_job(
            func=self._run_import_wrapper,
            trigger=trigger,
            id=IMPORT_JOB_ID,
            name="Import all stores",
            replace_existing=True,
            max_instances=1,
            next_run_time=datetime.now(timezone.utc),
        )

        if not self.scheduler.running:
            self.scheduler.start()
            self.logger.info("scheduler_started", interval_minutes=self.interval_minutes)
        else:
            self.logger.warning("scheduler_already_running")

        return job

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running pass."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    async def _run_import_wrapper(self) -> Optional[List[ImportResult]]:
        """Job entry point.  Errors are logged so one bad pass does not kill the job."""
        try:
            return await self.importer.import_all(cleanup=self.cleanup)
        except Exception as e:
            self.logger.error("scheduled_import_failed", error=str(e), exc_info=True)
            return None

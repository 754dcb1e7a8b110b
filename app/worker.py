"""Background worker that tracks research jobs for reports."""

import logging
import time
from typing import Dict, Set

from app.config import settings
from app.database import SessionLocal
from app.errors import JobCancelled, JobFailed, PollingStopped, PollingTimeout
from app.services.docs_client import GoogleDocsClient
from app.services.report_store import ReportStore
from app.services.research_client import ResearchClient
from app.services.tracker import JobStatusTracker, PollingTask

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


class ResearchWorker:
    """Attaches a polling task to every report that is waiting on research."""

    def __init__(self, session_factory=SessionLocal, client_factory=ResearchClient):
        """Initialize worker."""
        self.session_factory = session_factory
        self.client_factory = client_factory
        self.poll_interval = settings.WORKER_POLL_INTERVAL
        self.tasks: Dict[str, PollingTask] = {}  # report_id -> live task
        self.cancelled_jobs: Set[str] = set()  # left in research, not re-attached

    def _docs_client(self):
        if not settings.GOOGLE_ACCESS_TOKEN:
            return None
        return GoogleDocsClient(access_token=settings.GOOGLE_ACCESS_TOKEN)

    def attach(self, report_id: str, job_id: str) -> PollingTask:
        """Start tracking one job with a fresh tracker and its own session."""
        db = self.session_factory()
        tracker = JobStatusTracker(
            self.client_factory(),
            store=ReportStore(db),
            docs_client=self._docs_client(),
            logo_url=settings.REPORT_LOGO_URL or None,
        )

        def target(stop_event):
            try:
                return tracker.track(report_id, job_id, stop_event=stop_event)
            finally:
                db.close()

        logger.info(f"Tracking research job {job_id} for report {report_id}")
        return PollingTask(target, name=f"research-poll-{job_id}").start()

    def sweep(self) -> int:
        """Reap finished tasks and attach new ones. Returns the number attached."""
        self.reap()

        db = self.session_factory()
        try:
            pending = [
                (str(report.id), report.openai_job_id)
                for report in ReportStore(db).list_researching()
            ]
        finally:
            db.close()

        attached = 0
        for report_id, job_id in pending:
            if report_id in self.tasks or job_id in self.cancelled_jobs:
                continue
            self.tasks[report_id] = self.attach(report_id, job_id)
            attached += 1

        return attached

    def reap(self) -> None:
        """Drop finished tasks, logging how each ended."""
        for report_id, task in list(self.tasks.items()):
            if not task.done:
                continue
            del self.tasks[report_id]

            error = task.exception()
            if error is None:
                logger.info(f"Research for report {report_id} completed")
            elif isinstance(error, JobFailed):
                logger.warning(f"Research for report {report_id} failed: {error}")
            elif isinstance(error, JobCancelled):
                self.cancelled_jobs.add(error.job_id)
                logger.warning(f"Research for report {report_id} was cancelled")
            elif isinstance(error, PollingTimeout):
                logger.warning(f"Research for report {report_id} still running after {error.attempts} checks")
            elif isinstance(error, PollingStopped):
                logger.info(f"Stopped tracking report {report_id}")
            else:
                logger.error(f"Tracking report {report_id} failed: {error}", exc_info=error)

    def stop_all(self) -> None:
        for task in self.tasks.values():
            task.stop()

    def run(self, stop_event=None):
        """Main worker loop.

        Args:
            stop_event: Optional threading.Event to signal worker to stop
        """
        logger.info("Research worker started")

        while True:
            if stop_event and stop_event.is_set():
                logger.info("Worker stop signal received")
                break

            try:
                self.sweep()
            except KeyboardInterrupt:
                logger.info("Worker shutting down")
                break
            except Exception as e:
                logger.error(f"Worker error: {e}", exc_info=True)

            if stop_event:
                stop_event.wait(self.poll_interval)
            else:
                time.sleep(self.poll_interval)

        self.stop_all()


def worker_loop(stop_event=None):
    """Run worker loop (for use as background thread).

    Args:
        stop_event: Optional threading.Event to signal worker to stop
    """
    worker = ResearchWorker()
    worker.run(stop_event=stop_event)


def main():
    """Entry point for standalone worker."""
    worker = ResearchWorker()
    worker.run()


if __name__ == "__main__":
    main()

"""Research job status tracking.

A tracker drives one external research job from submission to a terminal
state and writes the terminal result into the report exactly once. Its only
state is the attempt counter and the last job it observed, so a fresh
tracker can be attached to the same job id at any time and poll again from
scratch. One tracker polls one job at a time.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

from app.config import settings
from app.errors import (
    JobCancelled,
    JobFailed,
    PollingInProgressError,
    PollingStopped,
    PollingTimeout,
)
from app.schemas.research import JobStatus, ResearchJob

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ResearchJob], None]


class PollingTask:
    """
    Start/stop handle for a poll running on a background thread.

    Stopping prevents any further attempt from being scheduled; a status
    check already in flight is not aborted, its result is discarded.
    """

    def __init__(self, target: Callable[[threading.Event], Any], name: str = "research-poll"):
        self._target = target
        self._stop_event = threading.Event()
        self._done_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._result = None
        self._error: Optional[BaseException] = None

    def _run(self):
        try:
            self._result = self._target(self._stop_event)
        except Exception as e:
            self._error = e
        finally:
            self._done_event.set()

    def start(self) -> "PollingTask":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def done(self) -> bool:
        return self._done_event.is_set()

    def exception(self) -> Optional[BaseException]:
        return self._error

    def result(self, timeout: Optional[float] = None):
        """
        Wait for the poll to finish.

        Returns:
            The terminal ResearchJob

        Raises:
            TimeoutError: If the poll has not finished within ``timeout``
            Exception: Whatever the poll raised
        """
        if not self._done_event.wait(timeout):
            raise TimeoutError("Polling task still running")
        if self._error is not None:
            raise self._error
        return self._result


class JobStatusTracker:
    """Submits research jobs, polls them and persists terminal results."""

    def __init__(self, client, store=None, docs_client=None, logo_url: Optional[str] = None):
        """
        Initialize the tracker.

        Args:
            client: ResearchClient (or anything with submit/check_status/cancel)
            store: Optional ReportStore receiving terminal results
            docs_client: Optional GoogleDocsClient; completed reports are exported through it
            logo_url: Logo placed in exported documents
        """
        self.client = client
        self.store = store
        self.docs_client = docs_client
        self.logo_url = logo_url
        self.attempts = 0
        self.last_job: Optional[ResearchJob] = None
        self._active_job: Optional[str] = None
        self._lock = threading.Lock()

    def submit(self, prompt: str, system_message: Optional[str] = None) -> str:
        return self.client.submit(prompt, system_message)

    def check_status(self, job_id: str) -> ResearchJob:
        return self.client.check_status(job_id)

    def cancel(self, job_id: str) -> None:
        """Best-effort cancel; a later poll may still see the job running."""
        self.client.cancel(job_id)

    @contextmanager
    def _claim(self, job_id: str):
        with self._lock:
            if self._active_job is not None:
                raise PollingInProgressError(f"Already polling research job {self._active_job}")
            self._active_job = job_id
        try:
            yield
        finally:
            with self._lock:
                self._active_job = None

    def is_polling(self, job_id: Optional[str] = None) -> bool:
        """Whether this tracker is polling ``job_id`` (or any job when omitted)."""
        with self._lock:
            if job_id is None:
                return self._active_job is not None
            return self._active_job == job_id

    def poll(
        self,
        job_id: str,
        on_update: Optional[UpdateCallback] = None,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> ResearchJob:
        """
        Check a job on a fixed interval until it reaches a terminal state.

        Args:
            job_id: Backend job id
            on_update: Called with every observed job, in attempt order
            max_attempts: Attempts before giving up (default from settings)
            interval: Seconds between attempts (default from settings)
            stop_event: Set by the caller to stop scheduling attempts

        Returns:
            The completed job

        Raises:
            JobFailed: Backend reported failure; message is the backend's
            JobCancelled: Backend reported cancellation
            PollingTimeout: Attempts exhausted while still in progress
            PollingStopped: ``stop_event`` was set
            StatusCheckError: A status check failed; no further attempt is made
            PollingInProgressError: This tracker is already polling a job
            ValueError: ``max_attempts`` is below 1
        """
        max_attempts = settings.POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
        stop_event = stop_event or threading.Event()

        with self._claim(job_id):
            self.attempts = 0
            self.last_job = None

            while True:
                if stop_event.is_set():
                    raise PollingStopped(f"Stopped polling research job {job_id}", job_id, self.last_job)

                self.attempts += 1
                try:
                    job = self.client.check_status(job_id)
                except Exception as e:
                    logger.error(f"Status check {self.attempts} for research job {job_id} failed: {e}")
                    raise

                if stop_event.is_set():
                    # Result arrived after the caller stopped listening
                    raise PollingStopped(f"Stopped polling research job {job_id}", job_id, self.last_job)

                self.last_job = job
                logger.info(f"Research job {job_id} attempt {self.attempts}/{max_attempts}: {job.status.value}")

                if on_update:
                    on_update(job)

                if job.status.is_terminal:
                    if job.status is JobStatus.COMPLETED:
                        return job
                    if job.status is JobStatus.FAILED:
                        error = job.error
                        raise JobFailed(
                            error.message if error else "Research job failed",
                            job_id,
                            job,
                            error_type=error.type if error else "unknown",
                        )
                    raise JobCancelled("Research job was cancelled", job_id, job)
                if self.attempts >= max_attempts:
                    raise PollingTimeout(
                        "Research job polling timeout",
                        job_id,
                        job,
                        attempts=self.attempts,
                    )

                if stop_event.wait(interval):
                    raise PollingStopped(f"Stopped polling research job {job_id}", job_id, job)

    def track(
        self,
        report_id,
        job_id: str,
        on_update: Optional[UpdateCallback] = None,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> ResearchJob:
        """
        Poll a job and write its terminal result into the report.

        Completed and failed jobs update the report once. Cancellation,
        timeout and stop leave the report in research so tracking can resume.
        """
        try:
            job = self.poll(job_id, on_update, max_attempts, interval, stop_event)
        except JobFailed as e:
            self._persist(report_id, {"status": "failed", "error_message": str(e)})
            raise

        results = job.results
        self._persist(
            report_id,
            {
                "status": "completed",
                "generated_report": results.report if results else "",
                "research_sources": [s.model_dump() for s in results.sources] if results else [],
            },
        )

        if self.docs_client is not None and self.store is not None:
            self._export(report_id, job)

        return job

    def _persist(self, report_id, values: Dict[str, Any]) -> None:
        if self.store is None:
            return
        self.store.update(report_id, values)
        logger.info(f"Report {report_id} marked {values['status']}")

    def _export(self, report_id, job: ResearchJob) -> None:
        report = self.store.get(report_id)
        title = report.report_name if report else f"Research report {job.id}"
        content = job.results.report if job.results else ""
        url = self.docs_client.create_document(title, content, logo_url=self.logo_url)
        self.store.update(report_id, {"google_docs_url": url})
        logger.info(f"Report {report_id} exported to {url}")

    def start(
        self,
        job_id: str,
        report_id=None,
        on_update: Optional[UpdateCallback] = None,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> PollingTask:
        """
        Poll (and, with a report id, track) a job on a background thread.

        Returns:
            A started PollingTask
        """
        if self.is_polling():
            raise PollingInProgressError(f"Already polling research job {self._active_job}")

        def target(stop_event: threading.Event) -> ResearchJob:
            if report_id is None:
                return self.poll(job_id, on_update, max_attempts, interval, stop_event)
            return self.track(report_id, job_id, on_update, max_attempts, interval, stop_event)

        return PollingTask(target, name=f"research-poll-{job_id}").start()

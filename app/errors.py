"""Error taxonomy for research tracking and document export."""

from typing import Optional


class ResearchAPIError(Exception):
    """A call to the research backend failed or returned non-2xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SubmissionError(ResearchAPIError):
    """The research job could not be created."""


class StatusCheckError(ResearchAPIError):
    """A single status check failed."""


class CancellationError(ResearchAPIError):
    """The backend rejected a cancel request."""


class TrackingError(Exception):
    """Non-successful outcome of polling a research job."""

    def __init__(self, message: str, job_id: str, job=None):
        super().__init__(message)
        self.job_id = job_id
        self.job = job


class JobFailed(TrackingError):
    """The backend reported the job as failed."""

    def __init__(self, message: str, job_id: str, job=None, error_type: str = "unknown"):
        super().__init__(message, job_id, job)
        self.error_type = error_type


class JobCancelled(TrackingError):
    """The backend reported the job as cancelled."""


class PollingTimeout(TrackingError):
    """Attempts ran out while the job was still in progress."""

    def __init__(self, message: str, job_id: str, job=None, attempts: int = 0):
        super().__init__(message, job_id, job)
        self.attempts = attempts


class PollingStopped(TrackingError):
    """The caller stopped polling before a terminal state was observed."""


class PollingInProgressError(RuntimeError):
    """A poll for this job is already running on the same tracker."""


class InvalidTransitionError(ValueError):
    """A report update would move its status backwards or clear its document link."""


class DocumentExportError(Exception):
    """The document backend rejected an export."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

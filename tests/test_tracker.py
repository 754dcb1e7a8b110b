"""Tests for the research job status tracker."""

import threading
from unittest.mock import MagicMock

import pytest

from app.errors import (
    JobCancelled,
    JobFailed,
    PollingInProgressError,
    PollingStopped,
    PollingTimeout,
    StatusCheckError,
)
from app.schemas.research import JobStatus, ResearchJob, ResearchJobError, ResearchResults
from app.services.tracker import JobStatusTracker


def _job(status, report=None, error=None):
    job = ResearchJob(id="resp_1", status=status)
    if report is not None:
        job.results = ResearchResults(report=report)
    if error is not None:
        job.error = ResearchJobError(message=error, type="server_error")
    return job


class FakeResearchClient:
    """Returns scripted jobs, repeating the last one."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.cancelled = []

    def submit(self, prompt, system_message=None):
        return "resp_1"

    def check_status(self, job_id):
        index = min(self.calls, len(self.outcomes) - 1)
        self.calls += 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def cancel(self, job_id):
        self.cancelled.append(job_id)


def _tracker(*outcomes, store=None, docs_client=None):
    return JobStatusTracker(FakeResearchClient(*outcomes), store=store, docs_client=docs_client)


def test_poll_resolves_on_completion_and_reports_each_attempt():
    """Test in_progress -> in_progress -> completed across three polls."""
    tracker = _tracker(
        _job(JobStatus.IN_PROGRESS),
        _job(JobStatus.IN_PROGRESS),
        _job(JobStatus.COMPLETED, report="Final text"),
    )
    updates = []

    job = tracker.poll("resp_1", on_update=updates.append, interval=0.01)

    assert [u.status for u in updates] == [JobStatus.IN_PROGRESS, JobStatus.IN_PROGRESS, JobStatus.COMPLETED]
    assert job.results.report == "Final text"
    assert tracker.attempts == 3
    assert tracker.last_job is job


def test_poll_times_out_after_exactly_max_attempts():
    """Test that a job stuck in progress exhausts exactly max_attempts."""
    tracker = _tracker(_job(JobStatus.IN_PROGRESS))
    updates = []

    with pytest.raises(PollingTimeout) as exc_info:
        tracker.poll("resp_1", on_update=updates.append, max_attempts=3, interval=0.01)

    assert tracker.client.calls == 3
    assert len(updates) == 3
    assert exc_info.value.attempts == 3


def test_poll_rejects_with_backend_failure_message():
    tracker = _tracker(_job(JobStatus.FAILED, error="quota exceeded"))

    with pytest.raises(JobFailed) as exc_info:
        tracker.poll("resp_1", interval=0.01)

    assert str(exc_info.value) == "quota exceeded"
    assert exc_info.value.error_type == "server_error"


def test_poll_rejects_on_cancellation():
    tracker = _tracker(_job(JobStatus.IN_PROGRESS), _job(JobStatus.CANCELLED))

    with pytest.raises(JobCancelled):
        tracker.poll("resp_1", interval=0.01)

    assert tracker.client.calls == 2


def test_status_check_error_stops_polling():
    """Test that a failed check propagates without another attempt."""
    tracker = _tracker(_job(JobStatus.IN_PROGRESS), StatusCheckError("boom", status_code=502), _job(JobStatus.COMPLETED))

    with pytest.raises(StatusCheckError):
        tracker.poll("resp_1", interval=0.01)

    assert tracker.client.calls == 2


def test_track_persists_completion_once():
    """Test that a completed job updates the report exactly once."""
    store = MagicMock()
    tracker = _tracker(
        _job(JobStatus.IN_PROGRESS),
        _job(JobStatus.IN_PROGRESS),
        _job(JobStatus.COMPLETED, report="Final text"),
        store=store,
    )
    updates = []

    job = tracker.track("report-1", "resp_1", on_update=updates.append, interval=0.01)

    assert len(updates) == 3
    assert job.results.report == "Final text"
    store.update.assert_called_once()
    report_id, values = store.update.call_args.args
    assert report_id == "report-1"
    assert values["status"] == "completed"
    assert values["generated_report"] == "Final text"
    assert values["research_sources"] == []


def test_track_persists_failure_message():
    store = MagicMock()
    tracker = _tracker(_job(JobStatus.FAILED, error="quota exceeded"), store=store)

    with pytest.raises(JobFailed) as exc_info:
        tracker.track("report-1", "resp_1", interval=0.01)

    assert str(exc_info.value) == "quota exceeded"
    store.update.assert_called_once_with("report-1", {"status": "failed", "error_message": "quota exceeded"})


@pytest.mark.parametrize(
    "outcome, error",
    [
        (_job(JobStatus.CANCELLED), JobCancelled),
        (_job(JobStatus.IN_PROGRESS), PollingTimeout),
    ],
)
def test_track_leaves_report_untouched(outcome, error):
    """Test that cancellation and timeout leave the report researching."""
    store = MagicMock()
    tracker = _tracker(outcome, store=store)

    with pytest.raises(error):
        tracker.track("report-1", "resp_1", max_attempts=2, interval=0.01)

    store.update.assert_not_called()


def test_track_exports_completed_report():
    store = MagicMock()
    store.get.return_value.report_name = "Q4 Market Analysis"
    docs_client = MagicMock()
    docs_client.create_document.return_value = "https://docs.example/d/1"
    tracker = _tracker(_job(JobStatus.COMPLETED, report="# Title"), store=store, docs_client=docs_client)

    tracker.track("report-1", "resp_1", interval=0.01)

    docs_client.create_document.assert_called_once_with("Q4 Market Analysis", "# Title", logo_url=None)
    assert store.update.call_args_list[-1].args == ("report-1", {"google_docs_url": "https://docs.example/d/1"})


def test_second_poll_for_same_job_is_rejected():
    """Test that one tracker polls a job at most once at a time."""
    release = threading.Event()

    class BlockingClient(FakeResearchClient):
        def check_status(self, job_id):
            release.wait(5)
            return _job(JobStatus.COMPLETED, report="done")

    tracker = JobStatusTracker(BlockingClient())
    task = tracker.start("resp_1", interval=0.01)
    try:
        for _ in range(100):
            if tracker.is_polling("resp_1"):
                break
            threading.Event().wait(0.01)

        with pytest.raises(PollingInProgressError):
            tracker.poll("resp_1", interval=0.01)
    finally:
        release.set()

    assert task.result(timeout=5).results.report == "done"
    assert not tracker.is_polling("resp_1")


def test_second_poll_for_other_job_is_rejected():
    """Test that a tracker busy with one job refuses to poll another."""
    release = threading.Event()

    class BlockingClient(FakeResearchClient):
        def check_status(self, job_id):
            release.wait(5)
            self.calls += 1
            return _job(JobStatus.IN_PROGRESS)

    client = BlockingClient()
    tracker = JobStatusTracker(client)
    task = tracker.start("job_a", max_attempts=5, interval=0.01)
    try:
        for _ in range(100):
            if tracker.is_polling("job_a"):
                break
            threading.Event().wait(0.01)

        with pytest.raises(PollingInProgressError):
            tracker.start("job_b", max_attempts=5, interval=0.01)
        with pytest.raises(PollingInProgressError):
            tracker.poll("job_b", max_attempts=5, interval=0.01)
    finally:
        release.set()

    with pytest.raises(PollingTimeout) as exc_info:
        task.result(timeout=5)
    assert exc_info.value.attempts == 5
    assert client.calls == 5
    assert not tracker.is_polling()


def test_max_attempts_below_one_is_rejected():
    tracker = _tracker(_job(JobStatus.IN_PROGRESS))

    with pytest.raises(ValueError):
        tracker.poll("resp_1", max_attempts=0, interval=0.01)

    assert tracker.client.calls == 0


def test_stop_during_status_check_discards_result():
    """Test that a result arriving after stop is neither reported nor persisted."""
    in_flight = threading.Event()
    release = threading.Event()

    class BlockingClient(FakeResearchClient):
        def check_status(self, job_id):
            in_flight.set()
            release.wait(5)
            self.calls += 1
            return _job(JobStatus.COMPLETED, report="late")

    store = MagicMock()
    updates = []
    tracker = JobStatusTracker(BlockingClient(), store=store)
    task = tracker.start("resp_1", report_id="report-1", on_update=updates.append, interval=0.01)

    assert in_flight.wait(5)
    task.stop()
    release.set()

    with pytest.raises(PollingStopped):
        task.result(timeout=5)
    assert tracker.client.calls == 1
    assert updates == []
    store.update.assert_not_called()


def test_fresh_tracker_resumes_same_job():
    """Test that a new tracker can pick up a job from scratch."""
    client = FakeResearchClient(_job(JobStatus.IN_PROGRESS), _job(JobStatus.COMPLETED, report="done"))
    with pytest.raises(PollingTimeout):
        JobStatusTracker(client).poll("resp_1", max_attempts=1, interval=0.01)

    job = JobStatusTracker(client).poll("resp_1", max_attempts=1, interval=0.01)

    assert job.status is JobStatus.COMPLETED


def test_polling_task_stop_prevents_further_attempts():
    """Test that stopping a task ends it without waiting out the interval."""
    tracker = _tracker(_job(JobStatus.IN_PROGRESS))
    first_update = threading.Event()

    task = tracker.start("resp_1", on_update=lambda job: first_update.set(), interval=60)
    assert first_update.wait(5)

    task.stop()

    with pytest.raises(PollingStopped):
        task.result(timeout=5)
    assert task.done
    assert tracker.client.calls == 1


def test_polling_task_with_report_tracks():
    store = MagicMock()
    tracker = _tracker(_job(JobStatus.COMPLETED, report="done"), store=store)

    task = tracker.start("resp_1", report_id="report-1", interval=0.01)

    assert task.result(timeout=5).results.report == "done"
    store.update.assert_called_once()


def test_cancel_delegates_to_client():
    tracker = _tracker(_job(JobStatus.IN_PROGRESS))

    tracker.cancel("resp_1")

    assert tracker.client.cancelled == ["resp_1"]

"""Tests for the priority job queue and the job runner."""

import re
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from docstruct.extraction.schemas import ProcessedDocument
from docstruct.jobs.queue import (
    JobNotFoundError,
    JobStateError,
    JobStatus,
    Priority,
    PriorityJobQueue,
)
from docstruct.jobs.runner import run_job
from docstruct.processing.errors import ErrorKind, ProcessingError


@pytest.fixture
def queue() -> PriorityJobQueue:
    return PriorityJobQueue()


class TestEnqueue:
    """Tests for adding jobs and priority ordering."""

    def test_new_job_defaults(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("user-1", "scan.pdf")
        item = queue.get_status(job_id)
        assert item.status == JobStatus.PENDING
        assert item.priority == Priority.NORMAL
        assert item.retry_count == 0
        assert item.user_id == "user-1"
        assert item.filename == "scan.pdf"
        assert item.created_at.tzinfo is not None
        assert item.started_at is None

    def test_job_id_format(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        assert re.fullmatch(r"job_\d+_[0-9a-f]{9}", job_id)

    def test_ids_are_unique(self, queue: PriorityJobQueue) -> None:
        ids = {queue.enqueue("u", f"{i}.pdf") for i in range(50)}
        assert len(ids) == 50

    def test_priority_order_is_stable(self, queue: PriorityJobQueue) -> None:
        ids = [
            queue.enqueue("u", name, priority)
            for name, priority in [
                ("a.pdf", Priority.LOW),
                ("b.pdf", Priority.HIGH),
                ("c.pdf", Priority.NORMAL),
                ("d.pdf", Priority.HIGH),
            ]
        ]
        ordered = queue.list_jobs()
        assert [i.priority for i in ordered] == [
            Priority.HIGH,
            Priority.HIGH,
            Priority.NORMAL,
            Priority.LOW,
        ]
        assert [i.id for i in ordered] == [ids[1], ids[3], ids[2], ids[0]]

    def test_accepts_priority_strings(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf", "high")
        assert queue.get_status(job_id).priority == Priority.HIGH

    def test_unknown_job_is_none(self, queue: PriorityJobQueue) -> None:
        assert queue.get_status("job_0_missing") is None

    def test_status_is_a_snapshot(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        snapshot = queue.get_status(job_id)
        queue.update_progress(job_id, 40)
        assert snapshot.progress is None
        assert queue.get_status(job_id).progress == 40

    def test_concurrent_enqueue(self, queue: PriorityJobQueue) -> None:
        def worker() -> None:
            for _ in range(100):
                queue.enqueue("u", "a.pdf", Priority.LOW)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(queue) == 400


class TestTransitions:
    """Tests for the job state machine."""

    def test_full_lifecycle(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        queue.mark_processing(job_id)
        assert queue.get_status(job_id).started_at is not None
        queue.update_progress(job_id, 50)
        queue.mark_completed(job_id)
        item = queue.get_status(job_id)
        assert item.status == JobStatus.COMPLETED
        assert item.completed_at is not None
        assert item.progress == 50

    def test_pending_can_fail_directly(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        queue.mark_failed(job_id, "corrupt file")
        item = queue.get_status(job_id)
        assert item.status == JobStatus.FAILED
        assert item.error_message == "corrupt file"
        assert item.completed_at is not None

    def test_progress_is_not_bounds_checked(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        queue.update_progress(job_id, 150)
        assert queue.get_status(job_id).progress == 150

    def test_terminal_states_are_final(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        queue.mark_completed(job_id)
        with pytest.raises(JobStateError):
            queue.mark_completed(job_id)
        with pytest.raises(JobStateError):
            queue.mark_failed(job_id, "late")
        with pytest.raises(JobStateError):
            queue.mark_processing(job_id)
        with pytest.raises(JobStateError):
            queue.update_progress(job_id, 10)
        assert queue.get_status(job_id).status == JobStatus.COMPLETED

    def test_processing_cannot_restart(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        queue.mark_processing(job_id)
        with pytest.raises(JobStateError):
            queue.mark_processing(job_id)

    def test_unknown_job_mutations_raise(self, queue: PriorityJobQueue) -> None:
        with pytest.raises(JobNotFoundError):
            queue.mark_completed("nope")
        with pytest.raises(JobNotFoundError):
            queue.update_progress("nope", 1)
        with pytest.raises(JobNotFoundError):
            queue.record_retry("nope")

    def test_record_retry(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        assert queue.record_retry(job_id) == 1
        assert queue.record_retry(job_id) == 2
        assert queue.get_status(job_id).retry_count == 2


class TestPurge:
    """Tests for removing old finished jobs."""

    def test_removes_only_old_terminal_jobs(self, queue: PriorityJobQueue) -> None:
        done = queue.enqueue("u", "done.pdf")
        pending = queue.enqueue("u", "pending.pdf")
        queue.mark_completed(done)

        future = datetime.now(timezone.utc) + timedelta(seconds=1)
        assert queue.purge(before=future) == 1
        assert queue.get_status(done) is None
        assert queue.get_status(pending) is not None

    def test_keeps_recent_jobs(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        queue.mark_failed(job_id, "x")
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        assert queue.purge(before=past) == 0
        assert len(queue) == 1


class TestRunJob:
    """Tests for running a queued job through an orchestrator."""

    def test_success_marks_completed(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        document = ProcessedDocument(
            text="ok", page_count=1, confidence=0.9, processing_time_ms=1.0
        )
        orchestrator = MagicMock()
        orchestrator.run.return_value = document

        result = run_job(queue, job_id, orchestrator, b"%PDF", enable_form_parsing=True)

        assert result is document
        item = queue.get_status(job_id)
        assert item.status == JobStatus.COMPLETED
        assert item.progress == 100
        assert item.started_at is not None
        assert orchestrator.run.call_args.kwargs["enable_form_parsing"] is True

    def test_failure_marks_failed_and_reraises(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")
        orchestrator = MagicMock()
        orchestrator.run.side_effect = ProcessingError(
            ErrorKind.INVALID_ARGUMENT, "corrupt pdf"
        )

        with pytest.raises(ProcessingError):
            run_job(queue, job_id, orchestrator, b"%PDF")

        item = queue.get_status(job_id)
        assert item.status == JobStatus.FAILED
        assert item.error_message == "corrupt pdf"
        assert item.progress == 0

    def test_retries_are_counted(self, queue: PriorityJobQueue) -> None:
        job_id = queue.enqueue("u", "a.pdf")

        def fake_run(content, mime_type, enable_form_parsing, on_retry):
            on_retry(ProcessingError(ErrorKind.TIMEOUT))
            on_retry(ProcessingError(ErrorKind.TIMEOUT))
            return ProcessedDocument(
                text="", page_count=1, confidence=0.9, processing_time_ms=0.0
            )

        orchestrator = MagicMock()
        orchestrator.run.side_effect = fake_run

        run_job(queue, job_id, orchestrator, b"%PDF")

        assert queue.get_status(job_id).retry_count == 2

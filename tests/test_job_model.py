from datetime import datetime, timezone

import pytest

from label_print_service.errors import InvalidTransitionError
from label_print_service.models import JobStatus, PrintJob


def _assert_invariants(job: PrintJob) -> None:
    assert (job.finished_at is not None) == job.status.is_terminal
    if job.status is JobStatus.DONE:
        assert job.artifact_path
        assert job.error_code is None and job.error_message is None
    if job.status is JobStatus.FAILED:
        assert job.error_code
        assert job.artifact_path is None


def test_new_job_defaults():
    job = PrintJob(entity_type="item", entity_ids=[1])
    assert job.status is JobStatus.QUEUED
    assert job.org_id == "system"
    assert job.attempts == 0
    assert job.started_at is None and job.finished_at is None
    _assert_invariants(job)


def test_happy_path_transitions():
    job = PrintJob(entity_type="item", entity_ids=[1])
    job.start()
    assert job.status is JobStatus.PROCESSING
    assert isinstance(job.started_at, datetime)
    assert job.attempts == 1
    _assert_invariants(job)

    job.complete("printjobs/system/a.zpl")
    assert job.status is JobStatus.DONE
    assert job.artifact_path == "printjobs/system/a.zpl"
    _assert_invariants(job)


def test_failure_records_error_details():
    job = PrintJob(entity_type="item", entity_ids=[1])
    job.start()
    job.fail("ConnectFailed", "Connection timeout to 10.0.0.5:9100")
    assert job.status is JobStatus.FAILED
    assert job.error_code == "ConnectFailed"
    assert "timeout" in job.error_message
    _assert_invariants(job)


def test_terminal_states_cannot_move_back():
    job = PrintJob(entity_type="item", entity_ids=[1])
    job.start()
    job.complete("x")
    with pytest.raises(InvalidTransitionError):
        job.start()
    with pytest.raises(InvalidTransitionError):
        job.fail("X", "y")
    assert job.status is JobStatus.DONE


def test_cannot_skip_processing():
    job = PrintJob(entity_type="item", entity_ids=[1])
    with pytest.raises(InvalidTransitionError):
        job.complete("x")
    with pytest.raises(InvalidTransitionError):
        job.fail("X", "y")
    assert job.status is JobStatus.QUEUED


def test_stale_processing_can_be_picked_up_again():
    job = PrintJob(entity_type="item", entity_ids=[1])
    job.apply_transition(JobStatus.PROCESSING, at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    first_start = job.started_at

    job.start()
    assert job.status is JobStatus.PROCESSING
    assert job.attempts == 2
    assert job.started_at > first_start
    _assert_invariants(job)


def test_artifact_path_only_with_done():
    job = PrintJob(entity_type="item", entity_ids=[1])
    job.start()
    with pytest.raises(InvalidTransitionError):
        job.apply_transition(JobStatus.FAILED, artifact_path="x", error_code="E")
    with pytest.raises(InvalidTransitionError):
        job.apply_transition(JobStatus.DONE)
    with pytest.raises(InvalidTransitionError):
        job.apply_transition(JobStatus.DONE, artifact_path="x", error_code="E")
    assert job.status is JobStatus.PROCESSING


def test_retry_after_failure_starts_clean_attempt():
    job = PrintJob(entity_type="item", entity_ids=[1])
    job.start()
    job.fail("WriteFailed", "broken pipe")

    job.start()
    assert job.status is JobStatus.PROCESSING
    assert job.attempts == 2
    assert job.error_code is None and job.error_message is None
    assert job.finished_at is None
    _assert_invariants(job)


def test_dict_round_trip_keeps_state():
    job = PrintJob(entity_type="location", entity_ids=["A1", "A2"], options={"dpi": 300}, user_name="Ana")
    job.start()
    job.complete("tcp://10.0.0.5:9100?bytes=10")

    data = job.to_dict()
    assert data["status"] == "done"
    assert isinstance(data["started_at"], str)

    restored = PrintJob.from_dict(data)
    assert restored == job

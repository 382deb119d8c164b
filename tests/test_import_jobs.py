import pytest

from company_import.domain.imports.batch_commit import ChunkResult
from company_import.domain.imports.errors import StatusTransitionError
from company_import.domain.imports.jobs import (
    ImportStatusTracker,
    delete_import_status,
    get_import_status,
    list_import_statuses,
    start_import_status,
    trim_errors,
    update_import_status,
)


def test_start_creates_processing_record():
    status = start_import_status("job-1", "job-1.json")

    assert status["status"] == "processing"
    assert status["file_name"] == "job-1.json"
    assert status["start_time"] is not None
    assert status["end_time"] is None
    assert status["total_records"] == 0
    assert status["errors"] == []


def test_update_rejects_non_terminal_status():
    start_import_status("job-2", "job-2.csv")

    with pytest.raises(StatusTransitionError):
        update_import_status("job-2", status="processing")


def test_terminal_status_cannot_be_reopened():
    start_import_status("job-3", "job-3.csv")
    update_import_status("job-3", status="completed", finished=True)

    with pytest.raises(StatusTransitionError):
        update_import_status("job-3", status="failed", errors=["late"])
    with pytest.raises(StatusTransitionError):
        update_import_status("job-3", processed_records=5)

    status = get_import_status("job-3")
    assert status["status"] == "completed"
    assert status["errors"] == []
    assert status["end_time"] is not None


def test_update_unknown_job_raises():
    with pytest.raises(StatusTransitionError):
        update_import_status("missing", total_records=3)


def test_restart_resets_existing_record():
    start_import_status("job-4", "job-4.json")
    update_import_status("job-4", status="failed", errors=["boom"], finished=True)

    status = start_import_status("job-4", "job-4.json")

    assert status["status"] == "processing"
    assert status["errors"] == []
    assert status["end_time"] is None


def test_trim_errors_keeps_most_recent():
    errors = [f"error {i}" for i in range(25)]

    trimmed = trim_errors(errors)

    assert len(trimmed) == 20
    assert trimmed[0] == "error 5"
    assert trimmed[-1] == "error 24"
    assert trim_errors(errors, limit=0) == []


def test_tracker_accumulates_chunk_results():
    tracker = ImportStatusTracker("job-5", "job-5.json")
    tracker.start()
    tracker.set_total(3)

    tracker.record_chunk(ChunkResult(chunk_index=0, successful=2))
    tracker.record_chunk(ChunkResult(chunk_index=1, failed=1, errors=["Batch commit error 1: x"]))
    final = tracker.complete()

    assert final["status"] == "completed"
    assert final["total_records"] == 3
    assert final["processed_records"] == 3
    assert final["successful_records"] == 2
    assert final["failed_records"] == 1
    assert final["errors"] == ["Batch commit error 1: x"]
    assert final["end_time"] is not None


def test_tracker_fail_appends_message():
    tracker = ImportStatusTracker("job-6", "job-6.xml")
    tracker.start()

    final = tracker.fail("Unsupported file type: .xml")

    assert final["status"] == "failed"
    assert final["errors"] == ["Unsupported file type: .xml"]


def test_list_and_delete_statuses():
    start_import_status("job-7", "a.json")
    start_import_status("job-8", "b.json")

    assert {status["id"] for status in list_import_statuses()} == {"job-7", "job-8"}
    assert delete_import_status("job-7") is True
    assert delete_import_status("job-7") is False
    assert get_import_status("job-7") is None

"""Tests for the in-memory job registry and the read projections."""

import threading

import pytest

from app.errors import DuplicateJobError, JobNotFoundError
from app.jobs.models import DispatchStarted, JobStatus, PerformanceLevel
from app.jobs.reader import JobReader
from app.jobs.registry import JobRegistry


def test_create_and_get(registry: JobRegistry):
    record = registry.create("job-1", "uploads/a.mp4", PerformanceLevel.PREMIUM)

    assert registry.get("job-1") == record
    assert record.performance_level == PerformanceLevel.PREMIUM
    assert record.status == JobStatus.PENDING
    assert len(record.logs) == 1


def test_create_rejects_duplicate_id(registry: JobRegistry):
    registry.create("job-1", "a.mp4")

    with pytest.raises(DuplicateJobError):
        registry.create("job-1", "b.mp4")
    assert registry.get("job-1").video_key == "a.mp4"


def test_get_unknown_returns_none(registry: JobRegistry):
    assert registry.get("missing") is None


def test_list_all_keeps_submission_order(registry: JobRegistry):
    for i in range(5):
        registry.create(f"job-{i}", f"v{i}.mp4")

    assert [r.job_id for r in registry.list_all()] == [f"job-{i}" for i in range(5)]


def test_mutate_unknown_job_raises(registry: JobRegistry):
    with pytest.raises(JobNotFoundError):
        registry.mutate("missing", lambda r: r)


def test_apply_replaces_record_and_keeps_old_snapshot(registry: JobRegistry):
    before = registry.create("job-1", "a.mp4")
    after = registry.apply("job-1", DispatchStarted())

    assert registry.get("job-1") is after
    assert before.status == JobStatus.PENDING
    assert after.status == JobStatus.RUNNING


def test_concurrent_mutations_are_not_lost(registry: JobRegistry):
    registry.create("job-1", "a.mp4")

    def append_many():
        for _ in range(200):
            registry.mutate(
                "job-1",
                lambda r: r.model_copy(update={"logs": r.logs + r.logs[:1]}),
            )

    threads = [threading.Thread(target=append_many) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(registry.get("job-1").logs) == 1 + 4 * 200


def test_reader_projections(registry: JobRegistry):
    registry.create("job-1", "a.mp4")
    registry.create("job-2", "b.mp4")
    registry.apply("job-2", DispatchStarted())
    reader = JobReader(registry)

    view = reader.get_job("job-2")
    assert view.status == JobStatus.RUNNING
    assert view.video_key == "b.mp4"
    assert [e.message for e in view.logs][-1] == "Task status changed to RUNNING"

    summaries = reader.list_jobs()
    assert [s.job_id for s in summaries] == ["job-1", "job-2"]
    assert not hasattr(summaries[0], "logs")


def test_reader_unknown_job(registry: JobRegistry):
    reader = JobReader(registry)

    with pytest.raises(JobNotFoundError):
        reader.get_job("nope")
    assert all(s.job_id != "nope" for s in reader.list_jobs())

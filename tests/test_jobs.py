import json
from datetime import datetime, timedelta, timezone

import pytest

from clusterimager.jobs import (
    ZERO_TIME,
    Filter,
    Job,
    JobInput,
    JobMetadata,
    JobResult,
    JobType,
    Status,
    Store,
)


def make_job(**overrides):
    values = dict(
        id="job-1",
        type=JobType.CROP,
        status=Status.QUEUED,
        parameters={"x": 1, "y": 2, "width": 3, "height": 4},
        input=JobInput(storage_key="uploads/a.png", mime_type="image/png", size=42),
    )
    values.update(overrides)
    return Job(**values)


def test_minimal_document_omits_result_and_error():
    data = make_job().to_dict()
    assert set(data) == {"job_id", "type", "status", "parameters", "input", "metadata"}
    assert data["job_id"] == "job-1"
    assert data["type"] == "crop"
    assert data["status"] == "queued"


def test_result_and_error_are_included_when_set():
    result = JobResult(storage_key="out/a.jpg", url="/out/a.jpg", mime_type="image/jpeg",
                       size=10, width=3, height=4)
    data = make_job(status=Status.FAILED, result=result, error="boom").to_dict()
    assert data["status"] == "failed"
    assert data["error"] == "boom"
    assert data["result"]["storage_key"] == "out/a.jpg"
    assert data["result"]["width"] == 3


def test_unset_timestamps_use_zero_time():
    data = make_job().to_dict()
    assert data["metadata"]["started_at"] == ZERO_TIME
    assert data["metadata"]["created_at"] == "0001-01-01T00:00:00Z"


def test_naive_timestamp_is_written_as_utc():
    job = make_job(metadata=JobMetadata(created_at=datetime(2024, 1, 2, 3, 4, 5)))
    assert job.to_dict()["metadata"]["created_at"] == "2024-01-02T03:04:05Z"


def test_json_round_trip():
    created = datetime(2024, 3, 4, 5, 6, 7, 891011, tzinfo=timezone.utc)
    job = make_job(
        status=Status.COMPLETED,
        result=JobResult(storage_key="k", url="u", mime_type="image/jpeg", size=5, width=6, height=7),
        metadata=JobMetadata(created_at=created, updated_at=created, retry_count=2, request_id="req"),
    )
    assert Job.from_json(job.to_json()) == job


def test_zero_time_parses_to_none():
    job = Job.from_json(make_job().to_json())
    assert job.metadata.created_at is None
    assert job.metadata.completed_at is None


def test_parses_nanoseconds_and_offset():
    data = make_job().to_dict()
    data["metadata"]["created_at"] = "2024-05-06T07:08:09.123456789+02:00"
    job = Job.from_dict(data)
    assert job.metadata.created_at == datetime(
        2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone(timedelta(hours=2))
    )


def test_unknown_keys_are_ignored():
    data = make_job().to_dict()
    data["extra"] = True
    data["input"]["unused"] = "x"
    job = Job.from_dict(data)
    assert job.input == JobInput(storage_key="uploads/a.png", mime_type="image/png", size=42)


def test_missing_job_id_is_rejected():
    data = make_job().to_dict()
    del data["job_id"]
    with pytest.raises(ValueError):
        Job.from_dict(data)


def test_unknown_status_is_rejected():
    data = make_job().to_dict()
    data["status"] = "sleeping"
    with pytest.raises(ValueError):
        Job.from_dict(data)


def test_non_object_document_is_rejected():
    with pytest.raises(ValueError):
        Job.from_json(json.dumps([1, 2, 3]))


def test_invalid_json_is_rejected():
    with pytest.raises(ValueError):
        Job.from_json("{not json")


def test_bad_timestamp_is_rejected():
    data = make_job().to_dict()
    data["metadata"]["updated_at"] = "yesterday"
    with pytest.raises(ValueError):
        Job.from_dict(data)


def test_status_values_match_wire_names():
    assert [s.value for s in Status] == ["queued", "processing", "completed", "failed"]
    assert Status("processing") is Status.PROCESSING
    assert JobType("resize") is JobType.RESIZE


def test_filter_accepts_criteria():
    since = datetime(2024, 1, 1, tzinfo=timezone.utc)
    flt = Filter(status=Status.QUEUED, since=since, limit=5)
    assert flt.status is Status.QUEUED
    assert flt.since == since
    assert flt.until is None


def test_store_is_abstract():
    with pytest.raises(TypeError):
        Store()
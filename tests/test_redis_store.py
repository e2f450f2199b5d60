import fnmatch
from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest
import redis

from clusterimager.jobs import Filter, Job, JobNotFoundError, JobResult, JobType, Status
from clusterimager.redis_store import RedisStore, StoreError


class FakeRedis:
    def __init__(self):
        self.strings = {}
        self.sets = {}
        self.expiries = {}
        self.closed = False
        self.ping_error = None
        self.fail_writes = False

    def ping(self):
        if self.ping_error is not None:
            raise self.ping_error
        return True

    def set(self, key, value, ex=None, px=None):
        if self.fail_writes:
            raise redis.ConnectionError("connection refused")
        self.strings[key] = value.encode() if isinstance(value, str) else bytes(value)
        self.expiries[key] = (ex, px)
        return True

    def get(self, key):
        if key in self.sets:
            raise redis.ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return self.strings.get(key)

    def sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    def srem(self, key, *members):
        current = self.sets.get(key, set())
        current.difference_update(members)
        if not current:
            self.sets.pop(key, None)
        return len(members)

    def smembers(self, key):
        return {member.encode() for member in self.sets.get(key, set())}

    def scan_iter(self, match=None):
        for key in [*self.strings, *self.sets]:
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key.encode()

    def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += (self.strings.pop(key, None) is not None) + (self.sets.pop(key, None) is not None)
        return removed

    def close(self):
        self.closed = True


@pytest.fixture
def client():
    return FakeRedis()


@pytest.fixture
def store(client):
    return RedisStore(client, "jobs", timedelta(seconds=90))


def make_job(job_id="job-1", status=Status.QUEUED):
    return Job(id=job_id, type=JobType.RESIZE, status=status, parameters={"width": 100, "height": 200})


def test_create_stores_job_and_index(store, client):
    job = make_job()
    store.create(job)
    assert "jobs:job-1" in client.strings
    assert client.sets["jobs:status:queued"] == {"job-1"}
    assert store.get("job-1") == job


def test_create_sets_timestamps(store):
    before = datetime.now(timezone.utc)
    job = make_job()
    store.create(job)
    after = datetime.now(timezone.utc)
    assert before <= job.metadata.created_at <= after
    assert job.metadata.updated_at == job.metadata.created_at


def test_whole_second_ttl_uses_ex(store, client):
    job = make_job()
    store.create(job)
    assert store.ttl == timedelta(seconds=90)
    assert store.get("job-1") == job
    assert client.expiries["jobs:job-1"] == (90, None)


def test_sub_second_ttl_uses_px(client):
    RedisStore(client, "jobs", timedelta(milliseconds=1500)).create(make_job())
    assert client.expiries["jobs:job-1"] == (None, 1500)


def test_no_ttl_sets_no_expiry(client):
    RedisStore(client, "jobs").create(make_job())
    assert client.expiries["jobs:job-1"] == (None, None)


def test_get_missing_job(store):
    with pytest.raises(JobNotFoundError):
        store.get("absent")


def test_get_corrupt_job(store, client):
    client.strings["jobs:bad"] = b"{not json"
    with pytest.raises(StoreError):
        store.get("bad")


def test_write_failure_raises_store_error(store, client):
    client.fail_writes = True
    with pytest.raises(StoreError):
        store.create(make_job())


def test_update_moves_job_between_indexes(store, client):
    job = make_job()
    store.create(job)
    job.status = Status.PROCESSING
    store.update(job)
    assert "jobs:status:queued" not in client.sets
    assert client.sets["jobs:status:processing"] == {"job-1"}
    assert store.get("job-1").status is Status.PROCESSING


def test_update_status_processing_sets_started_at(store):
    store.create(make_job())
    store.update_status("job-1", Status.PROCESSING)
    job = store.get("job-1")
    assert job.status is Status.PROCESSING
    assert job.metadata.started_at is not None
    assert job.metadata.completed_at is None


def test_update_status_completed_stores_result(store, client):
    store.create(make_job())
    result = JobResult(storage_key="out/1.jpg", url="/out/1.jpg", mime_type="image/jpeg",
                       size=10, width=100, height=200)
    store.update_status("job-1", Status.COMPLETED, result)
    job = store.get("job-1")
    assert job.result == result
    assert job.metadata.completed_at is not None
    assert client.sets["jobs:status:completed"] == {"job-1"}


def test_update_status_failed_records_error(store):
    store.create(make_job())
    store.update_status("job-1", Status.FAILED, None, "decode failed")
    job = store.get("job-1")
    assert job.error == "decode failed"
    assert job.metadata.completed_at is not None


def test_update_status_missing_job(store):
    with pytest.raises(JobNotFoundError):
        store.update_status("absent", Status.PROCESSING)


def test_list_by_status(store):
    store.create(make_job("a"))
    store.create(make_job("b"))
    store.create(make_job("c", Status.FAILED))
    jobs = store.list(Filter(status=Status.QUEUED))
    assert sorted(job.id for job in jobs) == ["a", "b"]


def test_list_all_skips_index_sets(store):
    store.create(make_job("a"))
    store.create(make_job("b", Status.FAILED))
    assert sorted(job.id for job in store.list()) == ["a", "b"]


def test_list_limit_and_offset(store):
    for name in "abcde":
        store.create(make_job(name))
    assert len(store.list(Filter(status=Status.QUEUED, limit=2, offset=1))) == 2
    assert len(store.list(Filter(status=Status.QUEUED, limit=10))) == 5


def test_list_time_filters(store):
    old, new = make_job("old"), make_job("new")
    store.create(old)
    store.create(new)
    old.metadata.created_at = datetime(2020, 1, 1, tzinfo=timezone.utc)
    store.update(old)
    cutoff = datetime(2021, 1, 1, tzinfo=timezone.utc)
    assert [job.id for job in store.list(Filter(since=cutoff))] == ["new"]
    assert [job.id for job in store.list(Filter(until=cutoff))] == ["old"]


def test_delete_removes_job_and_index(store, client):
    store.create(make_job())
    store.delete("job-1")
    assert "jobs:job-1" not in client.strings
    assert "jobs:status:queued" not in client.sets
    with pytest.raises(JobNotFoundError):
        store.get("job-1")


def test_delete_missing_job(store):
    with pytest.raises(JobNotFoundError):
        store.delete("absent")


def test_close_closes_client(store, client):
    assert store.client is client
    assert client.closed is False
    store.close()
    assert store.client.closed is True


def test_from_url_rejects_bad_url():
    with pytest.raises(StoreError):
        RedisStore.from_url("nope://localhost", "jobs")


def test_from_url_reports_connection_failure():
    fake = FakeRedis()
    fake.ping_error = redis.ConnectionError("refused")
    with mock.patch.object(redis.Redis, "from_url", return_value=fake):
        with pytest.raises(StoreError):
            RedisStore.from_url("redis://localhost:6379/0", "jobs")
    assert fake.closed is True


def test_from_url_builds_store():
    fake = FakeRedis()
    with mock.patch.object(redis.Redis, "from_url", return_value=fake):
        store = RedisStore.from_url("redis://localhost:6379/0", "imgjobs", 30)
    assert store.client is fake
    assert store.prefix == "imgjobs"
    assert store.ttl == timedelta(seconds=30)
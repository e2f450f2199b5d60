"""A job store kept in Redis, with one index set per status."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import redis

from .jobs import Filter, Job, JobNotFoundError, JobResult, Status, Store

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class StoreError(Exception):
    """The job store could not complete an operation."""


def _to_timedelta(ttl: timedelta | float | int | None) -> timedelta | None:
    if ttl is None:
        return None
    if not isinstance(ttl, timedelta):
        ttl = timedelta(seconds=ttl)
    return ttl if ttl > timedelta(0) else None


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return _EARLIEST
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisStore(Store):
    """Stores each job as JSON under "<prefix>:<id>" with an optional TTL."""

    def __init__(
        self,
        client: Any,
        prefix: str,
        ttl: timedelta | float | int | None = None,
    ) -> None:
        self.client = client
        self.prefix = prefix
        self.ttl = _to_timedelta(ttl)

    @classmethod
    def from_url(
        cls, url: str, prefix: str, ttl: timedelta | float | int | None = None
    ) -> RedisStore:
        """Connect to the Redis server at url and check that it answers."""
        try:
            client = redis.Redis.from_url(url, socket_connect_timeout=5)
        except ValueError as exc:
            raise StoreError(f"failed to parse Redis URL: {exc}") from exc
        try:
            client.ping()
        except redis.RedisError as exc:
            client.close()
            raise StoreError(f"failed to connect to Redis: {exc}") from exc
        return cls(client, prefix, ttl)

    def _key(self, job_id: str) -> str:
        return f"{self.prefix}:{job_id}"

    def _index_key(self, status: Status) -> str:
        return f"{self.prefix}:status:{Status(status).value}"

    def _expiry(self) -> dict[str, int]:
        if self.ttl is None:
            return {}
        if self.ttl % timedelta(seconds=1) == timedelta(0):
            return {"ex": int(self.ttl.total_seconds())}
        return {"px": self.ttl // timedelta(milliseconds=1)}

    def _save(self, job: Job, action: str) -> None:
        try:
            self.client.set(self._key(job.id), job.to_json(), **self._expiry())
        except redis.RedisError as exc:
            raise StoreError(f"failed to {action} job: {exc}") from exc

    def _add_to_index(self, job: Job) -> None:
        self.client.sadd(self._index_key(job.status), job.id)

    def _remove_from_index(self, job: Job) -> None:
        self.client.srem(self._index_key(job.status), job.id)

    def create(self, job: Job) -> None:
        now = datetime.now(timezone.utc)
        job.metadata.created_at = now
        job.metadata.updated_at = now
        self._save(job, "create")
        try:
            self._add_to_index(job)
        except redis.RedisError as exc:
            raise StoreError(f"failed to add to index: {exc}") from exc

    def get(self, job_id: str) -> Job:
        try:
            data = self.client.get(self._key(job_id))
        except redis.RedisError as exc:
            raise StoreError(f"failed to get job: {exc}") from exc
        if data is None:
            raise JobNotFoundError(job_id)
        try:
            return Job.from_json(data)
        except ValueError as exc:
            raise StoreError(f"failed to unmarshal job: {exc}") from exc

    def update(self, job: Job) -> None:
        try:
            old = self.get(job.id)
        except (JobNotFoundError, StoreError):
            pass
        else:
            try:
                self._remove_from_index(old)
            except redis.RedisError:
                pass

        job.metadata.updated_at = datetime.now(timezone.utc)
        self._save(job, "update")
        try:
            self._add_to_index(job)
        except redis.RedisError as exc:
            raise StoreError(f"failed to update index: {exc}") from exc

    def update_status(
        self,
        job_id: str,
        status: Status,
        result: JobResult | None = None,
        error: str = "",
    ) -> None:
        job = self.get(job_id)
        job.status = Status(status)
        job.result = result
        job.error = error

        if job.status is Status.PROCESSING:
            job.metadata.started_at = datetime.now(timezone.utc)
        elif job.status in (Status.COMPLETED, Status.FAILED):
            job.metadata.completed_at = datetime.now(timezone.utc)

        self.update(job)

    def _candidate_keys(self, flt: Filter) -> list[str]:
        if flt.status is not None:
            try:
                members = self.client.smembers(self._index_key(flt.status))
            except redis.RedisError as exc:
                raise StoreError(f"failed to get job IDs from index: {exc}") from exc
            return [self._key(_text(member)) for member in members]
        try:
            return [_text(key) for key in self.client.scan_iter(match=f"{self.prefix}:*")]
        except redis.RedisError as exc:
            raise StoreError(f"failed to scan keys: {exc}") from exc

    def list(self, filter: Filter | None = None) -> list[Job]:
        flt = filter if filter is not None else Filter()
        keys = self._candidate_keys(flt)

        if flt.limit > 0 and len(keys) > flt.limit:
            keys = keys[flt.offset : flt.offset + flt.limit]

        since = _as_utc(flt.since) if flt.since is not None else None
        until = _as_utc(flt.until) if flt.until is not None else None

        jobs: list[Job] = []
        for key in keys:
            try:
                data = self.client.get(key)
            except redis.RedisError:
                continue
            if data is None:
                continue
            try:
                job = Job.from_json(data)
            except ValueError:
                continue

            created = _as_utc(job.metadata.created_at)
            if since is not None and created < since:
                continue
            if until is not None and created > until:
                continue
            jobs.append(job)
        return jobs

    def delete(self, job_id: str) -> None:
        job = self.get(job_id)
        try:
            self._remove_from_index(job)
        except redis.RedisError as exc:
            raise StoreError(f"failed to remove from index: {exc}") from exc
        try:
            self.client.delete(self._key(job_id))
        except redis.RedisError as exc:
            raise StoreError(f"failed to delete job: {exc}") from exc

    def close(self) -> None:
        """Close the connection to Redis."""
        self.client.close()

    def __enter__(self) -> RedisStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
"""Image processing jobs, their JSON wire format and the storage interface."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

ZERO_TIME = "0001-01-01T00:00:00Z"

_TIME_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)


class JobNotFoundError(LookupError):
    """No job is stored under the requested identifier."""

    def __init__(self, job_id: str = "") -> None:
        super().__init__("job not found")
        self.job_id = job_id


class Status(str, Enum):
    """Lifecycle state of a job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobType(str, Enum):
    """Kind of image operation a job performs."""

    RESIZE = "resize"
    CROP = "crop"


def format_time(value: datetime | None) -> str:
    """Render a timestamp in RFC 3339 form; None stands for the zero time."""
    if value is None:
        return ZERO_TIME
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def parse_time(text: Any) -> datetime | None:
    """Read an RFC 3339 timestamp; the zero time comes back as None."""
    if text is None:
        return None
    if not isinstance(text, str):
        raise ValueError(f"invalid timestamp: {text!r}")
    match = _TIME_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp: {text!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    micros = int((match.group(7) or "")[:6].ljust(6, "0"))
    zone = match.group(8)
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    value = datetime(year, month, day, hour, minute, second, micros, tzinfo=tz)
    if value.utcoffset() == timedelta(0) and value.replace(tzinfo=None) == datetime(1, 1, 1):
        return None
    return value


def _pick(cls: type, data: Mapping[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass
class JobInput:
    """Where the job's source image is stored."""

    storage_key: str = ""
    mime_type: str = ""
    size: int = 0


@dataclass
class JobResult:
    """Where and what the finished image is."""

    storage_key: str = ""
    url: str = ""
    mime_type: str = ""
    size: int = 0
    width: int = 0
    height: int = 0


@dataclass
class JobMetadata:
    """Bookkeeping for a job; unset timestamps are None."""

    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    retry_count: int = 0
    request_id: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return {
            "created_at": format_time(self.created_at),
            "updated_at": format_time(self.updated_at),
            "started_at": format_time(self.started_at),
            "completed_at": format_time(self.completed_at),
            "retry_count": self.retry_count,
            "request_id": self.request_id,
        }

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> JobMetadata:
        return cls(
            created_at=parse_time(data.get("created_at")),
            updated_at=parse_time(data.get("updated_at")),
            started_at=parse_time(data.get("started_at")),
            completed_at=parse_time(data.get("completed_at")),
            retry_count=int(data.get("retry_count") or 0),
            request_id=str(data.get("request_id") or ""),
        )


@dataclass
class Job:
    """An image processing job."""

    id: str
    type: JobType
    status: Status = Status.QUEUED
    parameters: dict[str, Any] = field(default_factory=dict)
    input: JobInput = field(default_factory=JobInput)
    result: JobResult | None = None
    error: str = ""
    metadata: JobMetadata = field(default_factory=JobMetadata)

    def to_dict(self) -> dict[str, Any]:
        """Return the job as a JSON-ready mapping."""
        data: dict[str, Any] = {
            "job_id": self.id,
            "type": JobType(self.type).value,
            "status": Status(self.status).value,
            "parameters": self.parameters,
            "input": asdict(self.input),
        }
        if self.result is not None:
            data["result"] = asdict(self.result)
        if self.error:
            data["error"] = self.error
        data["metadata"] = self.metadata._to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Job:
        """Build a job from a mapping; raise ValueError if it is malformed."""
        if not isinstance(data, Mapping):
            raise ValueError("job document must be an object")
        try:
            result = data.get("result")
            return cls(
                id=str(data["job_id"]),
                type=JobType(data["type"]),
                status=Status(data["status"]),
                parameters=dict(data.get("parameters") or {}),
                input=JobInput(**_pick(JobInput, data.get("input") or {})),
                result=JobResult(**_pick(JobResult, result)) if result is not None else None,
                error=str(data.get("error") or ""),
                metadata=JobMetadata._from_dict(data.get("metadata") or {}),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"invalid job document: {exc}") from exc

    def to_json(self) -> str:
        """Serialise the job to JSON text."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> Job:
        """Parse a job from JSON text; raise ValueError if it is malformed."""
        return cls.from_dict(json.loads(text))


@dataclass
class ResizeParams:
    """Parameters of a resize operation."""

    width: int
    height: int


@dataclass
class CropParams:
    """Parameters of a crop operation."""

    x: int
    y: int
    width: int
    height: int


@dataclass
class Filter:
    """Criteria for listing jobs; None and zero mean no restriction."""

    status: Status | None = None
    type: JobType | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int = 0
    offset: int = 0


class Store(ABC):
    """Persistent storage for jobs."""

    @abstractmethod
    def create(self, job: Job) -> None:
        """Store a new job."""

    @abstractmethod
    def get(self, job_id: str) -> Job:
        """Return the job, raising JobNotFoundError if it is absent."""

    @abstractmethod
    def update(self, job: Job) -> None:
        """Replace a stored job."""

    @abstractmethod
    def update_status(
        self,
        job_id: str,
        status: Status,
        result: JobResult | None = None,
        error: str = "",
    ) -> None:
        """Set a job's status, result and error message."""

    @abstractmethod
    def list(self, filter: Filter | None = None) -> list[Job]:
        """Return the jobs that match the filter."""

    @abstractmethod
    def delete(self, job_id: str) -> None:
        """Remove a job."""
"""Interfaces for publishing jobs to and consuming them from a queue."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from .jobs import Job

JobHandler = Callable[[Job], None]
"""Processes one job; raising signals that the job failed."""


@dataclass(frozen=True)
class QueueConfig:
    """Connection and delivery settings for a job queue."""

    url: str
    stream: str
    subject: str
    consumer: str
    max_retry: int = 0


class _Closeable:
    """Lets a connection be used as a context manager that closes it on exit."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()  # type: ignore[attr-defined]


class Publisher(_Closeable, ABC):
    """Sends jobs to the queue."""

    @abstractmethod
    def publish(self, job: Job) -> None:
        """Publish a job to the queue."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""


class Consumer(_Closeable, ABC):
    """Receives jobs from the queue."""

    @abstractmethod
    def subscribe(self, handler: JobHandler) -> None:
        """Call handler for each delivered job until the subscription ends.

        A job whose handler raises is redelivered until the configured
        retry limit is reached.
        """

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""


class Queue(Publisher, Consumer, ABC):
    """A queue that both publishes and consumes jobs."""
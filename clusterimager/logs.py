"""Structured JSON logging with per-request identifiers."""

from __future__ import annotations

import json
import logging
import sys
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any

_UNKNOWN_REQUEST_ID = "unknown"

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.ERROR: "ERROR",
}


def generate_request_id() -> str:
    """Return a fresh random request identifier."""
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Return the request identifier of the current context, or "unknown"."""
    request_id = _request_id.get()
    return request_id if request_id is not None else _UNKNOWN_REQUEST_ID


@contextmanager
def request_id_scope(request_id: str) -> Iterator[str]:
    """Make request_id the current request identifier inside the block."""
    token = _request_id.set(request_id)
    try:
        yield request_id
    finally:
        _request_id.reset(token)


def _timestamp() -> str:
    now = datetime.now(timezone.utc).astimezone()
    text = now.isoformat(timespec="seconds")
    return text[:-6] + "Z" if text.endswith("+00:00") else text


class Logger:
    """Writes one JSON object per record, with bound attributes."""

    def __init__(self, level: int = logging.INFO, stream: IO[str] | None = None) -> None:
        self.level = level
        self.stream = stream if stream is not None else sys.stdout
        self._attrs: dict[str, Any] = {}
        self._lock = threading.Lock()

    def bind(self, **kwargs: Any) -> Logger:
        """Return a logger that adds the given attributes to every record."""
        child = Logger(self.level, self.stream)
        child._attrs = {**self._attrs, **kwargs}
        child._lock = self._lock
        return child

    def with_request_id(self) -> Logger:
        """Return a logger carrying the current request identifier."""
        return self.bind(request_id=get_request_id())

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def _log(self, level: int, message: str, attrs: dict[str, Any]) -> None:
        if level < self.level:
            return
        record: dict[str, Any] = {
            "time": _timestamp(),
            "level": _LEVEL_NAMES[level],
            "msg": message,
        }
        record.update(self._attrs)
        record.update(attrs)
        line = json.dumps(record, default=str)
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()
"""WSGI middleware that tags and logs every request."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .logs import Logger, generate_request_id, request_id_scope

_REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class _ResponseState:
    status: int = 200
    size: int = 0


def _remote_addr(environ: dict[str, Any]) -> str:
    addr = environ.get("REMOTE_ADDR", "")
    port = environ.get("REMOTE_PORT")
    return f"{addr}:{port}" if port else addr


class RequestLoggingMiddleware:
    """Assigns a request ID, echoes it in a header and logs start and end."""

    def __init__(self, app: Callable[..., Iterable[bytes]], logger: Logger) -> None:
        self.app = app
        self.logger = logger

    def __call__(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> list[bytes]:
        started = time.monotonic()
        request_id = generate_request_id()
        state = _ResponseState()
        method = environ.get("REQUEST_METHOD", "")
        path = environ.get("PATH_INFO", "")

        def tracking_start_response(status, headers, exc_info=None):
            state.status = int(status.split(None, 1)[0])
            if not any(name.lower() == _REQUEST_ID_HEADER.lower() for name, _ in headers):
                headers = [*headers, (_REQUEST_ID_HEADER, request_id)]
            write = start_response(status, headers, exc_info)

            def counting_write(data: bytes) -> None:
                state.size += len(data)
                write(data)

            return counting_write

        with request_id_scope(request_id):
            logger = self.logger.with_request_id()
            logger.info(
                "request started",
                method=method,
                path=path,
                remote_addr=_remote_addr(environ),
                user_agent=environ.get("HTTP_USER_AGENT", ""),
            )

            result = self.app(environ, tracking_start_response)
            try:
                chunks = list(result)
            finally:
                close = getattr(result, "close", None)
                if close is not None:
                    close()
            state.size += sum(len(chunk) for chunk in chunks)

            logger.info(
                "request completed",
                method=method,
                path=path,
                status=state.status,
                size=state.size,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
        return chunks
"""The HTTP server exposing the image endpoints."""

from __future__ import annotations

import argparse
import logging
import queue
import signal
import threading
from collections.abc import Sequence
from http import HTTPStatus

from werkzeug.serving import WSGIRequestHandler, make_server
from werkzeug.wrappers import Request, Response

from .handlers import Handlers
from .logs import Logger
from .middleware import RequestLoggingMiddleware
from .processors import Registry, default_registry

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
READ_TIMEOUT_SECONDS = 5
SHUTDOWN_GRACE_SECONDS = 5


class _TimeoutRequestHandler(WSGIRequestHandler):
    timeout = READ_TIMEOUT_SECONDS


def create_app(logger: Logger | None = None, registry: Registry | None = None):
    """Build the WSGI application with routing and request logging."""
    if logger is None:
        logger = Logger(logging.INFO)
    if registry is None:
        registry = default_registry()
    handlers = Handlers(logger, registry)
    routes = {"/crop": handlers.crop, "/resize": handlers.resize}

    @Request.application
    def dispatch(request: Request) -> Response:
        handler = routes.get(request.path)
        if handler is None:
            return Response(
                "404 page not found\n",
                status=HTTPStatus.NOT_FOUND,
                content_type="text/plain; charset=utf-8",
            )
        return handler(request)

    return RequestLoggingMiddleware(dispatch, logger)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve image crop and resize endpoints.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server until interrupted; return the process exit status."""
    args = _parse_args(argv)
    logger = Logger(logging.INFO)
    logger.info("initializing server")

    app = create_app(logger, default_registry())
    try:
        server = make_server(
            args.host, args.port, app, threaded=True, request_handler=_TimeoutRequestHandler
        )
    except (OSError, SystemExit) as exc:
        logger.error("server error", error=exc or f"cannot listen on {args.host}:{args.port}")
        return 1

    events: queue.Queue[tuple[str, object]] = queue.Queue()

    def on_signal(signum, _frame):
        events.put(("signal", signal.Signals(signum).name))

    previous = {
        sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    def serve() -> None:
        try:
            server.serve_forever()
        except Exception as exc:  # reported to the main thread
            events.put(("error", exc))

    try:
        logger.info("server started", addr=f"{args.host}:{server.server_port}")
        threading.Thread(target=serve, name="http-server", daemon=True).start()

        while True:
            try:
                kind, detail = events.get(timeout=0.2)
                break
            except queue.Empty:
                continue

        if kind == "error":
            logger.error("server error", error=detail)
            server.server_close()
            return 1

        logger.info("shutdown signal received", signal=detail)
        stopper = threading.Thread(target=server.shutdown, daemon=True)
        stopper.start()
        stopper.join(SHUTDOWN_GRACE_SECONDS)
        if stopper.is_alive():
            logger.error("graceful shutdown failed", error="timed out waiting for requests")
        try:
            server.server_close()
        except OSError as exc:
            logger.error("forced shutdown failed", error=exc)
        logger.info("server stopped")
        return 0
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


if __name__ == "__main__":
    raise SystemExit(main())
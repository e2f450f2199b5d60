"""Application errors that carry an HTTP status code."""

from __future__ import annotations

from http import HTTPStatus


class AppError(Exception):
    """An error with the HTTP status it should be reported with."""

    def __init__(
        self,
        code: HTTPStatus,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


def bad_request(message: str, cause: BaseException | None = None) -> AppError:
    """Build a 400 error, optionally wrapping an underlying error."""
    return AppError(HTTPStatus.BAD_REQUEST, message, cause)


def internal_error(message: str) -> AppError:
    """Build a 500 error."""
    return AppError(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def method_not_allowed() -> AppError:
    """Build a 405 error."""
    return AppError(HTTPStatus.METHOD_NOT_ALLOWED, "Method not allowed")
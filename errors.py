"""
Error taxonomy shared by the Printify/Pexels clients, the request gate
and the web app.

Every error carries the HTTP status code we answer with, so the web layer
can render any of them into the JSON error envelope without a lookup table.
"""

import traceback
from datetime import datetime, timezone
from typing import Optional


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used in every JSON envelope."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ApiError(Exception):
    """Base error with an HTTP status code and a user-facing message."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self, include_stack: bool = False) -> dict:
        error = {
            "statusCode": self.status_code,
            "message": self.message,
            "timestamp": utc_timestamp(),
        }
        if self.details:
            error["details"] = self.details
        if include_stack and self.__traceback__ is not None:
            error["stack"] = "".join(traceback.format_exception(type(self), self, self.__traceback__))
        return error


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class PayloadTooLargeError(ApiError):
    status_code = 413


class UnsupportedMediaError(ApiError):
    status_code = 415


class RateLimitError(ApiError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self, include_stack: bool = False) -> dict:
        error = super().to_dict(include_stack)
        error["retryAfter"] = self.retry_after
        return error


class UpstreamUnavailableError(ApiError):
    status_code = 503


class UpstreamError(ApiError):
    """Non-2xx answer from an upstream API that has no dedicated class."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int, body=None):
        super().__init__(message, details={"upstreamStatus": upstream_status})
        self.upstream_status = upstream_status
        self.body = body


class InternalError(ApiError):
    status_code = 500

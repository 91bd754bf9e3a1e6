"""Structured exceptions for request and API errors."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from rest_client_core.errors.models import ApiError


class RestClientError(Exception):
    """Base exception for everything raised by rest-client-core itself."""

    pass


class InvalidBodyError(RestClientError, ValueError):
    """Request body cannot be encoded for the negotiated content type.

    Raised before anything is sent.
    """

    def __init__(self, message: str, content_type: str | None = None):
        super().__init__(message)
        self.content_type = content_type


class RequestTimeoutError(RestClientError, TimeoutError):
    """Request did not complete within its timeout."""

    def __init__(self, key: str, timeout: float):
        super().__init__(f"Request {key} timed out after {timeout}s")
        self.key = key
        self.timeout = timeout


class RequestCancelledError(RestClientError):
    """Request was superseded by a newer request with the same cancellation key.

    This is not an application error: callers issuing overlapping duplicate
    requests can simply drop the stale result.
    """

    def __init__(self, key: str):
        super().__init__(f"Request {key} was cancelled by a newer request")
        self.key = key


class MockFixtureInvalidError(RestClientError):
    """Mock fixture is not a JSON object with `body` and `code` keys."""

    pass


class ApiException(RestClientError):
    """Non-2xx response classified into an ApiError."""

    def __init__(
        self,
        status_code: int,
        reason_phrase: str | None = None,
        api_error: "ApiError | None" = None,
        headers: dict[str, str] | None = None,
        response: "httpx.Response | None" = None,
    ):
        message = api_error.message if api_error is not None else None
        super().__init__(f"{status_code} {reason_phrase}: {message}" if message else f"{status_code} {reason_phrase}")
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.api_error = api_error
        self.headers = headers if headers is not None else {}
        self.response = response


class ClientError(ApiException):
    """4xx client errors."""

    pass


class BadRequestError(ClientError):
    """400 Bad Request."""

    pass


class UnauthorizedError(ClientError):
    """401 Unauthorized."""

    pass


class ForbiddenError(ClientError):
    """403 Forbidden."""

    pass


class NotFoundError(ClientError):
    """404 Not Found."""

    pass


class ConflictError(ClientError):
    """409 Conflict."""

    pass


class ValidationError(ClientError):
    """422 Unprocessable Entity (validation errors)."""

    def __init__(self, *args, validation_errors: list[str] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.validation_errors = validation_errors if validation_errors is not None else []


class RateLimitError(ClientError):
    """429 Too Many Requests."""

    def __init__(self, *args, retry_after: int | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.retry_after = retry_after


class ServerError(ApiException):
    """5xx server errors."""

    pass

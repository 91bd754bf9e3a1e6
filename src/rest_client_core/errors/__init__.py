"""Error model and exception taxonomy for API clients."""

from rest_client_core.errors.exceptions import (
    ApiException,
    BadRequestError,
    ClientError,
    ConflictError,
    ForbiddenError,
    InvalidBodyError,
    MockFixtureInvalidError,
    NotFoundError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
    RestClientError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from rest_client_core.errors.handler import ErrorHandler, classify_error, raise_for_status
from rest_client_core.errors.models import ApiError, ApiSubError

__all__ = [
    "ApiError",
    "ApiException",
    "ApiSubError",
    "BadRequestError",
    "ClientError",
    "ConflictError",
    "ErrorHandler",
    "ForbiddenError",
    "InvalidBodyError",
    "MockFixtureInvalidError",
    "NotFoundError",
    "RateLimitError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "RestClientError",
    "ServerError",
    "UnauthorizedError",
    "ValidationError",
    "classify_error",
    "raise_for_status",
]

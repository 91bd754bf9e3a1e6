"""Error handling utilities for HTTP responses."""

import json
import logging
from collections.abc import Callable, Mapping

import httpx

from rest_client_core.content_type import ContentType, is_json, mime_type
from rest_client_core.errors.exceptions import (
    ApiException,
    BadRequestError,
    ClientError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from rest_client_core.errors.models import ApiError

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[httpx.Response], httpx.Response]
"""Takes an error response and returns it modified, unmodified or replaced."""

UNKNOWN_ERROR_MESSAGE = "Unknown error"

_TEXT_MIME_TYPES = frozenset([ContentType.TEXT.value, ContentType.HTML.value])


def classify_error(response: httpx.Response) -> ApiError:
    """Classify a failed response into an ApiError.

    The decision is made on the response content type:
    - JSON (problem+json included): a JSON object is mapped field by field, anything
      else falls back to the raw body text
    - text/html and text/plain: the raw body text is the message
    - anything else: "Unknown error"

    Args:
        response: HTTP response object with its body read

    Returns:
        ApiError describing the failure
    """
    content_type = response.headers.get("content-type", "")
    headers = dict(response.headers)
    status_code = response.status_code

    if is_json(content_type):
        try:
            data = json.loads(response.content)
        except (ValueError, UnicodeDecodeError):
            data = None
        if isinstance(data, Mapping):
            return ApiError.from_json(data, status_code=status_code, raw_body=response.text, headers=headers)
        return ApiError(status_code=status_code, message=response.text, headers=headers)

    if mime_type(content_type) in _TEXT_MIME_TYPES:
        return ApiError(status_code=status_code, message=response.text, headers=headers)

    return ApiError(status_code=status_code, message=UNKNOWN_ERROR_MESSAGE, headers=headers)


def raise_for_status(response: httpx.Response, error_handler: ErrorHandler | None = None) -> httpx.Response:
    """Return 2xx responses unchanged, raise an ApiException for anything else.

    When an error handler is given it receives every non-2xx response and its
    result is returned instead; classification is skipped in that case.

    Args:
        response: HTTP response object
        error_handler: Optional handler intercepting error responses

    Returns:
        The response, or the error handler's substitute

    Raises:
        ApiException subclass based on status code
    """
    if response.is_success:
        return response

    if error_handler is not None:
        return error_handler(response)

    api_error = classify_error(response)
    status_code = response.status_code

    exception_map = {
        400: BadRequestError,
        401: UnauthorizedError,
        403: ForbiddenError,
        404: NotFoundError,
        409: ConflictError,
        422: ValidationError,
        429: RateLimitError,
    }

    # Determine exception class
    if status_code in exception_map:
        exc_class = exception_map[status_code]
    elif 400 <= status_code < 500:
        exc_class = ClientError
    elif 500 <= status_code < 600:
        exc_class = ServerError
    else:
        exc_class = ApiException

    kwargs = {
        "reason_phrase": response.reason_phrase,
        "api_error": api_error,
        "headers": dict(response.headers),
        "response": response,
    }

    if exc_class is RateLimitError:
        retry_after = None
        if "retry-after" in response.headers:
            try:
                retry_after = int(response.headers["retry-after"])
            except (ValueError, TypeError):
                retry_after = None
        kwargs["retry_after"] = retry_after
    elif exc_class is ValidationError:
        kwargs["validation_errors"] = api_error.reasons

    exception = exc_class(status_code, **kwargs)
    logger.error(f"{_describe_request(response)} failed: {exception}")
    raise exception


def _describe_request(response: httpx.Response) -> str:
    try:
        request = response.request
    except RuntimeError:
        # response built without a request, e.g. in tests
        return "Request"
    return f"{request.method} {request.url}"

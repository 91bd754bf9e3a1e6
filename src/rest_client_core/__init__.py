"""REST Client Core - runtime for asynchronous REST API clients.

This library provides:
- URI resolution against a base URL, with custom URI builders
- Request body encoding selected by content type
- Per-client cancellation of superseded duplicate requests and per-request timeouts
- Classification of non-2xx responses into typed exceptions
- OAuth2 password grant and bearer authentication as a transport layer
- Composable transport layers (retry, default headers, logging)
- A fixture-driven mock client for tests

Example:
    ```python
    from rest_client_core import HttpApiClient, NotFoundError
    from rest_client_core.auth import InMemoryCredentialProvider
    from rest_client_core.transport import create_transport_stack

    provider = InMemoryCredentialProvider.from_env(prefix="MY_API_")
    transport = create_transport_stack(retry_strategy="rate_limited", auth_provider=provider)

    async with HttpApiClient("https://api.example.com/v1", transport=transport) as client:
        try:
            response = await client.get("users/42")
        except NotFoundError as e:
            print(e.api_error.message)
    ```
"""

from rest_client_core.body import (
    Body,
    BytesBody,
    ListBody,
    MappingBody,
    ObjectBody,
    TextBody,
    encode_body,
    to_body,
)
from rest_client_core.cancellation import CancellationHandle, CancellationRegistry
from rest_client_core.client import DEFAULT_TIMEOUT, BaseApiClient, HttpApiClient
from rest_client_core.content_type import ContentType
from rest_client_core.errors import (
    ApiError,
    ApiException,
    ApiSubError,
    BadRequestError,
    ClientError,
    ConflictError,
    ErrorHandler,
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
    classify_error,
    raise_for_status,
)
from rest_client_core.models import HttpMethod, RequestSpec
from rest_client_core.multipart import (
    Media,
    MediaResolver,
    MultipartField,
    MultipartFieldType,
    PathMediaResolver,
    fields_from_mapping,
)
from rest_client_core.uri import QueryParams, UriBuilder, resolve_uri

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_TIMEOUT",
    "ApiError",
    "ApiException",
    "ApiSubError",
    "BadRequestError",
    "BaseApiClient",
    "Body",
    "BytesBody",
    "CancellationHandle",
    "CancellationRegistry",
    "ClientError",
    "ConflictError",
    "ContentType",
    "ErrorHandler",
    "ForbiddenError",
    "HttpApiClient",
    "HttpMethod",
    "InvalidBodyError",
    "ListBody",
    "MappingBody",
    "Media",
    "MediaResolver",
    "MockFixtureInvalidError",
    "MultipartField",
    "MultipartFieldType",
    "NotFoundError",
    "ObjectBody",
    "PathMediaResolver",
    "QueryParams",
    "RateLimitError",
    "RequestCancelledError",
    "RequestSpec",
    "RequestTimeoutError",
    "RestClientError",
    "ServerError",
    "TextBody",
    "UnauthorizedError",
    "UriBuilder",
    "ValidationError",
    "__version__",
    "classify_error",
    "encode_body",
    "fields_from_mapping",
    "raise_for_status",
    "resolve_uri",
    "to_body",
]

"""Transport layer components for composable HTTP middleware.

Transport layers wrap an httpx transport to add retry logic, default
headers, logging and OAuth2 authentication. Each one takes the transport it
wraps and is itself a transport, so they compose freely.

Modules:
    retry: Retry logic with multiple strategies
    headers: Default headers
    log: Request/response logging with timing

Example:
    ```python
    from rest_client_core import HttpApiClient
    from rest_client_core.transport import create_transport_stack

    transport = create_transport_stack(
        retry_strategy="rate_limited",
        default_headers={"Accept": "application/json"},
    )
    client = HttpApiClient("https://api.example.com", transport=transport)
    ```
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Literal

import httpx

from rest_client_core.transport.headers import DefaultHeadersTransport, HeadersBuilder
from rest_client_core.transport.log import LoggingTransport
from rest_client_core.transport.retry import (
    IdempotentOnlyRetry,
    RateLimitAwareRetry,
    RetryTransport,
    TransportErrorRetry,
)

if TYPE_CHECKING:
    from rest_client_core.auth.credentials import OAuth2ServiceProvider

RetryStrategy = Literal["transport_errors", "idempotent", "rate_limited"]


def create_transport_stack(
    inner: httpx.AsyncBaseTransport | None = None,
    *,
    retry_strategy: RetryStrategy | None = "transport_errors",
    max_retries: int = 3,
    default_headers: Mapping[str, str] | HeadersBuilder | None = None,
    auth_provider: "OAuth2ServiceProvider | None" = None,
    enable_logging: bool = True,
    logger: logging.Logger | None = None,
    log_bodies: bool = False,
) -> httpx.AsyncBaseTransport:
    """Build the default transport stack.

    Layers, outermost first: logging -> retry -> default headers -> OAuth2 -> inner.

    Args:
        inner: Transport sending the requests, httpx.AsyncHTTPTransport() by default
        retry_strategy: "transport_errors", "idempotent", "rate_limited" or None for no retries
        max_retries: Maximum number of retry attempts
        default_headers: Headers added to requests that don't carry them
        auth_provider: Credential provider enabling the OAuth2 layer
        enable_logging: Add the logging layer
        logger: Logger for the logging layer
        log_bodies: Log request and response bodies

    Returns:
        Outermost transport of the stack
    """
    transport = inner if inner is not None else httpx.AsyncHTTPTransport()

    if auth_provider is not None:
        from rest_client_core.auth.oauth2 import OAuth2Transport

        transport = OAuth2Transport(provider=auth_provider, inner=transport)

    if default_headers:
        transport = DefaultHeadersTransport(wrapped_transport=transport, headers=default_headers)

    if retry_strategy == "transport_errors":
        transport = TransportErrorRetry(wrapped_transport=transport, max_retries=max_retries)
    elif retry_strategy == "idempotent":
        transport = IdempotentOnlyRetry(wrapped_transport=transport, max_retries=max_retries)
    elif retry_strategy == "rate_limited":
        transport = RateLimitAwareRetry(wrapped_transport=transport, max_retries=max_retries)
    elif retry_strategy is not None:
        raise ValueError(f"Unknown retry strategy: {retry_strategy!r}")

    if enable_logging:
        transport = LoggingTransport(wrapped_transport=transport, logger=logger, log_bodies=log_bodies)

    return transport


__all__ = [
    "DefaultHeadersTransport",
    "IdempotentOnlyRetry",
    "LoggingTransport",
    "RateLimitAwareRetry",
    "RetryStrategy",
    "RetryTransport",
    "TransportErrorRetry",
    "create_transport_stack",
]

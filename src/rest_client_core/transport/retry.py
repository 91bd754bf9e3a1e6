"""Retry transports for resilient API clients.

The API client itself never retries. Retries are added by wrapping its
transport with one of these strategies:

| Strategy | Transport errors | 429 (Rate Limit) | 5xx Errors | Best For |
|----------|------------------|------------------|------------|----------|
| `TransportErrorRetry` | All methods | ❌ No retry | ❌ No retry | Default, never duplicates an answered request |
| `IdempotentOnlyRetry` | All methods | ❌ No retry | GET, HEAD, OPTIONS, TRACE | APIs without rate limiting |
| `RateLimitAwareRetry` | Idempotent methods | ✅ All methods | GET, HEAD, PUT, DELETE, OPTIONS, TRACE | APIs with 429 rate limiting |

POST, PATCH and the non-standard verbs (EXEC, PURGE, RESET, LOCK, UNLOCK) are
never treated as idempotent.

## Example

```python
import httpx

from rest_client_core import HttpApiClient
from rest_client_core.transport.retry import RateLimitAwareRetry

transport = RateLimitAwareRetry(
    wrapped_transport=httpx.AsyncHTTPTransport(),
    max_retries=5,
    max_backoff=60,  # Cap backoff at 60 seconds
)
client = HttpApiClient("https://api.example.com", transport=transport)
```
"""

import asyncio
import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx

logger = logging.getLogger(__name__)


class RetryTransport(httpx.AsyncBaseTransport):
    """Base class for retry strategies.

    Subclasses decide per response (`_response_retry_delay`) and per transport
    error (`_should_retry_error`) whether another attempt is made.
    asyncio cancellation is never retried.

    Args:
        wrapped_transport: The underlying transport to wrap
        max_retries: Maximum number of retry attempts
        backoff_factor: Multiplier for exponential backoff
    """

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        max_retries: int = 5,
        backoff_factor: float = 1.0,
    ) -> None:
        self._wrapped_transport = wrapped_transport
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

    async def aclose(self) -> None:
        await self._wrapped_transport.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Send the request, retrying as the strategy allows.

        Args:
            request: The HTTP request to send

        Returns:
            HTTP response (after retries if needed)
        """
        retries = 0

        while True:
            try:
                response = await self._wrapped_transport.handle_async_request(request)
            except httpx.TransportError as e:
                if retries >= self.max_retries or not self._should_retry_error(request, e):
                    raise

                retries += 1
                delay = self._calculate_backoff_delay(retries)

                logger.warning(
                    f"Request {request.method} {request.url} failed with {e!r}, "
                    f"retrying in {delay}s (attempt {retries}/{self.max_retries})"
                )

                await asyncio.sleep(delay)
                continue

            delay = self._response_retry_delay(request, response, retries) if retries < self.max_retries else None
            if delay is None:
                # Success or non-retryable error
                return response

            retries += 1
            logger.warning(
                f"Request {request.method} {request.url} failed with {response.status_code}, "
                f"retrying in {delay}s (attempt {retries}/{self.max_retries})"
            )

            # release the connection of the discarded response
            await response.aclose()
            await asyncio.sleep(delay)

    def _should_retry_error(self, request: httpx.Request, error: httpx.TransportError) -> bool:
        return True

    def _response_retry_delay(self, request: httpx.Request, response: httpx.Response, retries: int) -> float | None:
        """Delay before retrying `response`, or None to return it."""
        return None

    def _calculate_backoff_delay(self, retry_number: int) -> float:
        """Exponential backoff: backoff_factor * (2 ** (retry_number - 1)).

        Default backoff sequence: 1, 2, 4, 8, 16 seconds

        Args:
            retry_number: Current retry attempt (1-indexed)
        """
        return self.backoff_factor * (2 ** (retry_number - 1))


class TransportErrorRetry(RetryTransport):
    """Retry any method, but only when no response was received.

    Network errors mean the server never answered, so even non-idempotent
    requests are retried. Responses, successful or not, are returned as they are.
    Uses a fixed interval between attempts.

    Args:
        wrapped_transport: The underlying transport to wrap
        max_retries: Maximum number of retry attempts (default: 3)
        retry_interval: Seconds between attempts (default: 5)
    """

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        max_retries: int = 3,
        retry_interval: float = 5.0,
    ) -> None:
        super().__init__(wrapped_transport=wrapped_transport, max_retries=max_retries)
        self.retry_interval = retry_interval

    def _calculate_backoff_delay(self, retry_number: int) -> float:
        return self.retry_interval


class IdempotentOnlyRetry(RetryTransport):
    """Retry transport that only retries truly idempotent methods on 5xx errors.

    This is the safest response-based strategy - it will never repeat an
    operation the server answered if repeating it could cause duplicates.

    Args:
        wrapped_transport: The underlying transport to wrap
        max_retries: Maximum number of retry attempts (default: 5)
        backoff_factor: Multiplier for exponential backoff (default: 1.0)
        retry_status_codes: Set of status codes that trigger retries (default: 502, 503, 504)
    """

    # Truly idempotent HTTP methods (per RFC 7231)
    IDEMPOTENT_METHODS: frozenset[str] = frozenset(["HEAD", "GET", "OPTIONS", "TRACE"])

    # Server errors that warrant retry
    DEFAULT_RETRY_STATUS_CODES: frozenset[int] = frozenset([502, 503, 504])

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        max_retries: int = 5,
        backoff_factor: float = 1.0,
        retry_status_codes: frozenset[int] | None = None,
    ) -> None:
        super().__init__(wrapped_transport=wrapped_transport, max_retries=max_retries, backoff_factor=backoff_factor)
        self.retry_status_codes = retry_status_codes or self.DEFAULT_RETRY_STATUS_CODES

    def _response_retry_delay(self, request: httpx.Request, response: httpx.Response, retries: int) -> float | None:
        if request.method not in self.IDEMPOTENT_METHODS:
            return None
        if response.status_code not in self.retry_status_codes:
            return None
        return self._calculate_backoff_delay(retries + 1)


class RateLimitAwareRetry(RetryTransport):
    """Retry transport that handles rate limiting and server errors.

    Respects Retry-After headers on 429 and uses exponential backoff when
    they're absent.

    Args:
        wrapped_transport: The underlying transport to wrap
        max_retries: Maximum number of retry attempts (default: 5)
        backoff_factor: Multiplier for exponential backoff (default: 1.0)
        max_backoff: Maximum backoff time in seconds (default: 60)
        retry_5xx_status_codes: Set of 5xx codes to retry (default: 502, 503, 504)
    """

    # Idempotent HTTP methods (per RFC 7231) - safe to retry on 5xx
    IDEMPOTENT_METHODS: frozenset[str] = frozenset(["HEAD", "GET", "PUT", "DELETE", "OPTIONS", "TRACE"])

    # Server errors that warrant retry
    DEFAULT_RETRY_5XX_STATUS_CODES: frozenset[int] = frozenset([502, 503, 504])

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        max_retries: int = 5,
        backoff_factor: float = 1.0,
        max_backoff: float = 60.0,
        retry_5xx_status_codes: frozenset[int] | None = None,
    ) -> None:
        super().__init__(wrapped_transport=wrapped_transport, max_retries=max_retries, backoff_factor=backoff_factor)
        self.max_backoff = max_backoff
        self.retry_5xx_status_codes = retry_5xx_status_codes or self.DEFAULT_RETRY_5XX_STATUS_CODES

    def _should_retry_error(self, request: httpx.Request, error: httpx.TransportError) -> bool:
        return request.method in self.IDEMPOTENT_METHODS

    def _response_retry_delay(self, request: httpx.Request, response: httpx.Response, retries: int) -> float | None:
        # Handle 429 (Rate Limit) - retry ALL methods
        if response.status_code == 429:
            delay = self._parse_retry_after(response)
            if delay is None:
                delay = self._calculate_backoff_delay(retries + 1)
            return delay

        # Handle 5xx errors - only retry idempotent methods
        if response.status_code in self.retry_5xx_status_codes and request.method in self.IDEMPOTENT_METHODS:
            return self._calculate_backoff_delay(retries + 1)

        return None

    def _parse_retry_after(self, response: httpx.Response) -> float | None:
        """Parse Retry-After header from response.

        Supports both formats:
        - Delay-seconds: "120" (integer seconds)
        - HTTP-date: "Wed, 21 Oct 2015 07:28:00 GMT"

        Returns:
            Delay in seconds, or None if header is missing or invalid
        """
        retry_after = response.headers.get("Retry-After")
        if not retry_after:
            return None

        try:
            delay = int(retry_after)
            if delay < 0:
                return None
            return float(min(delay, self.max_backoff))
        except ValueError:
            pass

        try:
            retry_date = parsedate_to_datetime(retry_after)
            delay = (retry_date - datetime.now(UTC)).total_seconds()

            # Clock skew
            if delay < 0:
                return None

            return float(min(delay, self.max_backoff))
        except (ValueError, TypeError):
            pass

        return None

    def _calculate_backoff_delay(self, retry_number: int) -> float:
        """Exponential backoff capped at max_backoff."""
        return min(super()._calculate_backoff_delay(retry_number), self.max_backoff)

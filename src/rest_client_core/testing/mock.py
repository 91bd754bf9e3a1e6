"""Mock client answering requests from fixtures instead of the network."""

import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from rest_client_core.client import HttpApiClient
from rest_client_core.content_type import ContentType
from rest_client_core.errors.exceptions import ApiException, MockFixtureInvalidError
from rest_client_core.transport.log import LoggingTransport

logger = logging.getLogger(__name__)

MOCK_ERROR_BODY = "MOCK ERROR"

Fixture = str | Mapping[str, Any]
FixtureProvider = Callable[[httpx.Request], Fixture | Awaitable[Fixture]]
"""Returns the fixture answering a request, sync or async.

A fixture is a mapping, or a string holding a JSON object, with keys:
- `body`: response body, sent JSON encoded
- `code`: integer status code
- `headers`: optional response headers, `Content-Type: application/json` by default
"""


def parse_fixture(fixture: Fixture) -> tuple[int, Any, dict[str, str]]:
    """Validate a fixture and return its status code, body and headers.

    Raises:
        MockFixtureInvalidError: Fixture is not a JSON object with `body` and integer `code`
    """
    if isinstance(fixture, str):
        try:
            fixture = json.loads(fixture)
        except ValueError as e:
            raise MockFixtureInvalidError(f"Fixture is not valid JSON: {e}") from e

    if not isinstance(fixture, Mapping):
        raise MockFixtureInvalidError(f"Fixture must be a JSON object, got {type(fixture).__name__}")

    missing = [key for key in ("body", "code") if key not in fixture]
    if missing:
        raise MockFixtureInvalidError(f"Fixture is missing required keys: {', '.join(missing)}")

    code = fixture["code"]
    if isinstance(code, bool) or not isinstance(code, int):
        raise MockFixtureInvalidError(f"Fixture code must be an integer, got {code!r}")

    headers = fixture.get("headers")
    if headers is None:
        headers = {"Content-Type": ContentType.JSON.value}
    elif not isinstance(headers, Mapping):
        raise MockFixtureInvalidError("Fixture headers must be a JSON object")

    return code, fixture["body"], {str(k): str(v) for k, v in headers.items()}


class MockFixtureTransport(httpx.AsyncBaseTransport):
    """Transport building responses from a fixture provider.

    A provider raising ApiException produces a response with the exception's
    status code and the body `MOCK ERROR`; any other exception propagates.

    Args:
        provider: Callable returning the fixture for a request
    """

    def __init__(self, provider: FixtureProvider):
        self.provider = provider
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)

        try:
            fixture = self.provider(request)
            if inspect.isawaitable(fixture):
                fixture = await fixture
        except ApiException as e:
            logger.debug(f"Mock provider raised {e.status_code} for {request.method} {request.url}")
            return httpx.Response(
                e.status_code,
                content=MOCK_ERROR_BODY.encode(),
                headers={"Content-Type": ContentType.TEXT.value},
                request=request,
            )

        status_code, body, headers = parse_fixture(fixture)
        return httpx.Response(status_code, content=json.dumps(body).encode(), headers=headers, request=request)


class MockApiClient(HttpApiClient):
    """HttpApiClient answering every request from a fixture provider.

    Requests go through the regular engine and a LoggingTransport, so
    cancellation, timeouts and error mapping behave as with a live server.

    Example:
        ```python
        def provider(request):
            if request.url.path == "/users/1":
                return {"body": {"id": 1}, "code": 200}
            raise NotFoundError(404, "Not Found")

        async with MockApiClient(provider) as client:
            response = await client.get("users/1")
            assert response.json() == {"id": 1}
        ```
    """

    def __init__(
        self,
        provider: FixtureProvider,
        base_url: httpx.URL | str | None = "https://mock.local",
        *,
        log_bodies: bool = False,
        **kwargs,
    ):
        self.fixture_transport = MockFixtureTransport(provider)
        super().__init__(
            base_url,
            transport=LoggingTransport(wrapped_transport=self.fixture_transport, log_bodies=log_bodies),
            **kwargs,
        )

    @property
    def requests(self) -> list[httpx.Request]:
        """Requests answered so far, in order."""
        return self.fixture_transport.requests

"""Testing utilities for API clients.

Modules:
    mock: Fixture-driven transport and client
    factories: Canned response factories

Example:
    ```python
    from rest_client_core.testing import MockApiClient, create_error_response


    async def test_user_lookup():
        client = MockApiClient(lambda request: {"body": {"id": 1}, "code": 200})
        response = await client.get("users/1")
        assert response.json() == {"id": 1}
    ```
"""

from rest_client_core.testing.factories import create_error_response, create_mock_response
from rest_client_core.testing.mock import (
    MOCK_ERROR_BODY,
    Fixture,
    FixtureProvider,
    MockApiClient,
    MockFixtureTransport,
    parse_fixture,
)

__all__ = [
    "MOCK_ERROR_BODY",
    "Fixture",
    "FixtureProvider",
    "MockApiClient",
    "MockFixtureTransport",
    "create_error_response",
    "create_mock_response",
    "parse_fixture",
]

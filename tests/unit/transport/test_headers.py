"""Tests for DefaultHeadersTransport."""

import httpx
import pytest

from rest_client_core.transport import DefaultHeadersTransport


def echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=dict(request.headers))


@pytest.mark.unit
class TestDefaultHeadersTransport:
    async def test_adds_missing_headers(self):
        transport = DefaultHeadersTransport(
            wrapped_transport=httpx.MockTransport(echo),
            headers={"X-Api-Version": "2", "X-Client": "rest-client-core"},
        )

        async with httpx.AsyncClient(transport=transport) as client:
            headers = (await client.get("https://api.example.com/")).json()

        assert headers["x-api-version"] == "2"
        assert headers["x-client"] == "rest-client-core"

    async def test_request_headers_win(self):
        transport = DefaultHeadersTransport(
            wrapped_transport=httpx.MockTransport(echo),
            headers={"Accept": "application/xml", "X-Api-Version": "2"},
        )

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get(
                "https://api.example.com/", headers={"accept": "application/json", "x-api-version": "3"}
            )

        assert response.json()["accept"] == "application/json"
        assert response.json()["x-api-version"] == "3"

    async def test_headers_from_callable(self):
        transport = DefaultHeadersTransport(
            wrapped_transport=httpx.MockTransport(echo),
            headers=lambda request: {"X-Path": request.url.path},
        )

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://api.example.com/users")

        assert response.json()["x-path"] == "/users"

"""Tests for the fixture-driven mock client."""

import asyncio
import json

import httpx
import pytest

from rest_client_core.errors import (
    MockFixtureInvalidError,
    NotFoundError,
    RequestCancelledError,
    ServerError,
)
from rest_client_core.testing import (
    MOCK_ERROR_BODY,
    MockApiClient,
    MockFixtureTransport,
    create_error_response,
    create_mock_response,
    parse_fixture,
)


@pytest.mark.unit
class TestParseFixture:
    def test_mapping(self):
        assert parse_fixture({"body": {"id": 1}, "code": 200}) == (
            200,
            {"id": 1},
            {"Content-Type": "application/json"},
        )

    def test_json_string(self):
        assert parse_fixture('{"body": [1, 2], "code": 201}')[:2] == (201, [1, 2])

    def test_custom_headers(self):
        _, _, headers = parse_fixture({"body": "x", "code": 200, "headers": {"X-Total": 3}})
        assert headers == {"X-Total": "3"}

    def test_null_body_is_allowed(self):
        assert parse_fixture({"body": None, "code": 204})[1] is None

    @pytest.mark.parametrize(
        "fixture",
        [
            {"body": {"id": 1}},
            {"code": 200},
            {"body": {}, "code": "200"},
            {"body": {}, "code": True},
            {"body": {}, "code": 200, "headers": ["X-A"]},
            "[1, 2]",
            "not json",
            42,
        ],
    )
    def test_invalid(self, fixture):
        with pytest.raises(MockFixtureInvalidError):
            parse_fixture(fixture)

    def test_missing_keys_are_named(self):
        with pytest.raises(MockFixtureInvalidError, match="code"):
            parse_fixture({"body": {}})


@pytest.mark.unit
class TestMockApiClient:
    """Test the mock client end to end through the request engine."""

    async def test_fixture_response(self):
        async with MockApiClient(lambda request: {"body": {"id": 1}, "code": 200}) as client:
            response = await client.get("users/1")

        assert response.status_code == 200
        assert response.json() == {"id": 1}
        assert response.headers["content-type"] == "application/json"

    async def test_async_provider(self):
        async def provider(request):
            await asyncio.sleep(0)
            return json.dumps({"body": {"path": request.url.path}, "code": 200})

        async with MockApiClient(provider, "https://api.example.com/v2") as client:
            response = await client.get("items")

        assert response.json() == {"path": "/v2/items"}

    async def test_provider_sees_request_body(self):
        def provider(request):
            return {"body": json.loads(request.content), "code": 201}

        async with MockApiClient(provider) as client:
            response = await client.post("users", body={"name": "Ann"})

        assert response.status_code == 201
        assert response.json() == {"name": "Ann"}

    async def test_records_requests(self):
        async with MockApiClient(lambda request: {"body": None, "code": 204}) as client:
            await client.delete("users/1")
            await client.exec("jobs/7")

        assert [(r.method, r.url.path) for r in client.requests] == [("DELETE", "/users/1"), ("EXEC", "/jobs/7")]

    async def test_error_fixture_is_mapped(self):
        fixture = {"body": {"message": "No such user"}, "code": 404}

        async with MockApiClient(lambda request: fixture) as client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.get("users/2")

        assert exc_info.value.api_error.message == "No such user"

    async def test_provider_api_exception(self):
        def provider(request):
            raise ServerError(503, "Service Unavailable")

        async with MockApiClient(provider) as client:
            with pytest.raises(ServerError) as exc_info:
                await client.get("users")

        assert exc_info.value.status_code == 503
        assert exc_info.value.api_error.message == MOCK_ERROR_BODY

    async def test_provider_other_exception_propagates(self):
        def provider(request):
            raise KeyError("no fixture")

        async with MockApiClient(provider) as client:
            with pytest.raises(KeyError):
                await client.get("users")

    async def test_invalid_fixture(self):
        async with MockApiClient(lambda request: {"body": {"id": 1}}) as client:
            with pytest.raises(MockFixtureInvalidError):
                await client.get("users")

        assert len(client.cancellations) == 0

    async def test_cancellation(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def provider(request):
            if not started.is_set():
                started.set()
                await release.wait()
            return {"body": {"q": request.url.params["q"]}, "code": 200}

        async with MockApiClient(provider) as client:
            first = asyncio.create_task(client.get("search", query_params={"q": "a"}))
            await started.wait()
            second = await client.get("search", query_params={"q": "ab"}, cancel_existing=True)

            with pytest.raises(RequestCancelledError):
                await first

        assert second.json() == {"q": "ab"}

    async def test_transport_without_client(self):
        transport = MockFixtureTransport(lambda request: {"body": "pong", "code": 200})

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://mock.local/ping")

        assert response.json() == "pong"
        assert len(transport.requests) == 1


@pytest.mark.unit
class TestFactories:
    def test_mock_response(self):
        response = create_mock_response({"id": 1}, status_code=201)

        assert response.status_code == 201
        assert response.json() == {"id": 1}
        assert response.headers["content-type"] == "application/json"

    def test_empty_mock_response(self):
        assert create_mock_response().content == b""

    def test_error_response_json(self):
        response = create_error_response(404, "User not found")

        assert response.json() == {"statusCode": 404, "message": "User not found"}

    def test_error_response_default_message(self):
        assert create_error_response(503).json()["message"] == "Service Unavailable"

    def test_error_response_text(self):
        response = create_error_response(500, "boom", content_type="text/plain")

        assert response.text == "boom"
        assert response.headers["content-type"] == "text/plain"

"""Tests for create_transport_stack."""

import httpx
import pytest

from rest_client_core.auth import InMemoryCredentialProvider, OAuth2Transport
from rest_client_core.transport import (
    DefaultHeadersTransport,
    IdempotentOnlyRetry,
    LoggingTransport,
    RateLimitAwareRetry,
    TransportErrorRetry,
    create_transport_stack,
)


def ok(request):
    return httpx.Response(200, json={"authorization": request.headers.get("authorization")})


def layers(transport):
    """Transport classes from the outermost layer inwards."""
    result = []
    while transport is not None:
        result.append(type(transport))
        transport = getattr(transport, "_wrapped_transport", None) or getattr(transport, "inner", None)
    return result


@pytest.mark.unit
class TestCreateTransportStack:
    def test_default_stack(self):
        inner = httpx.MockTransport(ok)
        assert layers(create_transport_stack(inner)) == [LoggingTransport, TransportErrorRetry, httpx.MockTransport]

    def test_full_stack_order(self):
        provider = InMemoryCredentialProvider(
            identifier="app", secret="secret", authorization_url="https://auth.example.com/token"
        )

        transport = create_transport_stack(
            httpx.MockTransport(ok),
            retry_strategy="rate_limited",
            default_headers={"X-Api-Version": "2"},
            auth_provider=provider,
        )

        assert layers(transport) == [
            LoggingTransport,
            RateLimitAwareRetry,
            DefaultHeadersTransport,
            OAuth2Transport,
            httpx.MockTransport,
        ]

    @pytest.mark.parametrize(
        ("strategy", "retry_class"),
        [("transport_errors", TransportErrorRetry), ("idempotent", IdempotentOnlyRetry)],
    )
    def test_retry_strategies(self, strategy, retry_class):
        transport = create_transport_stack(httpx.MockTransport(ok), retry_strategy=strategy, enable_logging=False)
        assert type(transport) is retry_class

    def test_max_retries(self):
        transport = create_transport_stack(httpx.MockTransport(ok), max_retries=7, enable_logging=False)
        assert transport.max_retries == 7

    def test_bare_inner_transport(self):
        inner = httpx.MockTransport(ok)
        assert create_transport_stack(inner, retry_strategy=None, enable_logging=False) is inner

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown retry strategy"):
            create_transport_stack(httpx.MockTransport(ok), retry_strategy="forever")

    async def test_requests_flow_through(self):
        provider = InMemoryCredentialProvider(
            identifier="app", secret="secret", authorization_url="https://auth.example.com/token"
        )
        transport = create_transport_stack(httpx.MockTransport(ok), auth_provider=provider)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://api.example.com/")

        assert response.json()["authorization"].startswith("Basic ")

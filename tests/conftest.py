"""Pytest configuration and shared fixtures for rest-client-core tests."""

import os

import httpx
import pytest

from rest_client_core import HttpApiClient

BASE_URL = "https://api.example.com/v1"


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Remove environment variables the credential tests read.

    Keeps a developer's real API_* settings out of the tests.
    """
    prefixes = ("TEST_", "API_", "CLIENT_", "OAUTHLIB_")
    for key in list(os.environ):
        if key.startswith(prefixes):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
async def make_client():
    """Build HttpApiClients on top of an httpx.MockTransport handler, closed after the test."""
    clients: list[HttpApiClient] = []

    def factory(handler, base_url=BASE_URL, **kwargs) -> HttpApiClient:
        client = HttpApiClient(base_url, transport=httpx.MockTransport(handler), **kwargs)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()

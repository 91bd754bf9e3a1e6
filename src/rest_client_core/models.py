"""Request models shared by the API clients."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

import httpx

from rest_client_core.body import Body


class HttpMethod(StrEnum):
    """HTTP verbs, including the non-standard ones some servers accept."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    # Non-standard verbs, ordinary request lines with a server specific method token
    EXEC = "EXEC"
    PURGE = "PURGE"
    RESET = "RESET"
    LOCK = "LOCK"
    UNLOCK = "UNLOCK"


@dataclass(frozen=True)
class RequestSpec:
    """Everything needed to send one request. Built fresh for every call."""

    method: HttpMethod
    url: httpx.URL
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: Body | None = None
    encoding: str | None = None
    timeout: float | None = None
    cancel_existing: bool = False

    def __post_init__(self):
        # keep the headers read-only, preserving their order
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def cancellation_key(self) -> str:
        return cancellation_key(self.method, self.url)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        return next((value for key, value in self.headers.items() if key.lower() == lowered), None)


def cancellation_key(method: str, url: httpx.URL) -> str:
    """Key identifying duplicate requests: method and path, query ignored."""
    return f"{method} {url.path}"

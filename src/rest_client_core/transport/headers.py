"""Transport adding default headers to every request."""

from collections.abc import Callable, Mapping

import httpx

HeadersBuilder = Callable[[httpx.Request], Mapping[str, str]]


class DefaultHeadersTransport(httpx.AsyncBaseTransport):
    """Add headers the request does not already carry.

    Args:
        wrapped_transport: The underlying transport to wrap
        headers: Headers to add, or a callable building them from the request
    """

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        headers: Mapping[str, str] | HeadersBuilder,
    ) -> None:
        self._wrapped_transport = wrapped_transport
        self._headers = headers

    async def aclose(self) -> None:
        await self._wrapped_transport.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        headers = self._headers(request) if callable(self._headers) else self._headers
        for name, value in headers.items():
            if name not in request.headers:
                request.headers[name] = value
        return await self._wrapped_transport.handle_async_request(request)

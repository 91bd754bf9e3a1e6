"""Transport logging requests, responses and their duration."""

import logging
import time

import httpx

from rest_client_core.content_type import ContentFamily, content_family


class LoggingTransport(httpx.AsyncBaseTransport):
    """Log every request and response.

    - `--> METHOD URL` at DEBUG before sending
    - `<-- STATUS METHOD URL (N ms)` after, at INFO for non-2xx and DEBUG otherwise
    - transport errors at WARNING, then re-raised

    Bodies are only logged with `log_bodies`; binary bodies are summarized.

    Args:
        wrapped_transport: The underlying transport to wrap
        logger: Logger to use instead of this module's logger
        log_bodies: Log request and response bodies
        max_body_length: Truncate logged bodies to this many characters
    """

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        logger: logging.Logger | None = None,
        log_bodies: bool = False,
        max_body_length: int = 200,
    ) -> None:
        self._wrapped_transport = wrapped_transport
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.log_bodies = log_bodies
        self.max_body_length = max_body_length

    async def aclose(self) -> None:
        await self._wrapped_transport.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.logger.debug(f"--> {request.method} {request.url}")
        if self.log_bodies and isinstance(request.stream, httpx.ByteStream):
            self.logger.debug(f"--> body: {self._describe_body(request.headers, request.content)}")

        started = time.perf_counter()
        try:
            response = await self._wrapped_transport.handle_async_request(request)
        except httpx.TransportError as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.logger.warning(f"<-- {request.method} {request.url} failed after {elapsed_ms:.0f} ms: {e!r}")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.DEBUG if response.is_success else logging.INFO
        self.logger.log(level, f"<-- {response.status_code} {request.method} {request.url} ({elapsed_ms:.0f} ms)")

        if self.log_bodies:
            content = await response.aread()
            self.logger.debug(f"<-- body: {self._describe_body(response.headers, content)}")

        return response

    def _describe_body(self, headers: httpx.Headers, content: bytes) -> str:
        if not content:
            return "<empty>"
        if content_family(headers.get("content-type")) is ContentFamily.BINARY:
            return f"<{len(content)} bytes binary>"
        text = content.decode("utf-8", errors="replace")
        if len(text) > self.max_body_length:
            return f"{text[: self.max_body_length]}... ({len(text)} chars)"
        return text

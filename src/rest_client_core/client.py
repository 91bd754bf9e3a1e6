"""API client classes.

`BaseApiClient` defines the verb methods and URI building shared by every client,
`HttpApiClient` executes them over an httpx transport stack.

Example:
    ```python
    from rest_client_core import HttpApiClient

    async with HttpApiClient("https://api.example.com/v1") as client:
        # GET https://api.example.com/v1/users?page=2
        response = await client.get("users", query_params={"page": 2})

        # POST https://api.example.com/login, absolute path replaces /v1
        await client.post("/login", body={"username": "ann", "password": "secret"})

        # cancel a still-running GET /v1/search before starting a new one
        await client.get("search", query_params={"q": "abc"}, cancel_existing=True)
    ```
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

import httpx

from rest_client_core.body import DEFAULT_ENCODING, to_body
from rest_client_core.cancellation import CancellationRegistry
from rest_client_core.content_type import ContentFamily, ContentType, charset, content_family
from rest_client_core.errors.exceptions import RequestCancelledError, RequestTimeoutError
from rest_client_core.errors.handler import ErrorHandler, raise_for_status
from rest_client_core.models import HttpMethod, RequestSpec
from rest_client_core.multipart import MediaResolver, MultipartField, PathMediaResolver, encode_multipart_files
from rest_client_core.uri import QueryParams, UriBuilder, resolve_uri

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


class BaseApiClient(ABC):
    """Base class for API clients.

    Either `base_url` or `uri_builder` must be given. With both, the builder is
    used and is free to use `base_url` as its base.

    `default_content_type` selects how list, mapping and object bodies are encoded
    when a request carries no `content-type` header.
    """

    def __init__(
        self,
        base_url: httpx.URL | str | None = None,
        *,
        uri_builder: UriBuilder | None = None,
        default_content_type: ContentType | str = ContentType.JSON,
    ):
        if base_url is None and uri_builder is None:
            raise ValueError("Either base_url or uri_builder must be specified")
        self.base_url = httpx.URL(base_url) if base_url is not None else None
        self._uri_builder = uri_builder
        self.default_content_type = str(default_content_type)

    @property
    def uri_builder(self) -> UriBuilder:
        return self._uri_builder or self.default_uri_builder

    def default_uri_builder(
        self,
        *,
        url: str | None = None,
        host: str | None = None,
        port: int | None = None,
        path: str | None = None,
        query_params: QueryParams | None = None,
    ) -> httpx.URL:
        """Resolve request URLs against `base_url`, see `rest_client_core.uri.resolve_uri`."""
        return resolve_uri(self.base_url, url=url, host=host, port=port, path=path, query_params=query_params)

    def build_request_spec(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> RequestSpec:
        return RequestSpec(
            method=HttpMethod(method.upper() if isinstance(method, str) else method),
            url=self.uri_builder(url=url, host=host, path=path, query_params=query_params),
            headers=headers or {},
            body=to_body(body),
            encoding=encoding,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    @abstractmethod
    async def send(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """Send a request and return its 2xx response.

        Args:
            method: HTTP verb
            path: Path appended to (no leading slash) or replacing (leading slash)
                the base path. Use an empty path with an absolute `url`.
            host: Host overriding the base URL host
            url: Absolute URL overriding the base URL, or a path when `path` is empty
            headers: Extra request headers; `content-type` selects the body encoding
            body: str, bytes, list, mapping, any JSON-serializable object or a Body
            encoding: Charset used to turn text into bytes
            query_params: Query parameters replacing the URL query
            timeout: Seconds before RequestTimeoutError, defaults to the client timeout
            cancel_existing: Cancel a still-running request with the same method and path

        Raises:
            InvalidBodyError: Body cannot be encoded for the content type
            RequestTimeoutError: Timeout expired
            RequestCancelledError: A newer request with the same key cancelled this one
            ApiException: Non-2xx response
            httpx.TransportError: Network failure
        """

    @abstractmethod
    async def send_multipart(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        fields: list[MultipartField] | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """Send a multipart/form-data request. Same rules as `send`."""

    async def get(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        return await self.send(
            HttpMethod.GET,
            path,
            host=host,
            url=url,
            headers=headers,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def post(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        return await self.send(
            HttpMethod.POST,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def post_multipart(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        fields: list[MultipartField] | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        return await self.send_multipart(
            HttpMethod.POST,
            path,
            host=host,
            url=url,
            headers=headers,
            fields=fields,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def put(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        return await self.send(
            HttpMethod.PUT,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def put_multipart(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        fields: list[MultipartField] | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        return await self.send_multipart(
            HttpMethod.PUT,
            path,
            host=host,
            url=url,
            headers=headers,
            fields=fields,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def patch(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        return await self.send(
            HttpMethod.PATCH,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def patch_multipart(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        fields: list[MultipartField] | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        return await self.send_multipart(
            HttpMethod.PATCH,
            path,
            host=host,
            url=url,
            headers=headers,
            fields=fields,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def delete(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """DELETE, with an optional body like the other write verbs."""
        return await self.send(
            HttpMethod.DELETE,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def exec(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """Non-standard EXEC: run server-side code, only the status code matters.

        Requires a server supporting the EXEC method.
        """
        return await self.send(
            HttpMethod.EXEC,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def purge(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """Non-standard PURGE: purge data on the server side."""
        return await self.send(
            HttpMethod.PURGE,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def reset(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """Non-standard RESET: reset data on the server side."""
        return await self.send(
            HttpMethod.RESET,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def lock(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """Non-standard LOCK: lock data on the server side."""
        return await self.send(
            HttpMethod.LOCK,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )

    async def unlock(
        self,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        """Non-standard UNLOCK: unlock data on the server side."""
        return await self.send(
            HttpMethod.UNLOCK,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )


class HttpApiClient(BaseApiClient):
    """API client executing requests over an httpx transport.

    Non-2xx responses go to `error_handler` when one is set; otherwise they are
    classified and raised as ApiException.

    Args:
        base_url: Base URL for relative paths
        uri_builder: Custom URI builder replacing the default resolution rules
        default_content_type: Body encoding when the request has no content-type header
        transport: Transport stack, see `rest_client_core.transport.create_transport_stack`
        error_handler: Handler intercepting non-2xx responses
        default_timeout: Seconds, used when a call gives no timeout; None means unbounded
        cancellations: Registry of running requests, a fresh one by default
        media_resolver: Resolves multipart media values to file contents
        follow_redirects: Follow HTTP redirects

    Example:
        ```python
        client = HttpApiClient(
            "https://api.example.com",
            transport=create_transport_stack(retry_strategy="rate_limited"),
            default_timeout=30,
        )
        try:
            response = await client.get("/status")
        finally:
            await client.aclose()
        ```
    """

    def __init__(
        self,
        base_url: httpx.URL | str | None = None,
        *,
        uri_builder: UriBuilder | None = None,
        default_content_type: ContentType | str = ContentType.JSON,
        transport: httpx.AsyncBaseTransport | None = None,
        error_handler: ErrorHandler | None = None,
        default_timeout: float | None = DEFAULT_TIMEOUT,
        cancellations: CancellationRegistry | None = None,
        media_resolver: MediaResolver | None = None,
        follow_redirects: bool = False,
    ):
        super().__init__(base_url, uri_builder=uri_builder, default_content_type=default_content_type)
        self.error_handler = error_handler
        self.default_timeout = default_timeout
        self.cancellations = cancellations if cancellations is not None else CancellationRegistry()
        self.media_resolver = media_resolver if media_resolver is not None else PathMediaResolver()
        # timeouts are enforced by _dispatch, not by httpx
        self._client = httpx.AsyncClient(
            transport=transport if transport is not None else httpx.AsyncHTTPTransport(),
            timeout=None,
            follow_redirects=follow_redirects,
        )

    async def __aenter__(self):
        await self._client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self._client.__aexit__(exc_type, exc_val, exc_tb)

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_request(self, spec: RequestSpec) -> httpx.Request:
        """Encode the body of `spec` and build the httpx request.

        Raises:
            InvalidBodyError: Body cannot be encoded for the content type
        """
        headers = dict(spec.headers)
        if spec.body is None:
            return httpx.Request(spec.method, spec.url, headers=headers)

        content_type = spec.header("content-type")
        if content_type is None:
            content_type = self.default_content_type
            if spec.encoding and content_family(content_type) is not ContentFamily.BINARY:
                content_type = f"{content_type}; charset={spec.encoding}"
            headers["Content-Type"] = content_type

        encoding = spec.encoding or charset(content_type) or DEFAULT_ENCODING
        content = spec.body.encode(content_type, encoding)
        return httpx.Request(spec.method, spec.url, headers=headers, content=content)

    async def send(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        encoding: str | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        spec = self.build_request_spec(
            method,
            path,
            host=host,
            url=url,
            headers=headers,
            body=body,
            encoding=encoding,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )
        return await self._dispatch(spec, self.build_request(spec))

    async def send_multipart(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        host: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        fields: list[MultipartField] | None = None,
        query_params: QueryParams | None = None,
        timeout: float | None = None,
        cancel_existing: bool = False,
    ) -> httpx.Response:
        spec = self.build_request_spec(
            method,
            path,
            host=host,
            url=url,
            headers=headers,
            query_params=query_params,
            timeout=timeout,
            cancel_existing=cancel_existing,
        )
        # httpx sets the multipart content type with its boundary
        request_headers = {key: value for key, value in spec.headers.items() if key.lower() != "content-type"}
        # media resolvers read files, keep that off the event loop
        files = await asyncio.to_thread(encode_multipart_files, fields or [], self.media_resolver)
        request = httpx.Request(spec.method, spec.url, headers=request_headers, files=files or None)
        return await self._dispatch(spec, request)

    async def _dispatch(self, spec: RequestSpec, request: httpx.Request) -> httpx.Response:
        key = spec.cancellation_key
        if spec.cancel_existing:
            self.cancellations.cancel(key)

        task = asyncio.ensure_future(self._client.send(request))
        handle = self.cancellations.register(key, task)
        timeout = spec.timeout if spec.timeout is not None else self.default_timeout
        logger.debug(f"Sending {key} (timeout: {timeout}s)")

        try:
            if timeout is None:
                response = await task
            else:
                # wait_for cancels the request on expiry, which closes its connection
                response = await asyncio.wait_for(task, timeout)
        except TimeoutError:
            logger.warning(f"Request {key} timed out after {timeout}s")
            raise RequestTimeoutError(key, timeout) from None
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if handle.superseded and (current is None or not current.cancelling()):
                logger.debug(f"Request {key} cancelled by a newer request")
                raise RequestCancelledError(key) from None
            raise
        finally:
            self.cancellations.remove(handle)

        return raise_for_status(response, self.error_handler)

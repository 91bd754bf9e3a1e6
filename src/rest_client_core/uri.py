"""URI resolution for API requests.

Turns the logical parts of a request (base URL, override URL, host, path and
query parameters) into one absolute URL.

Example:
    ```python
    from rest_client_core.uri import resolve_uri

    resolve_uri("https://api.example.com/v1", path="users")
    # https://api.example.com/v1/users, path appended to the base path

    resolve_uri("https://api.example.com/v1", path="/health")
    # https://api.example.com/health, absolute path replaces the base path

    resolve_uri(None, url="https://other.example.com/items", query_params={"page": 2})
    # https://other.example.com/items?page=2
    ```
"""

from collections.abc import Mapping
from typing import Any, Protocol

import httpx

QueryParams = Mapping[str, Any]


class UriBuilder(Protocol):
    """Builds the request URL from the parameters passed to the verb methods."""

    def __call__(
        self,
        *,
        url: str | None = None,
        host: str | None = None,
        port: int | None = None,
        path: str | None = None,
        query_params: QueryParams | None = None,
    ) -> httpx.URL: ...


def is_absolute_url(url: str | None) -> bool:
    return url is not None and url.startswith(("http://", "https://"))


def resolve_uri(
    base_url: httpx.URL | str | None,
    *,
    url: str | None = None,
    host: str | None = None,
    port: int | None = None,
    path: str | None = None,
    query_params: QueryParams | None = None,
) -> httpx.URL:
    """Resolve request parameters into one absolute URL.

    Rules, in order:
    1. An absolute `url` (http/https) is the starting point, otherwise `base_url` is.
    2. When `path` is empty and `url` is not absolute, `url` is used as the path.
    3. A path without a leading slash is appended to the starting path
       (`base_path + "/" + path`), a path with one replaces it.
    4. `host`, `port` and `query_params` replace the matching URL parts when given.

    Args:
        base_url: Base URL for relative requests
        url: Absolute URL overriding `base_url`, or a relative URL used as path
        host: Host overriding the resolved host
        port: Port overriding the resolved port
        path: Path appended to or replacing the starting path
        query_params: Query parameters replacing the resolved query

    Returns:
        Resolved URL

    Raises:
        ValueError: If no absolute `url` is given and `base_url` is missing
    """
    if is_absolute_url(url):
        uri = httpx.URL(url)
    else:
        if not path:
            path = url
        if base_url is None:
            raise ValueError("base_url is required to resolve a relative URL or path")
        uri = httpx.URL(base_url)

    if path and not path.startswith("/"):
        # httpx reports an empty path as "/"
        base_path = "" if uri.path == "/" else uri.path
        path = f"{base_path}/{path}"

    changes: dict[str, Any] = {}
    if path:
        changes["path"] = path
    if host is not None:
        changes["host"] = host
    if port is not None:
        changes["port"] = port
    if query_params is not None:
        changes["params"] = query_params

    return uri.copy_with(**changes) if changes else uri

"""OAuth2 transports.

`OAuth2Transport` decorates a transport and picks, per request, how to
authenticate from what the credential provider holds:

| provider holds        | state              | requests go through               |
|-----------------------|--------------------|-----------------------------------|
| nothing               | `ANONYMOUS`        | the inner transport               |
| token credentials     | `BEARER`           | a `BearerTransport` on the token  |
| login credentials     | `ACQUIRING_BEARER` | password grant, then `BEARER`     |

Every request also carries HTTP Basic authorization built from the client
identifier and secret; the bearer transport replaces it with the token.

The OAuth2 protocol work (request bodies, token parsing, expiry, bearer header)
is done by oauthlib; this module only moves the bytes with httpx.

Example:
    ```python
    import httpx

    from rest_client_core import HttpApiClient
    from rest_client_core.auth import InMemoryCredentialProvider, LoginCredentials, OAuth2Transport

    provider = InMemoryCredentialProvider(
        identifier="my-app",
        secret="app-secret",
        authorization_url="https://auth.example.com/oauth/token",
        scopes=["read", "write"],
        login_credentials=LoginCredentials("ann", "secret"),
    )
    transport = OAuth2Transport(provider=provider, inner=httpx.AsyncHTTPTransport())
    client = HttpApiClient("https://api.example.com", transport=transport)
    ```
"""

import asyncio
import base64
import logging
import time
from collections.abc import Callable
from enum import Enum

import httpx
from oauthlib.oauth2 import LegacyApplicationClient, OAuth2Error, TokenExpiredError

from rest_client_core.auth.credentials import OAuth2ServiceProvider, TokenCredentials
from rest_client_core.auth.exceptions import AuthenticationFailedError

logger = logging.getLogger(__name__)


class AuthState(Enum):
    ANONYMOUS = "anonymous"
    BEARER = "bearer"
    ACQUIRING_BEARER = "acquiring_bearer"


def basic_authorization(identifier: str, secret: str) -> str:
    """Value of an HTTP Basic Authorization header."""
    encoded = base64.b64encode(f"{identifier}:{secret}".encode()).decode("ascii")
    return f"Basic {encoded}"


async def _token_request(
    transport: httpx.AsyncBaseTransport,
    token_url: str,
    body: str,
    *,
    identifier: str,
    secret: str,
) -> str:
    request = httpx.Request(
        "POST",
        token_url,
        content=body.encode(),
        headers={
            "Accept": "application/json",
            "Authorization": basic_authorization(identifier, secret),
            "Content-Type": "application/x-www-form-urlencoded",
        },
    )
    response = await transport.handle_async_request(request)
    try:
        content = await response.aread()
    finally:
        await response.aclose()
    return content.decode("utf-8", errors="replace")


async def resource_owner_password_grant(
    transport: httpx.AsyncBaseTransport,
    token_url: str,
    username: str,
    password: str,
    *,
    identifier: str,
    secret: str,
    scopes: list[str] | None = None,
) -> dict:
    """Exchange a username and password for a token.

    Args:
        transport: Transport used for the token request
        token_url: Authorization server token endpoint
        username: Resource owner username
        password: Resource owner password
        identifier: Client identifier, sent with Basic auth
        secret: Client secret, sent with Basic auth
        scopes: Requested scopes

    Returns:
        Token credentials, `expires_at` included when the server sent `expires_in`

    Raises:
        httpx.TransportError: Network failure
        oauthlib.oauth2.OAuth2Error: Error response from the authorization server
    """
    client = LegacyApplicationClient(identifier)
    body = client.prepare_request_body(username=username, password=password, scope=scopes or None)
    text = await _token_request(transport, token_url, body, identifier=identifier, secret=secret)
    return dict(client.parse_request_body_response(text))


def _describe(error: Exception) -> str:
    if isinstance(error, OAuth2Error):
        return error.description or error.error
    return str(error) or type(error).__name__


class BearerTransport(httpx.AsyncBaseTransport):
    """Transport adding a bearer token to every request and refreshing it on expiry.

    Args:
        inner: Transport the authorized requests are sent with
        token: Token credentials
        identifier: Client identifier
        secret: Client secret
        token_url: Token endpoint used for refresh
        on_token_refreshed: Called with the new token after a refresh
    """

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport,
        token: TokenCredentials,
        *,
        identifier: str,
        secret: str,
        token_url: str,
        on_token_refreshed: Callable[[dict], None] | None = None,
    ):
        token = dict(token)
        # a stored token may only carry expires_in, counted from now
        if token.get("expires_at") is None and token.get("expires_in") is not None:
            token["expires_at"] = time.time() + int(token["expires_in"])

        self._inner = inner
        self._client = LegacyApplicationClient(identifier, token=token)
        self._identifier = identifier
        self._secret = secret
        self._token_url = token_url
        self._on_token_refreshed = on_token_refreshed
        self._refresh_lock = asyncio.Lock()

    @property
    def access_token(self) -> str | None:
        return self._client.access_token

    @property
    def token(self) -> dict:
        return dict(self._client.token)

    async def aclose(self) -> None:
        await self._inner.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        try:
            self._add_token(request)
        except TokenExpiredError:
            await self._refresh()
            try:
                self._add_token(request)
            except TokenExpiredError as e:
                raise AuthenticationFailedError("Access token is still expired after refresh") from e
        return await self._inner.handle_async_request(request)

    def _add_token(self, request: httpx.Request) -> None:
        _, headers, _ = self._client.add_token(str(request.url), http_method=request.method, headers={})
        request.headers["Authorization"] = headers["Authorization"]

    async def _refresh(self) -> None:
        async with self._refresh_lock:
            # another request may have refreshed while we waited
            if not self._is_expired():
                return

            refresh_token = self._client.refresh_token
            if not refresh_token:
                raise AuthenticationFailedError("Access token expired and no refresh token is available")

            body = self._client.prepare_refresh_body(refresh_token=refresh_token)
            text = await _token_request(
                self._inner, self._token_url, body, identifier=self._identifier, secret=self._secret
            )
            try:
                token = self._client.parse_request_body_response(text)
            except Exception as e:
                raise AuthenticationFailedError(_describe(e)) from e

            # servers may omit the refresh token when they don't rotate it
            if "refresh_token" not in token:
                token["refresh_token"] = refresh_token
                self._client.refresh_token = refresh_token

            logger.info("Refreshed OAuth2 access token")
            if self._on_token_refreshed is not None:
                self._on_token_refreshed(dict(token))

    def _is_expired(self) -> bool:
        expires_at = self._client.token.get("expires_at")
        return expires_at is not None and float(expires_at) < time.time()


class OAuth2Transport(httpx.AsyncBaseTransport):
    """Transport choosing anonymous, bearer or password-grant authentication per request.

    The choice is re-evaluated on every request, so credential changes on the
    provider take effect on the next request. The bearer transport is reused as
    long as the provider's access token stays the same.

    When acquiring or refreshing a token fails, the stored token credentials are
    cleared before the error is raised:
    - network failures (httpx.TransportError) are re-raised unchanged
    - anything else is raised as AuthenticationFailedError

    Args:
        provider: Credential storage and OAuth2 client configuration
        inner: Transport every request is finally sent with
    """

    def __init__(self, *, provider: OAuth2ServiceProvider, inner: httpx.AsyncBaseTransport):
        self.provider = provider
        self.inner = inner
        self.state = AuthState.ANONYMOUS
        self._bearer: BearerTransport | None = None
        self._lock = asyncio.Lock()

    async def aclose(self) -> None:
        self._bearer = None
        await self.inner.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        transport = await self._select_transport()
        request.headers["Authorization"] = basic_authorization(
            self.provider.oauth_identifier, self.provider.oauth_secret
        )
        try:
            return await transport.handle_async_request(request)
        except AuthenticationFailedError:
            self._clear_token()
            raise

    async def _select_transport(self) -> httpx.AsyncBaseTransport:
        async with self._lock:
            if self.provider.has_oauth_credentials:
                token = self.provider.oauth_credentials
                if self._bearer is None or self._bearer.access_token != token.get("access_token"):
                    self._bearer = self._make_bearer(token)
                self._transition(AuthState.BEARER)
                return self._bearer

            if self.provider.has_login_credentials:
                self._transition(AuthState.ACQUIRING_BEARER)
                token = await self._acquire_token()
                self.provider.oauth_credentials = token
                self._bearer = self._make_bearer(token)
                self._transition(AuthState.BEARER)
                return self._bearer

            self._bearer = None
            self._transition(AuthState.ANONYMOUS)
            return self.inner

    async def _acquire_token(self) -> dict:
        login = self.provider.login_credentials
        try:
            token = await resource_owner_password_grant(
                self.inner,
                self.provider.oauth_authorization_url,
                login.username,
                login.password,
                identifier=self.provider.oauth_identifier,
                secret=self.provider.oauth_secret,
                scopes=self.provider.oauth_scopes,
            )
        except httpx.TransportError:
            self._clear_token()
            raise
        except Exception as e:
            self._clear_token()
            raise AuthenticationFailedError(_describe(e)) from e

        logger.info(f"Acquired OAuth2 token for {login.username}")
        return token

    def _make_bearer(self, token: TokenCredentials) -> BearerTransport:
        return BearerTransport(
            self.inner,
            token,
            identifier=self.provider.oauth_identifier,
            secret=self.provider.oauth_secret,
            token_url=self.provider.oauth_authorization_url,
            on_token_refreshed=self._store_token,
        )

    def _store_token(self, token: dict) -> None:
        self.provider.oauth_credentials = token

    def _clear_token(self) -> None:
        self.provider.oauth_credentials = None
        self._bearer = None
        self._transition(AuthState.ANONYMOUS)

    def _transition(self, state: AuthState) -> None:
        if state is not self.state:
            logger.debug(f"OAuth2 state {self.state.value} -> {state.value}")
            self.state = state

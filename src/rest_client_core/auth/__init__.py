"""Authentication components for API clients.

This module provides:
- OAuth2 transport switching between anonymous, bearer and password-grant modes
- Credential provider interface with an in-memory implementation
- Multi-source credential resolution (value → env → .env → default)

Example:
    ```python
    import httpx

    from rest_client_core.auth import InMemoryCredentialProvider, OAuth2Transport

    provider = InMemoryCredentialProvider.from_env(prefix="API_")
    transport = OAuth2Transport(provider=provider, inner=httpx.AsyncHTTPTransport())
    ```
"""

from rest_client_core.auth.credentials import (
    CredentialResolver,
    InMemoryCredentialProvider,
    LoginCredentials,
    OAuth2ServiceProvider,
    TokenCredentials,
)
from rest_client_core.auth.exceptions import (
    AuthenticationFailedError,
    CredentialError,
    CredentialFileError,
    CredentialNotFoundError,
)
from rest_client_core.auth.oauth2 import (
    AuthState,
    BearerTransport,
    OAuth2Transport,
    basic_authorization,
    resource_owner_password_grant,
)

__all__ = [
    "AuthState",
    "AuthenticationFailedError",
    "BearerTransport",
    "CredentialError",
    "CredentialFileError",
    "CredentialNotFoundError",
    "CredentialResolver",
    "InMemoryCredentialProvider",
    "LoginCredentials",
    "OAuth2ServiceProvider",
    "OAuth2Transport",
    "TokenCredentials",
    "basic_authorization",
    "resource_owner_password_grant",
]

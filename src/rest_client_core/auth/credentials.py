"""Credentials and credential providers for OAuth2 authentication.

The OAuth2 transport never stores anything itself: it reads and writes
credentials through an `OAuth2ServiceProvider`. `InMemoryCredentialProvider` is the
ready-made implementation; it can be configured from the environment through
`CredentialResolver`.

Resolution order used by `CredentialResolver` (highest to lowest priority):
1. Explicitly provided value
2. Environment variable
3. .env file (python-dotenv)
4. Default value

Example:
    ```python
    from rest_client_core.auth import InMemoryCredentialProvider, LoginCredentials

    # API_CLIENT_ID, API_CLIENT_SECRET, API_TOKEN_URL, API_SCOPES from env or .env
    provider = InMemoryCredentialProvider.from_env(prefix="API_")
    provider.login_credentials = LoginCredentials("ann", "secret")
    ```

Security Considerations:
    - Credentials are never logged in full (masked with ***)
    - Only source information is logged (env var name, file path, etc.)
    - File-based credentials have whitespace stripped
"""

import logging
import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Protocol, runtime_checkable

from dotenv import load_dotenv

from rest_client_core.auth.exceptions import CredentialFileError, CredentialNotFoundError

logger = logging.getLogger(__name__)

TokenCredentials = Mapping[str, Any]
"""OAuth2 token as returned by the token endpoint (access_token, refresh_token, expires_at, ...)."""


@dataclass(frozen=True)
class LoginCredentials:
    """Username and password for the resource owner password grant."""

    username: str
    password: str = field(repr=False)


@runtime_checkable
class OAuth2ServiceProvider(Protocol):
    """Storage of OAuth2 credentials and client configuration.

    Token credentials take precedence over login credentials when both are set.
    """

    oauth_credentials: TokenCredentials | None
    login_credentials: LoginCredentials | None

    @property
    def has_oauth_credentials(self) -> bool: ...

    @property
    def has_login_credentials(self) -> bool: ...

    @property
    def oauth_identifier(self) -> str: ...

    @property
    def oauth_secret(self) -> str: ...

    @property
    def oauth_scopes(self) -> list[str]: ...

    @property
    def oauth_authorization_url(self) -> str: ...


class InMemoryCredentialProvider:
    """OAuth2ServiceProvider keeping credentials in memory.

    Pass `on_token_change` to persist token credentials elsewhere; it is called
    with the new token, or None when the token is cleared.
    """

    def __init__(
        self,
        *,
        identifier: str,
        secret: str,
        authorization_url: str,
        scopes: list[str] | None = None,
        oauth_credentials: TokenCredentials | None = None,
        login_credentials: LoginCredentials | None = None,
        on_token_change: Callable[[TokenCredentials | None], None] | None = None,
    ):
        self._identifier = identifier
        self._secret = secret
        self._authorization_url = authorization_url
        self._scopes = list(scopes or [])
        self._oauth_credentials = dict(oauth_credentials) if oauth_credentials is not None else None
        self.login_credentials = login_credentials
        self._on_token_change = on_token_change

    @classmethod
    def from_env(
        cls,
        prefix: str = "API_",
        *,
        resolver: "CredentialResolver | None" = None,
        on_token_change: Callable[[TokenCredentials | None], None] | None = None,
    ) -> "InMemoryCredentialProvider":
        """Configure a provider from environment variables (and .env).

        Reads `{prefix}CLIENT_ID`, `{prefix}CLIENT_SECRET` (or a file named by
        `{prefix}CLIENT_SECRET_FILE`), `{prefix}TOKEN_URL`, `{prefix}SCOPES` and the
        optional `{prefix}USERNAME` / `{prefix}PASSWORD` login credentials.

        Raises:
            CredentialNotFoundError: If client id, secret or token URL is missing
        """
        resolver = resolver or CredentialResolver()

        secret = resolver.resolve(env_var_name=f"{prefix}CLIENT_SECRET")
        if secret is None:
            secret = resolver.resolve_from_file(env_var_name=f"{prefix}CLIENT_SECRET_FILE")
        if secret is None:
            raise CredentialNotFoundError(
                "Required credential not found (checked env vars: "
                f"{prefix}CLIENT_SECRET, {prefix}CLIENT_SECRET_FILE)",
                env_var_name=f"{prefix}CLIENT_SECRET",
            )

        username = resolver.resolve(env_var_name=f"{prefix}USERNAME", mask_in_logs=False)
        password = resolver.resolve(env_var_name=f"{prefix}PASSWORD")
        login = LoginCredentials(username, password) if username and password is not None else None

        return cls(
            identifier=resolver.resolve(env_var_name=f"{prefix}CLIENT_ID", required=True, mask_in_logs=False),
            secret=secret,
            authorization_url=resolver.resolve(env_var_name=f"{prefix}TOKEN_URL", required=True, mask_in_logs=False),
            scopes=resolver.resolve_list(env_var_name=f"{prefix}SCOPES"),
            login_credentials=login,
            on_token_change=on_token_change,
        )

    @property
    def oauth_credentials(self) -> TokenCredentials | None:
        return self._oauth_credentials

    @oauth_credentials.setter
    def oauth_credentials(self, credentials: TokenCredentials | None) -> None:
        self._oauth_credentials = dict(credentials) if credentials is not None else None
        if self._on_token_change is not None:
            self._on_token_change(self._oauth_credentials)

    @property
    def has_oauth_credentials(self) -> bool:
        return bool(self._oauth_credentials)

    @property
    def has_login_credentials(self) -> bool:
        return self.login_credentials is not None

    @property
    def oauth_identifier(self) -> str:
        return self._identifier

    @property
    def oauth_secret(self) -> str:
        return self._secret

    @property
    def oauth_scopes(self) -> list[str]:
        return list(self._scopes)

    @property
    def oauth_authorization_url(self) -> str:
        return self._authorization_url


class CredentialResolver:
    """Resolve credentials from multiple sources with priority ordering.

    Explicit values take precedence over environment variables, which take
    precedence over .env file values, which take precedence over defaults.

    Attributes:
        _dotenv_loaded: Whether .env file has been loaded.
        _dotenv_lock: Thread lock for safe dotenv loading.
    """

    def __init__(self, dotenv_path: str | None = None, load_dotenv: bool = True):
        """Initialize credential resolver.

        Args:
            dotenv_path: Path to .env file. If None, searches parent directories
                for .env file (default behavior of python-dotenv).
            load_dotenv: Whether to load .env file. Set to False to skip
                .env file loading (useful for testing or when not using .env).
        """
        self._dotenv_loaded = False
        self._dotenv_lock = Lock()
        self._dotenv_path = dotenv_path
        self._load_dotenv_enabled = load_dotenv

        if self._load_dotenv_enabled:
            self._ensure_dotenv_loaded()

    def _ensure_dotenv_loaded(self) -> None:
        """Load the .env file once (thread-safe)."""
        if self._dotenv_loaded:
            return

        with self._dotenv_lock:
            if self._dotenv_loaded:
                return

            try:
                load_dotenv(dotenv_path=self._dotenv_path)
                logger.debug("Loaded .env file for credential resolution")
            except OSError as e:
                logger.warning(f"Failed to load .env file: {e}")
            # Mark as attempted either way
            self._dotenv_loaded = True

    def resolve(
        self,
        *,
        value: str | None = None,
        env_var_name: str | None = None,
        default: str | None = None,
        required: bool = False,
        mask_in_logs: bool = True,
    ) -> str | None:
        """Resolve a credential from multiple sources.

        Args:
            value: Explicitly provided value (highest priority).
            env_var_name: Environment variable name to check. Values from a
                loaded .env file are visible here too.
            default: Default value if not found elsewhere.
            required: If True, raises CredentialNotFoundError when the
                credential cannot be resolved.
            mask_in_logs: If True (default), masks credential values in log messages.

        Returns:
            Resolved credential value, or None if not found and not required.

        Raises:
            CredentialNotFoundError: If required=True and credential not found.
        """
        result = None
        source = None

        if value is not None:
            result = value
            source = "explicit parameter"
        elif env_var_name and env_var_name in os.environ:
            result = os.environ[env_var_name]
            source = f"environment variable '{env_var_name}'"
        elif default is not None:
            result = default
            source = "default value"

        if result is not None:
            shown = "***" if mask_in_logs else result
            logger.debug(f"Resolved credential from {source}: {shown}")

        if required and result is None:
            error_msg = "Required credential not found"
            if env_var_name:
                error_msg += f" (checked env var: {env_var_name})"
            raise CredentialNotFoundError(error_msg, env_var_name=env_var_name)

        return result

    def resolve_list(self, *, env_var_name: str, default: list[str] | None = None) -> list[str]:
        """Resolve a space or comma separated list, e.g. OAuth2 scopes."""
        raw = self.resolve(env_var_name=env_var_name, mask_in_logs=False)
        if raw is None:
            return list(default or [])
        return [item for item in re.split(r"[\s,]+", raw) if item]

    def resolve_from_file(
        self,
        *,
        file_path: str | Path | None = None,
        env_var_name: str | None = None,
        required: bool = False,
    ) -> str | None:
        """Read a credential from a file, e.g. a mounted secret.

        The path comes from `file_path` or, when that is None, from the
        environment variable `env_var_name`. `~` and `$VAR` are expanded and the
        contents are returned stripped.

        Returns:
            File contents, or None when there is no readable file and `required` is False

        Raises:
            CredentialFileError: If required=True and the file cannot be read
        """
        if file_path is None and env_var_name:
            file_path = self.resolve(env_var_name=env_var_name, mask_in_logs=False)

        if not file_path:
            if required:
                hint = f" (env var '{env_var_name}' not set)" if env_var_name else ""
                raise CredentialFileError(f"No file path provided for credential resolution{hint}")
            return None

        path = Path(os.path.expanduser(os.path.expandvars(str(file_path))))
        try:
            content = path.read_text().strip()
        except OSError as e:
            if isinstance(e, FileNotFoundError):
                message = f"Credential file not found: {path}"
            elif isinstance(e, PermissionError):
                message = f"Permission denied reading credential file: {path}"
            else:
                message = f"Error reading credential file {path}: {e}"
            if required:
                raise CredentialFileError(message) from e
            logger.log(logging.DEBUG if isinstance(e, FileNotFoundError) else logging.WARNING, message)
            return None

        logger.debug(f"Resolved credential from file: {path} (***)")
        return content

"""Exceptions for credential resolution and authentication.

Example:
    ```python
    from rest_client_core.auth.exceptions import AuthenticationFailedError

    try:
        response = await client.get("/me")
    except AuthenticationFailedError as e:
        # stored token was cleared, ask the user to log in again
        print(f"Login failed: {e.description}")
    ```
"""

from rest_client_core.errors.exceptions import RestClientError


class CredentialError(RestClientError):
    """Base exception for credential-related errors.

    All credential-specific exceptions inherit from this class,
    making it easy to catch any credential-related error.
    """

    pass


class CredentialNotFoundError(CredentialError):
    """Raised when a required credential cannot be resolved.

    Attributes:
        env_var_name: The environment variable name that was checked (if any).
    """

    def __init__(self, message: str, env_var_name: str | None = None):
        super().__init__(message)
        self.env_var_name = env_var_name


class CredentialFileError(CredentialError):
    """Raised when a credential file cannot be read."""

    pass


class AuthenticationFailedError(CredentialError):
    """Acquiring or refreshing an OAuth2 token failed for a reason other than the network.

    Stored token credentials have already been cleared when this is raised, so the
    next request starts over from the login credentials.

    Attributes:
        description: Description of the original error.
    """

    def __init__(self, description: str):
        super().__init__(f"Authentication failed: {description}")
        self.description = description

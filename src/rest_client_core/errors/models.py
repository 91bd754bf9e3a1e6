"""API error models built from failed responses."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Keys holding the human-readable message, in order of preference.
# detail/title come from RFC 7807 problem details.
MESSAGE_KEYS = ("message", "error", "reason", "detail", "title")
STATUS_KEYS = ("statusCode", "status")
TIMESTAMP_KEYS = ("timestamp", "datetime")


@dataclass(frozen=True)
class ApiSubError:
    """One entry of the `errors` list of an API error body."""

    reason: str


@dataclass
class ApiError:
    """Structured error returned by the API for a non-2xx response."""

    status_code: int
    message: str
    errors: list[ApiSubError] = field(default_factory=list)
    path: str | None = None
    headers: dict[str, str] | None = None
    timestamp: datetime | None = None

    @classmethod
    def from_json(
        cls,
        data: Mapping[str, Any],
        *,
        status_code: int,
        raw_body: str = "",
        headers: dict[str, str] | None = None,
    ) -> "ApiError":
        """Build an ApiError from a decoded JSON error object.

        Args:
            data: Decoded JSON object
            status_code: HTTP status, used when the body carries none
            raw_body: Raw body text, used when the body carries no message
            headers: Response headers

        Returns:
            ApiError with recognized fields filled in
        """
        status = next(
            (data[key] for key in STATUS_KEYS if isinstance(data.get(key), int) and not isinstance(data[key], bool)),
            status_code,
        )
        message = next((str(data[key]) for key in MESSAGE_KEYS if data.get(key) is not None), raw_body)

        errors = []
        raw_errors = data.get("errors")
        if isinstance(raw_errors, list):
            for item in raw_errors:
                if isinstance(item, Mapping):
                    if item.get("reason") is not None:
                        errors.append(ApiSubError(reason=str(item["reason"])))
                elif item is not None:
                    errors.append(ApiSubError(reason=str(item)))

        path = data.get("path")

        return cls(
            status_code=status,
            message=message,
            errors=errors,
            path=str(path) if path is not None else None,
            headers=headers,
            timestamp=_parse_timestamp(next((data[key] for key in TIMESTAMP_KEYS if key in data), None)),
        )

    @property
    def reasons(self) -> list[str]:
        return [error.reason for error in self.errors]

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None

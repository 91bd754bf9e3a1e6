"""Request bodies and their encoding.

A request body is one of a closed set of variants, each knowing how to turn
itself into wire bytes for the negotiated content type:

| variant      | json          | form-url-encoded     | form-data             | otherwise     |
|--------------|---------------|----------------------|-----------------------|---------------|
| TextBody     | verbatim      | verbatim             | verbatim              | verbatim      |
| BytesBody    | verbatim      | verbatim             | verbatim              | verbatim      |
| ListBody     | JSON          | str()                | str()                 | str()         |
| MappingBody  | JSON          | urlencoded fields    | `k=v&k=v`             | str()         |
| ObjectBody   | JSON          | InvalidBodyError     | InvalidBodyError      | InvalidBodyError |

Callers may pass a variant directly or any plain value; `to_body()` picks the
variant once, at the call site.

Example:
    ```python
    from rest_client_core.body import MappingBody, encode_body

    encode_body(MappingBody({"name": "Ann"}), "application/x-www-form-urlencoded")
    # b"name=Ann"
    ```
"""

import dataclasses
import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from rest_client_core.content_type import ContentFamily, content_family
from rest_client_core.errors.exceptions import InvalidBodyError

DEFAULT_ENCODING = "utf-8"


class Body(ABC):
    """Base class of the request body variants."""

    @abstractmethod
    def encode(self, content_type: str, encoding: str = DEFAULT_ENCODING) -> bytes:
        """Encode the body for the given content type.

        Raises:
            InvalidBodyError: If the body cannot be sent with this content type
        """


@dataclass(frozen=True)
class TextBody(Body):
    text: str

    def encode(self, content_type: str, encoding: str = DEFAULT_ENCODING) -> bytes:
        return self.text.encode(encoding)


@dataclass(frozen=True)
class BytesBody(Body):
    """Raw bytes, always sent verbatim whatever the content type."""

    data: bytes

    def encode(self, content_type: str, encoding: str = DEFAULT_ENCODING) -> bytes:
        return bytes(self.data)


@dataclass(frozen=True)
class ListBody(Body):
    items: Sequence[Any]

    def encode(self, content_type: str, encoding: str = DEFAULT_ENCODING) -> bytes:
        if content_family(content_type) is ContentFamily.JSON:
            return _dump_json(list(self.items), content_type).encode(encoding)
        return str(list(self.items)).encode(encoding)


@dataclass(frozen=True)
class MappingBody(Body):
    fields: Mapping[str, Any]

    def encode(self, content_type: str, encoding: str = DEFAULT_ENCODING) -> bytes:
        family = content_family(content_type)
        if family is ContentFamily.JSON:
            return _dump_json(dict(self.fields), content_type).encode(encoding)
        if family is ContentFamily.FORM_URL_ENCODED:
            return urlencode([(key, str(value)) for key, value in self.fields.items()], encoding=encoding).encode(
                "ascii"
            )
        if family is ContentFamily.FORM_DATA:
            return "&".join(f"{key}={value}" for key, value in self.fields.items()).encode(encoding)
        return str(dict(self.fields)).encode(encoding)


@dataclass(frozen=True)
class ObjectBody(Body):
    """Any other value. Only JSON content types can carry it."""

    value: Any

    def encode(self, content_type: str, encoding: str = DEFAULT_ENCODING) -> bytes:
        if content_family(content_type) is not ContentFamily.JSON:
            raise InvalidBodyError(
                f"Invalid request body {self.value!r} for content type {content_type!r}",
                content_type=content_type,
            )
        return _dump_json(self.value, content_type).encode(encoding)


def to_body(value: Any) -> Body | None:
    """Wrap a plain value into its body variant. Body instances and None pass through."""
    if value is None or isinstance(value, Body):
        return value
    if isinstance(value, str):
        return TextBody(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesBody(bytes(value))
    if isinstance(value, Mapping):
        return MappingBody(value)
    if isinstance(value, (list, tuple)):
        return ListBody(value)
    return ObjectBody(value)


def encode_body(body: Any, content_type: str, encoding: str | None = None) -> bytes:
    """Encode a body (variant or plain value) for the negotiated content type."""
    variant = to_body(body)
    if variant is None:
        return b""
    return variant.encode(content_type, encoding or DEFAULT_ENCODING)


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    for method in ("to_json", "to_dict", "model_dump"):
        if callable(getattr(value, method, None)):
            return getattr(value, method)()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dump_json(value: Any, content_type: str) -> str:
    try:
        return json.dumps(value, default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise InvalidBodyError(f"Request body is not JSON serializable: {e}", content_type=content_type) from e

"""Content types and the families used to pick a body encoding strategy."""

from enum import Enum, StrEnum


class ContentType(StrEnum):
    """Content types the client knows how to encode and decode."""

    JSON = "application/json"
    ERROR_JSON = "application/problem+json"
    FORM_URL_ENCODED = "application/x-www-form-urlencoded"
    FORM_DATA = "multipart/form-data"
    TEXT = "text/plain"
    HTML = "text/html"
    BINARY = "application/octet-stream"


class ContentFamily(Enum):
    JSON = "json"
    FORM_URL_ENCODED = "form-url-encoded"
    FORM_DATA = "form-data"
    TEXT = "text"
    BINARY = "binary"


# application/* types that carry text even though they are not text/*
_TEXTUAL_APPLICATION_TYPES = frozenset(["application/xml", "application/javascript", "application/yaml"])


def mime_type(content_type: str | None) -> str:
    """Return the lower-cased mime type of a content-type header value, without parameters."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def charset(content_type: str | None) -> str | None:
    """Return the charset parameter of a content-type header value, if any."""
    if not content_type:
        return None
    for param in content_type.split(";")[1:]:
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return None


def is_json(content_type: str | None) -> bool:
    """True for application/json and every application/*+json type (problem+json included)."""
    mime = mime_type(content_type)
    return mime == ContentType.JSON or (mime.startswith("application/") and mime.endswith("+json"))


def content_family(content_type: str | None) -> ContentFamily:
    """Map a content-type header value to the family that selects the encoding strategy."""
    mime = mime_type(content_type)
    if is_json(mime):
        return ContentFamily.JSON
    if mime == ContentType.FORM_URL_ENCODED:
        return ContentFamily.FORM_URL_ENCODED
    if mime == ContentType.FORM_DATA:
        return ContentFamily.FORM_DATA
    if mime.startswith("text/") or mime in _TEXTUAL_APPLICATION_TYPES or mime.endswith("+xml"):
        return ContentFamily.TEXT
    return ContentFamily.BINARY

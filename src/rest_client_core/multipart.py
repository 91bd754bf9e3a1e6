"""Multipart form-data fields and media resolution."""

import mimetypes
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol


class MultipartFieldType(Enum):
    FIELD = "field"
    MEDIA = "media"


@dataclass(frozen=True)
class Media:
    """Reference to a file sent as a multipart file part."""

    path: str | Path
    filename: str | None = None
    content_type: str | None = None


@dataclass(frozen=True)
class ResolvedMedia:
    filename: str
    content: bytes
    content_type: str | None = None


class MediaResolver(Protocol):
    """Resolves a logical media value into bytes and a filename."""

    def resolve(self, value: Any) -> ResolvedMedia: ...


class PathMediaResolver:
    """Reads `Media` values (or plain paths) from the filesystem.

    I/O errors are not caught: a missing file surfaces as FileNotFoundError.
    """

    def resolve(self, value: Any) -> ResolvedMedia:
        media = value if isinstance(value, Media) else Media(path=value)
        path = Path(media.path)
        filename = media.filename or path.name
        content_type = media.content_type or mimetypes.guess_type(filename)[0]
        return ResolvedMedia(filename=filename, content=path.read_bytes(), content_type=content_type)


@dataclass(frozen=True)
class MultipartField:
    """A field in a multipart body."""

    name: str
    value: Any
    type: MultipartFieldType = MultipartFieldType.FIELD
    content_type: str | None = None
    filename: str | None = None

    @classmethod
    def media(
        cls,
        value: Any,
        *,
        filename: str,
        name: str | None = None,
        content_type: str | None = None,
    ) -> "MultipartField":
        """Create a media field. The field name defaults to the filename."""
        return cls(
            name=name or filename,
            value=value,
            type=MultipartFieldType.MEDIA,
            content_type=content_type,
            filename=filename,
        )


def fields_from_mapping(mapping: Mapping[str, Any]) -> list[MultipartField]:
    return [MultipartField(name=key, value=value) for key, value in mapping.items()]


def encode_multipart_files(
    fields: list[MultipartField],
    resolver: MediaResolver,
    encoding: str = "utf-8",
) -> list[tuple[str, tuple[str | None, bytes, str | None]]]:
    """Turn multipart fields into the `files` argument of an httpx request.

    Plain fields become parts without a filename, so the request is encoded as
    multipart/form-data even when it carries no file.
    """
    parts = []
    for field in fields:
        if field.type is MultipartFieldType.MEDIA:
            resolved = resolver.resolve(field.value)
            parts.append(
                (
                    field.name,
                    (
                        field.filename or resolved.filename,
                        resolved.content,
                        field.content_type or resolved.content_type,
                    ),
                )
            )
        else:
            value = field.value if isinstance(field.value, bytes) else str(field.value).encode(encoding)
            parts.append((field.name, (None, value, field.content_type)))
    return parts

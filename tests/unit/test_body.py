"""Tests for request body encoding."""

import json
from dataclasses import dataclass

import pytest

from rest_client_core.body import (
    BytesBody,
    ListBody,
    MappingBody,
    ObjectBody,
    TextBody,
    encode_body,
    to_body,
)
from rest_client_core.errors import InvalidBodyError

JSON = "application/json"
FORM = "application/x-www-form-urlencoded"
FORM_DATA = "multipart/form-data"
TEXT = "text/plain"


@dataclass
class User:
    name: str
    age: int


class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y

    def to_dict(self):
        return {"x": self.x, "y": self.y}


@pytest.mark.unit
class TestToBody:
    """Test the selection of the body variant from plain values."""

    @pytest.mark.parametrize(
        ("value", "variant"),
        [
            ("text", TextBody),
            (b"raw", BytesBody),
            (bytearray(b"raw"), BytesBody),
            ([1, 2], ListBody),
            ((1, 2), ListBody),
            ({"a": 1}, MappingBody),
            (42, ObjectBody),
            (User("ann", 30), ObjectBody),
        ],
    )
    def test_variant(self, value, variant):
        assert isinstance(to_body(value), variant)

    def test_none_stays_none(self):
        assert to_body(None) is None

    def test_body_passes_through(self):
        body = TextBody("hi")
        assert to_body(body) is body


@pytest.mark.unit
class TestTextAndBytes:
    """Strings and bytes are sent verbatim whatever the content type."""

    @pytest.mark.parametrize("content_type", [JSON, FORM, FORM_DATA, TEXT, "application/octet-stream"])
    def test_text_is_verbatim(self, content_type):
        assert encode_body("plain {text}", content_type) == b"plain {text}"

    @pytest.mark.parametrize("content_type", [JSON, TEXT])
    def test_bytes_are_verbatim(self, content_type):
        assert encode_body(b"\x00\xff", content_type) == b"\x00\xff"

    def test_text_uses_encoding(self):
        assert encode_body("café", TEXT, "latin-1") == b"caf\xe9"

    def test_text_defaults_to_utf8(self):
        assert encode_body("café", TEXT) == "café".encode()


@pytest.mark.unit
class TestListBody:
    """Lists are JSON arrays under JSON, their string form otherwise."""

    def test_json(self):
        assert encode_body([1, "a", None], JSON) == b'[1,"a",null]'

    def test_problem_json_counts_as_json(self):
        assert encode_body([1], "application/problem+json") == b"[1]"

    def test_non_json_uses_string_form(self):
        assert encode_body([1, "a"], TEXT) == b"[1, 'a']"


@pytest.mark.unit
class TestMappingBody:
    """Mappings are encoded per content type family."""

    def test_json(self):
        assert json.loads(encode_body({"name": "Ann", "tags": ["a"]}, JSON)) == {"name": "Ann", "tags": ["a"]}

    def test_json_with_charset_parameter(self):
        assert encode_body({"a": 1}, "application/json; charset=utf-8") == b'{"a":1}'

    def test_form_urlencoded(self):
        assert encode_body({"name": "Ann Lee", "q": "a&b"}, FORM) == b"name=Ann+Lee&q=a%26b"

    def test_form_urlencoded_stringifies_values(self):
        assert encode_body({"page": 2, "active": True}, FORM) == b"page=2&active=True"

    def test_form_data_joins_raw_pairs(self):
        assert encode_body({"a": 1, "b": "x y"}, FORM_DATA) == b"a=1&b=x y"

    def test_other_types_use_string_form(self):
        assert encode_body({"a": 1}, TEXT) == b"{'a': 1}"

    def test_keeps_insertion_order(self):
        assert encode_body({"z": 1, "a": 2}, JSON) == b'{"z":1,"a":2}'


@pytest.mark.unit
class TestObjectBody:
    """Other values are only accepted by JSON content types."""

    def test_number_as_json(self):
        assert encode_body(42, JSON) == b"42"

    def test_dataclass_as_json(self):
        assert json.loads(encode_body(User("ann", 30), JSON)) == {"name": "ann", "age": 30}

    def test_to_dict_as_json(self):
        assert json.loads(encode_body(Point(1, 2), JSON)) == {"x": 1, "y": 2}

    @pytest.mark.parametrize("content_type", [FORM, FORM_DATA, TEXT, "application/octet-stream"])
    def test_non_json_content_type_is_invalid(self, content_type):
        with pytest.raises(InvalidBodyError) as exc_info:
            encode_body(42, content_type)
        assert exc_info.value.content_type == content_type

    def test_unserializable_value_is_invalid(self):
        with pytest.raises(InvalidBodyError, match="not JSON serializable"):
            encode_body(object(), JSON)

    def test_unserializable_nested_value_is_invalid(self):
        with pytest.raises(InvalidBodyError):
            encode_body({"when": object()}, JSON)

    def test_invalid_body_is_a_value_error(self):
        with pytest.raises(ValueError):
            ObjectBody(1).encode(TEXT)


@pytest.mark.unit
def test_none_encodes_to_empty_bytes():
    assert encode_body(None, JSON) == b""


CONTENT_TYPES = [JSON, "application/problem+json", FORM, FORM_DATA, TEXT, "application/octet-stream"]


@pytest.mark.unit
@pytest.mark.parametrize("content_type", CONTENT_TYPES)
@pytest.mark.parametrize(
    "body",
    [
        TextBody("héllo"),
        BytesBody(b"\x00\xff"),
        ListBody([1, "two", {"three": 3}]),
        MappingBody({"name": "Ann Lee", "tags": ["a", "b"], "age": 30}),
    ],
    ids=["text", "bytes", "list", "mapping"],
)
def test_encoding_is_deterministic(body, content_type):
    assert encode_body(body, content_type) == encode_body(body, content_type)


@pytest.mark.unit
@pytest.mark.parametrize("value", [42, User("ann", 30), Point(1, 2)], ids=["number", "dataclass", "to_dict"])
def test_object_encoding_is_deterministic(value):
    assert encode_body(ObjectBody(value), JSON) == encode_body(ObjectBody(value), JSON)

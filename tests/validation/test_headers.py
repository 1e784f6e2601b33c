"""HeaderValidator tests.

Tests cover:
    - media type parsing: case folding, quoted parameters, malformed values
    - Content-Type presence, media type mismatch, unsupported parameters
    - ext / profile rules, custom header rules
    - header values that are not latin-1 strings
    - decode / encode of the typed JSONAPIHeader
    - translation to header-sourced errors with status 400
"""

import pytest
from starlette.datastructures import Headers

from jsonapi_validate.schemas.header import Extension, JSONAPIHeader, Profile
from jsonapi_validate.validation.errors import ValidationFailed
from jsonapi_validate.validation.headers import HeaderValidator, parse_media_type
from jsonapi_validate.validation.translate import JSONAPIValidationError

MEDIA_TYPE = "application/vnd.api+json"
ATOMIC = "https://jsonapi.org/ext/atomic"


@pytest.fixture
def validator():
    return HeaderValidator(content_required=True)


def _headers(exc_info):
    return sorted((e.source.header, e.code) for e in exc_info.value.errors())


# --- parse_media_type ---------------------------------------------------------

def test_parse_media_type_lowercases_names():
    assert parse_media_type("Application/VND.API+JSON; EXT=a") == (MEDIA_TYPE, [("ext", "a")])


def test_parse_media_type_unquotes_values():
    media_type, params = parse_media_type('application/vnd.api+json; profile="a b \\"c\\""')
    assert params == [("profile", 'a b "c"')]


@pytest.mark.parametrize("value", ["", "json", "application/", "application/json; ext"])
def test_parse_media_type_rejects_malformed(value):
    with pytest.raises(ValidationFailed) as info:
        parse_media_type(value)
    assert info.value.codes() == ["ENCODING"]


# --- Content-Type -------------------------------------------------------------

def test_plain_media_type_accepted(validator):
    headers = validator.apply({"Content-Type": MEDIA_TYPE})
    assert isinstance(headers, Headers)
    assert headers["content-type"] == MEDIA_TYPE


def test_missing_content_type(validator):
    with pytest.raises(JSONAPIValidationError) as info:
        validator.apply({})
    assert _headers(info) == [("Content-Type", "REQUIRED")]
    assert info.value.http_status == 400


def test_missing_content_type_allowed_when_not_required():
    assert HeaderValidator(content_required=False).apply({}) is not None


def test_wrong_media_type(validator):
    with pytest.raises(JSONAPIValidationError) as info:
        validator.apply({"Content-Type": "application/json"})
    assert _headers(info) == [("Content-Type", "PATTERN")]


def test_malformed_content_type(validator):
    with pytest.raises(JSONAPIValidationError) as info:
        validator.apply({"Content-Type": "not a media type"})
    assert _headers(info) == [("Content-Type", "ENCODING")]


def test_unsupported_parameter(validator):
    with pytest.raises(JSONAPIValidationError) as info:
        validator.apply({"Content-Type": f"{MEDIA_TYPE}; charset=utf-8"})
    assert _headers(info) == [("Content-Type", "UNEXPECTED")]


def test_ext_and_profile_accepted_without_rules(validator):
    validator.apply({"Content-Type": f'{MEDIA_TYPE}; ext="{ATOMIC}"; profile="https://example.com/p"'})


def test_ext_rule(validator):
    def atomic_only(value, context):
        if value != ATOMIC:
            raise ValueError(f"unsupported extension {value}")
        return value

    checked = validator.with_ext(atomic_only)
    checked.apply({"Content-Type": f'{MEDIA_TYPE}; ext="{ATOMIC}"'})
    with pytest.raises(JSONAPIValidationError) as info:
        checked.apply({"Content-Type": f'{MEDIA_TYPE}; ext="https://example.com/other"'})
    assert _headers(info) == [("Content-Type", "PATTERN")]


def test_custom_header_rule(validator):
    def non_empty(value, context):
        if not value:
            raise ValueError("header is required")
        return value

    checked = validator.with_header("X-Request-Id", non_empty)
    checked.apply({"Content-Type": MEDIA_TYPE, "X-Request-Id": "abc"})
    with pytest.raises(JSONAPIValidationError) as info:
        checked.apply({"Content-Type": MEDIA_TYPE})
    assert _headers(info) == [("X-Request-Id", "PATTERN")]


def test_errors_collected_across_headers(validator):
    checked = validator.with_header("X-Request-Id", int)
    with pytest.raises(JSONAPIValidationError) as info:
        checked.apply({"X-Request-Id": "abc"})
    assert _headers(info) == [("Content-Type", "REQUIRED"), ("X-Request-Id", "TYPE")]


def test_starlette_headers_input(validator):
    headers = Headers({"content-type": MEDIA_TYPE})
    assert validator.apply(headers) is headers


def test_non_mapping_input(validator):
    with pytest.raises(JSONAPIValidationError) as info:
        validator.apply(42)
    assert _headers(info) == [("Content-Type", "TYPE")]


@pytest.mark.parametrize("value", ["Zoë ✓", ["ok", "✓"]])
def test_non_latin1_header_value_is_encoding_error(validator, value):
    checked = validator.with_header("X-Name", str)
    with pytest.raises(JSONAPIValidationError) as info:
        checked.apply({"Content-Type": MEDIA_TYPE, "X-Name": value})
    assert _headers(info) == [("X-Name", "ENCODING")]


def test_non_string_header_value_is_type_error(validator):
    with pytest.raises(JSONAPIValidationError) as info:
        validator.apply({"Content-Type": MEDIA_TYPE, "X-Count": 3})
    assert _headers(info) == [("X-Count", "TYPE")]


# --- decode / encode ----------------------------------------------------------

def test_decode_splits_uris(validator):
    header = validator.decode(
        {"Content-Type": f'{MEDIA_TYPE}; ext="{ATOMIC} https://example.com/ext2"; profile="https://example.com/p"'}
    )
    assert header.ext_uris == [ATOMIC, "https://example.com/ext2"]
    assert header.profile_uris == ["https://example.com/p"]
    assert header.version == "1.1"


def test_decode_without_content_type():
    header = HeaderValidator(content_required=False).decode({})
    assert header.ext == []
    assert header.profile == []


def test_encode(validator):
    header = JSONAPIHeader(ext=[Extension(uri=ATOMIC)], profile=[Profile(uri="https://example.com/p")])
    assert validator.encode(header) == f'{MEDIA_TYPE}; ext="{ATOMIC}"; profile="https://example.com/p"'
    assert validator.encode(JSONAPIHeader()) == MEDIA_TYPE


def test_typed_header_input(validator):
    header = JSONAPIHeader(ext=[Extension(uri=ATOMIC)])
    assert validator.decode(header).ext_uris == [ATOMIC]

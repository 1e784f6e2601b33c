"""Attributes adapter tests.

Tests cover:
    - map mode: registered keys, unknown keys, required keys
    - illegal key registration raises JSONAPIConfigurationError; unsafe variants do not
    - typed mode: model validation with paths, construction-time field-name check
    - conditional keys, dynamic keys and buckets, whole-object rules
    - request context reaches caller models through pydantic's validation context
"""

import pytest
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from jsonapi_validate.validation.attributes import Attributes
from jsonapi_validate.validation.context import RequestContext
from jsonapi_validate.validation.errors import ErrorCode, JSONAPIConfigurationError, ValidationFailed


# --- Map mode -----------------------------------------------------------------

def test_registered_keys_are_validated_and_converted():
    attributes = Attributes().with_key("count", int).with_key("name", str)
    assert attributes.apply({"count": "3", "name": "x"}) == {"count": 3, "name": "x"}


def test_unknown_key_rejected_by_default():
    with pytest.raises(ValidationFailed) as info:
        Attributes().with_key("name", str).apply({"name": "x", "other": 1})
    assert [(i.code, i.path) for i in info.value.issues] == [(ErrorCode.UNEXPECTED.value, ("other",))]


def test_with_unknown_accepts_legal_names_only():
    attributes = Attributes().with_unknown()
    assert attributes.apply({"anything": 1}) == {"anything": 1}
    with pytest.raises(ValidationFailed) as info:
        attributes.apply({"bad name": 1})
    assert info.value.issues[0].path == ("bad name",)


def test_required_key():
    with pytest.raises(ValidationFailed) as info:
        Attributes().with_key("name", str, required=True).apply({})
    assert [(i.code, i.path) for i in info.value.issues] == [(ErrorCode.REQUIRED.value, ("name",))]


def test_key_errors_are_collected():
    attributes = Attributes().with_key("count", int).with_key("ratio", float)
    with pytest.raises(ValidationFailed) as info:
        attributes.apply({"count": "x", "ratio": "y"})
    assert sorted(i.path for i in info.value.issues) == [("count",), ("ratio",)]
    assert set(info.value.codes()) == {ErrorCode.TYPE.value}


@pytest.mark.parametrize("name", ["", "bad name", "a.b", "links", "relationships"])
def test_illegal_key_registration_raises(name):
    with pytest.raises(JSONAPIConfigurationError):
        Attributes().with_key(name, str)


def test_unsafe_registration_skips_check():
    attributes = Attributes().with_key_unsafe("legacy.name", str)
    assert attributes.apply({"legacy.name": "x"}) == {"legacy.name": "x"}


def test_non_object_is_type_error():
    with pytest.raises(ValidationFailed) as info:
        Attributes().apply(["not", "an", "object"])
    assert info.value.codes() == [ErrorCode.TYPE.value]


def test_with_json_accepts_encoded_object():
    attributes = Attributes().with_unknown().with_json()
    assert attributes.apply('{"a": 1}') == {"a": 1}
    with pytest.raises(ValidationFailed) as info:
        attributes.apply("{oops")
    assert info.value.codes() == [ErrorCode.ENCODING.value]


# --- Typed mode ---------------------------------------------------------------

class Book(BaseModel):
    title: str = Field(min_length=1)
    pages: int = Field(gt=0)


def test_typed_mode_returns_model():
    result = Attributes(Book).apply({"title": "Dune", "pages": 412})
    assert isinstance(result, Book)
    assert result.pages == 412


def test_typed_mode_maps_pydantic_errors():
    with pytest.raises(ValidationFailed) as info:
        Attributes(Book).apply({"title": "", "pages": 0})
    assert sorted((i.path, i.code) for i in info.value.issues) == [
        (("pages",), ErrorCode.MIN.value),
        (("title",), ErrorCode.MIN.value),
    ]


def test_typed_mode_missing_field_is_required():
    with pytest.raises(ValidationFailed) as info:
        Attributes(Book).apply({"title": "Dune"})
    assert [(i.code, i.path) for i in info.value.issues] == [(ErrorCode.REQUIRED.value, ("pages",))]


def test_typed_mode_rejects_unknown_keys():
    with pytest.raises(ValidationFailed) as info:
        Attributes(Book).apply({"title": "Dune", "pages": 1, "isbn": "x"})
    assert info.value.codes() == [ErrorCode.UNEXPECTED.value]


def test_typed_mode_checks_field_names_at_construction():
    class Legacy(BaseModel):
        legacy_name: str = Field(alias="legacy.name")

    with pytest.raises(JSONAPIConfigurationError):
        Attributes(Legacy)
    assert Attributes(Legacy, unsafe=True).apply({"legacy.name": "x"}).legacy_name == "x"


def test_key_rules_run_before_model():
    attributes = Attributes(Book).with_key("title", lambda value, context: value.strip())
    assert attributes.apply({"title": "  Dune ", "pages": 1}).title == "Dune"


def test_typed_mode_sees_request_context():
    class Secret(BaseModel):
        code: str

        @field_validator("code")
        @classmethod
        def _only_on_post(cls, value: str, info: ValidationInfo) -> str:
            context = (info.context or {}).get("request_context")
            if context is not None and context.method == "PATCH":
                raise ValueError("code cannot be changed")
            return value

    attributes = Attributes(Secret)
    attributes.apply({"code": "x"}, RequestContext(method="POST"))
    with pytest.raises(ValidationFailed) as info:
        attributes.apply({"code": "x"}, RequestContext(method="PATCH"))
    assert info.value.issues[0].path == ("code",)


# --- Conditional, dynamic and whole-object rules ------------------------------

def test_conditional_key():
    attributes = Attributes().with_conditional_key(
        "discount", lambda attrs, context: context.method == "POST", int
    )
    assert attributes.apply({"discount": "5"}, RequestContext(method="POST")) == {"discount": 5}
    with pytest.raises(ValidationFailed) as info:
        attributes.apply({"discount": "5"}, RequestContext(method="PATCH"))
    assert info.value.codes() == [ErrorCode.UNEXPECTED.value]


def test_dynamic_key():
    attributes = Attributes().with_dynamic_key(r"^x-", int)
    assert attributes.apply({"x-a": "1", "x-b": 2}) == {"x-a": 1, "x-b": 2}
    with pytest.raises(ValidationFailed) as info:
        attributes.apply({"x-a": "nope"})
    assert info.value.issues[0].path == ("x-a",)


def test_dynamic_bucket():
    attributes = Attributes().with_key("name", str).with_dynamic_bucket(lambda key: key.startswith("label-"), "labels")
    result = attributes.apply({"name": "n", "label-a": "A", "label-b": "B"})
    assert result == {"name": "n", "labels": {"label-a": "A", "label-b": "B"}}


def test_whole_object_rule():
    def title_or_body(value, context):
        if not value.get("title") and not value.get("body"):
            raise ValueError("title or body is required")
        return value

    attributes = Attributes().with_unknown().with_rule(title_or_body)
    with pytest.raises(ValidationFailed) as info:
        attributes.apply({})
    assert info.value.codes() == [ErrorCode.PATTERN.value]


def test_error_message_override():
    attributes = Attributes().with_key("n", int).with_error_message("Bad attributes", "check the attributes")
    with pytest.raises(ValidationFailed) as info:
        attributes.apply({"n": "x"})
    assert info.value.issues[0].title == "Bad attributes"
    assert info.value.issues[0].detail == "check the attributes"
    assert info.value.issues[0].path == ("n",)

"""Link values: a URL string, a link object, or an explicit ``null``.

Reference: https://jsonapi.org/format/#document-links
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BeforeValidator, ConfigDict, ValidationError
from pydantic_core import PydanticCustomError

from jsonapi_validate.schemas.base import CompactModel, NullModel
from jsonapi_validate.validation.errors import ErrorCode, ValidationFailed, issues_from_pydantic


class NilLink(NullModel):
    """A link explicitly set to ``null``."""


class LinkObject(CompactModel):
    """A link object. ``href`` is required; the rest are optional."""

    model_config = ConfigDict(extra="forbid")

    href: str
    rel: str | None = None
    describedby: str | LinkObject | None = None
    title: str | None = None
    type: str | None = None
    hreflang: str | list[str] | None = None
    meta: dict[str, Any] | None = None


def cast_link(raw: Any) -> str | LinkObject | NilLink:
    """Decode a raw link value. Order: null, string, object."""
    if raw is None:
        return NilLink()
    if isinstance(raw, (str, LinkObject, NilLink)):
        return raw
    if isinstance(raw, Mapping):
        try:
            return LinkObject.model_validate(raw)
        except ValidationError as exc:
            raise ValidationFailed(issues_from_pydantic(exc)) from exc
    raise ValidationFailed.single(ErrorCode.TYPE, "link must be a string, an object or null")


def link_for_model(value: Any) -> str | LinkObject | NilLink:
    """``cast_link`` for use inside pydantic validators."""
    try:
        return cast_link(value)
    except ValidationFailed as exc:
        raise PydanticCustomError("link", "{reason}", {"reason": str(exc)}) from exc


Link = Annotated[str | LinkObject | NilLink, BeforeValidator(link_for_model)]
Links = dict[str, Link]

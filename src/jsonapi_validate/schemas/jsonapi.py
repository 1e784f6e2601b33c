"""JSON:API error and ``jsonapi`` member models using Pydantic v2.

Error objects are what every validator failure is eventually rendered as;
unset optional members are omitted from the output.

Reference: https://jsonapi.org/format/#errors
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

from jsonapi_validate.schemas.base import CompactModel

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"
SUPPORTED_VERSIONS = ("1.0", "1.1")


# ---------------------------------------------------------------------------
# Error objects
# ---------------------------------------------------------------------------


class ErrorLinks(CompactModel):
    """``links`` of an error object: ``about`` (docs) and ``type`` (trace)."""

    about: str | None = None
    type: str | None = None


class ErrorSource(CompactModel):
    """Where the error originated. At most one member is set."""

    pointer: str | None = None
    parameter: str | None = None
    header: str | None = None

    @model_validator(mode="after")
    def _single_location(self) -> "ErrorSource":
        set_members = [name for name in ("pointer", "parameter", "header") if getattr(self, name) is not None]
        if len(set_members) > 1:
            raise ValueError(f"error source must set at most one of pointer/parameter/header, got {set_members}")
        return self


class JSONAPIError(CompactModel):
    """A single JSON:API error object."""

    id: str | None = None
    links: ErrorLinks | None = None
    status: str
    code: str | None = None
    title: str
    detail: str | None = None
    source: ErrorSource | None = None
    meta: dict[str, Any] | None = None


class JSONAPIErrorResponse(BaseModel):
    """JSON:API response envelope containing a list of errors."""

    errors: list[JSONAPIError]

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Top-level ``jsonapi`` member
# ---------------------------------------------------------------------------


class JSONAPIObject(CompactModel):
    """The top-level ``jsonapi`` object: implementation version, extensions and profiles."""

    model_config = ConfigDict(extra="forbid")

    version: Literal["1.0", "1.1"] | None = None
    ext: list[str] | None = None
    profile: list[str] | None = None
    meta: dict[str, Any] | None = None

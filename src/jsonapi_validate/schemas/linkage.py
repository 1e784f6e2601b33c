"""Resource linkage: the ``data`` member of a relationship.

Linkage is a closed variant of exactly three shapes:

- ``NilLinkage``: an explicit empty to-one relationship, serialized as ``null``;
- ``ResourceIdentifier``: a to-one relationship;
- ``LinkageCollection``: a to-many relationship (possibly empty).

:func:`cast_linkage` decodes raw values in a fixed order: null, JSON string,
array, object.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import ConfigDict, RootModel, StrictStr, ValidationError, model_validator
from pydantic_core import PydanticCustomError

from jsonapi_validate.schemas.base import CompactModel, NullModel
from jsonapi_validate.validation.errors import (
    ErrorCode,
    IssueCollector,
    ValidationFailed,
    issues_from_pydantic,
)


class NilLinkage(NullModel):
    """Linkage explicitly set to ``null``."""


class ResourceIdentifier(CompactModel):
    """``{type, id | lid, meta}``; at least one of ``id``/``lid`` is required."""

    model_config = ConfigDict(extra="forbid")

    type: StrictStr
    id: StrictStr | None = None
    lid: StrictStr | None = None
    meta: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _require_identity(self) -> ResourceIdentifier:
        if self.id is None and self.lid is None:
            raise PydanticCustomError("missing", "resource identifier requires id or lid")
        return self


class LinkageCollection(RootModel[list[ResourceIdentifier]]):
    """Ordered to-many linkage."""

    root: list[ResourceIdentifier]

    def __iter__(self) -> Iterator[ResourceIdentifier]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, index: int) -> ResourceIdentifier:
        return self.root[index]


ResourceLinkage = NilLinkage | ResourceIdentifier | LinkageCollection


def _identifier(raw: Any) -> ResourceIdentifier:
    if isinstance(raw, ResourceIdentifier):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationFailed.single(ErrorCode.TYPE, "resource identifier must be an object")
    try:
        return ResourceIdentifier.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailed(issues_from_pydantic(exc)) from exc


def _cast_decoded(raw: Any) -> ResourceLinkage:
    if raw is None:
        return NilLinkage()
    if isinstance(raw, (NilLinkage, ResourceIdentifier, LinkageCollection)):
        return raw
    if isinstance(raw, (list, tuple)):
        collector = IssueCollector()
        identifiers = []
        for index, item in enumerate(raw):
            identifier = collector.run(_identifier, item, prefix=(index,))
            if identifier is not None:
                identifiers.append(identifier)
        collector.raise_if_any()
        return LinkageCollection(identifiers)
    if isinstance(raw, Mapping):
        return _identifier(raw)
    raise ValidationFailed.single(ErrorCode.TYPE, "resource linkage must be null, an object or an array")


def cast_linkage(raw: Any) -> ResourceLinkage:
    """Decode ``raw`` into one of the three linkage shapes.

    Raises:
        ValidationFailed: TYPE/REQUIRED issues (with list indexes in the path
            for collection members) or ENCODING for a malformed JSON string.
    """
    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except ValueError as exc:
            raise ValidationFailed.single(ErrorCode.ENCODING, f"resource linkage is not valid JSON: {exc}") from exc
        if isinstance(decoded, str):
            raise ValidationFailed.single(ErrorCode.TYPE, "resource linkage must be null, an object or an array")
        return _cast_decoded(decoded)
    return _cast_decoded(raw)


def linkage_for_model(value: Any) -> ResourceLinkage:
    """``cast_linkage`` for use inside pydantic validators."""
    try:
        return cast_linkage(value)
    except ValidationFailed as exc:
        raise PydanticCustomError("resource_linkage", "{reason}", {"reason": str(exc)}) from exc

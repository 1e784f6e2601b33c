"""Resource objects and relationships, with a sparse-field-aware codec.

``ResourceObject[T]`` is generic over its attributes: ``T`` is usually a
caller's pydantic model, or ``dict[str, Any]`` for dynamically keyed
attributes.

Decoding (``ResourceObject.decode`` or plain ``model_validate``) records the
attribute keys literally present in the payload and diverts top-level
``@member`` / ``namespace:member`` keys into ``at_members`` /
``extension_members``; any other unknown key is ignored. Encoding emits only
the members that are set and splices the diverted members back as top-level
siblings.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    StrictStr,
    field_validator,
    model_serializer,
    model_validator,
)

from jsonapi_validate.schemas.base import CompactModel
from jsonapi_validate.schemas.linkage import ResourceLinkage, linkage_for_model
from jsonapi_validate.schemas.links import Links
from jsonapi_validate.validation.members import route_member

T = TypeVar("T")

RESOURCE_MEMBERS = ("id", "lid", "type", "attributes", "relationships", "links", "meta")


class Relationship(CompactModel):
    """A relationship object.

    ``data`` is ``None`` only when the member is absent (a links-only
    relationship); an explicit ``null`` becomes ``NilLinkage``.
    """

    model_config = ConfigDict(extra="forbid")

    links: Links | None = None
    data: ResourceLinkage | None = None
    meta: dict[str, Any] | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _cast_data(cls, value: Any) -> ResourceLinkage:
        return linkage_for_model(value)


def split_members(
    raw: Mapping[str, Any], known: Iterable[str]
) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any], list[str]]:
    """Partition ``raw`` into known members, @-members, extension members and leftovers."""
    known = set(known)
    values: dict[str, Any] = {}
    buckets: dict[str, dict[str, Any]] = {"at_members": {}, "extension_members": {}}
    leftovers: list[str] = []
    for key, value in raw.items():
        if key in known:
            values[key] = value
            continue
        destination = route_member(key)
        if destination is None:
            leftovers.append(key)
        else:
            buckets[destination][key] = value
    return values, buckets["at_members"], buckets["extension_members"], leftovers


def load_json_object(raw: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    if not isinstance(raw, Mapping):
        raise ValueError("expected a JSON object")
    return raw


class ResourceObject(BaseModel, Generic[T]):
    """A single resource object."""

    id: StrictStr | None = None
    lid: str | None = None
    type: str = ""
    attributes: T | None = None
    relationships: dict[str, Relationship] | None = None
    links: Links | None = None
    meta: dict[str, Any] | None = None
    extension_members: dict[str, Any] = Field(default_factory=dict, exclude=True)
    at_members: dict[str, Any] = Field(default_factory=dict, exclude=True)
    # Attribute keys present in the decoded payload.
    present_attribute_fields: frozenset[str] | None = Field(default=None, exclude=True)
    # Client-requested ``fields[TYPE]`` restriction.
    sparse_fields: frozenset[str] | None = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _divert_members(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        values, at_members, extension_members, _ = split_members(data, RESOURCE_MEMBERS)
        values["at_members"] = at_members
        values["extension_members"] = extension_members
        if isinstance(data.get("attributes"), Mapping):
            values["present_attribute_fields"] = frozenset(data["attributes"])
        return values

    @model_serializer(mode="wrap")
    def _serialize(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        out: dict[str, Any] = {}
        for name in RESOURCE_MEMBERS:
            if getattr(self, name) is not None and name in data:
                out[name] = data[name]

        allowed = self._allowed_attributes()
        if allowed is not None and isinstance(out.get("attributes"), Mapping):
            attributes = {key: value for key, value in out["attributes"].items() if key in allowed}
            # An empty attributes object that was empty on input is kept.
            if attributes or (self.sparse_fields is None and not self.present_attribute_fields):
                out["attributes"] = attributes
            else:
                del out["attributes"]
        if self.sparse_fields is not None and isinstance(out.get("relationships"), Mapping):
            relationships = {
                name: value for name, value in out["relationships"].items() if name in self.sparse_fields
            }
            if relationships:
                out["relationships"] = relationships
            else:
                del out["relationships"]

        out.update(self.at_members)
        out.update(self.extension_members)
        return out

    def _allowed_attributes(self) -> frozenset[str] | None:
        if self.present_attribute_fields is None:
            return self.sparse_fields
        if self.sparse_fields is None:
            return self.present_attribute_fields
        return self.present_attribute_fields & self.sparse_fields

    @classmethod
    def decode(cls, raw: str | bytes | Mapping[str, Any]) -> ResourceObject[T]:
        """Decode a JSON string or mapping into a resource object.

        Raises:
            ValueError: The payload is not a JSON object or does not fit the
                model (``pydantic.ValidationError`` is a ``ValueError``).
        """
        return cls.model_validate(load_json_object(raw))

    def encode(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def encode_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def with_sparse_fields(self, fields: Iterable[str] | None) -> ResourceObject[T]:
        """Restrict output to the attribute and relationship names in ``fields``.

        ``None`` clears the restriction.
        """
        return self.model_copy(update={"sparse_fields": None if fields is None else frozenset(fields)})

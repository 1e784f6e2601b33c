"""Top-level document envelopes.

``DocumentEnvelope[T]`` holds one primary resource (or none, for meta-only
documents) and is what the document validator produces. ``CollectionDocument[T]``
is the encode-side envelope for collection responses.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer, model_validator

from jsonapi_validate.schemas.jsonapi import JSONAPIObject
from jsonapi_validate.schemas.links import Links
from jsonapi_validate.schemas.resource import ResourceObject, load_json_object, split_members

T = TypeVar("T")

DOCUMENT_MEMBERS = ("data", "links", "meta", "included", "jsonapi")


class _Envelope(BaseModel):
    links: Links | None = None
    meta: dict[str, Any] | None = None
    included: list[dict[str, Any]] | None = None
    jsonapi: JSONAPIObject | None = None
    extension_members: dict[str, Any] = Field(default_factory=dict, exclude=True)
    at_members: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _divert_members(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        values, at_members, extension_members, _ = split_members(data, DOCUMENT_MEMBERS)
        values["at_members"] = at_members
        values["extension_members"] = extension_members
        return values

    @model_serializer(mode="wrap")
    def _serialize(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        out: dict[str, Any] = {}
        for name in DOCUMENT_MEMBERS:
            if name not in data:
                continue
            # Primary data is emitted whenever it was set, even as null.
            if name == "data" and "data" in self.model_fields_set:
                out[name] = data[name]
            elif getattr(self, name) is not None:
                out[name] = data[name]
        out.update(self.at_members)
        out.update(self.extension_members)
        return out

    def encode(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def encode_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class DocumentEnvelope(_Envelope, Generic[T]):
    """A single-resource (or meta-only) document."""

    data: ResourceObject[T] | None = None

    @classmethod
    def decode(cls, raw: str | bytes | Mapping[str, Any]) -> DocumentEnvelope[T]:
        return cls.model_validate(load_json_object(raw))

    def with_sparse_fields(self, fields: Iterable[str] | None) -> DocumentEnvelope[T]:
        if self.data is None:
            return self
        return self.model_copy(update={"data": self.data.with_sparse_fields(fields)})


class CollectionDocument(_Envelope, Generic[T]):
    """A document whose primary data is a list of resources."""

    data: list[ResourceObject[T]]

    @classmethod
    def decode(cls, raw: str | bytes | Mapping[str, Any]) -> CollectionDocument[T]:
        return cls.model_validate(load_json_object(raw))

    def with_sparse_fields(self, fields: Iterable[str] | None) -> CollectionDocument[T]:
        return self.model_copy(update={"data": [item.with_sparse_fields(fields) for item in self.data]})

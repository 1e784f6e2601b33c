"""Shared base models for JSON:API output objects."""

from pydantic import BaseModel, ConfigDict, SerializerFunctionWrapHandler, model_serializer


class CompactModel(BaseModel):
    """Model whose unset (``None``) members are omitted on output.

    The check runs against the attribute value, not the serialized one, so a
    member holding a null-serializing placeholder (``NilLink``,
    ``NilLinkage``) is still emitted as JSON ``null``.
    """

    @model_serializer(mode="wrap")
    def _omit_none(self, handler: SerializerFunctionWrapHandler):
        data = handler(self)
        return {key: value for key, value in data.items() if getattr(self, key, None) is not None}


class NullModel(BaseModel):
    """Placeholder for a member explicitly set to ``null``.

    Fields holding one are cast before validation, so the placeholder never
    competes with an object inside a union. Serializes to JSON ``null``.
    """

    model_config = ConfigDict(frozen=True)

    @model_serializer
    def _null(self) -> None:
        return None

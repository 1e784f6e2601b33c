"""Document validator for single-resource request and response bodies."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from pydantic import ValidationError

from jsonapi_validate.schemas.document import DOCUMENT_MEMBERS, DocumentEnvelope
from jsonapi_validate.schemas.jsonapi import JSONAPIObject
from jsonapi_validate.validation.context import RequestContext, ensure_context
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ErrorConfig,
    ErrorConfigurable,
    IssueCollector,
    ValidationFailed,
    issue,
    issues_from_pydantic,
)
from jsonapi_validate.validation.members import route_member
from jsonapi_validate.validation.relationships import RelationshipValidator
from jsonapi_validate.validation.resource import ResourceObjectValidator, _meta_key, validate_meta
from jsonapi_validate.validation.rules import Rule, as_rule
from jsonapi_validate.validation.translate import JSONAPIValidationError, SourceKind

logger = logging.getLogger(__name__)


def validate_included(raw: Any) -> list[dict[str, Any]]:
    """``included`` is an array of resource objects, each with at least a string ``type``."""
    if not isinstance(raw, list):
        raise ValidationFailed.single(ErrorCode.TYPE, "included must be an array")
    collector = IssueCollector()
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            collector.add(issue(ErrorCode.TYPE, "included resource must be an object", index))
        elif "type" not in item:
            collector.add(issue(ErrorCode.REQUIRED, "included resource requires a type", index, "type"))
        elif not isinstance(item["type"], str):
            collector.add(issue(ErrorCode.TYPE, "type must be a string", index, "type"))
    collector.raise_if_any()
    return [dict(item) for item in raw]


def validate_jsonapi_object(raw: Any) -> JSONAPIObject:
    try:
        return JSONAPIObject.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailed(issues_from_pydantic(exc)) from exc


@dataclass(frozen=True)
class DocumentValidator(ErrorConfigurable):
    """Validates a document whose primary data is a single resource object.

    Builder methods that configure the resource object (relationships, meta,
    links) are forwarded to the inner :class:`ResourceObjectValidator`;
    ``with_document_meta`` and ``with_unknown_document_meta`` configure the
    top-level ``meta``.
    """

    resource: ResourceObjectValidator
    document_meta: tuple[tuple[str, Rule], ...] = ()
    allow_unknown_document_meta: bool = False
    required: bool = False
    error_config: ErrorConfig | None = None

    @classmethod
    def for_type(cls, type_name: str, attributes: Any = None) -> DocumentValidator:
        return cls(ResourceObjectValidator(type_name, attributes))

    @property
    def type_name(self) -> str:
        return self.resource.type_name

    def _with_resource(self, resource: ResourceObjectValidator) -> DocumentValidator:
        return replace(self, resource=resource)

    def with_relationship(self, name: str, validator: RelationshipValidator | None = None) -> DocumentValidator:
        return self._with_resource(self.resource.with_relationship(name, validator))

    def with_unknown_relationships(self) -> DocumentValidator:
        return self._with_resource(self.resource.with_unknown_relationships())

    def with_meta(self, key: str, rule: Any) -> DocumentValidator:
        """Register a key of the resource object's ``meta``."""
        return self._with_resource(self.resource.with_meta(key, rule))

    def with_unknown_meta(self) -> DocumentValidator:
        return self._with_resource(self.resource.with_unknown_meta())

    def with_document_meta(self, key: str, rule: Any) -> DocumentValidator:
        """Register a key of the top-level ``meta``."""
        _meta_key(key)
        return replace(self, document_meta=self.document_meta + ((key, as_rule(rule)),))

    def with_unknown_document_meta(self) -> DocumentValidator:
        return replace(self, allow_unknown_document_meta=True)

    def with_required(self) -> DocumentValidator:
        """Require primary ``data`` to be present and non-null."""
        return replace(self, required=True)

    # -- validation ---------------------------------------------------------

    def apply(self, raw: Any, context: RequestContext | None = None) -> DocumentEnvelope:
        """Validate a request or response body.

        Args:
            raw: JSON text (``str``/``bytes``) or an already decoded mapping.
            context: Request method and resource id, for context rules in
                caller-supplied attribute and meta rules.

        Returns:
            The validated envelope; ``data`` is ``None`` for a meta-only
            document.

        Raises:
            JSONAPIValidationError: With pointer-kind sources.
        """
        try:
            return self._apply(raw, ensure_context(context))
        except ValidationFailed as exc:
            failure = self._configured(exc)
            logger.debug("Rejected %s document with %d issue(s)", self.type_name, len(failure.issues))
            raise JSONAPIValidationError(failure.issues, SourceKind.POINTER) from exc

    def _decode(self, raw: Any) -> Mapping[str, Any]:
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise ValidationFailed.single(ErrorCode.ENCODING, f"document is not valid JSON: {exc}") from exc
        if not isinstance(raw, Mapping):
            raise ValidationFailed.single(ErrorCode.TYPE, "document must be a JSON object")
        return raw

    def _apply(self, raw: Any, context: RequestContext) -> DocumentEnvelope:
        source = self._decode(raw)
        collector = IssueCollector()
        values: dict[str, Any] = {}

        if "data" in source and "errors" in source:
            collector.add(issue(ErrorCode.UNEXPECTED, "a document must not contain both data and errors", "errors"))
        if not any(key in source for key in ("data", "errors", "meta")):
            collector.add(issue(ErrorCode.REQUIRED, "a document must contain at least one of data, errors or meta"))

        data = source.get("data")
        if data is not None:
            resource = collector.run(self.resource.apply, data, context, prefix=("data",))
            if resource is not None:
                values["data"] = resource
        elif self.required or self.resource.required:
            collector.add(issue(ErrorCode.REQUIRED, "primary data is required", "data"))
        elif "data" in source:
            values["data"] = None

        if "meta" in source:
            meta = collector.run(
                validate_meta,
                source["meta"],
                self.document_meta,
                self.allow_unknown_document_meta,
                context,
                prefix=("meta",),
            )
            if meta is not None:
                values["meta"] = meta
        if "links" in source:
            links = collector.run(self.resource.links.apply, source["links"], context, prefix=("links",))
            if links is not None:
                values["links"] = links
        if "included" in source:
            included = collector.run(validate_included, source["included"], prefix=("included",))
            if included is not None:
                values["included"] = included
        if "jsonapi" in source:
            jsonapi = collector.run(validate_jsonapi_object, source["jsonapi"], prefix=("jsonapi",))
            if jsonapi is not None:
                values["jsonapi"] = jsonapi

        buckets: dict[str, dict[str, Any]] = {"at_members": {}, "extension_members": {}}
        for key, value in source.items():
            if key in DOCUMENT_MEMBERS or key == "errors":
                continue
            destination = route_member(key, self.resource.buckets)
            if destination is None:
                collector.add(issue(ErrorCode.UNEXPECTED, f"member {key!r} is not allowed in a document", key))
            else:
                buckets.setdefault(destination, {})[key] = value

        collector.raise_if_any()
        return DocumentEnvelope.model_construct(
            _fields_set=set(values),
            at_members=buckets["at_members"],
            extension_members=buckets["extension_members"],
            **values,
        )

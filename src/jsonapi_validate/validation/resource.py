"""Resource-object validator.

Validates one resource object against a configured type and attributes
adapter and produces a :class:`~jsonapi_validate.schemas.resource.ResourceObject`.
Unrecognized top-level members are routed through an ordered list of
``(predicate, destination)`` buckets; the first match wins and a key no
bucket accepts is an UNEXPECTED error.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from jsonapi_validate.schemas.resource import RESOURCE_MEMBERS, Relationship, ResourceObject
from jsonapi_validate.validation.attributes import Attributes
from jsonapi_validate.validation.context import RequestContext, ensure_context
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ErrorConfig,
    ErrorConfigurable,
    IssueCollector,
    JSONAPIConfigurationError,
    ValidationFailed,
    issue,
)
from jsonapi_validate.validation.links import LinksValidator
from jsonapi_validate.validation.members import MEMBER_BUCKETS, BucketRoute, check_member_name, route_member
from jsonapi_validate.validation.relationships import RelationshipValidator
from jsonapi_validate.validation.rules import Rule, as_rule

logger = logging.getLogger(__name__)

_BUCKET_DESTINATIONS = frozenset({"at_members", "extension_members"})


def _as_attributes(attributes: Any) -> Any:
    if attributes is None:
        return Attributes().with_unknown()
    if isinstance(attributes, type):
        return Attributes(attributes)
    return as_rule(attributes)


def validate_meta(
    raw: Any,
    rules: tuple[tuple[str, Rule], ...],
    allow_unknown: bool,
    context: RequestContext,
) -> dict[str, Any]:
    """Validate a ``meta`` object against per-key rules."""
    if not isinstance(raw, Mapping):
        raise ValidationFailed.single(ErrorCode.TYPE, "meta must be an object")
    collector = IssueCollector()
    known = dict(rules)
    out: dict[str, Any] = {}
    for key, value in raw.items():
        if key in known:
            try:
                out[key] = known[key].apply(value, context)
            except ValidationFailed as exc:
                collector.extend(exc.issues, key)
        elif allow_unknown:
            out[key] = value
        else:
            collector.add(issue(ErrorCode.UNEXPECTED, f"meta member {key!r} is not allowed", key))
    collector.raise_if_any()
    return out


def _meta_key(key: str) -> None:
    problem = check_member_name(key)
    if problem is not None:
        raise JSONAPIConfigurationError(f"meta key {key!r} is not a valid member name: {problem.detail}")


@dataclass(frozen=True)
class ResourceObjectValidator(ErrorConfigurable):
    """Validates a resource object of type ``type_name``.

    Args:
        type_name: The expected ``type``. Stamped onto every accepted object.
        attributes: An :class:`Attributes` adapter, a pydantic model class, any
            rule, or ``None`` to accept any attributes object.
    """

    type_name: str
    attributes: Any = None
    relationships: tuple[tuple[str, RelationshipValidator], ...] = ()
    allow_unknown_relationships: bool = False
    meta: tuple[tuple[str, Rule], ...] = ()
    allow_unknown_meta: bool = False
    links: LinksValidator = field(default_factory=LinksValidator)
    buckets: tuple[BucketRoute, ...] = MEMBER_BUCKETS
    required: bool = False
    error_config: ErrorConfig | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _as_attributes(self.attributes))

    def with_relationship(self, name: str, validator: RelationshipValidator | None = None) -> ResourceObjectValidator:
        problem = check_member_name(name)
        if problem is not None:
            raise JSONAPIConfigurationError(f"relationship name {name!r} is not a valid member name: {problem.detail}")
        entry = (name, validator if validator is not None else RelationshipValidator())
        return replace(self, relationships=self.relationships + (entry,))

    def with_unknown_relationships(self) -> ResourceObjectValidator:
        return replace(self, allow_unknown_relationships=True)

    def with_meta(self, key: str, rule: Any) -> ResourceObjectValidator:
        _meta_key(key)
        return replace(self, meta=self.meta + ((key, as_rule(rule)),))

    def with_unknown_meta(self) -> ResourceObjectValidator:
        return replace(self, allow_unknown_meta=True)

    def with_links(self, links: LinksValidator) -> ResourceObjectValidator:
        return replace(self, links=links)

    def with_bucket(self, route: BucketRoute) -> ResourceObjectValidator:
        """Append a routing bucket for unrecognized top-level members.

        ``route.destination`` must be ``at_members`` or ``extension_members``.
        """
        if route.destination not in _BUCKET_DESTINATIONS:
            raise JSONAPIConfigurationError(
                f"bucket destination must be one of {sorted(_BUCKET_DESTINATIONS)}, got {route.destination!r}"
            )
        return replace(self, buckets=self.buckets + (route,))

    def with_required(self) -> ResourceObjectValidator:
        """Require this resource as non-null primary data when used in a document."""
        return replace(self, required=True)

    # -- validation ---------------------------------------------------------

    def apply(self, raw: Any, context: RequestContext | None = None) -> ResourceObject:
        try:
            return self._apply(raw, ensure_context(context))
        except ValidationFailed as exc:
            logger.debug("Rejected %s resource object with %d issue(s)", self.type_name, len(exc.issues))
            raise self._configured(exc) from exc

    def _decode(self, raw: Any) -> Mapping[str, Any]:
        if isinstance(raw, ResourceObject):
            return raw.encode()
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise ValidationFailed.single(ErrorCode.ENCODING, f"resource object is not valid JSON: {exc}") from exc
        if not isinstance(raw, Mapping):
            raise ValidationFailed.single(ErrorCode.TYPE, "resource object must be an object")
        return raw

    def _apply(self, raw: Any, context: RequestContext) -> ResourceObject:
        source = self._decode(raw)
        collector = IssueCollector()
        values: dict[str, Any] = {}

        if "id" in source:
            if isinstance(source["id"], str):
                values["id"] = source["id"]
            else:
                collector.add(issue(ErrorCode.TYPE, "id must be a string", "id"))
        if "lid" in source:
            if isinstance(source["lid"], str):
                values["lid"] = source["lid"]
            else:
                collector.add(issue(ErrorCode.TYPE, "lid must be a string", "lid"))
        if "type" in source:
            if not isinstance(source["type"], str):
                collector.add(issue(ErrorCode.TYPE, "type must be a string", "type"))
            elif source["type"] != self.type_name:
                collector.add(
                    issue(ErrorCode.PATTERN, f"type must be {self.type_name!r}, got {source['type']!r}", "type")
                )

        if "attributes" in source:
            attributes = collector.run(self.attributes.apply, source["attributes"], context, prefix=("attributes",))
            if attributes is not None:
                values["attributes"] = attributes
        elif getattr(self.attributes, "required", False):
            collector.add(issue(ErrorCode.REQUIRED, "attributes are required", "attributes"))

        if "relationships" in source:
            relationships = collector.run(
                self._relationships, source["relationships"], context, prefix=("relationships",)
            )
            if relationships is not None:
                values["relationships"] = relationships
        else:
            for name, validator in self.relationships:
                if validator.required:
                    collector.add(issue(ErrorCode.REQUIRED, f"relationship {name!r} is required", "relationships", name))

        if "links" in source:
            links = collector.run(self.links.apply, source["links"], context, prefix=("links",))
            if links is not None:
                values["links"] = links
        if "meta" in source:
            meta = collector.run(
                validate_meta, source["meta"], self.meta, self.allow_unknown_meta, context, prefix=("meta",)
            )
            if meta is not None:
                values["meta"] = meta

        buckets: dict[str, dict[str, Any]] = {"at_members": {}, "extension_members": {}}
        for key, value in source.items():
            if key in RESOURCE_MEMBERS:
                continue
            destination = route_member(key, self.buckets)
            if destination is None:
                collector.add(issue(ErrorCode.UNEXPECTED, f"member {key!r} is not allowed in a resource object", key))
            else:
                buckets[destination][key] = value

        collector.raise_if_any()

        present = None
        if isinstance(source.get("attributes"), Mapping):
            present = frozenset(source["attributes"])
        fields_set = set(values) | {"type"}
        return ResourceObject.model_construct(
            _fields_set=fields_set,
            type=self.type_name,
            at_members=buckets["at_members"],
            extension_members=buckets["extension_members"],
            present_attribute_fields=present,
            **values,
        )

    def _relationships(self, raw: Any, context: RequestContext) -> dict[str, Relationship]:
        if not isinstance(raw, Mapping):
            raise ValidationFailed.single(ErrorCode.TYPE, "relationships must be an object")
        collector = IssueCollector()
        known = dict(self.relationships)
        out: dict[str, Relationship] = {}
        for name, value in raw.items():
            validator = known.get(name)
            if validator is None:
                if not self.allow_unknown_relationships:
                    collector.add(issue(ErrorCode.UNEXPECTED, f"relationship {name!r} is not allowed", name))
                    continue
                problem = check_member_name(name)
                if problem is not None:
                    collector.add(problem.at(name))
                    continue
                validator = RelationshipValidator()
            if value is None:
                collector.add(issue(ErrorCode.TYPE, "relationship must be an object", name))
                continue
            relationship = collector.run(validator.apply, value, context, prefix=(name,))
            if relationship is not None:
                out[name] = relationship
        for name, validator in self.relationships:
            if validator.required and name not in raw:
                collector.add(issue(ErrorCode.REQUIRED, f"relationship {name!r} is required", name))
        collector.raise_if_any()
        return out

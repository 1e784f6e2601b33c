"""Validator for relationship objects.

``{"data": null}`` and a relationship without ``data`` are different things:
the first is an empty to-one relationship (``NilLinkage``), the second a
links-only relationship whose ``data`` stays ``None``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from jsonapi_validate.schemas.linkage import (
    LinkageCollection,
    NilLinkage,
    ResourceIdentifier,
    ResourceLinkage,
    cast_linkage,
)
from jsonapi_validate.schemas.resource import Relationship
from jsonapi_validate.validation.context import RequestContext
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ErrorConfig,
    ErrorConfigurable,
    IssueCollector,
    ValidationFailed,
    issue,
)
from jsonapi_validate.validation.links import LinksValidator

logger = logging.getLogger(__name__)

RELATIONSHIP_MEMBERS = ("links", "data", "meta")


@dataclass(frozen=True)
class RelationshipValidator(ErrorConfigurable):
    cardinality: Literal["any", "one", "many"] = "any"
    types: frozenset[str] = frozenset()
    links: LinksValidator = field(default_factory=LinksValidator)
    required: bool = False
    error_config: ErrorConfig | None = None

    def to_one(self) -> RelationshipValidator:
        """Accept only ``null`` or a single resource identifier as ``data``."""
        return replace(self, cardinality="one")

    def to_many(self) -> RelationshipValidator:
        """Accept only an array of resource identifiers as ``data``."""
        return replace(self, cardinality="many")

    def with_types(self, *types: str) -> RelationshipValidator:
        """Restrict the ``type`` of linked identifiers."""
        return replace(self, types=self.types | frozenset(types))

    def with_links(self, links: LinksValidator) -> RelationshipValidator:
        return replace(self, links=links)

    def with_required(self) -> RelationshipValidator:
        """Require the relationship to be present in its resource object."""
        return replace(self, required=True)

    def apply(self, raw: Any, context: RequestContext | None = None) -> Relationship | None:
        """Validate a raw relationship object.

        Returns ``None`` when ``raw`` is ``None`` (the relationship member is
        absent altogether).
        """
        if raw is None:
            return None
        try:
            return self._apply(raw, context)
        except ValidationFailed as exc:
            raise self._configured(exc) from exc

    def _apply(self, raw: Any, context: RequestContext | None) -> Relationship:
        if isinstance(raw, Relationship):
            raw = raw.model_dump(mode="json")
        if not isinstance(raw, Mapping):
            raise ValidationFailed.single(ErrorCode.TYPE, "relationship must be an object")

        explicit_null = "data" in raw and raw["data"] is None
        # Work on a copy; the caller's mapping is never modified.
        source = {key: value for key, value in raw.items() if not (key == "data" and explicit_null)}

        collector = IssueCollector()
        for key in source:
            if key not in RELATIONSHIP_MEMBERS:
                collector.add(issue(ErrorCode.UNEXPECTED, f"relationship member {key!r} is not allowed", key))
        if not any(key in raw for key in RELATIONSHIP_MEMBERS):
            collector.add(
                issue(ErrorCode.REQUIRED, "relationship must contain at least one of links, data or meta")
            )

        values: dict[str, Any] = {}
        if "links" in source:
            links = collector.run(self.links.apply, source["links"], context, prefix=("links",))
            if links is not None:
                values["links"] = links
        if "data" in source:
            data = collector.run(self._linkage, source["data"], prefix=("data",))
            if data is not None:
                values["data"] = data
        if "meta" in source:
            if isinstance(source["meta"], Mapping):
                values["meta"] = dict(source["meta"])
            else:
                collector.add(issue(ErrorCode.TYPE, "meta must be an object", "meta"))
        if explicit_null:
            if self.cardinality == "many":
                collector.add(issue(ErrorCode.TYPE, "to-many relationship data must be an array", "data"))
            values["data"] = NilLinkage()

        if collector:
            logger.debug("Rejected relationship with %d issue(s)", len(collector.issues))
        collector.raise_if_any()
        return Relationship.model_construct(_fields_set=set(values), **values)

    def _linkage(self, raw: Any) -> ResourceLinkage:
        linkage = cast_linkage(raw)
        if self.cardinality == "one" and isinstance(linkage, LinkageCollection):
            raise ValidationFailed.single(ErrorCode.TYPE, "to-one relationship data must be null or an object")
        if self.cardinality == "many" and not isinstance(linkage, LinkageCollection):
            raise ValidationFailed.single(ErrorCode.TYPE, "to-many relationship data must be an array")
        if self.types:
            self._check_types(linkage)
        return linkage

    def _check_types(self, linkage: ResourceLinkage) -> None:
        allowed = ", ".join(sorted(self.types))
        if isinstance(linkage, ResourceIdentifier):
            if linkage.type not in self.types:
                raise ValidationFailed.single(
                    ErrorCode.PATTERN, f"type {linkage.type!r} is not one of: {allowed}", "type"
                )
        elif isinstance(linkage, LinkageCollection):
            issues = [
                issue(ErrorCode.PATTERN, f"type {item.type!r} is not one of: {allowed}", index, "type")
                for index, item in enumerate(linkage)
                if item.type not in self.types
            ]
            if issues:
                raise ValidationFailed(issues)

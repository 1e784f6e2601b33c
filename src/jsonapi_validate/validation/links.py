"""Validator for ``links`` objects."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from jsonapi_validate.schemas.links import Link, cast_link
from jsonapi_validate.validation.context import RequestContext
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ErrorConfig,
    ErrorConfigurable,
    IssueCollector,
    JSONAPIConfigurationError,
    ValidationFailed,
    issue,
)
from jsonapi_validate.validation.members import check_member_name


@dataclass(frozen=True)
class LinksValidator(ErrorConfigurable):
    """Validates a ``links`` object.

    By default any legal member name is accepted. ``with_link`` switches to a
    closed set of names.
    """

    names: frozenset[str] | None = None
    required_names: frozenset[str] = frozenset()
    error_config: ErrorConfig | None = None

    def with_link(self, name: str, required: bool = False) -> LinksValidator:
        problem = check_member_name(name)
        if problem is not None:
            raise JSONAPIConfigurationError(f"link name {name!r} is not a valid member name: {problem.detail}")
        required_names = self.required_names | {name} if required else self.required_names
        return replace(self, names=(self.names or frozenset()) | {name}, required_names=required_names)

    def apply(self, raw: Any, context: RequestContext | None = None) -> dict[str, Link]:
        try:
            return self._apply(raw)
        except ValidationFailed as exc:
            raise self._configured(exc) from exc

    def _apply(self, raw: Any) -> dict[str, Link]:
        if not isinstance(raw, Mapping):
            raise ValidationFailed.single(ErrorCode.TYPE, "links must be an object")
        collector = IssueCollector()
        out: dict[str, Link] = {}
        for key, value in raw.items():
            problem = check_member_name(key)
            if problem is not None:
                collector.add(problem.at(key))
                continue
            if self.names is not None and key not in self.names:
                collector.add(issue(ErrorCode.UNEXPECTED, f"link {key!r} is not allowed here", key))
                continue
            link = collector.run(cast_link, value, prefix=(key,))
            if link is not None:
                out[key] = link
        for name in sorted(self.required_names - raw.keys()):
            collector.add(issue(ErrorCode.REQUIRED, f"link {name!r} is required", name))
        collector.raise_if_any()
        return out

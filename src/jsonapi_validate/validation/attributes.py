"""Attributes adapter.

Two modes:

``Attributes()``
    Map mode. Keys are registered one at a time with :meth:`Attributes.with_key`
    (or matched by predicate with :meth:`Attributes.with_dynamic_key`); the
    result is a plain ``dict``.

``Attributes(Article)``
    Typed mode. ``Article`` is a pydantic model; its field names (aliases,
    when set) are checked against the member-name grammar when the adapter is
    built, and the result is an ``Article`` instance. Key rules registered on
    top run before the model sees the values.

Registering a key that is not a legal JSON:API member name raises
:class:`JSONAPIConfigurationError` immediately; the ``*_unsafe`` variants and
``Attributes(Model, unsafe=True)`` skip that check.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from pydantic import BaseModel, ValidationError

from jsonapi_validate.validation.context import RequestContext, ensure_context
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ErrorConfig,
    ErrorConfigurable,
    IssueCollector,
    JSONAPIConfigurationError,
    ValidationFailed,
    issue,
    issues_from_pydantic,
)
from jsonapi_validate.validation.members import check_member_name
from jsonapi_validate.validation.rules import Rule, as_rule

logger = logging.getLogger(__name__)

# Members that share a namespace with attributes inside a resource object.
FORBIDDEN_ATTRIBUTE_NAMES = frozenset({"relationships", "links", "id", "type"})

KeyCondition = Callable[[Mapping[str, Any], RequestContext], bool]
KeyMatcher = Callable[[str], bool]


def _assert_member_name(name: str) -> None:
    problem = check_member_name(name)
    if problem is not None:
        raise JSONAPIConfigurationError(
            f"attribute name {name!r} is not a valid JSON:API member name: {problem.detail}"
        )
    if name in FORBIDDEN_ATTRIBUTE_NAMES:
        raise JSONAPIConfigurationError(f"attribute name {name!r} is reserved for resource object members")


def _matcher(pattern: str | re.Pattern[str] | KeyMatcher) -> KeyMatcher:
    if callable(pattern):
        return pattern
    compiled = re.compile(pattern)
    return lambda key: compiled.search(key) is not None


@dataclass(frozen=True)
class KeySpec:
    name: str
    rule: Rule
    required: bool = False
    condition: KeyCondition | None = None


@dataclass(frozen=True)
class DynamicKey:
    """Applies ``rule`` to keys accepted by ``matcher``; with ``bucket``, also groups them."""

    matcher: KeyMatcher
    rule: Rule | None = None
    bucket: str | None = None


@dataclass(frozen=True)
class Attributes(ErrorConfigurable):
    model: type[BaseModel] | None = None
    unsafe: bool = False
    keys: tuple[KeySpec, ...] = ()
    dynamic: tuple[DynamicKey, ...] = ()
    allow_unknown: bool = False
    required: bool = False
    allow_json: bool = False
    rules: tuple[Rule, ...] = ()
    error_config: ErrorConfig | None = None

    def __post_init__(self) -> None:
        if self.model is not None and not self.unsafe:
            for name in self.model_keys():
                _assert_member_name(name)

    def model_keys(self) -> frozenset[str]:
        """Payload keys the typed model understands."""
        if self.model is None:
            return frozenset()
        return frozenset(info.alias or name for name, info in self.model.model_fields.items())

    # -- builders -----------------------------------------------------------

    def with_key(self, name: str, rule: Any, required: bool = False) -> Attributes:
        """Register ``name`` with a value rule."""
        _assert_member_name(name)
        return self.with_key_unsafe(name, rule, required=required)

    def with_key_unsafe(self, name: str, rule: Any, required: bool = False) -> Attributes:
        if check_member_name(name) is not None:
            logger.warning("Registering attribute %r without member-name validation", name)
        return replace(self, keys=self.keys + (KeySpec(name, as_rule(rule), required),))

    def with_conditional_key(self, name: str, condition: KeyCondition, rule: Any) -> Attributes:
        """Register ``name``; it is only accepted when ``condition(attributes, context)`` holds."""
        _assert_member_name(name)
        return self.with_conditional_key_unsafe(name, condition, rule)

    def with_conditional_key_unsafe(self, name: str, condition: KeyCondition, rule: Any) -> Attributes:
        return replace(self, keys=self.keys + (KeySpec(name, as_rule(rule), condition=condition),))

    def with_dynamic_key(self, matcher: str | re.Pattern[str] | KeyMatcher, rule: Any) -> Attributes:
        """Validate every key matching ``matcher`` (a regex or predicate) with ``rule``."""
        return replace(self, dynamic=self.dynamic + (DynamicKey(_matcher(matcher), as_rule(rule)),))

    def with_dynamic_bucket(self, matcher: str | re.Pattern[str] | KeyMatcher, bucket: str) -> Attributes:
        """Collect every key matching ``matcher`` into ``result[bucket]``."""
        return replace(self, dynamic=self.dynamic + (DynamicKey(_matcher(matcher), bucket=bucket),))

    def with_unknown(self) -> Attributes:
        """Accept unregistered keys (still subject to the member-name grammar)."""
        return replace(self, allow_unknown=True)

    def with_required(self) -> Attributes:
        """Require the ``attributes`` member when nested in a resource object."""
        return replace(self, required=True)

    def with_json(self) -> Attributes:
        """Also accept a JSON-encoded object."""
        return replace(self, allow_json=True)

    def with_rule(self, rule: Any) -> Attributes:
        """Add a rule over the whole validated attributes value."""
        return replace(self, rules=self.rules + (as_rule(rule),))

    # -- validation ---------------------------------------------------------

    def apply(self, raw: Any, context: RequestContext | None = None) -> Any:
        try:
            return self._apply(raw, ensure_context(context))
        except ValidationFailed as exc:
            raise self._configured(exc) from exc

    def _decode(self, raw: Any) -> Mapping[str, Any]:
        if self.allow_json and isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise ValidationFailed.single(ErrorCode.ENCODING, f"attributes are not valid JSON: {exc}") from exc
        if self.model is not None and isinstance(raw, self.model):
            return raw.model_dump(by_alias=True)
        if not isinstance(raw, Mapping):
            raise ValidationFailed.single(ErrorCode.TYPE, "attributes must be an object")
        return raw

    def _apply(self, raw: Any, context: RequestContext) -> Any:
        source = self._decode(raw)
        collector = IssueCollector()
        values: dict[str, Any] = {}

        active = [spec for spec in self.keys if spec.condition is None or spec.condition(source, context)]
        registered = {spec.name for spec in active}
        for spec in active:
            if spec.name in source:
                try:
                    values[spec.name] = spec.rule.apply(source[spec.name], context)
                except ValidationFailed as exc:
                    collector.extend(exc.issues, spec.name)
            elif spec.required:
                collector.add(issue(ErrorCode.REQUIRED, f"attribute {spec.name!r} is required", spec.name))

        model_keys = self.model_keys()
        buckets: dict[str, dict[str, Any]] = {}
        for key, value in source.items():
            if key in registered:
                continue
            if key in FORBIDDEN_ATTRIBUTE_NAMES:
                collector.add(issue(ErrorCode.UNEXPECTED, f"{key!r} is not allowed as an attribute name", key))
                continue
            dynamic = next((d for d in self.dynamic if d.matcher(key)), None)
            if dynamic is not None:
                try:
                    checked = dynamic.rule.apply(value, context) if dynamic.rule is not None else value
                except ValidationFailed as exc:
                    collector.extend(exc.issues, key)
                    continue
                if dynamic.bucket is not None:
                    buckets.setdefault(dynamic.bucket, {})[key] = checked
                else:
                    values[key] = checked
            elif key in model_keys:
                values[key] = value
            elif self.allow_unknown:
                problem = check_member_name(key)
                if problem is not None:
                    collector.add(problem.at(key))
                else:
                    values[key] = value
            else:
                collector.add(issue(ErrorCode.UNEXPECTED, f"attribute {key!r} is not allowed", key))
        values.update(buckets)
        collector.raise_if_any()

        result: Any = values
        if self.model is not None:
            try:
                result = self.model.model_validate(values, context=context.as_pydantic_context())
            except ValidationError as exc:
                raise ValidationFailed(issues_from_pydantic(exc)) from exc
        for rule in self.rules:
            result = rule.apply(result, context)
        return result

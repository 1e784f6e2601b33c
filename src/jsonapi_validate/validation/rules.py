"""Value rules: the unit every validator composes.

A rule is anything with ``apply(value, context)`` that returns the validated
(possibly converted) value or raises :class:`ValidationFailed`. Callers rarely
build rules by hand; :func:`as_rule` accepts

- an object that already has ``apply`` (validators, other rules),
- a plain function ``fn(value, context)``, where ``ValueError`` means "invalid",
- any type or annotation pydantic's ``TypeAdapter`` understands
  (``int``, ``Annotated[str, Field(min_length=1)]``, a ``BaseModel`` ...).
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError

from jsonapi_validate.validation.context import RequestContext, ensure_context
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ValidationFailed,
    issues_from_pydantic,
)


class Rule(Protocol):
    def apply(self, value: Any, context: RequestContext | None = None) -> Any: ...


@dataclass(frozen=True)
class TypeRule:
    """Validates a value against a type via pydantic's ``TypeAdapter``."""

    annotation: Any
    strict: bool | None = None
    _adapter: TypeAdapter = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_adapter", TypeAdapter(self.annotation))

    def apply(self, value: Any, context: RequestContext | None = None) -> Any:
        try:
            return self._adapter.validate_python(
                value,
                strict=self.strict,
                context=ensure_context(context).as_pydantic_context(),
            )
        except ValidationError as exc:
            raise ValidationFailed(issues_from_pydantic(exc)) from exc


@dataclass(frozen=True)
class FuncRule:
    """Wraps ``fn(value, context)``; a ``ValueError`` becomes a PATTERN issue."""

    fn: Callable[[Any, RequestContext], Any]

    def apply(self, value: Any, context: RequestContext | None = None) -> Any:
        try:
            return self.fn(value, ensure_context(context))
        except ValidationError as exc:
            raise ValidationFailed(issues_from_pydantic(exc)) from exc
        except ValueError as exc:
            raise ValidationFailed.single(ErrorCode.PATTERN, str(exc)) from exc


@dataclass(frozen=True)
class RuleChain:
    """Applies rules in order, feeding each result into the next.

    Stops at the first failing rule; later rules would only see an invalid
    value.
    """

    rules: tuple[Rule, ...]

    def apply(self, value: Any, context: RequestContext | None = None) -> Any:
        for rule in self.rules:
            value = rule.apply(value, context)
        return value


def as_rule(obj: Any) -> Rule:
    """Normalize ``obj`` into a rule (see module docstring)."""
    if hasattr(obj, "apply") and not isinstance(obj, type):
        return obj
    if inspect.isfunction(obj) or inspect.ismethod(obj) or isinstance(obj, functools.partial):
        return FuncRule(obj)
    return TypeRule(obj)


def chain(*rules: Any) -> Rule:
    normalized = tuple(as_rule(r) for r in rules)
    if len(normalized) == 1:
        return normalized[0]
    return RuleChain(normalized)


# ---------------------------------------------------------------------------
# Context rules
# ---------------------------------------------------------------------------


def http_method_rule(*methods: str) -> Rule:
    """Forbid the value unless the request method is one of ``methods``.

    No-op when the context carries no method.
    """
    allowed = tuple(m.upper() for m in methods)

    def check(value: Any, context: RequestContext) -> Any:
        if context.method and context.method not in allowed:
            raise ValidationFailed.single(
                ErrorCode.FORBIDDEN,
                f"not allowed for {context.method} requests (allowed: {', '.join(allowed)})",
            )
        return value

    return FuncRule(check)


def forbidden_method_rule(*methods: str) -> Rule:
    """Forbid the value when the request method is one of ``methods``."""
    forbidden = tuple(m.upper() for m in methods)

    def check(value: Any, context: RequestContext) -> Any:
        if context.method in forbidden:
            raise ValidationFailed.single(ErrorCode.FORBIDDEN, f"not allowed for {context.method} requests")
        return value

    return FuncRule(check)


def index_rule() -> Rule:
    """Forbid the value on requests that target a single resource.

    No-op unless both the method and the resource id are known.
    """

    def check(value: Any, context: RequestContext) -> Any:
        if context.method and context.resource_id:
            raise ValidationFailed.single(
                ErrorCode.FORBIDDEN,
                "only allowed on collection requests",
            )
        return value

    return FuncRule(check)


def all_guards(guards: Iterable[Rule], value: Any, context: RequestContext | None) -> None:
    """Run every guard against ``value`` and raise their combined issues."""
    issues = []
    for guard in guards:
        try:
            guard.apply(value, context)
        except ValidationFailed as exc:
            issues.extend(exc.issues)
    if issues:
        raise ValidationFailed(issues)

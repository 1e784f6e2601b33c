"""Query-parameter validator.

Parameters are matched against an ordered policy table, first by exact name
and then by family pattern (``fields[TYPE]``, ``filter[KEY]``). Each policy
carries context guards (which HTTP methods and request shapes may use it) and
a value rule. Names matched by no policy are legal when they contain a
character outside ``a``-``z`` or look like ``namespace:member``; any other
all-lowercase name is reserved by JSON:API and rejected.

Issue paths are ``("query[<name>]",)`` so the translator can report the
parameter name.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Annotated, Any
from urllib.parse import parse_qs

from pydantic import StringConstraints
from starlette.datastructures import QueryParams

from jsonapi_validate.config import get_settings
from jsonapi_validate.schemas.query import IncludePath, PageParameters, QueryParameters, SortField
from jsonapi_validate.validation.context import RequestContext, ensure_context
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ErrorConfig,
    ErrorConfigurable,
    IssueCollector,
    JSONAPIConfigurationError,
    ValidationFailed,
    ValidationIssue,
    issue,
)
from jsonapi_validate.validation.members import is_extension_member
from jsonapi_validate.validation.rules import (
    Rule,
    TypeRule,
    all_guards,
    as_rule,
    forbidden_method_rule,
    http_method_rule,
    index_rule,
)
from jsonapi_validate.validation.translate import JSONAPIValidationError, SourceKind, query_path

logger = logging.getLogger(__name__)

# All-lowercase names defined by JSON:API itself.
STANDARD_LOWERCASE_PARAMS = frozenset({"sort", "include"})

FIELDS_FAMILY = re.compile(r"^fields\[([^\]]+)\]$")
FILTER_FAMILY = re.compile(r"^filter\[([^\]]+)\]$")

_LOWERCASE_ONLY = re.compile(r"^[a-z]*$")

QueryRule = Callable[[Mapping[str, list[str]], RequestContext], Any]


def is_legal_query_param_name(name: str) -> bool:
    """Implementation-specific names need at least one character outside ``a``-``z``."""
    return not _LOWERCASE_ONLY.match(name) or name in STANDARD_LOWERCASE_PARAMS


def query_param_name_issue(name: str) -> ValidationIssue | None:
    """Return an issue when ``name`` is reserved for future JSON:API use, else ``None``."""
    if is_legal_query_param_name(name):
        return None
    return issue(
        ErrorCode.UNEXPECTED,
        f"query parameter {name!r} is reserved (all lowercase) for future JSON:API use",
        query_path(name),
        title="reserved query parameter",
    )


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------


def parse_sort(value: str, context: RequestContext) -> list[SortField]:
    out = []
    for token in value.split(","):
        if not token:
            # TODO: decide whether an empty sort token should be rejected instead of kept as a blank entry.
            out.append(SortField())
        elif token.startswith("-"):
            out.append(SortField(field=token[1:], descending=True))
        else:
            out.append(SortField(field=token))
    return out


def parse_field_list(value: str, context: RequestContext) -> frozenset[str]:
    return frozenset(name for name in value.split(",") if name)


def parse_include(value: str, context: RequestContext) -> list[IncludePath]:
    return [IncludePath(path=tuple(item.split("."))) for item in value.split(",") if item]


def parse_cursor(value: str, context: RequestContext) -> str:
    if value == "":
        raise ValidationFailed.single(ErrorCode.MIN, "cursor must not be empty")
    return value


# An optional minus sign followed by ASCII digits, nothing else.
_PAGE_SIZE_DIGITS = TypeRule(Annotated[str, StringConstraints(pattern=r"^-?[0-9]+$")], strict=True)


def page_size_parser(max_size: int) -> Callable[[str, RequestContext], int]:
    def parse(value: str, context: RequestContext) -> int:
        try:
            size = int(_PAGE_SIZE_DIGITS.apply(value, context))
        except ValidationFailed as exc:
            raise ValidationFailed.single(ErrorCode.TYPE, f"page size must be an integer, got {value!r}") from exc
        if size < 1:
            raise ValidationFailed.single(ErrorCode.MIN, "page size must be at least 1")
        if size > max_size:
            raise ValidationFailed.single(ErrorCode.MAX, f"page size must be at most {max_size}")
        return size

    return parse


# ---------------------------------------------------------------------------
# Policy table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParamPolicy:
    """How one parameter name (or family of names) is validated."""

    rule: Rule
    name: str | None = None
    pattern: re.Pattern[str] | None = None
    guards: tuple[Rule, ...] = ()
    multiple: bool = False

    def matches(self, key: str) -> bool:
        if self.name is not None:
            return key == self.name
        return self.pattern is not None and self.pattern.match(key) is not None

    def apply(self, values: list[str], context: RequestContext) -> Any:
        if not self.multiple and len(values) > 1:
            raise ValidationFailed.single(ErrorCode.MAX, "parameter must not be given more than once")
        all_guards(self.guards, values, context)
        if self.multiple:
            return self.rule.apply(values, context)
        return self.rule.apply(values[0] if values else "", context)


def _index_read_guards() -> tuple[Rule, ...]:
    return (http_method_rule("GET", "HEAD"), index_rule())


def _builtin_policies(max_page_size: int) -> tuple[ParamPolicy, ...]:
    not_on_delete = (forbidden_method_rule("DELETE"),)
    return (
        ParamPolicy(as_rule(parse_sort), name="sort", guards=_index_read_guards()),
        ParamPolicy(as_rule(parse_include), name="include", guards=not_on_delete),
        ParamPolicy(as_rule(page_size_parser(max_page_size)), name="page[size]", guards=_index_read_guards()),
        ParamPolicy(as_rule(parse_cursor), name="page[after]", guards=_index_read_guards()),
        ParamPolicy(as_rule(parse_cursor), name="page[before]", guards=_index_read_guards()),
        ParamPolicy(as_rule(parse_field_list), pattern=FIELDS_FAMILY, guards=not_on_delete),
        ParamPolicy(as_rule(lambda value, context: value), pattern=FILTER_FAMILY, guards=_index_read_guards()),
    )


def _normalize_raw(raw: Any) -> dict[str, list[str]]:
    if raw is None:
        return {}
    if isinstance(raw, bytes):
        try:
            raw = raw.decode()
        except UnicodeDecodeError as exc:
            raise ValidationFailed.single(ErrorCode.ENCODING, f"query string is not valid UTF-8: {exc}") from exc
    if isinstance(raw, str):
        return parse_qs(raw.lstrip("?"), keep_blank_values=True)
    if isinstance(raw, QueryParams):
        return {key: raw.getlist(key) for key in raw.keys()}
    if isinstance(raw, Mapping):
        collector = IssueCollector()
        out: dict[str, list[str]] = {}
        for key, value in raw.items():
            items = [value] if isinstance(value, str) else value
            if not isinstance(items, (list, tuple)) or not all(isinstance(item, str) for item in items):
                collector.add(
                    issue(ErrorCode.TYPE, "query parameter values must be strings", query_path(str(key)))
                )
                continue
            out[key] = list(items)
        collector.raise_if_any()
        return out
    raise ValidationFailed.single(ErrorCode.TYPE, "query must be a string or a mapping")


@dataclass(frozen=True)
class QueryValidator(ErrorConfigurable):
    """Validates a query string for one request.

    Example::

        validator = QueryValidator().with_param("authorId", int)
        params = validator.apply("sort=-created&authorId=7", RequestContext(method="GET"))
        params.sort        # [SortField(field="created", descending=True)]
        params.custom      # {"authorId": 7}
    """

    max_page_size: int = field(default_factory=lambda: get_settings().max_page_size)
    custom: tuple[ParamPolicy, ...] = ()
    query_rules: tuple[QueryRule, ...] = ()
    error_config: ErrorConfig | None = None

    def with_param(self, name: str, rule: Any, *guards: Rule, multiple: bool = False) -> QueryValidator:
        """Register a caller-defined parameter.

        Raises:
            JSONAPIConfigurationError: ``name`` is all lowercase and not a
                standard JSON:API parameter.
        """
        if not is_legal_query_param_name(name):
            raise JSONAPIConfigurationError(
                f"query parameter name {name!r} is illegal per JSON:API (all-lowercase names are reserved)"
            )
        return self.with_param_unsafe(name, rule, *guards, multiple=multiple)

    def with_param_unsafe(self, name: str, rule: Any, *guards: Rule, multiple: bool = False) -> QueryValidator:
        if not is_legal_query_param_name(name):
            logger.warning("Registering reserved query parameter %r without name validation", name)
        policy = ParamPolicy(as_rule(rule), name=name, guards=tuple(guards), multiple=multiple)
        return replace(self, custom=self.custom + (policy,))

    def with_rule(self, rule: QueryRule) -> QueryValidator:
        """Add a rule over all parameters: ``rule(values, context)`` raising ``ValueError`` or ``ValidationFailed``."""
        return replace(self, query_rules=self.query_rules + (rule,))

    def with_max_page_size(self, size: int) -> QueryValidator:
        if size < 1:
            raise JSONAPIConfigurationError("max page size must be at least 1")
        return replace(self, max_page_size=size)

    def policies(self) -> tuple[ParamPolicy, ...]:
        # Caller registrations take precedence over built-in ones.
        return self.custom + _builtin_policies(self.max_page_size)

    # -- validation ---------------------------------------------------------

    def apply(self, raw: Any, context: RequestContext | None = None) -> QueryParameters:
        """Validate ``raw`` (query string, mapping or ``QueryParams``).

        Raises:
            JSONAPIValidationError: With parameter-kind sources.
        """
        try:
            return self._apply(raw, ensure_context(context))
        except ValidationFailed as exc:
            failure = self._configured(exc)
            logger.debug("Rejected query with %d issue(s)", len(failure.issues))
            raise JSONAPIValidationError(failure.issues, SourceKind.PARAMETER) from exc

    def _apply(self, raw: Any, context: RequestContext) -> QueryParameters:
        values = _normalize_raw(raw)
        collector = IssueCollector()
        result = QueryParameters(values=values)
        policies = self.policies()
        custom_names = {policy.name for policy in self.custom}

        for key, items in values.items():
            policy = next((p for p in policies if p.matches(key)), None)
            if policy is None:
                if not is_extension_member(key):
                    problem = query_param_name_issue(key)
                    if problem is not None:
                        collector.add(problem)
                continue
            try:
                parsed = policy.apply(items, context)
            except ValidationFailed as exc:
                collector.extend(exc.issues, query_path(key))
                continue
            if key in custom_names:
                result.custom[key] = parsed
            else:
                self._store(result, key, parsed)

        for rule in self.query_rules:
            try:
                rule(values, context)
            except ValidationFailed as exc:
                collector.extend(exc.issues)
            except ValueError as exc:
                collector.add(issue(ErrorCode.PATTERN, str(exc)))

        collector.raise_if_any()
        return result

    @staticmethod
    def _store(result: QueryParameters, key: str, parsed: Any) -> None:
        if key == "sort":
            result.sort = parsed
        elif key == "include":
            result.include = parsed
        elif key == "page[size]":
            result.page = result.page.model_copy(update={"size": parsed})
        elif key == "page[after]":
            result.page = result.page.model_copy(update={"after": parsed})
        elif key == "page[before]":
            result.page = result.page.model_copy(update={"before": parsed})
        elif match := FIELDS_FAMILY.match(key):
            result.fields[match.group(1)] = parsed
        elif match := FILTER_FAMILY.match(key):
            result.filter[match.group(1)] = parsed

"""Generic validation failures and per-validator error configuration.

Every validator in this package reports problems as ``ValidationIssue``
records collected into a single ``ValidationFailed`` exception. Issues carry a
path (a tuple of member names and list indexes, like pydantic's ``loc``) but
no notion of *where* in the HTTP request they came from; the translator in
:mod:`jsonapi_validate.validation.translate` adds that when the issues are
turned into JSON:API error objects.

Failures are always collected in full. A validator runs every sub-validator,
gathers their issues under the right path prefix, and raises once.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, TypeVar

from pydantic import ValidationError

T = TypeVar("T")

PathSegment = str | int


class ErrorCode(str, Enum):
    """Error taxonomy shared by every validator."""

    ENCODING = "ENCODING"
    TYPE = "TYPE"
    REQUIRED = "REQUIRED"
    PATTERN = "PATTERN"
    UNEXPECTED = "UNEXPECTED"
    FORBIDDEN = "FORBIDDEN"
    MIN = "MIN"
    MAX = "MAX"


_DEFAULT_TITLES: dict[str, str] = {
    ErrorCode.ENCODING.value: "Invalid encoding",
    ErrorCode.TYPE.value: "Wrong type",
    ErrorCode.REQUIRED.value: "Value is required",
    ErrorCode.PATTERN.value: "Value does not match",
    ErrorCode.UNEXPECTED.value: "Value was not expected",
    ErrorCode.FORBIDDEN.value: "Value is forbidden",
    ErrorCode.MIN.value: "Value is too small",
    ErrorCode.MAX.value: "Value is too large",
}


class JSONAPIConfigurationError(ValueError):
    """Raised at build time when a validator is configured illegally."""


def _escape_pointer_segment(segment: PathSegment) -> str:
    return str(segment).replace("~", "~0").replace("/", "~1")


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation failure.

    ``code`` is usually an :class:`ErrorCode` but callers may override it
    with any string via :meth:`ErrorConfigurable.with_error_code`.
    """

    code: str
    title: str
    detail: str
    path: tuple[PathSegment, ...] = ()
    docs_uri: str = ""
    trace_uri: str = ""
    meta: Mapping[str, Any] = field(default_factory=dict)

    def at(self, *prefix: PathSegment) -> ValidationIssue:
        """Return a copy with ``prefix`` prepended to the path."""
        if not prefix:
            return self
        return replace(self, path=tuple(prefix) + self.path)

    def pointer(self) -> str:
        """Serialize the path as an RFC 6901 JSON Pointer."""
        return "".join("/" + _escape_pointer_segment(s) for s in self.path)

    def __str__(self) -> str:
        return f"{self.pointer() or '/'}: {self.detail}"


def issue(
    code: ErrorCode | str,
    detail: str,
    *path: PathSegment,
    title: str | None = None,
) -> ValidationIssue:
    """Build an issue with the default title for ``code``."""
    code_value = code.value if isinstance(code, ErrorCode) else code
    return ValidationIssue(
        code=code_value,
        title=title if title is not None else _DEFAULT_TITLES.get(code_value, code_value),
        detail=detail,
        path=tuple(path),
    )


class ValidationFailed(Exception):
    """One or more validation issues.

    Args:
        issues: The collected issues. Never empty.
    """

    def __init__(self, issues: Iterable[ValidationIssue]) -> None:
        self.issues: list[ValidationIssue] = list(issues)
        super().__init__("; ".join(str(i) for i in self.issues) or "validation failed")

    @classmethod
    def single(cls, code: ErrorCode | str, detail: str, *path: PathSegment) -> ValidationFailed:
        return cls([issue(code, detail, *path)])

    def prefixed(self, *prefix: PathSegment) -> ValidationFailed:
        """Return a new failure with every issue path prefixed."""
        return ValidationFailed(i.at(*prefix) for i in self.issues)

    def codes(self) -> list[str]:
        return [i.code for i in self.issues]


class IssueCollector:
    """Accumulates issues from several sub-validators before raising once."""

    def __init__(self) -> None:
        self.issues: list[ValidationIssue] = []

    def add(self, item: ValidationIssue) -> None:
        self.issues.append(item)

    def extend(self, items: Iterable[ValidationIssue], *prefix: PathSegment) -> None:
        self.issues.extend(i.at(*prefix) for i in items)

    def run(self, fn: Callable[..., T], *args: Any, prefix: tuple[PathSegment, ...] = (), **kwargs: Any) -> T | None:
        """Call ``fn`` and record its issues under ``prefix``; return ``None`` on failure."""
        try:
            return fn(*args, **kwargs)
        except ValidationFailed as exc:
            self.extend(exc.issues, *prefix)
            return None

    def __bool__(self) -> bool:
        return bool(self.issues)

    def raise_if_any(self) -> None:
        if self.issues:
            raise ValidationFailed(self.issues)


# ---------------------------------------------------------------------------
# pydantic conversion
# ---------------------------------------------------------------------------

_LOWER_BOUND_TYPES = frozenset(
    {"greater_than", "greater_than_equal", "too_short", "string_too_short", "bytes_too_short"}
)
_UPPER_BOUND_TYPES = frozenset(
    {
        "less_than",
        "less_than_equal",
        "too_long",
        "string_too_long",
        "bytes_too_long",
        "decimal_max_digits",
        "decimal_max_places",
    }
)


def _code_for_pydantic_type(error_type: str) -> ErrorCode:
    if error_type == "missing":
        return ErrorCode.REQUIRED
    if error_type == "extra_forbidden":
        return ErrorCode.UNEXPECTED
    if error_type == "json_invalid":
        return ErrorCode.ENCODING
    if error_type in _LOWER_BOUND_TYPES:
        return ErrorCode.MIN
    if error_type in _UPPER_BOUND_TYPES:
        return ErrorCode.MAX
    if error_type.endswith("_type") or error_type.endswith("_parsing") or error_type == "is_instance_of":
        return ErrorCode.TYPE
    return ErrorCode.PATTERN


def issue_from_pydantic_error(err: Mapping[str, Any], *prefix: PathSegment) -> ValidationIssue:
    """Convert one entry of ``ValidationError.errors()``."""
    return issue(_code_for_pydantic_type(err["type"]), err["msg"], *prefix, *err["loc"])


def issues_from_pydantic(
    error: ValidationError, *prefix: PathSegment
) -> list[ValidationIssue]:
    """Convert a pydantic ``ValidationError`` into issues rooted at ``prefix``."""
    return [issue_from_pydantic_error(err, *prefix) for err in error.errors(include_url=False)]


# ---------------------------------------------------------------------------
# Error configuration
# ---------------------------------------------------------------------------

ErrorCallback = Callable[[ValidationIssue], ValidationIssue]


@dataclass(frozen=True)
class ErrorConfig:
    """Overrides applied to every issue a configured validator reports."""

    title: str | None = None
    detail: str | None = None
    code: str | None = None
    docs_uri: str | None = None
    trace_uri: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)
    callback: ErrorCallback | None = None

    def apply(self, item: ValidationIssue) -> ValidationIssue:
        changes: dict[str, Any] = {}
        if self.title is not None:
            changes["title"] = self.title
        if self.detail is not None:
            changes["detail"] = self.detail
        if self.code is not None:
            changes["code"] = self.code
        if self.docs_uri is not None:
            changes["docs_uri"] = self.docs_uri
        if self.trace_uri is not None:
            changes["trace_uri"] = self.trace_uri
        if self.meta:
            changes["meta"] = {**item.meta, **self.meta}
        configured = replace(item, **changes) if changes else item
        if self.callback is not None:
            configured = self.callback(configured)
        return configured


class ErrorConfigurable:
    """Builder methods for error configuration.

    Mixed into frozen dataclass validators that declare an
    ``error_config: ErrorConfig | None`` field.
    """

    error_config: ErrorConfig | None

    def _with_error_config(self, **changes: Any):
        config = self.error_config or ErrorConfig()
        return replace(self, error_config=replace(config, **changes))  # type: ignore[type-var]

    def with_error_message(self, title: str, detail: str):
        """Override the title and detail of reported issues."""
        return self._with_error_config(title=title, detail=detail)

    def with_error_code(self, code: ErrorCode | str):
        return self._with_error_config(code=code.value if isinstance(code, ErrorCode) else code)

    def with_docs_uri(self, uri: str):
        """Attach a documentation link (rendered as ``links.about``)."""
        return self._with_error_config(docs_uri=uri)

    def with_trace_uri(self, uri: str):
        """Attach a trace link (rendered as ``links.type``)."""
        return self._with_error_config(trace_uri=uri)

    def with_error_meta(self, key: str, value: Any):
        config = self.error_config or ErrorConfig()
        return self._with_error_config(meta={**config.meta, key: value})

    def with_error_callback(self, fn: ErrorCallback):
        return self._with_error_config(callback=fn)

    def _configured(self, failure: ValidationFailed) -> ValidationFailed:
        if self.error_config is None:
            return failure
        return ValidationFailed(self.error_config.apply(i) for i in failure.issues)

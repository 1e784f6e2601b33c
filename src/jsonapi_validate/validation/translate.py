"""Translation of generic validation issues into JSON:API error objects.

The issue path says *what* failed; the source kind says *where* in the HTTP
request it came from, which decides both the ``source`` member and the status:

    pointer    body member, RFC 6901 JSON Pointer     "422"
    parameter  query parameter name                   "400"
    header     header name                            "400"
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum
from typing import Any

from jsonapi_validate.schemas.jsonapi import ErrorLinks, ErrorSource, JSONAPIError, JSONAPIErrorResponse
from jsonapi_validate.validation.errors import ValidationFailed, ValidationIssue


class SourceKind(str, Enum):
    POINTER = "pointer"
    PARAMETER = "parameter"
    HEADER = "header"


_STATUS_BY_SOURCE = {
    SourceKind.POINTER: "422",
    SourceKind.PARAMETER: "400",
    SourceKind.HEADER: "400",
}

_QUERY_SEGMENT = re.compile(r"^query\[(.*)\]$")


def query_path(name: str) -> str:
    """Path segment under which query-parameter issues are reported."""
    return f"query[{name}]"


def _parameter_name(item: ValidationIssue) -> str:
    if not item.path:
        return ""
    first = str(item.path[0])
    match = _QUERY_SEGMENT.match(first)
    return match.group(1) if match else first


def _source(item: ValidationIssue, kind: SourceKind) -> ErrorSource | None:
    # Request-wide issues carry no parameter or header name and get no source.
    if kind is SourceKind.PARAMETER:
        name = _parameter_name(item)
        return ErrorSource(parameter=name) if name else None
    if kind is SourceKind.HEADER:
        pointer = item.pointer()
        name = pointer[1:] if pointer.startswith("/") else pointer
        return ErrorSource(header=name) if name else None
    return ErrorSource(pointer=item.pointer())


def error_from_issue(item: ValidationIssue, source: SourceKind) -> JSONAPIError:
    """Render one issue as a JSON:API error object."""
    links = None
    if item.docs_uri or item.trace_uri:
        links = ErrorLinks(about=item.docs_uri or None, type=item.trace_uri or None)
    return JSONAPIError(
        status=_STATUS_BY_SOURCE[SourceKind(source)],
        code=item.code,
        title=item.title,
        detail=item.detail or None,
        source=_source(item, SourceKind(source)),
        links=links,
        meta=dict(item.meta) or None,
    )


def errors_from_issues(items: Iterable[ValidationIssue], source: SourceKind) -> list[JSONAPIError]:
    return [error_from_issue(item, source) for item in items]


class JSONAPIValidationError(Exception):
    """Validation failure translated for one request location.

    Raised by every JSON:API validator. ``issues`` keeps the generic records;
    :meth:`errors` renders them as error objects.
    """

    def __init__(self, issues: Iterable[ValidationIssue], source: SourceKind) -> None:
        self.issues: list[ValidationIssue] = list(issues)
        self.source = SourceKind(source)
        super().__init__("; ".join(str(i) for i in self.issues) or "validation failed")

    def errors(self) -> list[JSONAPIError]:
        return errors_from_issues(self.issues, self.source)

    @property
    def http_status(self) -> int:
        """Shared status of all errors, or 400 when they differ."""
        statuses = {error.status for error in self.errors()}
        if len(statuses) == 1:
            return int(statuses.pop())
        return 400

    def codes(self) -> list[str]:
        return [i.code for i in self.issues]

    def to_response(self) -> dict[str, Any]:
        """Convert to a JSON:API error document."""
        return JSONAPIErrorResponse(errors=self.errors()).to_content()


def to_jsonapi_error(exc: ValidationFailed, source: SourceKind) -> JSONAPIValidationError:
    return JSONAPIValidationError(exc.issues, source)

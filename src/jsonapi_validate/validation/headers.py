"""Header validator for the JSON:API media type.

``Content-Type`` must parse as an RFC 7231 media type, name
``application/vnd.api+json`` and carry no parameters other than ``ext`` and
``profile`` (each a space-separated list of URIs).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from starlette.datastructures import Headers

from jsonapi_validate.config import get_settings
from jsonapi_validate.schemas.header import Extension, JSONAPIHeader, Profile
from jsonapi_validate.schemas.jsonapi import JSONAPI_MEDIA_TYPE
from jsonapi_validate.validation.context import RequestContext, ensure_context
from jsonapi_validate.validation.errors import (
    ErrorCode,
    ErrorConfig,
    ErrorConfigurable,
    IssueCollector,
    ValidationFailed,
    ValidationIssue,
    issue,
)
from jsonapi_validate.validation.rules import Rule, as_rule
from jsonapi_validate.validation.translate import JSONAPIValidationError, SourceKind

logger = logging.getLogger(__name__)

CONTENT_TYPE = "Content-Type"
MEDIA_TYPE_PARAMETERS = ("ext", "profile")

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_QUOTED = r'"(?:[^"\\]|\\.)*"'
_MEDIA_TYPE = re.compile(
    rf"^\s*(?P<type>{_TOKEN})/(?P<subtype>{_TOKEN})\s*(?P<params>(?:;\s*{_TOKEN}=(?:{_TOKEN}|{_QUOTED})\s*)*)$"
)
_PARAMETER = re.compile(rf";\s*(?P<name>{_TOKEN})=(?P<value>{_TOKEN}|{_QUOTED})")
_ESCAPE = re.compile(r"\\(.)")


def parse_media_type(value: str) -> tuple[str, list[tuple[str, str]]]:
    """Split a media type into ``type/subtype`` and its ordered parameters.

    Type, subtype and parameter names are lowercased; parameter values are
    unquoted.

    Raises:
        ValidationFailed: ENCODING when ``value`` is not a media type.
    """
    match = _MEDIA_TYPE.match(value)
    if match is None:
        raise ValidationFailed.single(ErrorCode.ENCODING, f"malformed media type {value!r}")
    media_type = f"{match['type']}/{match['subtype']}".lower()
    params = []
    for param in _PARAMETER.finditer(match["params"]):
        raw_value = param["value"]
        if raw_value.startswith('"'):
            raw_value = _ESCAPE.sub(r"\1", raw_value[1:-1])
        params.append((param["name"].lower(), raw_value))
    return media_type, params


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _at_header(issues: list[ValidationIssue], name: str) -> list[ValidationIssue]:
    return [replace(i, path=(name,)) for i in issues]


@dataclass(frozen=True)
class HeaderValidator(ErrorConfigurable):
    content_required: bool = field(default_factory=lambda: get_settings().content_type_required)
    ext_rule: Rule | None = None
    profile_rule: Rule | None = None
    headers: tuple[tuple[str, Rule], ...] = ()
    error_config: ErrorConfig | None = None

    def with_ext(self, rule: Any) -> HeaderValidator:
        """Validate the raw ``ext`` parameter string with ``rule``."""
        return replace(self, ext_rule=as_rule(rule))

    def with_profile(self, rule: Any) -> HeaderValidator:
        """Validate the raw ``profile`` parameter string with ``rule``."""
        return replace(self, profile_rule=as_rule(rule))

    def with_header(self, name: str, rule: Any) -> HeaderValidator:
        """Validate the first value of header ``name`` (``""`` when absent)."""
        return replace(self, headers=self.headers + ((name, as_rule(rule)),))

    def with_content_required(self, required: bool = True) -> HeaderValidator:
        return replace(self, content_required=required)

    # -- validation ---------------------------------------------------------

    def apply(self, raw: Any, context: RequestContext | None = None) -> Headers:
        """Validate ``raw`` and return it as Starlette ``Headers``.

        Raises:
            JSONAPIValidationError: With header-kind sources.
        """
        try:
            headers = self._normalize(raw)
            self._check(headers, ensure_context(context))
            return headers
        except ValidationFailed as exc:
            failure = self._configured(exc)
            logger.debug("Rejected headers with %d issue(s)", len(failure.issues))
            raise JSONAPIValidationError(failure.issues, SourceKind.HEADER) from exc

    def decode(self, raw: Any, context: RequestContext | None = None) -> JSONAPIHeader:
        """Validate ``raw`` and rebuild the typed header value."""
        headers = self.apply(raw, context)
        result = JSONAPIHeader(version=get_settings().default_version)
        content_type = headers.get(CONTENT_TYPE)
        if content_type is None:
            return result
        _, params = parse_media_type(content_type)
        for name, value in params:
            if name == "ext":
                result.ext.extend(Extension(uri=uri) for uri in value.split())
            elif name == "profile":
                result.profile.extend(Profile(uri=uri) for uri in value.split())
        return result

    def encode(self, header: JSONAPIHeader) -> str:
        """Synthesize a ``Content-Type`` value from a typed header."""
        parts = [JSONAPI_MEDIA_TYPE]
        if header.ext:
            parts.append(f"ext={_quote(' '.join(header.ext_uris))}")
        if header.profile:
            parts.append(f"profile={_quote(' '.join(header.profile_uris))}")
        return "; ".join(parts)

    def _normalize(self, raw: Any) -> Headers:
        if isinstance(raw, Headers):
            return raw
        if isinstance(raw, JSONAPIHeader):
            return Headers({CONTENT_TYPE: self.encode(raw)})
        if isinstance(raw, Mapping):
            collector = IssueCollector()
            pairs = []
            for name, value in raw.items():
                items = [value] if isinstance(value, str) else value
                if not isinstance(name, str) or not isinstance(items, (list, tuple)):
                    collector.add(issue(ErrorCode.TYPE, "header values must be strings", str(name)))
                    continue
                for item in items:
                    if not isinstance(item, str):
                        collector.add(issue(ErrorCode.TYPE, "header values must be strings", name))
                        break
                    # HTTP header fields are latin-1 on the wire.
                    try:
                        pairs.append((name.lower().encode("latin-1"), item.encode("latin-1")))
                    except UnicodeEncodeError:
                        collector.add(issue(ErrorCode.ENCODING, f"header {name} is not latin-1 encodable", name))
                        break
            collector.raise_if_any()
            return Headers(raw=pairs)
        raise ValidationFailed.single(ErrorCode.TYPE, "headers must be a mapping", CONTENT_TYPE)

    def _check(self, headers: Headers, context: RequestContext) -> None:
        collector = IssueCollector()
        content_type = headers.get(CONTENT_TYPE)
        if content_type is None:
            if self.content_required:
                collector.add(issue(ErrorCode.REQUIRED, "Content-Type header is required", CONTENT_TYPE))
        else:
            collector.run(self._check_content_type, content_type, context)

        for name, rule in self.headers:
            values = headers.getlist(name)
            try:
                rule.apply(values[0] if values else "", context)
            except ValidationFailed as exc:
                collector.extend(_at_header(exc.issues, name))
        collector.raise_if_any()

    def _check_content_type(self, value: str, context: RequestContext) -> None:
        try:
            media_type, params = parse_media_type(value)
        except ValidationFailed as exc:
            raise ValidationFailed(_at_header(exc.issues, CONTENT_TYPE)) from exc
        collector = IssueCollector()
        if media_type != JSONAPI_MEDIA_TYPE:
            collector.add(
                issue(ErrorCode.PATTERN, f"media type must be {JSONAPI_MEDIA_TYPE}, got {media_type}", CONTENT_TYPE)
            )
        for name, param in params:
            if name not in MEDIA_TYPE_PARAMETERS:
                collector.add(
                    issue(ErrorCode.UNEXPECTED, f"media type parameter {name!r} is not allowed", CONTENT_TYPE)
                )
                continue
            rule = self.ext_rule if name == "ext" else self.profile_rule
            if rule is None:
                continue
            try:
                rule.apply(param, context)
            except ValidationFailed as exc:
                collector.extend(_at_header(exc.issues, CONTENT_TYPE))
        collector.raise_if_any()

"""Member-name grammar (JSON:API 1.1, "Document Member Names").

Member names must not be empty and must not contain reserved characters, with
two exceptions: ``:`` separates an extension namespace from its member name,
and ``@`` may open an @-member.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from jsonapi_validate.validation.errors import ErrorCode, ValidationIssue, issue

RESERVED_MEMBER_NAME_CHARACTERS = frozenset(" +,.[]!\"#$%&'()*/;<=>?\\^`{|}~")

_AT_MEMBER = re.compile(r"^@")
# Namespace is restricted to a-z, A-Z and 0-9.
_EXTENSION_MEMBER = re.compile(r"^[a-zA-Z0-9]+:.+")


def check_member_name(name: str) -> ValidationIssue | None:
    """Return an issue when ``name`` is not a legal member name, else ``None``."""
    if name == "":
        return issue(ErrorCode.REQUIRED, "member name must not be empty", title="member name required")
    for index, char in enumerate(name):
        if char == ":":
            continue
        if char == "@":
            if index == 0:
                continue
            return issue(
                ErrorCode.UNEXPECTED,
                "member name must not contain @ except at start (JSON:API @-members)",
                title="reserved character",
            )
        if char in RESERVED_MEMBER_NAME_CHARACTERS:
            return issue(
                ErrorCode.UNEXPECTED,
                f"member name {name!r} contains reserved character {char!r}",
                title="reserved character",
            )
    return None


def is_valid_member_name(name: str) -> bool:
    return check_member_name(name) is None


def is_at_member(key: str) -> bool:
    return bool(_AT_MEMBER.match(key))


def is_extension_member(key: str) -> bool:
    return bool(_EXTENSION_MEMBER.match(key))


@dataclass(frozen=True)
class BucketRoute:
    """Sends member names matching ``predicate`` to the ``destination`` bucket."""

    predicate: Callable[[str], bool]
    destination: str


# Ordered; the first matching route wins.
MEMBER_BUCKETS: tuple[BucketRoute, ...] = (
    BucketRoute(is_at_member, "at_members"),
    BucketRoute(is_extension_member, "extension_members"),
)


def route_member(key: str, routes: tuple[BucketRoute, ...] = MEMBER_BUCKETS) -> str | None:
    """Return the bucket for ``key``, or ``None`` when no route matches."""
    for route in routes:
        if route.predicate(key):
            return route.destination
    return None

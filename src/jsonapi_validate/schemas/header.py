"""Typed view of the JSON:API ``Content-Type`` media-type parameters."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class Extension(BaseModel):
    uri: str


class Profile(BaseModel):
    uri: str


class JSONAPIHeader(BaseModel):
    """Version, applied extensions and profiles of a JSON:API request or response.

    ``meta`` is carried for callers; it is never read from or written to
    headers.
    """

    version: Literal["1.0", "1.1"] = "1.1"
    ext: list[Extension] = Field(default_factory=list)
    profile: list[Profile] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def ext_uris(self) -> list[str]:
        return [e.uri for e in self.ext]

    @property
    def profile_uris(self) -> list[str]:
        return [p.uri for p in self.profile]

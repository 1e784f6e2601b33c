"""Parsed views of JSON:API query parameters."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SortField(BaseModel):
    """One ``sort`` key. A leading ``-`` in the request means descending."""

    model_config = ConfigDict(frozen=True)

    field: str = ""
    descending: bool = False


class IncludePath(BaseModel):
    """A dotted relationship path from the ``include`` parameter."""

    model_config = ConfigDict(frozen=True)

    path: tuple[str, ...]

    @property
    def leaf(self) -> str:
        return self.path[-1] if self.path else ""

    def __str__(self) -> str:
        return ".".join(self.path)


class PageParameters(BaseModel):
    """Cursor pagination parameters (``page[size]``, ``page[after]``, ``page[before]``)."""

    size: int | None = None
    after: str | None = None
    before: str | None = None


class QueryParameters(BaseModel):
    """A validated query string.

    ``values`` holds every raw parameter as received; the other members are
    parsed views of the parameters this package understands, plus ``custom``
    for caller-registered parameters.
    """

    values: dict[str, list[str]] = Field(default_factory=dict)
    sort: list[SortField] = Field(default_factory=list)
    fields: dict[str, frozenset[str]] = Field(default_factory=dict)
    filter: dict[str, str] = Field(default_factory=dict)
    include: list[IncludePath] = Field(default_factory=list)
    page: PageParameters = Field(default_factory=PageParameters)
    custom: dict[str, Any] = Field(default_factory=dict)

    def fields_for(self, type_name: str) -> frozenset[str] | None:
        """Requested sparse fieldset for ``type_name``, or ``None`` when not restricted."""
        return self.fields.get(type_name)

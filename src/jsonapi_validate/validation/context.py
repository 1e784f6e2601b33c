"""Ambient request context for context-sensitive rules.

A ``RequestContext`` is passed explicitly alongside every validated value; it
is never stored in module or thread state, so concurrent validations for
different requests cannot interfere. An empty context turns every method- or
id-sensitive rule into a no-op.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

# Key under which the context is forwarded to pydantic's validation context,
# so caller attribute models can read it from ``info.context``.
PYDANTIC_CONTEXT_KEY = "request_context"


class RequestContext(BaseModel):
    """HTTP method and resource id of the request being validated."""

    model_config = ConfigDict(frozen=True)

    method: str = ""
    resource_id: str = ""

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        return value.strip().upper()

    def with_method(self, method: str) -> RequestContext:
        return RequestContext(method=method, resource_id=self.resource_id)

    def with_id(self, resource_id: str) -> RequestContext:
        return RequestContext(method=self.method, resource_id=resource_id)

    @property
    def is_empty(self) -> bool:
        return not self.method and not self.resource_id

    @property
    def is_index(self) -> bool:
        """True when the request targets a collection rather than one resource."""
        return not self.resource_id

    def as_pydantic_context(self) -> dict[str, RequestContext]:
        return {PYDANTIC_CONTEXT_KEY: self}


EMPTY_CONTEXT = RequestContext()


def ensure_context(context: RequestContext | None) -> RequestContext:
    return context if context is not None else EMPTY_CONTEXT

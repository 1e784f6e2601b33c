"""Response class for the JSON:API media type."""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from jsonapi_validate.schemas.jsonapi import JSONAPI_MEDIA_TYPE


class JSONAPIResponse(JSONResponse):
    """``JSONResponse`` with ``Content-Type: application/vnd.api+json``.

    Pydantic content (documents, resource objects) is encoded with its own
    serializer so sparse fields and extension members are honoured.
    """

    media_type = JSONAPI_MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json", by_alias=True)
        return super().render(content)

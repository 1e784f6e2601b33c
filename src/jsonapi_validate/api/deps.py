"""FastAPI dependencies for JSON:API request validation.

Each dependency validates one part of the request against a validator built
once at import time and raises ``JSONAPIValidationError`` on failure; install
:func:`jsonapi_validate.api.error_handlers.register_error_handlers` to render
those as JSON:API error documents.

Example::

    articles_body = JSONAPIBody(DocumentValidator.for_type("articles", Attributes(Article)))

    @router.post("/articles")
    async def create_article(
        document: DocumentEnvelope = Depends(articles_body),
        query: QueryParameters = Depends(JSONAPIQuery()),
    ) -> JSONAPIResponse:
        ...
"""

from fastapi import Depends, Request

from jsonapi_validate.config import get_settings
from jsonapi_validate.schemas.document import DocumentEnvelope
from jsonapi_validate.schemas.header import JSONAPIHeader
from jsonapi_validate.schemas.query import QueryParameters
from jsonapi_validate.validation.context import RequestContext
from jsonapi_validate.validation.document import DocumentValidator
from jsonapi_validate.validation.headers import HeaderValidator
from jsonapi_validate.validation.query import QueryValidator


async def request_context(request: Request) -> RequestContext:
    """Build the request context from the HTTP method and the resource id path parameter.

    The path parameter name comes from ``settings.resource_id_param``
    (``id`` by default).
    """
    resource_id = request.path_params.get(get_settings().resource_id_param, "")
    return RequestContext(method=request.method, resource_id=str(resource_id))


class JSONAPIQuery:
    """Validate the query string; yields ``QueryParameters``."""

    def __init__(self, validator: QueryValidator | None = None) -> None:
        self.validator = validator if validator is not None else QueryValidator()

    async def __call__(
        self,
        request: Request,
        context: RequestContext = Depends(request_context),
    ) -> QueryParameters:
        return self.validator.apply(request.query_params, context)


class JSONAPIHeaders:
    """Validate the JSON:API headers; yields the typed ``JSONAPIHeader``."""

    def __init__(self, validator: HeaderValidator | None = None) -> None:
        self.validator = validator if validator is not None else HeaderValidator()

    async def __call__(
        self,
        request: Request,
        context: RequestContext = Depends(request_context),
    ) -> JSONAPIHeader:
        return self.validator.decode(request.headers, context)


class JSONAPIBody:
    """Validate the request body document; yields a ``DocumentEnvelope``."""

    def __init__(self, validator: DocumentValidator) -> None:
        self.validator = validator

    async def __call__(
        self,
        request: Request,
        context: RequestContext = Depends(request_context),
    ) -> DocumentEnvelope:
        body = await request.body()
        return self.validator.apply(body, context)

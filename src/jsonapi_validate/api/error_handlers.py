"""Error handlers that render validation failures as JSON:API error documents.

- JSONAPIValidationError: errors with the source kind the validator chose
- RequestValidationError: FastAPI's own parameter validation, mapped onto
  pointer / parameter / header sources by location
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from jsonapi_validate.api.responses import JSONAPIResponse
from jsonapi_validate.schemas.jsonapi import JSONAPIError, JSONAPIErrorResponse
from jsonapi_validate.validation.errors import issue_from_pydantic_error
from jsonapi_validate.validation.translate import (
    JSONAPIValidationError,
    SourceKind,
    error_from_issue,
    query_path,
)

logger = logging.getLogger(__name__)

_SOURCE_BY_LOCATION = {
    "body": SourceKind.POINTER,
    "query": SourceKind.PARAMETER,
    "path": SourceKind.PARAMETER,
    "header": SourceKind.HEADER,
    "cookie": SourceKind.PARAMETER,
}


def register_error_handlers(app: FastAPI) -> None:
    """Register JSON:API error handlers on the FastAPI app."""
    _register_jsonapi_error_handler(app)
    _register_request_validation_handler(app)


def _register_jsonapi_error_handler(app: FastAPI) -> None:
    @app.exception_handler(JSONAPIValidationError)
    async def jsonapi_validation_error_handler(request: Request, exc: JSONAPIValidationError):
        logger.warning(
            f"JSON:API validation failed on {request.url.path}: {len(exc.issues)} error(s)",
            extra={"source": exc.source.value, "codes": exc.codes()},
        )
        return JSONAPIResponse(status_code=exc.http_status, content=exc.to_response())


def _register_request_validation_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Request validation error on {request.url.path}: {exc.errors()}")
        errors = [_error_from_request_error(err) for err in exc.errors()]
        statuses = {error.status for error in errors}
        status_code = int(statuses.pop()) if len(statuses) == 1 else 400
        return JSONAPIResponse(
            status_code=status_code,
            content=JSONAPIErrorResponse(errors=errors).to_content(),
        )


def _error_from_request_error(err: dict) -> JSONAPIError:
    loc = tuple(err.get("loc", ()))
    location, rest = (loc[0], loc[1:]) if loc else ("body", ())
    source = _SOURCE_BY_LOCATION.get(str(location), SourceKind.POINTER)
    if source is SourceKind.PARAMETER and rest:
        rest = (query_path(str(rest[0])),)
    item = issue_from_pydantic_error({**err, "loc": rest})
    return error_from_issue(item, source)

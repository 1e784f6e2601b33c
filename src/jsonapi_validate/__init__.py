"""JSON:API 1.1 document, query and header validation built on pydantic."""

from jsonapi_validate.schemas import (
    CollectionDocument,
    DocumentEnvelope,
    JSONAPIError,
    JSONAPIErrorResponse,
    JSONAPIHeader,
    JSONAPIObject,
    LinkageCollection,
    LinkObject,
    NilLink,
    NilLinkage,
    QueryParameters,
    Relationship,
    ResourceIdentifier,
    ResourceObject,
    SortField,
    cast_linkage,
)
from jsonapi_validate.validation.attributes import Attributes
from jsonapi_validate.validation.context import RequestContext
from jsonapi_validate.validation.document import DocumentValidator
from jsonapi_validate.validation.errors import (
    ErrorCode,
    JSONAPIConfigurationError,
    ValidationFailed,
    ValidationIssue,
    issues_from_pydantic,
)
from jsonapi_validate.validation.headers import HeaderValidator
from jsonapi_validate.validation.links import LinksValidator
from jsonapi_validate.validation.members import check_member_name
from jsonapi_validate.validation.query import QueryValidator, query_param_name_issue
from jsonapi_validate.validation.relationships import RelationshipValidator
from jsonapi_validate.validation.resource import ResourceObjectValidator
from jsonapi_validate.validation.rules import http_method_rule, index_rule
from jsonapi_validate.validation.translate import (
    JSONAPIValidationError,
    SourceKind,
    error_from_issue,
    errors_from_issues,
    to_jsonapi_error,
)

__all__ = [
    "Attributes",
    "CollectionDocument",
    "DocumentEnvelope",
    "DocumentValidator",
    "ErrorCode",
    "HeaderValidator",
    "JSONAPIConfigurationError",
    "JSONAPIError",
    "JSONAPIErrorResponse",
    "JSONAPIHeader",
    "JSONAPIObject",
    "JSONAPIValidationError",
    "LinkObject",
    "LinkageCollection",
    "LinksValidator",
    "NilLink",
    "NilLinkage",
    "QueryParameters",
    "QueryValidator",
    "Relationship",
    "RelationshipValidator",
    "RequestContext",
    "ResourceIdentifier",
    "ResourceObject",
    "ResourceObjectValidator",
    "SortField",
    "SourceKind",
    "ValidationFailed",
    "ValidationIssue",
    "cast_linkage",
    "check_member_name",
    "error_from_issue",
    "errors_from_issues",
    "http_method_rule",
    "index_rule",
    "issues_from_pydantic",
    "query_param_name_issue",
    "to_jsonapi_error",
]

"""Pydantic schemas for JSON:API documents, errors and query views."""

from jsonapi_validate.schemas.document import CollectionDocument, DocumentEnvelope
from jsonapi_validate.schemas.header import Extension, JSONAPIHeader, Profile
from jsonapi_validate.schemas.jsonapi import (
    JSONAPI_MEDIA_TYPE,
    ErrorLinks,
    ErrorSource,
    JSONAPIError,
    JSONAPIErrorResponse,
    JSONAPIObject,
)
from jsonapi_validate.schemas.linkage import (
    LinkageCollection,
    NilLinkage,
    ResourceIdentifier,
    ResourceLinkage,
    cast_linkage,
)
from jsonapi_validate.schemas.links import Link, LinkObject, Links, NilLink, cast_link
from jsonapi_validate.schemas.query import IncludePath, PageParameters, QueryParameters, SortField
from jsonapi_validate.schemas.resource import Relationship, ResourceObject

__all__ = [
    "CollectionDocument",
    "DocumentEnvelope",
    "ErrorLinks",
    "ErrorSource",
    "Extension",
    "IncludePath",
    "JSONAPIError",
    "JSONAPIErrorResponse",
    "JSONAPIHeader",
    "JSONAPIObject",
    "JSONAPI_MEDIA_TYPE",
    "Link",
    "LinkObject",
    "LinkageCollection",
    "Links",
    "NilLink",
    "NilLinkage",
    "PageParameters",
    "Profile",
    "QueryParameters",
    "Relationship",
    "ResourceIdentifier",
    "ResourceLinkage",
    "ResourceObject",
    "SortField",
    "cast_link",
    "cast_linkage",
]

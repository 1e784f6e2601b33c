"""Root conftest — shared attribute models, validators and request contexts."""

import pytest
from pydantic import BaseModel, Field

from jsonapi_validate.validation.attributes import Attributes
from jsonapi_validate.validation.context import RequestContext
from jsonapi_validate.validation.document import DocumentValidator
from jsonapi_validate.validation.relationships import RelationshipValidator
from jsonapi_validate.validation.resource import ResourceObjectValidator


class Article(BaseModel):
    title: str = Field(min_length=1)
    body: str = ""
    rating: int | None = None


@pytest.fixture
def article_attributes():
    return Attributes(Article)


@pytest.fixture
def article_validator(article_attributes):
    return (
        ResourceObjectValidator("articles", article_attributes)
        .with_relationship("author", RelationshipValidator().to_one().with_types("people"))
        .with_relationship("comments", RelationshipValidator().to_many())
    )


@pytest.fixture
def article_document(article_attributes):
    return (
        DocumentValidator.for_type("articles", article_attributes)
        .with_relationship("author", RelationshipValidator().to_one())
        .with_unknown_document_meta()
    )


@pytest.fixture
def index_get():
    return RequestContext(method="GET")


@pytest.fixture
def single_get():
    return RequestContext(method="GET", resource_id="1")


@pytest.fixture
def post():
    return RequestContext(method="POST")


@pytest.fixture
def article_model():
    return Article

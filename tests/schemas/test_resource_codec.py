"""Resource-object codec tests.

Tests cover:
    - encode(decode(x)) reproduces every member of x
    - decode records exactly the attribute keys present in the payload
    - encode with recorded fields includes exactly those attribute keys
    - @-members and extension members round-trip as top-level siblings
    - with_sparse_fields restricts attributes and relationships
    - unknown plain members are ignored by decode
"""

import json

import pytest
from pydantic import BaseModel

from jsonapi_validate.schemas.document import CollectionDocument, DocumentEnvelope
from jsonapi_validate.schemas.linkage import LinkageCollection, NilLinkage
from jsonapi_validate.schemas.resource import ResourceObject

ARTICLE = {
    "id": "1",
    "type": "articles",
    "attributes": {"title": "Hello", "body": "World", "tags": ["a", "b"], "rating": None},
    "relationships": {
        "author": {"data": {"type": "people", "id": "9"}, "links": {"related": "/articles/1/author"}},
        "editor": {"data": None},
        "comments": {"data": [{"type": "comments", "id": "5"}, {"type": "comments", "lid": "new"}]},
        "tags": {"links": {"self": {"href": "/articles/1/relationships/tags", "meta": {"count": 2}}}},
    },
    "links": {"self": "/articles/1", "describedby": None},
    "meta": {"views": 10},
    "@context": "https://schema.org",
    "version:id": "42",
}


class Draft(BaseModel):
    title: str = ""
    body: str = ""
    rating: int | None = None


def test_round_trip_reproduces_every_member():
    resource = ResourceObject.decode(ARTICLE)
    assert resource.encode() == ARTICLE
    empty = {"id": "1", "type": "articles", "attributes": {}}
    assert ResourceObject.decode(empty).encode() == empty


def test_sparse_fields_still_drop_emptied_attributes():
    resource = ResourceObject.decode({"id": "1", "type": "articles", "attributes": {"title": "T"}})
    assert resource.with_sparse_fields([]).encode() == {"id": "1", "type": "articles"}


def test_round_trip_from_json_text():
    resource = ResourceObject.decode(json.dumps(ARTICLE))
    assert json.loads(resource.encode_json()) == ARTICLE


def test_decode_keeps_linkage_shapes():
    resource = ResourceObject.decode(ARTICLE)
    assert isinstance(resource.relationships["editor"].data, NilLinkage)
    assert isinstance(resource.relationships["comments"].data, LinkageCollection)
    assert resource.relationships["tags"].data is None


def test_decode_diverts_buckets_and_ignores_unknown():
    resource = ResourceObject.decode({"type": "articles", "id": "1", "@context": "x", "ns:flag": True, "stray": 1})
    assert resource.at_members == {"@context": "x"}
    assert resource.extension_members == {"ns:flag": True}
    assert resource.encode() == {"type": "articles", "id": "1", "@context": "x", "ns:flag": True}


def test_internal_field_names_in_payload_are_ignored():
    resource = ResourceObject.decode(
        {
            "type": "articles",
            "attributes": {"title": "T"},
            "at_members": 5,
            "extension_members": [],
            "sparse_fields": ["x"],
            "present_attribute_fields": [],
        }
    )
    assert resource.at_members == {}
    assert resource.sparse_fields is None
    assert resource.present_attribute_fields == frozenset({"title"})
    assert resource.encode() == {"type": "articles", "attributes": {"title": "T"}}


def test_document_ignores_internal_field_names():
    document = DocumentEnvelope.decode({"meta": {"a": 1}, "at_members": 5, "extension_members": "x"})
    assert document.encode() == {"meta": {"a": 1}}


def test_decode_records_present_attribute_fields():
    resource = ResourceObject.decode({"type": "articles", "attributes": {"title": "T", "body": "B"}})
    assert resource.present_attribute_fields == frozenset({"title", "body"})


@pytest.mark.parametrize(
    "subset",
    [set(), {"title"}, {"body"}, {"title", "rating"}, {"title", "body", "rating"}],
)
def test_present_fields_drive_typed_encode(subset):
    full = {"title": "T", "body": "B", "rating": 3}
    payload = {"type": "articles", "id": "1", "attributes": {key: full[key] for key in subset}}
    resource = ResourceObject[Draft].decode(payload)
    encoded = resource.encode()
    # The typed model fills defaults for absent keys; only present keys come back out.
    assert set(encoded.get("attributes", {})) == subset


def test_unset_present_fields_serializes_full_attributes(article_model):
    resource = ResourceObject[article_model](type="articles", id="1", attributes=article_model(title="T"))
    assert resource.present_attribute_fields is None
    assert resource.encode()["attributes"] == {"title": "T", "body": "", "rating": None}


def test_sparse_fields_restrict_attributes_and_relationships():
    resource = ResourceObject.decode(ARTICLE).with_sparse_fields(["title", "author"])
    encoded = resource.encode()
    assert encoded["attributes"] == {"title": "Hello"}
    assert list(encoded["relationships"]) == ["author"]
    assert encoded["@context"] == "https://schema.org"


def test_sparse_fields_drop_empty_members():
    encoded = ResourceObject.decode(ARTICLE).with_sparse_fields([]).encode()
    assert "attributes" not in encoded
    assert "relationships" not in encoded
    assert encoded["id"] == "1"


def test_id_must_be_string():
    with pytest.raises(ValueError):
        ResourceObject.decode({"type": "articles", "id": 1})


def test_decode_rejects_non_object():
    with pytest.raises(ValueError):
        ResourceObject.decode("[1, 2]")


# --- Documents ----------------------------------------------------------------

def test_document_round_trip():
    document = {
        "data": {"type": "articles", "id": "1", "attributes": {"title": "T"}},
        "meta": {"total": 1},
        "links": {"self": "/articles/1"},
        "included": [{"type": "people", "id": "9"}],
        "jsonapi": {"version": "1.1", "ext": ["https://jsonapi.org/ext/version"]},
        "version:id": "7",
    }
    assert DocumentEnvelope.decode(document).encode() == document


def test_document_null_data_is_emitted():
    assert DocumentEnvelope.decode({"data": None}).encode() == {"data": None}


def test_meta_only_document_has_no_data():
    envelope = DocumentEnvelope.decode({"meta": {"count": 0}})
    assert envelope.data is None
    assert envelope.encode() == {"meta": {"count": 0}}


def test_collection_document(article_model):
    document = CollectionDocument[article_model](
        data=[ResourceObject[article_model](type="articles", id=str(i), attributes=article_model(title=f"T{i}")) for i in range(2)],
        meta={"page": {"size": 2}},
    )
    encoded = document.with_sparse_fields(["title"]).encode()
    assert encoded == {
        "data": [
            {"id": "0", "type": "articles", "attributes": {"title": "T0"}},
            {"id": "1", "type": "articles", "attributes": {"title": "T1"}},
        ],
        "meta": {"page": {"size": 2}},
    }


def test_empty_collection_emits_empty_array():
    assert CollectionDocument(data=[]).encode() == {"data": []}

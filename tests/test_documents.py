"""Тесты хранилища документов в памяти."""

import pytest

from retrieval_qa.documents import InMemoryDocumentStore
from retrieval_qa.errors import DocumentNotFoundError


def test_create_and_get() -> None:
    store = InMemoryDocumentStore()
    doc_id = store.create(title="Title", snippet="snip", full_text="full text", source="a.txt")

    doc = store.get(doc_id)
    assert doc.id == doc_id
    assert (doc.title, doc.snippet, doc.full_text, doc.source) == ("Title", "snip", "full text", "a.txt")
    assert len(store) == 1


def test_unique_ids() -> None:
    store = InMemoryDocumentStore()
    ids = {store.create(title="t", snippet="s", full_text="f", source="x") for _ in range(10)}
    assert len(ids) == 10


def test_get_unknown_raises_not_found() -> None:
    with pytest.raises(DocumentNotFoundError) as exc_info:
        InMemoryDocumentStore().get("missing")
    assert exc_info.value.kind == "NotFound"
    assert exc_info.value.doc_id == "missing"


def test_query_by_source_keeps_creation_order() -> None:
    store = InMemoryDocumentStore(id_factory=iter(["d1", "d2", "d3"]).__next__)
    store.create(title="one", snippet="", full_text="", source="a")
    store.create(title="two", snippet="", full_text="", source="b")
    store.create(title="three", snippet="", full_text="", source="a")

    assert [d.id for d in store.query()] == ["d1", "d2", "d3"]
    assert [d.title for d in store.query(source="a")] == ["one", "three"]


def test_empty_title_gets_default() -> None:
    store = InMemoryDocumentStore()
    assert store.get(store.create(title="", snippet="", full_text="x", source="s")).title == "Untitled Document"

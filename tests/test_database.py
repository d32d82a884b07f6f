import pytest

from webcrawler.crawler.content import Content
from webcrawler.errors import DuplicateAddress, DuplicateContent, UnknownAddress
from webcrawler.storage.database import ContentStore


def test_add_and_get():
    store = ContentStore()
    content = Content.with_body("http://example.com/", b"home")
    store.add(content)

    assert store.get("http://example.com/") is content
    assert store.all() == [content]
    assert len(store) == 1


def test_add_same_address_twice_fails():
    store = ContentStore()
    store.add(Content.with_body("http://example.com/", b"first"))

    with pytest.raises(DuplicateAddress):
        store.add(Content.with_body("http://example.com/", b"second"))


def test_add_same_body_under_new_address_fails():
    store = ContentStore()
    store.add(Content.with_body("http://example.com/a", b"same"))

    with pytest.raises(DuplicateContent):
        store.add(Content.with_body("http://example.com/b", b"same"))

    assert [c.address for c in store.all()] == ["http://example.com/a"]


def test_update_requires_known_address():
    store = ContentStore()
    with pytest.raises(UnknownAddress):
        store.update(Content.with_body("http://example.com/", b"body"))

    store.add(Content.with_body("http://example.com/", b"body"))
    updated = Content.with_body("http://example.com/", b"body")
    updated.content_type = "text/html"
    store.update(updated)
    assert store.get("http://example.com/").content_type == "text/html"


def test_get_unknown_address_fails():
    with pytest.raises(UnknownAddress):
        ContentStore().get("http://example.com/missing")


def test_is_repeated_content_records_address():
    store = ContentStore()
    original = Content.with_body("http://example.com/a", b"same")
    store.add(original)

    assert not store.is_repeated_content(Content.with_body("http://example.com/c", b"other"))
    assert store.repeated_hashes() == {}

    assert store.is_repeated_content(Content.with_body("http://example.com/b", b"same"))
    assert store.repeated_hashes() == {"http://example.com/b": original.body_hash}


def test_stats():
    store = ContentStore()
    store.add(Content.with_body("http://example.com/a", b"12345"))
    store.is_repeated_content(Content.with_body("http://example.com/b", b"12345"))

    assert store.get_stats() == {
        'total_stored': 1,
        'total_checksums': 1,
        'repeated_content': 1,
        'total_size_bytes': 5
    }

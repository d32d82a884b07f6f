import hashlib

import pytest

from webcrawler.crawler.content import Content, hash_body, normalize_url
from webcrawler.errors import InvalidAddress


@pytest.mark.parametrize("raw", [
    "http://example.com",
    "https://Example.COM/some/path?q=1#section",
    "http://example.com:8080/a/b/",
    "example.com",
    "//example.com/p",
    "/relative/path",
    "?only=query",
    "",
    "http:////x",
    "////x",
])
def test_normalize_is_idempotent(raw):
    once = normalize_url(raw)
    assert normalize_url(once) == once


def test_normalize_defaults_empty_path_and_strips_fragment():
    assert normalize_url("http://example.com") == "http://example.com/"
    assert normalize_url("http://example.com/page#top") == "http://example.com/page"
    assert normalize_url("HTTP://EXAMPLE.com/Path") == "http://example.com/Path"


def test_leading_slashes_without_host_stay_in_the_path():
    assert normalize_url("http:////x") == "http:///x"
    assert normalize_url("////x") == "/x"


@pytest.mark.parametrize("raw", ["http://[::1", "http://example.com:port/", None])
def test_normalize_rejects_unparsable(raw):
    with pytest.raises(InvalidAddress):
        normalize_url(raw)


def test_from_url_exposes_parts():
    content = Content.from_url("https://example.com:8443/docs")
    assert content.address == "https://example.com:8443/docs"
    assert content.scheme == "https"
    assert content.host == "example.com:8443"
    assert content.hostname == "example.com"
    assert content.path == "/docs"
    assert content.body == b""
    assert content.body_hash is None


def test_schemeless_address_has_no_scheme():
    content = Content.from_url("example.com")
    assert content.scheme == ""
    assert content.address == "example.com"


def test_with_body_computes_hash():
    content = Content.with_body("http://example.com/", b"<html></html>")
    assert content.body == b"<html></html>"
    assert content.body_hash == hashlib.sha256(b"<html></html>").hexdigest()
    assert content.body_hash == hash_body(b"<html></html>")


def test_children_list_is_sorted_and_unique():
    content = Content.from_url("http://example.com/")
    content.children.update(["http://example.com/b", "http://example.com/a"])
    content.children.add("http://example.com/a")
    assert content.children_list() == ["http://example.com/a", "http://example.com/b"]

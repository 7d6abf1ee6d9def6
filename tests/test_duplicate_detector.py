import hashlib

import pytest

from webcrawl.storage.duplicate_detector import (
    CrawlRecord,
    DedupStore,
    DuplicateContentError,
    content_fingerprint,
)


def record(url, content="<html>x</html>"):
    return CrawlRecord(
        url=url,
        content=content,
        links=(),
        status_code=200,
        content_type="text/html",
        fingerprint=content_fingerprint(content),
    )


def test_fingerprint_is_sha256_of_body():
    assert content_fingerprint("abc") == hashlib.sha256(b"abc").hexdigest()
    assert len(content_fingerprint("")) == 64


def test_mark_visited_is_idempotent():
    store = DedupStore()
    assert not store.is_visited("http://a.test/")

    store.mark_visited("http://a.test/")
    store.mark_visited("http://a.test/")

    assert store.is_visited("http://a.test/")
    assert store.visited_count == 1


def test_record_fingerprint_is_idempotent():
    store = DedupStore()
    fp = content_fingerprint("body")
    assert not store.is_fingerprint_seen(fp)

    store.record_fingerprint(fp)
    store.record_fingerprint(fp)

    assert store.is_fingerprint_seen(fp)
    assert store.get_stats()['fingerprints'] == 1


def test_store_records_fingerprint_and_keeps_order():
    store = DedupStore()
    first = record("http://a.test/1", "one")
    second = record("http://a.test/2", "two")
    store.store(first)
    store.store(second)

    assert store.is_fingerprint_seen(first.fingerprint)
    assert store.get("http://a.test/1") is first
    assert store.get("http://missing.test/") is None
    assert store.get_all_results() == [first, second]
    assert len(store) == 2


def test_store_rejects_second_record_with_same_fingerprint():
    store = DedupStore()
    store.store(record("http://a.test/1", "same"))

    with pytest.raises(DuplicateContentError):
        store.store(record("http://b.test/1", "same"))

    assert len(store) == 1


def test_storing_does_not_mark_visited():
    store = DedupStore()
    store.store(record("http://a.test/1"))
    assert not store.is_visited("http://a.test/1")


def test_restoring_a_url_releases_its_old_fingerprint():
    store = DedupStore()
    store.store(record("http://a.test/", "old"))
    store.store(record("http://a.test/", "new"))

    store.store(record("http://b.test/", "old"))

    assert store.get("http://a.test/").content == "new"
    assert store.get("http://b.test/").content == "old"
    assert len(store) == 2

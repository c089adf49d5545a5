from __future__ import annotations

import threading

import pytest

from mcp_servers.websee.lru import LRUCache


def test_cache_never_exceeds_capacity() -> None:
    cache: LRUCache[str, int] = LRUCache(3)
    for i in range(10):
        cache.set(f"k{i}", i)
        assert len(cache) <= 3
    assert cache.keys() == ["k7", "k8", "k9"]


def test_get_promotes_entry_so_the_other_one_is_evicted() -> None:
    cache: LRUCache[str, int] = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1

    evicted = cache.set("c", 3)

    assert evicted == "b"
    assert "a" in cache
    assert "b" not in cache
    assert cache.keys() == ["a", "c"]


def test_has_does_not_promote() -> None:
    cache: LRUCache[str, int] = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.has("a") is True
    assert cache.set("c", 3) == "a"


def test_replacing_a_key_does_not_evict() -> None:
    cache: LRUCache[str, int] = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.set("a", 10) is None
    assert cache.get("a") == 10
    assert cache.keys() == ["b", "a"]


def test_clear_is_idempotent() -> None:
    cache: LRUCache[str, int] = LRUCache(2)
    cache.set("a", 1)
    cache.clear()
    cache.clear()
    assert len(cache) == 0
    assert cache.get("a") is None


def test_delete_and_miss() -> None:
    cache: LRUCache[str, int] = LRUCache(2)
    cache.set("a", 1)
    assert cache.delete("a") is True
    assert cache.delete("a") is False
    assert cache.get("missing") is None


def test_invalid_capacity_rejected() -> None:
    with pytest.raises(ValueError):
        LRUCache(0)


def test_concurrent_writers_keep_the_bound() -> None:
    cache: LRUCache[int, int] = LRUCache(16)

    def writer(base: int) -> None:
        for i in range(500):
            cache.set(base * 1000 + i, i)
            cache.get(base * 1000 + i // 2)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) == 16
    assert len(set(cache.keys())) == 16

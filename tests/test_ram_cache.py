import pytest
import trio

from recordcache.cache.keys import derive_key
from recordcache.cache.ram_cache import RamCache


@pytest.fixture
def cache():
    """Small cache so eviction is easy to trigger."""
    return RamCache(max_entries=3, max_age=60.0)


# --- KEY DERIVATION ---

def test_derive_key_joins_namespace_and_id():
    assert derive_key("aa", 1) == "aa:1"
    assert derive_key("aa", "1") == derive_key("aa", 1)
    assert derive_key("aa", 1) != derive_key("aa", 2)
    assert derive_key("aa", 1) != derive_key("bb", 1)


def test_derive_key_omits_absent_parts():
    assert derive_key(None, 7) == "7"
    assert derive_key("aa", None) == "aa"
    assert derive_key(None, None) == ""


def test_derive_key_keeps_falsy_identifiers():
    assert derive_key("aa", 0) == "aa:0"


# --- STORE ---

@pytest.mark.trio
async def test_set_then_get_returns_equal_copy(cache):
    value = {"id": 1, "title": "a", "tags": ["x"]}
    stored = await cache.set("aa:1", value)
    assert stored is value

    first = await cache.get("aa:1")
    assert first == value
    assert first is not value

    # Mutating either side must not leak into the cache
    first["tags"].append("y")
    value["title"] = "changed"
    assert await cache.get("aa:1") == {"id": 1, "title": "a", "tags": ["x"]}


@pytest.mark.trio
async def test_get_missing_returns_none(cache):
    assert await cache.get("nope") is None
    assert await cache.has("nope") is False


@pytest.mark.trio
async def test_overwrite_replaces_value(cache):
    await cache.set("k", {"v": 1})
    await cache.set("k", {"v": 2})
    assert await cache.get("k") == {"v": 2}
    assert await cache.stats() == (1, 3)


@pytest.mark.trio
async def test_lru_eviction_order(cache):
    for key in ("a", "b", "c"):
        await cache.set(key, {"key": key})

    # Touch 'a' so 'b' becomes least recently used
    await cache.get("a")
    await cache.set("d", {"key": "d"})

    assert await cache.has("a")
    assert not await cache.has("b")
    assert await cache.has("c")
    assert await cache.has("d")


@pytest.mark.trio
async def test_has_does_not_refresh_recency(cache):
    for key in ("a", "b", "c"):
        await cache.set(key, {"key": key})

    assert await cache.has("a")
    await cache.set("d", {"key": "d"})

    assert not await cache.has("a")


@pytest.mark.trio
async def test_delete_is_idempotent(cache):
    await cache.set("k", {"v": 1})
    await cache.delete("k")
    await cache.delete("k")
    assert await cache.get("k") is None


@pytest.mark.trio
async def test_entries_expire_after_max_age(autojump_clock):
    cache = RamCache(max_entries=10, max_age=60.0)
    await cache.set("old", {"v": 1})
    await trio.sleep(30)
    await cache.set("young", {"v": 2})
    await trio.sleep(31)

    assert await cache.has("old") is False
    assert await cache.get("old") is None
    assert await cache.get("young") == {"v": 2}
    assert await cache.stats() == (1, 10)


@pytest.mark.trio
async def test_zero_capacity_disables_storage():
    cache = RamCache(max_entries=0)
    await cache.set("k", {"v": 1})
    assert await cache.get("k") is None
    assert await cache.has("k") is False


@pytest.mark.trio
async def test_clear():
    cache = RamCache()
    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.clear()
    assert await cache.stats() == (0, 1000)


def test_invalid_limits():
    with pytest.raises(ValueError):
        RamCache(max_entries=-1)
    with pytest.raises(ValueError):
        RamCache(max_age=0)

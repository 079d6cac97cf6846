import asyncio

import pytest

from zestislam.domain.models.common import CacheKey
from zestislam.infrastructure.cache.caching_service import CachingServiceImpl


@pytest.fixture
def cache(tmp_path):
    service = CachingServiceImpl(cache_dir=tmp_path / "cache", l1_max_items=2)
    yield service
    service.close()


def test_set_and_get_both_levels(cache: CachingServiceImpl):
    asyncio.run(cache.set(CacheKey("surah_list"), [{"number": 1}]))

    assert asyncio.run(cache.get(CacheKey("surah_list"), level='l1')) == [{"number": 1}]
    assert asyncio.run(cache.get(CacheKey("surah_list"), level='l2')) == [{"number": 1}]


def test_l2_hit_is_promoted_to_l1(cache: CachingServiceImpl):
    asyncio.run(cache.set(CacheKey("daily"), {"text": "Verily"}, level='l2'))
    assert asyncio.run(cache.get(CacheKey("daily"), level='l1')) is None

    assert asyncio.run(cache.get(CacheKey("daily"))) == {"text": "Verily"}
    assert asyncio.run(cache.get(CacheKey("daily"), level='l1')) == {"text": "Verily"}


def test_l1_evicts_oldest_over_size_limit(cache: CachingServiceImpl):
    for key in ("a", "b", "c"):
        asyncio.run(cache.set(CacheKey(key), key, level='l1'))

    assert list(cache.l1_cache) == ["b", "c"]


def test_expired_l1_entries_are_pruned(cache: CachingServiceImpl, mocker):
    clock = mocker.patch('zestislam.infrastructure.cache.caching_service.time.time', return_value=1000.0)
    asyncio.run(cache.set(CacheKey("k"), "v", ttl=10, level='l1'))

    clock.return_value = 1011.0
    assert asyncio.run(cache.get(CacheKey("k"), level='l1')) is None
    assert cache.l1_cache == {}


def test_delete_and_clear(cache: CachingServiceImpl):
    asyncio.run(cache.set(CacheKey("a"), 1))
    asyncio.run(cache.set(CacheKey("b"), 2))

    asyncio.run(cache.delete(CacheKey("a")))
    assert asyncio.run(cache.get(CacheKey("a"))) is None

    asyncio.run(cache.clear(level='l1'))
    assert cache.l1_cache == {}
    assert asyncio.run(cache.get(CacheKey("b"), level='l2')) == 2

    asyncio.run(cache.clear())
    assert asyncio.run(cache.get(CacheKey("b"))) is None


def test_unknown_level_rejected(cache: CachingServiceImpl):
    with pytest.raises(ValueError, match="Unknown cache level"):
        asyncio.run(cache.get(CacheKey("a"), level='l3'))
    with pytest.raises(ValueError):
        asyncio.run(cache.clear(level='everything'))

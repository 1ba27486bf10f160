"""
응답 캐시 유닛 테스트
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from product_discovery.models.product import Product
from product_discovery.models.request import ConversationTurn
from product_discovery.services.cache import (
    CacheCorruptionError,
    CacheEntry,
    InMemoryResponseCache,
    deserialize_products,
    estimate_tokens_saved,
    make_discovery_key,
    serialize_products,
)


class FakeClock:
    """조작 가능한 시계"""

    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def products():
    return [
        Product(
            title="Nike Air Force 1",
            link="https://www.nike.com/t/af1",
            price="$100",
            brand="Nike",
            source_tier="matched",
            matched_tier="Brand product page",
        ),
        Product(
            title="Uniqlo Oxford Shirt",
            link="https://www.google.com/search?q=Uniqlo%20Oxford%20Shirt%20men%20buy%20online",
            source_tier="fallback",
        ),
    ]


def _turns(*contents):
    return [ConversationTurn(role="user", content=c) for c in contents]


class TestCacheKey:
    """캐시 키 테스트"""

    def test_normalized_message(self):
        """대소문자/공백 차이 무시"""
        assert make_discovery_key("  Show ME   sneakers ") == make_discovery_key("show me sneakers")
        assert make_discovery_key("x").startswith("discovery:")

    def test_only_recent_turns(self):
        """최근 N개 턴만 키에 포함"""
        a = _turns("old one", "old two", "c", "d", "e")
        b = _turns("different", "history", "c", "d", "e")
        assert make_discovery_key("hi", a, context_turns=3) == make_discovery_key("hi", b, context_turns=3)

        c = _turns("c", "d", "changed")
        assert make_discovery_key("hi", a, context_turns=3) != make_discovery_key("hi", c, context_turns=3)

    def test_recommendation_text_in_key(self):
        """추천 문장이 다르면 다른 키"""
        assert make_discovery_key("hi", (), "**A Shirt** - $1") != make_discovery_key("hi", (), "**B Shirt** - $1")

    def test_tokens_saved_estimate(self):
        """토큰 절약 추정치"""
        assert estimate_tokens_saved("a" * 10, _turns("x", "y")) == 3 + 100 + 200 + 500


class TestSerialization:
    """직렬화 테스트"""

    def test_corrupt_payload(self):
        """잘못된 JSON/스키마"""
        with pytest.raises(CacheCorruptionError):
            deserialize_products("[{bad")
        with pytest.raises(CacheCorruptionError):
            deserialize_products('[{"title": "x"}]')


class TestInMemoryCache:
    """인메모리 캐시 테스트"""

    def test_set_and_get(self, clock, products):
        """저장 후 조회 결과가 동일"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=60, max_size=10, clock=clock)
            await cache.set("k", products)
            return await cache.get("k")

        cached, hit = asyncio.run(_run())
        assert hit is True
        assert serialize_products(cached) == serialize_products(products)

    def test_miss(self, clock):
        """없는 키"""
        cache = InMemoryResponseCache(clock=clock)
        assert asyncio.run(cache.get("missing")) == (None, False)

    def test_ttl_expiry(self, clock, products):
        """TTL 경과 후 미스 및 엔트리 제거"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=60, max_size=10, clock=clock)
            await cache.set("k", products)
            clock.advance(60)
            first = await cache.get("k")
            clock.advance(1)
            second = await cache.get("k")
            return first, second, await cache.stats()

        first, second, stats = asyncio.run(_run())
        assert first[1] is True
        assert second == (None, False)
        assert stats.size == 0

    def test_corrupt_entry_is_miss(self, clock):
        """손상된 엔트리는 미스로 처리하고 제거"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=60, max_size=10, clock=clock)
            cache._cache["k"] = CacheEntry("k", "not json", clock(), 60)
            result = await cache.get("k")
            return result, await cache.stats()

        result, stats = asyncio.run(_run())
        assert result == (None, False)
        assert stats.size == 0
        assert stats.misses == 1

    def test_evict_oldest(self, clock, products):
        """가득 차면 가장 오래된 엔트리 제거"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=60, max_size=2, clock=clock)
            for key in ("k1", "k2", "k3"):
                await cache.set(key, products)
            return [(await cache.get(key))[1] for key in ("k1", "k2", "k3")]

        assert asyncio.run(_run()) == [False, True, True]

    def test_evict_expired_first(self, clock, products):
        """만료 엔트리를 먼저 정리"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=1000, max_size=2, clock=clock)
            await cache.set("short", products, ttl_seconds=10)
            await cache.set("long", products)
            clock.advance(20)
            await cache.set("new", products)
            return [(await cache.get(key))[1] for key in ("short", "long", "new")]

        assert asyncio.run(_run()) == [False, True, True]

    def test_stats_and_tokens_saved(self, clock, products):
        """히트율과 절약 토큰 집계"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=60, max_size=10, clock=clock)
            await cache.set("k", products, tokens_saved_estimate=750)
            await cache.get("k")
            await cache.get("k")
            await cache.get("other")
            return await cache.stats()

        stats = asyncio.run(_run())
        assert stats.size == 1
        assert stats.max_size == 10
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)
        assert stats.tokens_saved == 1500

    def test_delete_and_clear(self, clock, products):
        """개별 삭제와 전체 삭제"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=60, max_size=10, clock=clock)
            await cache.set("a", products)
            await cache.set("b", products)
            await cache.set("c", products)
            deleted = await cache.delete("a")
            missing = await cache.delete("a")
            cleared = await cache.clear()
            return deleted, missing, cleared, await cache.stats()

        deleted, missing, cleared, stats = asyncio.run(_run())
        assert deleted is True
        assert missing is False
        assert cleared == 2
        assert stats.size == 0
        assert stats.hits == 0

    def test_clear_expired(self, clock, products):
        """만료 엔트리 일괄 정리"""

        async def _run():
            cache = InMemoryResponseCache(ttl_seconds=1000, max_size=10, clock=clock)
            await cache.set("short", products, ttl_seconds=10)
            await cache.set("long", products)
            clock.advance(20)
            return await cache.clear_expired(), await cache.stats()

        removed, stats = asyncio.run(_run())
        assert removed == 1
        assert stats.size == 1

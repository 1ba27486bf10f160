"""
응답 캐시
정규화된 (메시지, 대화 발췌) 키로 상품 탐색 결과 전체를 TTL 동안 저장

호출부는 ResponseCache 인터페이스에만 의존하므로, 인메모리 구현을
공유 저장소 구현으로 바꿔도 호출부는 변경할 필요가 없습니다.
"""
import asyncio
import hashlib
import json
import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from product_discovery.config import get_settings
from product_discovery.models.product import Product
from product_discovery.models.request import ConversationTurn
from product_discovery.models.response import CacheStats

logger = logging.getLogger(__name__)

_products_adapter = TypeAdapter(List[Product])


class CacheCorruptionError(Exception):
    """저장된 페이로드 역직렬화 실패"""

    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry:
    """캐시 엔트리"""

    def __init__(
        self,
        key: str,
        payload: str,
        created_at: datetime,
        ttl_seconds: int,
        tokens_saved_estimate: int = 0,
    ) -> None:
        self.key = key
        self.payload = payload
        self.created_at = created_at
        self.ttl = timedelta(seconds=ttl_seconds)
        self.tokens_saved_estimate = tokens_saved_estimate

    @property
    def expires_at(self) -> datetime:
        return self.created_at + self.ttl

    def is_expired(self, now: datetime) -> bool:
        """만료 여부 확인"""
        return now > self.expires_at


def serialize_products(products: Sequence[Product]) -> str:
    """상품 목록 직렬화 (JSON)"""
    return json.dumps([p.model_dump() for p in products], ensure_ascii=False)


def deserialize_products(payload: str) -> List[Product]:
    """
    상품 목록 역직렬화

    Raises:
        CacheCorruptionError: JSON 또는 스키마 오류
    """
    try:
        return _products_adapter.validate_json(payload)
    except (ValidationError, ValueError) as e:
        raise CacheCorruptionError(str(e)) from e


def make_discovery_key(
    message: str,
    conversation: Sequence[ConversationTurn] = (),
    recommendation_text: str = "",
    context_turns: Optional[int] = None,
) -> str:
    """
    탐색 캐시 키 생성

    메시지와 최근 N개 대화 턴을 소문자/공백 정리 후 해시합니다.
    """
    if context_turns is None:
        context_turns = get_settings().cache_context_turns

    def _norm(text: str) -> str:
        return " ".join(text.lower().split())

    recent = conversation[-context_turns:] if context_turns > 0 else []
    recent_context = "|".join(f"{turn.role}: {_norm(turn.content)}" for turn in recent)
    cache_string = f"{_norm(message)}|{recent_context}|{_norm(recommendation_text)}"
    hash_val = hashlib.md5(cache_string.encode()).hexdigest()
    return f"discovery:{hash_val}"


def estimate_tokens_saved(message: str, conversation: Sequence[ConversationTurn] = ()) -> int:
    """캐시 히트 1회가 절약하는 토큰 추정치 (비용 집계용)"""
    message_tokens = math.ceil(len(message) / 4)
    context_tokens = len(conversation) * 50
    system_prompt_tokens = 200
    response_tokens = 500
    return message_tokens + context_tokens + system_prompt_tokens + response_tokens


class ResponseCache(ABC):
    """응답 캐시 인터페이스"""

    @abstractmethod
    async def get(self, key: str) -> Tuple[Optional[List[Product]], bool]:
        """캐시 조회 → (상품 목록, 히트 여부)"""
        pass

    @abstractmethod
    async def set(
        self,
        key: str,
        payload: List[Product],
        ttl_seconds: Optional[int] = None,
        tokens_saved_estimate: int = 0,
    ) -> None:
        """캐시 저장"""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """전체 캐시 삭제 → 삭제된 엔트리 수"""
        pass

    @abstractmethod
    async def stats(self) -> CacheStats:
        """캐시 통계"""
        pass


class InMemoryResponseCache(ResponseCache):
    """인메모리 TTL 응답 캐시"""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_size: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        settings = get_settings()
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._ttl_seconds = ttl_seconds or settings.cache_ttl_seconds
        self._max_size = max_size or settings.cache_max_size
        self._clock = clock or _utcnow
        self._hits = 0
        self._misses = 0
        self._tokens_saved = 0

    async def get(self, key: str) -> Tuple[Optional[List[Product]], bool]:
        """캐시 조회"""
        async with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self._misses += 1
                return None, False

            if entry.is_expired(self._clock()):
                del self._cache[key]
                self._misses += 1
                return None, False

            try:
                products = deserialize_products(entry.payload)
            except CacheCorruptionError as e:
                logger.warning(f"[Cache] 손상된 엔트리 제거 ({key[:18]}...): {e}")
                del self._cache[key]
                self._misses += 1
                return None, False

            self._hits += 1
            self._tokens_saved += entry.tokens_saved_estimate
            logger.info(f"[Cache] 히트: {key[:18]}...")
            return products, True

    async def set(
        self,
        key: str,
        payload: List[Product],
        ttl_seconds: Optional[int] = None,
        tokens_saved_estimate: int = 0,
    ) -> None:
        """캐시 저장"""
        ttl = ttl_seconds or self._ttl_seconds
        entry = CacheEntry(
            key=key,
            payload=serialize_products(payload),
            created_at=self._clock(),
            ttl_seconds=ttl,
            tokens_saved_estimate=tokens_saved_estimate,
        )

        async with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_size:
                self._evict()
            # 같은 키를 다시 쓰면 삽입 순서도 갱신
            self._cache.pop(key, None)
            self._cache[key] = entry

        logger.info(f"[Cache] 저장: {key[:18]}... ({tokens_saved_estimate} tokens)")

    async def delete(self, key: str) -> bool:
        """캐시 삭제"""
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear(self) -> int:
        """전체 캐시 삭제"""
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._hits = 0
            self._misses = 0
            self._tokens_saved = 0
            return count

    async def clear_expired(self) -> int:
        """만료된 캐시 정리"""
        async with self._lock:
            return self._remove_expired()

    async def stats(self) -> CacheStats:
        """캐시 통계"""
        async with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                size=len(self._cache),
                max_size=self._max_size,
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / total if total else 0.0,
                tokens_saved=self._tokens_saved,
            )

    def _remove_expired(self) -> int:
        """만료 엔트리 제거 (락 보유 상태에서 호출)"""
        now = self._clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def _evict(self) -> None:
        """공간 확보: 만료 엔트리 정리 후에도 가득 차면 가장 오래된 엔트리 제거"""
        cleaned = self._remove_expired()
        if cleaned:
            logger.info(f"[Cache] 만료 엔트리 {cleaned}개 정리")
        while len(self._cache) >= self._max_size:
            oldest_key = next(iter(self._cache))
            del self._cache[oldest_key]


# 싱글톤 인스턴스
_cache: Optional[InMemoryResponseCache] = None


def get_cache() -> InMemoryResponseCache:
    """캐시 싱글톤 반환"""
    global _cache
    if _cache is None:
        _cache = InMemoryResponseCache()
    return _cache

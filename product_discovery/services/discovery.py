"""
상품 탐색 엔진
추천 문장 → 후보 추출 → 티어 검색 → 중복 제거 → 대체 상품 → 응답 캐시

엔진 밖으로는 예외를 전달하지 않습니다. 결과는 항상 DiscoveryResponse이며,
검색 자격 증명이 없으면 provider_unavailable=True 응답을 한 번 반환합니다.
"""
import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

from product_discovery.config import get_settings
from product_discovery.models.candidate import Candidate
from product_discovery.models.product import Product
from product_discovery.models.request import ConversationTurn
from product_discovery.models.response import DiscoveryResponse
from product_discovery.services.cache import (
    ResponseCache,
    estimate_tokens_saved,
    get_cache,
    make_discovery_key,
)
from product_discovery.services.deduplicator import ProductDeduplicator, dedupe_products
from product_discovery.services.fallback import build_fallback_product
from product_discovery.services.google_search import (
    SearchProvider,
    SearchProviderUnavailable,
    get_search_client,
)
from product_discovery.services.search_executor import (
    CallBudget,
    SearchExecutor,
    SearchOutcome,
    SearchState,
    all_unreachable,
)
from product_discovery.utils.text_parser import extract_candidates

logger = logging.getLogger(__name__)


def assemble_products(outcomes: Sequence[SearchOutcome]) -> List[Product]:
    """
    최종 상품 목록 조립

    1. 매칭된 상품 중복 제거 (먼저 나온 것 우선)
    2. 매칭되지 않은 후보에 대체 상품 생성 (같은 중복 규칙 적용)
    3. 후보 추출 순서로 정렬
    """
    deduplicator = ProductDeduplicator()
    kept = {id(p) for p in dedupe_products((o.product for o in outcomes), deduplicator)}
    slots: Dict[int, Product] = {}

    for index, outcome in enumerate(outcomes):
        if outcome.product is None:
            continue
        if id(outcome.product) in kept:
            outcome.state = SearchState.MATCHED
            slots[index] = outcome.product
        else:
            logger.info(f"[Discovery] 중복 상품 제외: {outcome.product.link}")

    for index, outcome in enumerate(outcomes):
        if index in slots:
            continue
        # 결과가 없었거나 다른 후보와 같은 링크로 밀려난 후보
        fallback = build_fallback_product(outcome.candidate)
        if deduplicator.add(fallback):
            outcome.state = SearchState.FALLBACK
            slots[index] = fallback
            logger.info(f"[Discovery] 대체 상품 생성: '{outcome.candidate.title}'")

    return [slots[index] for index in sorted(slots)]


class ProductDiscoveryEngine:
    """상품 탐색 엔진"""

    def __init__(
        self,
        provider: Optional[SearchProvider],
        cache: Optional[ResponseCache] = None,
        executor: Optional[SearchExecutor] = None,
    ) -> None:
        self._settings = get_settings()
        self._provider = provider
        self._cache = cache or get_cache()
        self._executor = executor or (SearchExecutor(provider) if provider else None)

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def provider_available(self) -> bool:
        return self._executor is not None

    async def discover(
        self,
        message: str,
        recommendation_text: str,
        conversation: Sequence[ConversationTurn] = (),
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DiscoveryResponse:
        """
        상품 탐색

        Args:
            message: 사용자 메시지
            recommendation_text: 어시스턴트 추천 문장
            conversation: 최근 대화 발췌
            cancel_event: 설정되면 진행 중인 검색을 취소 (예: 클라이언트 연결 끊김)

        Returns:
            DiscoveryResponse
        """
        start_time = time.time()

        try:
            response = await self._discover(message, recommendation_text, conversation, cancel_event)
        except Exception as e:
            logger.error(f"[Discovery] 탐색 중 오류: {e}", exc_info=True)
            response = DiscoveryResponse()

        response.processing_time_ms = int((time.time() - start_time) * 1000)
        return response

    async def _discover(
        self,
        message: str,
        recommendation_text: str,
        conversation: Sequence[ConversationTurn],
        cancel_event: Optional[asyncio.Event],
    ) -> DiscoveryResponse:
        display_count = self._settings.initial_display_count

        # 캐시 확인
        cache_key = make_discovery_key(message, conversation, recommendation_text)
        cached_products, hit = await self._cache.get(cache_key)
        if hit:
            response = DiscoveryResponse.from_products(cached_products, display_count)
            response.cached = True
            return response

        if self._executor is None:
            logger.warning("[Discovery] 검색 제공자 사용 불가 - 상품 탐색 생략")
            return DiscoveryResponse(provider_unavailable=True)

        # 1. 후보 추출
        candidates = extract_candidates(recommendation_text)
        if not candidates:
            logger.info("[Discovery] 추출된 후보 없음")
            return DiscoveryResponse()

        logger.info(f"[Discovery] 후보: {[c.title for c in candidates]}")

        # 2. 후보별 검색
        outcomes = await self._search(candidates, cancel_event)
        if outcomes is None:
            logger.info("[Discovery] 호출자 취소로 탐색 중단")
            return DiscoveryResponse(cancelled=True)

        # 검색 서버에 전혀 연결되지 않으면 대체 링크 대신 빈 응답
        if all_unreachable(outcomes):
            logger.warning("[Discovery] 검색 서버 연결 불가 - 빈 응답 반환")
            return DiscoveryResponse()

        # 3. 중복 제거 + 대체 상품
        products = assemble_products(outcomes)

        # 4. 캐시 저장 (제공자가 한 번도 정상 응답하지 않았으면 일시 장애로 보고 저장 안 함)
        if any(o.successful_calls for o in outcomes):
            await self._cache.set(
                cache_key,
                products,
                tokens_saved_estimate=estimate_tokens_saved(message, conversation),
            )
        else:
            logger.warning("[Discovery] 정상 응답 없음 - 캐시 저장 생략")

        matched = sum(1 for p in products if p.source_tier == "matched")
        logger.info(f"[Discovery] 완료 - 상품 {len(products)}개 (매칭 {matched}개)")
        return DiscoveryResponse.from_products(products, display_count)

    async def _search(
        self,
        candidates: List[Candidate],
        cancel_event: Optional[asyncio.Event],
    ) -> Optional[List[SearchOutcome]]:
        """후보 검색 (cancel_event가 먼저 설정되면 검색 취소 후 None)"""
        budget = CallBudget(self._settings.request_call_budget)
        search_task = asyncio.ensure_future(self._executor.search_all(candidates, budget))

        if cancel_event is None:
            return await search_task

        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {search_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_task.cancel()
            if not search_task.done():
                search_task.cancel()

        if search_task in done:
            return search_task.result()

        # 취소된 검색 작업이 정리될 때까지 대기
        await asyncio.wait({search_task})
        return None


# 싱글톤 인스턴스
_engine: Optional[ProductDiscoveryEngine] = None


def get_discovery_engine() -> ProductDiscoveryEngine:
    """탐색 엔진 싱글톤 반환"""
    global _engine
    if _engine is None:
        try:
            provider: Optional[SearchProvider] = get_search_client()
        except SearchProviderUnavailable as e:
            logger.warning(f"[Discovery] {e}")
            provider = None
        _engine = ProductDiscoveryEngine(provider)
    return _engine

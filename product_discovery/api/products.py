"""
상품 탐색 엔드포인트
추천 문장에서 상품을 찾아 실제 구매 링크로 반환
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from product_discovery.models.request import DiscoveryRequest
from product_discovery.models.response import CacheStats, DiscoveryResponse
from product_discovery.services.discovery import ProductDiscoveryEngine, get_discovery_engine

logger = logging.getLogger(__name__)

router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.5


class ClearCacheResponse(BaseModel):
    """캐시 삭제 응답"""

    cleared: int = Field(..., description="삭제된 엔트리 수")


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    """클라이언트 연결이 끊기면 cancel_event 설정"""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("[Products] 클라이언트 연결 끊김 - 탐색 취소")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("/products", response_model=DiscoveryResponse)
async def discover_products(
    body: DiscoveryRequest,
    request: Request,
    engine: ProductDiscoveryEngine = Depends(get_discovery_engine),
) -> DiscoveryResponse:
    """
    상품 탐색

    어시스턴트 추천 문장에서 상품 후보를 추출하고 후보별로 구매 링크를 찾습니다.
    - 찾지 못한 후보는 일반 검색 링크로 대체
    - 같은 대화 맥락의 반복 요청은 캐시에서 응답
    - 검색 자격 증명이 없으면 provider_unavailable=True

    Args:
        body: 탐색 요청 (메시지, 추천 문장, 최근 대화)

    Returns:
        DiscoveryResponse: 표시용 상품과 전체 상품
    """
    cancel_event = asyncio.Event()
    watcher = asyncio.ensure_future(_watch_disconnect(request, cancel_event))
    try:
        return await engine.discover(
            message=body.message,
            recommendation_text=body.recommendation_text,
            conversation=body.conversation,
            cancel_event=cancel_event,
        )
    finally:
        watcher.cancel()


@router.get("/products/cache-stats", response_model=CacheStats)
async def get_cache_stats(
    engine: ProductDiscoveryEngine = Depends(get_discovery_engine),
) -> CacheStats:
    """응답 캐시 통계 조회"""
    return await engine.cache.stats()


@router.post("/products/clear-cache", response_model=ClearCacheResponse)
async def clear_cache(
    engine: ProductDiscoveryEngine = Depends(get_discovery_engine),
) -> ClearCacheResponse:
    """응답 캐시 전체 삭제"""
    cleared = await engine.cache.clear()
    logger.info(f"[Products] 캐시 삭제: {cleared}개")
    return ClearCacheResponse(cleared=cleared)

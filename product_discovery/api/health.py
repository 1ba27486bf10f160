"""
헬스체크 엔드포인트
서버 및 검색 제공자 상태 확인
"""
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from product_discovery.config import get_settings
from product_discovery.services.cache import get_cache
from product_discovery.services.trust_table import get_trust_table

router = APIRouter()


class HealthResponse(BaseModel):
    """헬스체크 응답"""

    status: Literal["healthy", "degraded"]
    search_api: Literal["configured", "unconfigured"]
    cached_responses: int
    trusted_domains: int


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    서버 상태 확인

    검색 자격 증명이 없으면 대체 상품도 만들지 않으므로 degraded로 보고합니다.

    Returns:
        HealthResponse: 서버 및 검색 제공자 상태
    """
    settings = get_settings()
    stats = await get_cache().stats()
    table = get_trust_table()

    return HealthResponse(
        status="healthy" if settings.search_configured else "degraded",
        search_api="configured" if settings.search_configured else "unconfigured",
        cached_responses=stats.size,
        trusted_domains=len(table.rules),
    )

"""
응답 모델 정의
API 응답 관련 Pydantic 모델
"""
from typing import List

from pydantic import BaseModel, Field

from product_discovery.models.product import Product


class DiscoveryResponse(BaseModel):
    """상품 탐색 응답 (통합)"""

    products: List[Product] = Field(default_factory=list, description="초기 표시용 상품 (최대 3개)")
    all_products: List[Product] = Field(default_factory=list, description="전체 상품")
    has_products: bool = Field(default=False, description="상품 존재 여부")
    has_more: bool = Field(default=False, description="초기 표시 이후 상품 존재 여부")
    total_found: int = Field(default=0, description="전체 상품 수")

    # 상태
    provider_unavailable: bool = Field(
        default=False, description="검색 제공자 사용 불가 (상품 UI 생략 신호)"
    )
    cancelled: bool = Field(default=False, description="호출자 취소 여부")

    # 메타
    processing_time_ms: int = Field(default=0, description="처리 시간 (밀리초)")
    cached: bool = Field(default=False, description="캐시 히트 여부")

    @classmethod
    def from_products(cls, products: List[Product], display_count: int = 3) -> "DiscoveryResponse":
        """상품 목록으로 응답 생성"""
        return cls(
            products=products[:display_count],
            all_products=products,
            has_products=len(products) > 0,
            has_more=len(products) > display_count,
            total_found=len(products),
        )


class CacheStats(BaseModel):
    """응답 캐시 통계"""

    size: int = Field(..., description="저장된 엔트리 수")
    max_size: int = Field(..., description="최대 엔트리 수")
    hits: int = Field(default=0)
    misses: int = Field(default=0)
    hit_rate: float = Field(default=0.0, description="히트율 (0~1)")
    tokens_saved: int = Field(default=0, description="절약된 토큰 추정치")

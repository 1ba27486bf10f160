"""
검색 결과 모델 정의
검색 제공자 원본 결과와 점수가 매겨진 결과
"""
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field


class ScoreClass(IntEnum):
    """도메인 신뢰도 등급 (값이 곧 점수)"""

    BRAND_OFFICIAL = 100  # 후보 브랜드 공식 사이트
    KNOWN_BRAND = 90  # 다른 의류 브랜드 공식 사이트
    MAJOR_RETAILER = 50  # 대형 리테일러
    MARKETPLACE = 30  # eBay 류 마켓플레이스
    OTHER = 10  # 그 외


class RawHit(BaseModel):
    """검색 제공자가 반환한 결과 한 건"""

    title: str = Field(default="", description="페이지 제목")
    link: str = Field(..., description="페이지 URL")
    snippet: str = Field(default="", description="요약문")
    image_url: str = Field(default="", description="미리보기 이미지 URL")
    host: str = Field(default="", description="호스트 (소문자, www 제거)")
    offer_price: Optional[str] = Field(None, description="페이지 메타데이터의 가격")
    position: int = Field(default=0, description="제공자 응답 내 순서")

    @property
    def text(self) -> str:
        """제목 + 요약 (소문자)"""
        return f"{self.title} {self.snippet}".lower()


class ScoredHit(BaseModel):
    """신뢰도 점수가 매겨진 결과"""

    hit: RawHit
    score: int = Field(..., description="신뢰도 점수")
    score_class: ScoreClass = Field(..., description="신뢰도 등급")

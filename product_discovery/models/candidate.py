"""
후보 모델 정의
추천 문장에서 추출한 상품 후보와 검색 티어 모델
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field


CandidateSource = Literal["structured", "bold", "brand_mention"]


class Candidate(BaseModel):
    """추천 문장에서 추출된 상품 후보"""

    title: str = Field(..., min_length=1, description="상품명 (추천 문장 표기 그대로)")
    price_hint: Optional[str] = Field(None, description="문장에 함께 적힌 가격 (예: '$100')")
    brand_guess: str = Field(default="", description="브랜드 추정값 (소문자, 구두점 제거)")
    source: CandidateSource = Field(default="structured", description="추출 전략")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "title": "Nike Air Force 1",
                "price_hint": "$100",
                "brand_guess": "nike",
                "source": "structured",
            }
        },
    }

    @property
    def brand_slug(self) -> str:
        """브랜드 도메인용 슬러그 (공백 제거)"""
        return self.brand_guess.replace(" ", "")


class QueryTier(BaseModel):
    """후보 하나에 대한 검색 시도 전략"""

    query: str = Field(..., description="검색 제공자에 보낼 쿼리 문자열")
    priority: int = Field(..., description="우선순위 (높을수록 먼저 시도)")
    label: str = Field(..., description="진단용 티어 이름")
    site: Optional[str] = Field(None, description="site: 제한 도메인 (제한 없으면 None)")

    model_config = {"frozen": True}

"""
상품 모델 정의
호출자에게 반환되는 최종 상품 추천 모델
"""
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


SourceTier = Literal["matched", "fallback"]


class Product(BaseModel):
    """최종 상품 추천 (생성 후 변경 불가)"""

    title: str = Field(..., min_length=1, description="상품명 (추천 문장 표기)")
    link: str = Field(..., description="구매 링크")
    image: str = Field(default="", description="썸네일 이미지 URL")
    price: str = Field(default="", description="표시용 가격 (예: '$100')")
    description: str = Field(default="", description="설명")
    brand: str = Field(default="", description="브랜드명")
    source_tier: SourceTier = Field(..., description="matched: 검색 결과, fallback: 대체 링크")
    matched_tier: Optional[str] = Field(None, description="결과를 찾은 검색 티어 (진단용)")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "title": "Nike Air Force 1",
                "link": "https://www.nike.com/t/air-force-1-07-mens-shoes",
                "image": "https://static.nike.com/a/images/af1.png",
                "price": "$100",
                "description": "The radiance lives on in the Nike Air Force 1 '07.",
                "brand": "Nike",
                "source_tier": "matched",
                "matched_tier": "Brand product page",
            }
        },
    }

    @field_validator("link")
    @classmethod
    def _validate_link(cls, value: str) -> str:
        """http(s) 스킴과 호스트가 있는 URL만 허용"""
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"유효하지 않은 링크: {value!r}")
        return value

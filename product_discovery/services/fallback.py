"""
대체 상품 생성
검색으로 적합한 결과를 찾지 못한 후보에 일반 검색 링크 상품 생성
"""
from typing import Optional
from urllib.parse import quote, urlencode

from product_discovery.config import get_settings
from product_discovery.models.candidate import Candidate
from product_discovery.models.product import Product
from product_discovery.utils.text_parser import display_brand


def build_fallback_link(title: str, base_url: Optional[str] = None) -> str:
    """'{title} men buy online' 검색 링크 생성"""
    base_url = base_url or get_settings().fallback_search_url
    return f"{base_url}?{urlencode({'q': f'{title} men buy online'}, quote_via=quote)}"


def build_fallback_product(candidate: Candidate, base_url: Optional[str] = None) -> Product:
    """
    대체 상품 생성 (source_tier="fallback")

    brand는 소문자 brand_guess가 아니라 상품명 표기 그대로의 브랜드입니다
    ("nike" → "Nike"). 매칭 상품과 같은 표기를 씁니다.
    """
    return Product(
        title=candidate.title,
        link=build_fallback_link(candidate.title, base_url),
        image="",
        price=candidate.price_hint or "",
        description=f"Shop for {candidate.title} online",
        brand=display_brand(candidate.title, candidate.brand_guess),
        source_tier="fallback",
    )

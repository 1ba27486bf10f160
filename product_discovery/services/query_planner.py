"""
쿼리 플래너
후보 하나에 대해 구체적인 것부터 일반적인 것까지 검색 티어 목록 생성
"""
import re
from typing import List, Optional

from product_discovery.config import get_settings
from product_discovery.models.candidate import Candidate, QueryTier
from product_discovery.services.trust_table import DomainTrustTable, get_trust_table

# 티어 우선순위
BRAND_PRODUCT_PRIORITY = 100
BRAND_CATEGORY_PRIORITY = 80
RETAILER_PRIORITY = 60
GENERIC_PRIORITY = 10

# 상품 유형 추출 시 제거하는 수식어
DESCRIPTIVE_STOPWORDS = {
    "men", "mens", "women", "womens", "unisex",
    "leather", "cotton", "wool", "silk", "denim",
    "slim", "regular", "classic", "vintage", "modern",
    "premium", "luxury", "basic", "essential",
}


def _word_token(word: str) -> str:
    """단어 → 소문자 + 구두점 제거 토큰"""
    return re.sub(r"[^\w]", "", word.lower())


def derive_product_type(candidate: Candidate) -> str:
    """
    상품 유형 추출

    상품명에서 브랜드 단어와 수식어를 제거한 나머지 (원문 표기 유지).
    예: "Nike Air Force 1" → "Air Force 1", "Uniqlo Slim Chino Pants" → "Chino Pants"
    """
    words = candidate.title.split()
    brand_token_count = len(candidate.brand_guess.split()) if candidate.brand_guess else 0

    # 브랜드 토큰 수만큼 앞 단어 건너뛰기 ("&" 같이 토큰이 없는 단어는 세지 않음)
    consumed = 0
    index = 0
    while index < len(words) and consumed < brand_token_count:
        if _word_token(words[index]):
            consumed += 1
        index += 1

    remaining = [
        word
        for word in words[index:]
        if _word_token(word) and _word_token(word) not in DESCRIPTIVE_STOPWORDS
    ]
    return " ".join(remaining)


def plan_tiers(
    candidate: Candidate,
    table: Optional[DomainTrustTable] = None,
    max_tiers: Optional[int] = None,
) -> List[QueryTier]:
    """
    검색 티어 생성 (우선순위 내림차순)

    1. 브랜드 공식 사이트 상품 페이지 (100)
    2. 브랜드 공식 사이트 카테고리 페이지 (80)
    3. 대형 리테일러별 site: 검색 (60)
    4. 제한 없는 일반 검색 (10)

    브랜드나 상품 유형을 알 수 없으면 1, 2번은 생략합니다. 티어 수가 max_tiers를
    넘으면 리테일러 티어를 줄이고 마지막 일반 검색 티어는 유지합니다.

    Args:
        candidate: 상품 후보
        table: 도메인 신뢰도 테이블 (리테일러 목록 출처)
        max_tiers: 후보당 최대 티어 수 (없으면 설정값)

    Returns:
        QueryTier 리스트
    """
    table = table or get_trust_table()
    if max_tiers is None:
        max_tiers = get_settings().max_tiers_per_candidate

    product_type = derive_product_type(candidate)
    slug = candidate.brand_slug

    brand_tiers: List[QueryTier] = []
    if slug and product_type:
        brand_domain = f"{slug}.com"
        brand_tiers = [
            QueryTier(
                query=f'site:{brand_domain} "{product_type}" men',
                priority=BRAND_PRODUCT_PRIORITY,
                label="Brand product page",
                site=brand_domain,
            ),
            QueryTier(
                query=f'site:{brand_domain} men "{product_type}"',
                priority=BRAND_CATEGORY_PRIORITY,
                label="Brand category page",
                site=brand_domain,
            ),
        ]

    generic_tier = QueryTier(
        query=f'"{candidate.title}" men buy',
        priority=GENERIC_PRIORITY,
        label="Web search",
    )

    subject = product_type or candidate.title
    retailer_slots = max(0, max_tiers - len(brand_tiers) - 1)
    retailer_tiers = [
        QueryTier(
            query=f'site:{retailer} "{subject}" men',
            priority=RETAILER_PRIORITY,
            label=f"Retailer: {retailer}",
            site=retailer,
        )
        for retailer in table.major_retailers[:retailer_slots]
    ]

    return (brand_tiers + retailer_tiers + [generic_tier])[:max_tiers]

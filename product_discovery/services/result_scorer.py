"""
결과 필터 및 스코어러
검색 결과 중 상거래/관련성 조건을 통과한 것에 신뢰도 점수를 매겨 최상위 1건 선택
"""
import logging
import re
from typing import List, Optional

from product_discovery.models.candidate import Candidate
from product_discovery.models.search import RawHit, ScoredHit
from product_discovery.services.trust_table import DomainTrustTable, get_trust_table
from product_discovery.utils.text_parser import normalize_title

logger = logging.getLogger(__name__)

# 상품 페이지가 아닌 사이트 (영상/소셜/포럼/블로그)
NON_COMMERCE_HOSTS = [
    "youtube.com",
    "youtu.be",
    "reddit.com",
    "instagram.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "tiktok.com",
    "pinterest.com",
    "quora.com",
    "medium.com",
    "substack.com",
    "linkedin.com",
    "tumblr.com",
    "wikipedia.org",
]
NON_COMMERCE_URL_PATTERN = re.compile(r"blog|article|news|review|forum", re.IGNORECASE)

COMMERCE_KEYWORDS_PATTERN = re.compile(
    r"shop|store|buy|product|item|clothing|apparel", re.IGNORECASE
)

EXCLUDED_RETAILERS_PATTERN = re.compile(r"men'?s\s*wearhouse|men\s*wearhouse", re.IGNORECASE)
WOMENS_TITLE_PATTERN = re.compile(
    r"\b(women|womens|women's|ladies|female|girls|girl's|womenswear|ladieswear)\b", re.IGNORECASE
)

HOMEPAGE_PATH_PATTERN = re.compile(r"^/(home|index)(\.[a-z]+)?/?$|^/(home|index)/", re.IGNORECASE)


def _host_in(host: str, domains: List[str]) -> bool:
    """호스트가 도메인 목록(서브도메인 포함)에 속하는지"""
    return any(host == domain or host.endswith("." + domain) for domain in domains)


def _is_homepage_or_category(hit: RawHit) -> bool:
    """홈페이지 또는 카테고리 루트로 보이는지"""
    title = hit.title.lower()
    if "category" in title or "shop all" in title:
        return True

    # scheme://host 이후 경로
    path = re.sub(r"^[a-z]+://[^/?#]*", "", hit.link.strip(), flags=re.IGNORECASE)
    path = re.split(r"[?#]", path, maxsplit=1)[0]
    if path in ("", "/"):
        return True
    if "/category/" in path.lower():
        return True
    return bool(HOMEPAGE_PATH_PATTERN.match(path))


def _is_relevant(candidate: Candidate, hit: RawHit) -> bool:
    """후보 브랜드 또는 상품명 토큰(3자 이상)이 결과에 등장하는지"""
    haystack = f"{hit.text} {hit.host}"
    if candidate.brand_guess and candidate.brand_guess in haystack:
        return True
    if candidate.brand_slug and candidate.brand_slug in hit.host:
        return True

    title_tokens = [re.sub(r"[^\w]", "", word) for word in normalize_title(candidate.title).split()]
    return any(len(token) > 2 and token in haystack for token in title_tokens)


def rejection_reason(
    candidate: Candidate,
    hit: RawHit,
    table: DomainTrustTable,
    site: Optional[str] = None,
) -> Optional[str]:
    """
    결과 거절 사유 (통과하면 None)

    Args:
        candidate: 상품 후보
        hit: 검색 결과
        table: 도메인 신뢰도 테이블
        site: 티어의 site: 제한 도메인 (있으면 해당 도메인 결과만 허용)
    """
    host = hit.host
    if not host or not hit.link.lower().startswith(("http://", "https://")):
        return "invalid_url"
    if table.is_blacklisted(host):
        return "blacklisted"
    if site and not _host_in(host, [site.lower()]):
        return "off_site"
    if _host_in(host, NON_COMMERCE_HOSTS) or NON_COMMERCE_URL_PATTERN.search(hit.link):
        return "non_commerce"
    if EXCLUDED_RETAILERS_PATTERN.search(hit.text):
        return "excluded_retailer"
    if WOMENS_TITLE_PATTERN.search(hit.title):
        return "womens_product"
    if not COMMERCE_KEYWORDS_PATTERN.search(hit.text):
        return "no_commerce_intent"
    if _is_homepage_or_category(hit):
        return "homepage_or_category"
    if not _is_relevant(candidate, hit):
        return "irrelevant"
    return None


def filter_hits(
    candidate: Candidate,
    hits: List[RawHit],
    table: Optional[DomainTrustTable] = None,
    site: Optional[str] = None,
) -> List[RawHit]:
    """필터 통과 결과 목록 (제공자 순서 유지)"""
    table = table or get_trust_table()
    survivors = []
    for hit in hits:
        reason = rejection_reason(candidate, hit, table, site)
        if reason:
            logger.debug(f"[Scorer] 제외 ({reason}): {hit.link}")
            continue
        survivors.append(hit)
    return survivors


def score_hit(candidate: Candidate, hit: RawHit, table: DomainTrustTable) -> ScoredHit:
    """신뢰도 점수 부여 ({brand}.com은 항상 BRAND_OFFICIAL)"""
    score_class = table.classify(hit.host, candidate.brand_slug)
    return ScoredHit(hit=hit, score=int(score_class), score_class=score_class)


def select_best(
    candidate: Candidate,
    hits: List[RawHit],
    table: Optional[DomainTrustTable] = None,
    site: Optional[str] = None,
) -> Optional[ScoredHit]:
    """
    최상위 결과 1건 선택

    필터 통과 결과를 점수 내림차순으로 정렬하고, 동점이면 제공자 순서를 따릅니다.

    Returns:
        ScoredHit 또는 None (통과 결과 없음)
    """
    table = table or get_trust_table()
    survivors = filter_hits(candidate, hits, table, site)
    if not survivors:
        return None

    scored = [score_hit(candidate, hit, table) for hit in survivors]
    scored.sort(key=lambda s: (-s.score, s.hit.position))
    best = scored[0]
    logger.debug(f"[Scorer] 선택: {best.hit.link} (score: {best.score})")
    return best

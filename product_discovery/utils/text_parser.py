"""
텍스트 파싱 유틸리티
어시스턴트 추천 문장에서 상품 후보를 추출

추출 전략 (순서대로 적용):
1. 구조화 마커: "**상품명** - $가격" (가격 힌트 포함, 신뢰도 최고)
2. 굵은 글씨 휴리스틱: 6자 이상이면서 공백 또는 알려진 브랜드를 포함한 **강조** 구간
   (1번이 아무것도 찾지 못했을 때만)
3. 브랜드 언급 스캔: 1, 2번 모두 실패하면 브랜드 목록과 어휘 매칭하여 title=브랜드 후보 생성
"""
import logging
import re
from typing import List, Optional, Sequence, Tuple

from product_discovery.config import get_settings
from product_discovery.models.candidate import Candidate, CandidateSource

logger = logging.getLogger(__name__)

# 기본 브랜드 목록 (BRAND_LIST 환경변수로 교체 가능)
KNOWN_BRANDS: List[str] = [
    "a.p.c.", "abercrombie", "acne studios", "adidas", "aer", "alex mill", "allen edmonds",
    "allsaints", "alo yoga", "ami", "arcteryx", "armani", "away", "balenciaga",
    "banana republic", "banks journal", "beckett simonon", "bellroy", "blundstone",
    "bonobos", "brixton", "buck mason", "burberry", "carhartt", "carhartt wip", "casio",
    "charles tyrwhitt", "club monaco", "coach", "cole haan", "common projects", "converse",
    "cotopaxi", "dr. martens", "everlane", "faherty", "filson", "flint and tinder", "fossil",
    "g.h. bass", "gap", "garrett leight", "gucci", "gymshark", "hamilton", "herschel",
    "huckberry", "indochino", "j.crew", "john elliott", "johnston & murphy", "jungmaven",
    "kith", "koio", "levi's", "lululemon", "magnanni", "marine layer", "mejuri", "miansai",
    "muji", "new balance", "new era", "nike", "oliver cabell", "oliver peoples", "omega",
    "outdoor voices", "outerknown", "patagonia", "persol", "prada", "puma", "rag & bone",
    "ray-ban", "red wing", "reiss", "rhone", "roark", "rvca", "saturdays nyc", "schott",
    "seiko", "shinola", "sperry", "stussy", "suitsupply", "supreme", "tanner goods",
    "taylor stitch", "ten thousand", "the north face", "theory", "thursday boots",
    "timberland", "timex", "tissot", "todd snyder", "topo designs", "under armour", "uniqlo",
    "vans", "veja", "versace", "vuori", "warby parker", "zara",
]

# 추천하지 않을 상품명 (PRODUCT_BLACKLIST 환경변수로 교체 가능, 부분 일치)
BLACKLISTED_PRODUCTS: List[str] = [
    "AllSaints Balfern Leather Biker Jacket",
    "AllSaints Balfern Biker Jacket",
]

# "**상품명** - $100", "**상품명** – 1,200"
STRUCTURED_PATTERN = re.compile(
    r"\*\*([^*\n]+?)\*\*\s*[-–—]\s*\$?\s*(\d[\d,]*(?:\.\d{1,2})?)"
)

# "**강조**" 또는 "__강조__"
BOLD_PATTERN = re.compile(r"\*\*([^*\n]+?)\*\*|__([^_\n]+?)__")

# 여성 상품 제외 (남성 스타일리스트 추천 기준)
WOMENS_KEYWORDS = ["women", "womens", "women's", "ladies", "female", "mom", "high rise", "high-rise"]

MIN_BOLD_LENGTH = 6


def normalize_title(title: str) -> str:
    """상품명 정규화 (소문자, 앞뒤 공백 제거, 연속 공백 축소)"""
    return re.sub(r"\s+", " ", title).strip().lower()


def _tokens(text: str) -> List[str]:
    """소문자 + 구두점 제거 토큰 (빈 토큰 제외)"""
    tokens = []
    for raw in text.lower().split():
        token = re.sub(r"[^\w]", "", raw)
        if token:
            tokens.append(token)
    return tokens


def _brand_token_lists(brands: Sequence[str]) -> List[Tuple[str, ...]]:
    """브랜드 목록을 토큰 튜플로 변환 (긴 브랜드 우선)"""
    token_lists = {tuple(_tokens(brand)) for brand in brands}
    token_lists.discard(())
    return sorted(token_lists, key=len, reverse=True)


def _resolve_brands(brands: Optional[Sequence[str]]) -> Sequence[str]:
    """브랜드 목록 결정 (인자 > 설정 > 기본값)"""
    if brands is not None:
        return brands
    configured = get_settings().brand_list_items
    return configured or KNOWN_BRANDS


def derive_brand_guess(title: str, brands: Optional[Sequence[str]] = None) -> str:
    """
    상품명에서 브랜드 추정

    상품명 앞부분이 알려진 여러 단어 브랜드("new balance" 등)와 일치하면 그 토큰들을,
    아니면 첫 토큰을 사용합니다. 소문자, 구두점 제거.

    Args:
        title: 상품명
        brands: 브랜드 목록 (없으면 설정값 또는 기본 목록)

    Returns:
        브랜드 추정값 (예: "nike", "new balance", "jcrew"), 토큰이 없으면 ""
    """
    title_tokens = _tokens(title)
    if not title_tokens:
        return ""

    for brand_tokens in _brand_token_lists(_resolve_brands(brands)):
        if len(brand_tokens) > 1 and tuple(title_tokens[: len(brand_tokens)]) == brand_tokens:
            return " ".join(brand_tokens)

    return title_tokens[0]


def display_brand(title: str, brand_guess: str) -> str:
    """상품명 표기 그대로의 브랜드 (예: "Nike Air Force 1" → "Nike")"""
    count = len(brand_guess.split())
    words = title.split()
    return " ".join(words[:count]) if count and words else brand_guess


def is_womens_title(title: str) -> bool:
    """여성 상품 표기 여부"""
    lowered = title.lower()
    return any(re.search(rf"\b{re.escape(kw)}\b", lowered) for kw in WOMENS_KEYWORDS)


def is_blacklisted_title(title: str, blacklist: Optional[Sequence[str]] = None) -> bool:
    """제외 상품명 포함 여부 (대소문자/공백 무시)"""
    if blacklist is None:
        blacklist = get_settings().product_blacklist_items or BLACKLISTED_PRODUCTS
    normalized = normalize_title(title)
    return any(normalize_title(name) in normalized for name in blacklist if name.strip())


def _clean_span(text: str) -> str:
    """강조 구간 정리 (공백 정리, 끝 구두점 제거)"""
    return re.sub(r"\s+", " ", text).strip().strip(",;")


def extract_structured(text: str) -> List[Tuple[str, str]]:
    """
    구조화 마커 추출

    Returns:
        (상품명, 가격 힌트) 리스트. 가격 힌트는 "$100" 형식
    """
    results = []
    for match in STRUCTURED_PATTERN.finditer(text):
        title = _clean_span(match.group(1))
        if title:
            results.append((title, f"${match.group(2)}"))
    return results


def extract_bold(text: str, brands: Optional[Sequence[str]] = None) -> List[str]:
    """굵은 글씨 휴리스틱 추출"""
    brand_tokens = {token for brand in _resolve_brands(brands) for token in _tokens(brand)}

    results = []
    for match in BOLD_PATTERN.finditer(text):
        span = _clean_span(match.group(1) or match.group(2) or "")
        # "**Why I love these:**" 같은 라벨 제외
        if len(span) < MIN_BOLD_LENGTH or span.endswith((":", "?")):
            continue
        if " " in span or any(token in brand_tokens for token in _tokens(span)):
            results.append(span)
    return results


def extract_brand_mentions(text: str, brands: Optional[Sequence[str]] = None) -> List[str]:
    """
    브랜드 언급 스캔

    Returns:
        원문 표기 그대로의 브랜드 리스트 (등장 순서)
    """
    found: List[Tuple[int, str]] = []
    taken: List[Tuple[int, int]] = []

    # 긴 브랜드부터 매칭하여 "carhartt wip" 안의 "carhartt" 중복 방지
    for brand in sorted(set(_resolve_brands(brands)), key=len, reverse=True):
        pattern = re.compile(rf"(?<!\w){re.escape(brand)}(?!\w)", re.IGNORECASE)
        match = pattern.search(text)
        if not match:
            continue
        start, end = match.span()
        if any(start < t_end and t_start < end for t_start, t_end in taken):
            continue
        taken.append((start, end))
        found.append((start, match.group(0)))

    return [mention for _, mention in sorted(found)]


def extract_candidates(
    text: str,
    brands: Optional[Sequence[str]] = None,
    max_candidates: Optional[int] = None,
    blacklist: Optional[Sequence[str]] = None,
) -> List[Candidate]:
    """
    추천 문장에서 상품 후보 추출

    예외를 발생시키지 않으며, 아무것도 찾지 못하면 빈 리스트를 반환합니다.

    Args:
        text: 추천 문장 원문
        brands: 브랜드 목록 (없으면 설정값 또는 기본 목록)
        max_candidates: 최대 후보 수 (없으면 설정값)
        blacklist: 제외 상품명 목록 (없으면 설정값 또는 기본 목록)

    Returns:
        추출 순서가 유지된 Candidate 리스트
    """
    if not text or not text.strip():
        return []

    brands = _resolve_brands(brands)
    settings = get_settings()
    if max_candidates is None:
        max_candidates = settings.max_candidates
    if blacklist is None:
        blacklist = settings.product_blacklist_items or BLACKLISTED_PRODUCTS

    raw: List[Tuple[str, Optional[str], CandidateSource]] = [
        (title, price, "structured") for title, price in extract_structured(text)
    ]
    if not raw:
        raw = [(title, None, "bold") for title in extract_bold(text, brands)]
    if not raw:
        raw = [(title, None, "brand_mention") for title in extract_brand_mentions(text, brands)]

    candidates: List[Candidate] = []
    seen = set()
    for title, price, source in raw:
        key = normalize_title(title)
        if key in seen or is_womens_title(title):
            continue
        if is_blacklisted_title(title, blacklist):
            logger.info(f"[Extractor] 제외 상품: '{title}'")
            continue
        seen.add(key)
        candidates.append(
            Candidate(
                title=title,
                price_hint=price,
                brand_guess=derive_brand_guess(title, brands),
                source=source,
            )
        )

    return candidates[:max_candidates]

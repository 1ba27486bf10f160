"""
pytest 공통 fixture
"""
import asyncio
from typing import Callable, Dict, List, Optional, Union

import pytest
from fastapi.testclient import TestClient

from product_discovery.config import get_settings
from product_discovery.models.search import RawHit
from product_discovery.services.cache import InMemoryResponseCache
from product_discovery.services.google_search import SearchProvider
from product_discovery.services.trust_table import DomainTrustTable, normalize_host, reset_trust_table

Response = Union[List[RawHit], Exception]


def make_hit(title: str, link: str, snippet: str = "", position: int = 0, **kwargs) -> RawHit:
    """테스트용 검색 결과 생성"""
    return RawHit(
        title=title,
        link=link,
        snippet=snippet,
        host=normalize_host(link),
        position=position,
        **kwargs,
    )


class FakeSearchProvider(SearchProvider):
    """
    테스트용 검색 제공자

    responder(query)가 RawHit 리스트를 반환하면 그대로 돌려주고,
    예외를 반환하면 raise합니다. 호출된 쿼리는 calls에 기록합니다.
    """

    def __init__(
        self,
        responder: Optional[Callable[[str], Response]] = None,
        delay: float = 0.0,
    ) -> None:
        self.responder = responder or (lambda query: [])
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def search(self, query: str, result_count: int = 6) -> List[RawHit]:
        self.calls.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            result = self.responder(query)
        finally:
            self.in_flight -= 1
        if isinstance(result, Exception):
            raise result
        return result


def routed(routes: Dict[str, Response], default: Optional[Response] = None) -> Callable[[str], Response]:
    """쿼리에 포함된 문자열로 응답을 고르는 responder (먼저 일치한 항목 우선)"""

    def _responder(query: str) -> Response:
        for needle, response in routes.items():
            if needle in query:
                return response
        return default if default is not None else []

    return _responder


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """테스트마다 설정/신뢰도 테이블 초기화 (.env 및 실제 자격 증명 무시)"""
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    monkeypatch.setenv("GOOGLE_CSE_ID", "")
    monkeypatch.setenv("TRUST_TABLE_PATH", "")
    monkeypatch.setenv("BRAND_LIST", "")
    monkeypatch.setenv("PRODUCT_BLACKLIST", "")
    get_settings.cache_clear()
    reset_trust_table()
    yield
    get_settings.cache_clear()
    reset_trust_table()


@pytest.fixture
def trust_table():
    """내장 기본 신뢰도 테이블"""
    return DomainTrustTable.default()


@pytest.fixture
def cache():
    """테스트용 인메모리 캐시"""
    return InMemoryResponseCache(ttl_seconds=3600, max_size=100)


@pytest.fixture
def fake_provider_factory():
    """FakeSearchProvider 생성 함수"""
    return FakeSearchProvider


@pytest.fixture
def hit_factory():
    """RawHit 생성 함수"""
    return make_hit


@pytest.fixture
def route():
    """쿼리 라우팅 responder 생성 함수"""
    return routed


@pytest.fixture
def nike_hit():
    """nike.com 상품 페이지 결과"""
    return make_hit(
        title="Nike Air Force 1 '07 Men's Shoes",
        link="https://www.nike.com/t/air-force-1-07-mens-shoes-jBrhbr",
        snippet="Shop the Nike Air Force 1 '07 men's shoes. Free shipping on orders.",
        image_url="https://static.nike.com/a/images/af1.png",
    )


@pytest.fixture
def amazon_nike_hit():
    """amazon.com의 같은 상품 결과"""
    return make_hit(
        title="Nike Men's Air Force 1 '07 Sneaker",
        link="https://www.amazon.com/Nike-Mens-Force-Sneaker/dp/B07QXLFLXT",
        snippet="Buy Nike Men's Air Force 1 '07 and other fashion sneakers at Amazon.com.",
    )


@pytest.fixture
def sample_structured_text():
    """구조화 마커 추천 문장"""
    return (
        "Here's what I'd wear with those chinos:\n\n"
        "**Nike Air Force 1** - $100\n"
        "- Why I love these: clean, classic, goes with everything\n\n"
        "**Uniqlo Oxford Shirt** - $39.90\n"
        "- Why I love these: crisp and cheap\n"
    )


@pytest.fixture
def sample_bold_text():
    """가격 없이 굵은 글씨만 있는 추천 문장"""
    return (
        "Try a pair of **Red Wing Iron Ranger** boots with a **Patagonia Better Sweater**. "
        "**Why it works:** both age well."
    )


@pytest.fixture
def sample_brand_text():
    """굵은 글씨 없이 브랜드만 언급한 추천 문장"""
    return "Honestly you can't go wrong with something from Carhartt WIP or New Balance."


@pytest.fixture
def client():
    """테스트 클라이언트"""
    from product_discovery.main import app

    return TestClient(app)

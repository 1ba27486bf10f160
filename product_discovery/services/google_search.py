"""
Google Custom Search API 클라이언트
검색 제공자 추상화와 구현
"""
import html
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from product_discovery.config import get_settings
from product_discovery.models.search import RawHit
from product_discovery.services.trust_table import normalize_host


class SearchProviderError(Exception):
    """검색 제공자 에러 (티어 단위 실패)"""

    pass


class SearchRateLimitError(SearchProviderError):
    """검색 API 호출 한도 초과"""

    pass


class SearchProviderUnreachable(SearchProviderError):
    """검색 API 서버 연결 실패 (네트워크 단절)"""

    pass


class SearchProviderUnavailable(SearchProviderError):
    """검색 제공자 사용 불가 (자격 증명 없음)"""

    pass


class SearchProvider(ABC):
    """검색 제공자 추상 기본 클래스"""

    @abstractmethod
    async def search(self, query: str, result_count: int) -> List[RawHit]:
        """
        검색 실행

        Raises:
            SearchProviderError: 네트워크 오류, 2xx 이외 응답, 잘못된 응답 형식
        """
        pass


class GoogleSearchClient(SearchProvider):
    """Google Custom Search JSON API 클라이언트"""

    BASE_URL = "https://www.googleapis.com/customsearch/v1"
    MAX_RESULTS = 10  # API 1회 최대 결과 수

    def __init__(
        self,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.google_api_key
        self._engine_id = engine_id if engine_id is not None else settings.google_cse_id
        self._timeout = settings.search_timeout_seconds
        self._safe = settings.search_safe
        self._transport = transport

        if not self._api_key or not self._engine_id:
            raise SearchProviderUnavailable("GOOGLE_API_KEY와 GOOGLE_CSE_ID가 필요합니다")

    @staticmethod
    def _clean_html(text: str) -> str:
        """HTML 태그 및 엔티티 제거"""
        # HTML 태그 제거
        clean = re.sub(r"<[^>]+>", "", text)
        # HTML 엔티티 디코딩
        clean = html.unescape(clean)
        return clean.strip()

    @staticmethod
    def _first_pagemap_value(pagemap: Any, section: str, key: str) -> str:
        """pagemap.{section}[0].{key} 안전 조회"""
        if not isinstance(pagemap, dict):
            return ""
        entries = pagemap.get(section)
        if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
            return ""
        value = entries[0].get(key)
        return str(value) if value else ""

    def _parse_hit(self, item: Any, position: int) -> Optional[RawHit]:
        """API 응답 항목을 RawHit로 변환 (링크 없는 항목은 None)"""
        if not isinstance(item, dict):
            return None

        link = str(item.get("link") or "").strip()
        if not link:
            return None

        pagemap = item.get("pagemap")
        return RawHit(
            title=self._clean_html(str(item.get("title") or "")),
            link=link,
            snippet=self._clean_html(str(item.get("snippet") or "")),
            image_url=self._first_pagemap_value(pagemap, "cse_image", "src"),
            host=normalize_host(link),
            offer_price=self._first_pagemap_value(pagemap, "offer", "price") or None,
            position=position,
        )

    @retry(
        retry=retry_if_exception_type(SearchRateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def search(self, query: str, result_count: int = 6) -> List[RawHit]:
        """
        웹 검색

        Args:
            query: 검색어 (site: 연산자 포함 가능)
            result_count: 결과 개수 (최대 10)

        Returns:
            제공자 순서가 유지된 RawHit 리스트
        """
        params = {
            "key": self._api_key,
            "cx": self._engine_id,
            "q": query,
            "num": max(1, min(result_count, self.MAX_RESULTS)),
            "safe": self._safe,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self.BASE_URL, params=params)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise SearchProviderUnreachable(f"연결 실패: {e}") from e
        except httpx.HTTPError as e:
            raise SearchProviderError(f"네트워크 오류: {e}") from e

        if response.status_code == 429:
            raise SearchRateLimitError("API 호출 한도 초과")
        elif response.status_code in (401, 403):
            raise SearchProviderError(f"API 인증 실패: {response.status_code}")
        elif not 200 <= response.status_code < 300:
            raise SearchProviderError(f"API 오류: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise SearchProviderError("잘못된 응답 형식 (JSON 아님)") from e

        if not isinstance(data, dict):
            raise SearchProviderError("잘못된 응답 형식")

        items = data.get("items", [])
        if not isinstance(items, list):
            raise SearchProviderError("잘못된 응답 형식 (items)")

        hits: List[RawHit] = []
        for position, item in enumerate(items):
            hit = self._parse_hit(item, position)
            if hit is not None:
                hits.append(hit)

        return hits


# 싱글톤 인스턴스
_search_client: Optional[GoogleSearchClient] = None


def get_search_client() -> GoogleSearchClient:
    """
    검색 클라이언트 싱글톤 반환

    Raises:
        SearchProviderUnavailable: 자격 증명 미설정
    """
    global _search_client
    if _search_client is None:
        _search_client = GoogleSearchClient()
    return _search_client

"""
환경변수 설정 모듈
Pydantic Settings를 사용하여 환경변수를 관리합니다.
모든 설정은 .env 파일에서 가져옵니다.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========== 검색 제공자 (Google Custom Search) 설정 ==========
    google_api_key: str = ""
    google_cse_id: str = ""
    search_timeout_seconds: float = 6.0
    search_result_count: int = 6
    search_safe: str = "active"

    @property
    def search_configured(self) -> bool:
        """검색 API 자격 증명 설정 여부"""
        return bool(self.google_api_key and self.google_cse_id)

    # ========== 탐색 파이프라인 설정 ==========
    max_candidates: int = 5
    max_tiers_per_candidate: int = 5
    max_concurrent_candidates: int = 3
    request_call_budget: int = 12
    initial_display_count: int = 3
    fallback_search_url: str = "https://www.google.com/search"

    # 브랜드 언급 스캔용 브랜드 목록 (쉼표 구분, 비어 있으면 기본 목록 사용)
    brand_list: str = ""

    @property
    def brand_list_items(self) -> List[str]:
        """브랜드 목록을 리스트로 변환"""
        return [brand.strip() for brand in self.brand_list.split(",") if brand.strip()]

    # 추천에서 제외할 상품명 목록 (쉼표 구분, 비어 있으면 기본 목록 사용)
    product_blacklist: str = ""

    @property
    def product_blacklist_items(self) -> List[str]:
        """제외 상품명 목록을 리스트로 변환"""
        return [name.strip() for name in self.product_blacklist.split(",") if name.strip()]

    # 도메인 신뢰도 테이블 JSON 경로 (비어 있으면 내장 테이블 사용)
    trust_table_path: Optional[str] = None

    # ========== 응답 캐시 설정 ==========
    cache_ttl_seconds: int = 86400
    cache_max_size: int = 1000
    cache_context_turns: int = 3

    # ========== 서버 설정 ==========
    api_host: str = ""
    port: int = 8000
    debug: bool = False

    @property
    def server_port(self) -> int:
        """Railway PORT 환경변수 우선 사용"""
        return self.port

    # ========== CORS 설정 ==========
    cors_origins: str = ""

    @property
    def cors_origins_list(self) -> List[str]:
        """CORS origins를 리스트로 변환"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """캐싱된 설정 인스턴스 반환"""
    return Settings()

"""
FastAPI 메인 애플리케이션
상품 탐색 및 랭킹 엔진 백엔드
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from product_discovery.api import health, products
from product_discovery.config import get_settings
from product_discovery.services.trust_table import get_trust_table


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """애플리케이션 생명주기 관리"""
    settings = get_settings()
    print("🔎 Product Discovery 서버 시작")

    if settings.search_configured:
        print("✅ Google Custom Search 설정됨")
    else:
        print("⚠️ GOOGLE_API_KEY/GOOGLE_CSE_ID 미설정 (상품 탐색 비활성)")

    table = get_trust_table()
    print(f"✅ 도메인 신뢰도 테이블 로드 ({len(table.rules)}개 규칙)")

    yield

    print("🔎 Product Discovery 서버 종료")


def create_app() -> FastAPI:
    """FastAPI 앱 팩토리"""
    settings = get_settings()

    app = FastAPI(
        title="Product Discovery & Ranking Engine",
        description="추천 문장 속 상품을 신뢰할 수 있는 구매 링크로 연결하는 API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # CORS 설정
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(products.router, prefix="/api", tags=["Products"])

    # Docker healthcheck용 루트 레벨 헬스체크
    @app.get("/health")
    async def root_health():
        return {"status": "ok"}

    return app


# 앱 인스턴스
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "product_discovery.main:app",
        host=settings.api_host,
        port=settings.server_port,
        reload=settings.debug,
    )

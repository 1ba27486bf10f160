"""
검색 실행기
후보별 티어를 순서대로 시도하고, 여러 후보는 제한된 동시성으로 병렬 실행

후보 하나의 상태 전이:
    PENDING → TIER_ATTEMPT(n) → ACCEPTED | TIER_ATTEMPT(n+1) | EXHAUSTED
    ACCEPTED → (중복 제거 통과 시) MATCHED
    EXHAUSTED 또는 중복으로 밀려난 ACCEPTED → (대체 상품 생성 시) FALLBACK
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import httpx

from product_discovery.config import get_settings
from product_discovery.models.candidate import Candidate, QueryTier
from product_discovery.models.product import Product
from product_discovery.models.search import ScoredHit
from product_discovery.services.google_search import (
    SearchProvider,
    SearchProviderError,
    SearchProviderUnreachable,
)
from product_discovery.services.query_planner import plan_tiers
from product_discovery.services.result_scorer import select_best
from product_discovery.services.trust_table import DomainTrustTable, get_trust_table
from product_discovery.utils.text_parser import display_brand

logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    """후보 검색 상태"""

    PENDING = "pending"
    TIER_ATTEMPT = "tier_attempt"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"
    MATCHED = "matched"
    FALLBACK = "fallback"


class CallBudget:
    """요청 단위 외부 호출 예산 (모든 후보가 공유)"""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self._used = 0

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self._used)

    def try_acquire(self) -> bool:
        """호출 1회 예약 (예산 소진 시 False)"""
        # 단일 이벤트 루프에서 await 없이 실행되므로 락 불필요
        if self._used >= self.limit:
            return False
        self._used += 1
        return True


@dataclass
class TierAttempt:
    """티어 시도 기록 (진단용)"""

    label: str
    query: str
    status: str  # accepted | no_match | error | timeout | unreachable
    hit_count: int = 0
    error: Optional[str] = None


@dataclass
class SearchOutcome:
    """후보 하나의 검색 결과"""

    candidate: Candidate
    state: SearchState
    product: Optional[Product] = None
    matched_tier: Optional[str] = None
    attempts: List[TierAttempt] = field(default_factory=list)

    @property
    def provider_calls(self) -> int:
        return len(self.attempts)

    @property
    def successful_calls(self) -> int:
        """제공자가 정상 응답한 호출 수"""
        return sum(1 for a in self.attempts if a.status in ("accepted", "no_match"))


def all_unreachable(outcomes: Sequence[SearchOutcome]) -> bool:
    """
    요청 전체의 제공자 호출이 모두 연결 실패였는지

    호출 예산 소진으로 한 번도 호출하지 못한 후보는 판단에서 제외합니다.
    """
    attempts = [a for o in outcomes for a in o.attempts]
    return bool(attempts) and all(a.status == "unreachable" for a in attempts)


def build_matched_product(candidate: Candidate, scored: ScoredHit, tier: QueryTier) -> Product:
    """선택된 결과를 상품으로 변환 (상품명/가격은 추천 문장 표기 우선)"""
    hit = scored.hit
    return Product(
        title=candidate.title,
        link=hit.link,
        image=hit.image_url,
        price=candidate.price_hint or hit.offer_price or "",
        description=hit.snippet,
        brand=display_brand(candidate.title, candidate.brand_guess),
        source_tier="matched",
        matched_tier=tier.label,
    )


class CandidateSearch:
    """후보 하나에 대한 티어 순차 검색 상태 머신"""

    def __init__(
        self,
        candidate: Candidate,
        tiers: Sequence[QueryTier],
        provider: SearchProvider,
        budget: CallBudget,
        table: DomainTrustTable,
        max_tiers: int,
        timeout_seconds: float,
        result_count: int,
    ) -> None:
        self.candidate = candidate
        # 우선순위 내림차순 (같은 우선순위는 계획 순서 유지)
        self.tiers = sorted(tiers, key=lambda t: -t.priority)[:max_tiers]
        self.state = SearchState.PENDING
        self._provider = provider
        self._budget = budget
        self._table = table
        self._timeout = timeout_seconds
        self._result_count = result_count
        self._attempts: List[TierAttempt] = []

    async def run(self) -> SearchOutcome:
        """티어를 순서대로 시도하여 첫 번째로 채택된 결과 반환"""
        for tier in self.tiers:
            if not self._budget.try_acquire():
                logger.warning(
                    f"[Executor] 호출 예산 소진 - '{self.candidate.title}' 남은 티어 생략"
                )
                break

            self.state = SearchState.TIER_ATTEMPT
            best = await self._attempt(tier)

            if best is not None:
                # MATCHED 전이는 중복 제거 후 상품 조립 단계에서
                self.state = SearchState.ACCEPTED
                product = build_matched_product(self.candidate, best, tier)
                logger.info(
                    f"[Executor] 매칭: '{self.candidate.title}' → {product.link} "
                    f"({tier.label}, score: {best.score})"
                )
                return SearchOutcome(
                    candidate=self.candidate,
                    state=self.state,
                    product=product,
                    matched_tier=tier.label,
                    attempts=self._attempts,
                )

        self.state = SearchState.EXHAUSTED
        logger.info(
            f"[Executor] 결과 없음: '{self.candidate.title}' ({len(self._attempts)}개 티어 시도)"
        )
        return SearchOutcome(candidate=self.candidate, state=self.state, attempts=self._attempts)

    async def _attempt(self, tier: QueryTier) -> Optional[ScoredHit]:
        """티어 1회 시도 (실패는 기록만 하고 None 반환)"""
        attempt = TierAttempt(label=tier.label, query=tier.query, status="no_match")
        self._attempts.append(attempt)

        try:
            hits = await asyncio.wait_for(
                self._provider.search(tier.query, self._result_count),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            attempt.status = "timeout"
            logger.warning(f"[Executor] 시간 초과: {tier.label} - {tier.query}")
            return None
        except (SearchProviderUnreachable, httpx.ConnectError, httpx.ConnectTimeout) as e:
            attempt.status = "unreachable"
            attempt.error = str(e)
            logger.warning(f"[Executor] 검색 서버 연결 실패: {tier.label} - {e}")
            return None
        except (SearchProviderError, httpx.HTTPError) as e:
            attempt.status = "error"
            attempt.error = str(e)
            logger.warning(f"[Executor] 검색 실패: {tier.label} - {e}")
            return None
        except Exception as e:
            attempt.status = "error"
            attempt.error = str(e)
            logger.error(f"[Executor] 검색 중 예기치 않은 오류: {tier.label} - {e}", exc_info=True)
            return None

        attempt.hit_count = len(hits)
        best = select_best(self.candidate, hits, self._table, site=tier.site)
        if best is None:
            logger.info(f"[Executor] 적합한 결과 없음: {tier.label} ({len(hits)}개 중 0개 통과)")
            return None

        attempt.status = "accepted"
        return best


class SearchExecutor:
    """후보 목록 검색 실행기"""

    def __init__(
        self,
        provider: SearchProvider,
        table: Optional[DomainTrustTable] = None,
        max_concurrency: Optional[int] = None,
        max_tiers: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        result_count: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider
        self._table = table
        self._max_concurrency = max_concurrency or settings.max_concurrent_candidates
        self._max_tiers = max_tiers or settings.max_tiers_per_candidate
        self._timeout = timeout_seconds or settings.search_timeout_seconds
        self._result_count = result_count or settings.search_result_count

    @property
    def table(self) -> DomainTrustTable:
        # 매 요청마다 조회하여 테이블 핫 리로드 반영
        return self._table or get_trust_table()

    async def search_candidate(
        self,
        candidate: Candidate,
        tiers: Sequence[QueryTier],
        budget: CallBudget,
        table: Optional[DomainTrustTable] = None,
    ) -> SearchOutcome:
        """후보 하나 검색"""
        search = CandidateSearch(
            candidate=candidate,
            tiers=tiers,
            provider=self._provider,
            budget=budget,
            table=table or self.table,
            max_tiers=self._max_tiers,
            timeout_seconds=self._timeout,
            result_count=self._result_count,
        )
        return await search.run()

    async def search_all(
        self,
        candidates: Sequence[Candidate],
        budget: Optional[CallBudget] = None,
    ) -> List[SearchOutcome]:
        """
        후보 목록 병렬 검색 (동시 실행 수 제한)

        Returns:
            후보 추출 순서와 같은 순서의 SearchOutcome 리스트
        """
        budget = budget or CallBudget(get_settings().request_call_budget)
        table = self.table
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(candidate: Candidate) -> SearchOutcome:
            async with semaphore:
                try:
                    tiers = plan_tiers(candidate, table, self._max_tiers)
                    return await self.search_candidate(candidate, tiers, budget, table)
                except Exception as e:
                    logger.error(f"[Executor] 후보 검색 오류: '{candidate.title}' - {e}", exc_info=True)
                    return SearchOutcome(candidate=candidate, state=SearchState.EXHAUSTED)

        logger.info(
            f"[Executor] 시작 - 후보 {len(candidates)}개, 동시 {self._max_concurrency}, "
            f"예산 {budget.limit}"
        )
        # gather는 입력 순서대로 결과를 반환
        return list(await asyncio.gather(*(_bounded(c) for c in candidates)))

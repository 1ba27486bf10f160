"""
도메인 신뢰도 테이블
호스트 패턴 → 신뢰도 등급 매핑과 블랙리스트

테이블은 순수 설정 데이터입니다. TRUST_TABLE_PATH에 JSON 파일을 지정하면
파일 수정 시각이 바뀔 때마다 다시 읽어 들입니다 (재배포 불필요).

JSON 형식:
    {
      "rules": [{"pattern": "nike.com", "class": "KNOWN_BRAND"}, ...],
      "blacklist": ["indeed.com", ".edu", ...]
    }
"""
import json
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from product_discovery.config import get_settings
from product_discovery.models.search import ScoreClass

logger = logging.getLogger(__name__)


# 기본 테이블 (순서대로 첫 매칭 적용)
DEFAULT_RULES: List[Tuple[str, ScoreClass]] = [
    # 의류 브랜드 공식 사이트
    ("uniqlo.com", ScoreClass.KNOWN_BRAND),
    ("gap.com", ScoreClass.KNOWN_BRAND),
    ("bananarepublic.com", ScoreClass.KNOWN_BRAND),
    ("oldnavy.com", ScoreClass.KNOWN_BRAND),
    ("hm.com", ScoreClass.KNOWN_BRAND),
    ("zara.com", ScoreClass.KNOWN_BRAND),
    ("nike.com", ScoreClass.KNOWN_BRAND),
    ("adidas.com", ScoreClass.KNOWN_BRAND),
    ("puma.com", ScoreClass.KNOWN_BRAND),
    ("newbalance.com", ScoreClass.KNOWN_BRAND),
    ("allsaints.com", ScoreClass.KNOWN_BRAND),
    ("schottnyc.com", ScoreClass.KNOWN_BRAND),
    ("jcrew.com", ScoreClass.KNOWN_BRAND),
    ("levi.com", ScoreClass.KNOWN_BRAND),
    ("everlane.com", ScoreClass.KNOWN_BRAND),
    ("bonobos.com", ScoreClass.KNOWN_BRAND),
    ("patagonia.com", ScoreClass.KNOWN_BRAND),
    ("lululemon.com", ScoreClass.KNOWN_BRAND),
    ("vans.com", ScoreClass.KNOWN_BRAND),
    ("converse.com", ScoreClass.KNOWN_BRAND),
    ("redwingshoes.com", ScoreClass.KNOWN_BRAND),
    ("thursdayboots.com", ScoreClass.KNOWN_BRAND),
    ("suitsupply.com", ScoreClass.KNOWN_BRAND),
    ("ralphlauren.com", ScoreClass.KNOWN_BRAND),
    # 대형 리테일러 (쿼리 플래너가 이 순서대로 사용)
    ("amazon.com", ScoreClass.MAJOR_RETAILER),
    ("target.com", ScoreClass.MAJOR_RETAILER),
    ("walmart.com", ScoreClass.MAJOR_RETAILER),
    ("macys.com", ScoreClass.MAJOR_RETAILER),
    ("nordstrom.com", ScoreClass.MAJOR_RETAILER),
    ("zappos.com", ScoreClass.MAJOR_RETAILER),
    ("dickssportinggoods.com", ScoreClass.MAJOR_RETAILER),
    ("bloomingdales.com", ScoreClass.MAJOR_RETAILER),
    # 마켓플레이스
    ("ebay.com", ScoreClass.MARKETPLACE),
    ("poshmark.com", ScoreClass.MARKETPLACE),
    ("grailed.com", ScoreClass.MARKETPLACE),
    ("etsy.com", ScoreClass.MARKETPLACE),
    ("mercari.com", ScoreClass.MARKETPLACE),
    ("depop.com", ScoreClass.MARKETPLACE),
]

DEFAULT_BLACKLIST: List[str] = [
    "commaction.org",
    "sarkujapan.com",
    "parkavenuetavern.com",
    "realendpoints.com",
    "codrington.edu.bb",
    "fixmedical.com",
    "hscct.org",
    "greensafaris.com",
    "kulanjobs.com",
    "ihrcworld.org",
    # 구인 사이트
    "jobs.com",
    "indeed.com",
    "linkedin.com",
    "glassdoor.com",
    "monster.com",
    "careerbuilder.com",
    # 교육/비영리
    ".edu",
    ".org",
    # 소셜 미디어
    "pinterest.com",
    "instagram.com",
    "facebook.com",
    "twitter.com",
    "reddit.com",
    "youtube.com",
    "tiktok.com",
]


def normalize_host(url: str) -> str:
    """URL에서 호스트 추출 (소문자, 포트와 www. 제거)"""
    try:
        host = urlparse(url.strip()).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def _host_matches(host: str, pattern: str) -> bool:
    """호스트 패턴 매칭 (정확히 일치, 서브도메인, '.'으로 시작하면 접미사)"""
    if pattern.startswith("."):
        return host.endswith(pattern)
    return host == pattern or host.endswith("." + pattern)


@dataclass(frozen=True)
class TrustRule:
    """호스트 패턴 규칙"""

    pattern: str
    score_class: ScoreClass


@dataclass
class DomainTrustTable:
    """도메인 신뢰도 테이블"""

    rules: List[TrustRule] = field(default_factory=list)
    blacklist: List[str] = field(default_factory=list)

    @classmethod
    def default(cls) -> "DomainTrustTable":
        """내장 기본 테이블"""
        return cls(
            rules=[TrustRule(pattern, score_class) for pattern, score_class in DEFAULT_RULES],
            blacklist=list(DEFAULT_BLACKLIST),
        )

    @classmethod
    def from_dict(cls, data: Dict) -> "DomainTrustTable":
        """
        dict(JSON)에서 테이블 생성

        Raises:
            ValueError: 형식 오류 또는 알 수 없는 등급 이름
        """
        if not isinstance(data, dict):
            raise ValueError("신뢰도 테이블은 JSON 객체여야 합니다")

        rules: List[TrustRule] = []
        for item in data.get("rules", []):
            try:
                pattern = str(item["pattern"]).lower().strip()
                score_class = ScoreClass[str(item["class"]).upper()]
            except (KeyError, TypeError) as e:
                raise ValueError(f"잘못된 규칙: {item!r}") from e
            rules.append(TrustRule(pattern, score_class))

        blacklist = [str(p).lower().strip() for p in data.get("blacklist", []) if str(p).strip()]
        return cls(rules=rules, blacklist=blacklist)

    def is_blacklisted(self, host: str) -> bool:
        """블랙리스트 여부"""
        return any(_host_matches(host, pattern) for pattern in self.blacklist)

    def classify(self, host: str, brand_slug: Optional[str] = None) -> ScoreClass:
        """
        호스트의 신뢰도 등급 조회

        후보 브랜드의 {brand_slug}.com은 테이블과 무관하게 BRAND_OFFICIAL입니다.
        """
        if brand_slug and host == f"{brand_slug}.com":
            return ScoreClass.BRAND_OFFICIAL

        for rule in self.rules:
            if _host_matches(host, rule.pattern):
                return rule.score_class

        return ScoreClass.OTHER

    def domains_for(self, score_class: ScoreClass) -> List[str]:
        """특정 등급의 도메인 목록 (테이블 순서 유지)"""
        return [
            rule.pattern
            for rule in self.rules
            if rule.score_class == score_class and not rule.pattern.startswith(".")
        ]

    @property
    def major_retailers(self) -> List[str]:
        """대형 리테일러 도메인 목록"""
        return self.domains_for(ScoreClass.MAJOR_RETAILER)


class TrustTableStore:
    """파일 기반 테이블 핫 리로드 저장소"""

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path
        self._mtime: Optional[float] = None
        self._table = DomainTrustTable.default()
        self._lock = threading.Lock()

    def current(self) -> DomainTrustTable:
        """현재 테이블 반환 (파일이 바뀌었으면 다시 로드)"""
        if not self._path:
            return self._table

        try:
            mtime = os.path.getmtime(self._path)
        except OSError as e:
            logger.warning(f"[TrustTable] 테이블 파일 접근 실패, 기존 테이블 유지: {e}")
            return self._table

        with self._lock:
            if mtime != self._mtime:
                self._reload(mtime)
            return self._table

    def _reload(self, mtime: float) -> None:
        """테이블 파일 다시 읽기 (실패 시 기존 테이블 유지)"""
        try:
            with open(self._path, encoding="utf-8") as f:
                table = DomainTrustTable.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            logger.error(f"[TrustTable] 테이블 로드 실패 ({self._path}): {e}")
            self._mtime = mtime
            return

        self._table = table
        self._mtime = mtime
        logger.info(
            f"[TrustTable] 테이블 로드 완료: 규칙 {len(table.rules)}개, "
            f"블랙리스트 {len(table.blacklist)}개"
        )


# 싱글톤 인스턴스
_store: Optional[TrustTableStore] = None


def get_trust_table() -> DomainTrustTable:
    """현재 신뢰도 테이블 반환"""
    global _store
    if _store is None:
        _store = TrustTableStore(get_settings().trust_table_path)
    return _store.current()


def reset_trust_table() -> None:
    """테이블 저장소 초기화 (설정 변경 시)"""
    global _store
    _store = None


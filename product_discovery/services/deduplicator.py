"""
중복 제거
한 응답 안에서 정규화된 상품명 또는 링크가 같은 상품 제거
"""
from typing import Iterable, List, Optional, Set

from product_discovery.models.product import Product
from product_discovery.utils.text_parser import normalize_title


class ProductDeduplicator:
    """먼저 들어온 상품을 남기는 중복 제거기"""

    def __init__(self) -> None:
        self._seen_titles: Set[str] = set()
        self._seen_links: Set[str] = set()

    def is_duplicate(self, product: Product) -> bool:
        """이미 본 상품명 또는 링크인지"""
        return (
            normalize_title(product.title) in self._seen_titles
            or product.link in self._seen_links
        )

    def add(self, product: Product) -> bool:
        """중복이 아니면 등록 후 True"""
        if self.is_duplicate(product):
            return False
        self._seen_titles.add(normalize_title(product.title))
        self._seen_links.add(product.link)
        return True


def dedupe_products(
    products: Iterable[Optional[Product]],
    deduplicator: Optional[ProductDeduplicator] = None,
) -> List[Product]:
    """
    중복 상품 제거 (순서 유지, 먼저 나온 것 우선)

    Args:
        products: 상품 목록 (None은 건너뜀)
        deduplicator: 이전 단계와 공유할 중복 제거기

    Returns:
        중복 제거된 상품 리스트
    """
    deduplicator = deduplicator or ProductDeduplicator()
    return [p for p in products if p is not None and deduplicator.add(p)]

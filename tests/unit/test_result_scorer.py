"""
결과 필터 및 스코어러 유닛 테스트
"""
import pytest

from product_discovery.models.candidate import Candidate
from product_discovery.models.search import ScoreClass
from product_discovery.services.result_scorer import (
    filter_hits,
    rejection_reason,
    score_hit,
    select_best,
)


@pytest.fixture
def nike_candidate():
    return Candidate(title="Nike Air Force 1", price_hint="$100", brand_guess="nike")


class TestRejection:
    """필터 거절 사유 테스트"""

    def test_accept_product_page(self, nike_candidate, nike_hit, trust_table):
        """정상 상품 페이지 통과"""
        assert rejection_reason(nike_candidate, nike_hit, trust_table) is None

    def test_invalid_url(self, nike_candidate, hit_factory, trust_table):
        """http(s) 이외 스킴"""
        hit = hit_factory("Nike Air Force 1 shop", "ftp://nike.com/af1")
        assert rejection_reason(nike_candidate, hit, trust_table) == "invalid_url"

    def test_blacklisted(self, nike_candidate, hit_factory, trust_table):
        """블랙리스트 호스트"""
        hit = hit_factory("Nike store associate", "https://www.indeed.com/viewjob?jk=nike-shop")
        assert rejection_reason(nike_candidate, hit, trust_table) == "blacklisted"

    def test_off_site(self, nike_candidate, amazon_nike_hit, trust_table):
        """site: 제한 도메인 밖의 결과"""
        assert rejection_reason(nike_candidate, amazon_nike_hit, trust_table, site="nike.com") == "off_site"

    def test_non_commerce_path(self, nike_candidate, hit_factory, trust_table):
        """블로그 경로"""
        hit = hit_factory("Nike Air Force 1 shop guide", "https://shop.example.com/blog/nike-air-force-1")
        assert rejection_reason(nike_candidate, hit, trust_table) == "non_commerce"

    def test_non_commerce_host(self, nike_candidate, hit_factory, trust_table):
        """콘텐츠 플랫폼 호스트"""
        hit = hit_factory("Where to buy Nike Air Force 1", "https://medium.com/@kicks/nike-af1-buy")
        assert rejection_reason(nike_candidate, hit, trust_table) == "non_commerce"

    def test_excluded_retailer(self, nike_candidate, hit_factory, trust_table):
        """제외 리테일러"""
        hit = hit_factory(
            "Nike Air Force 1 | Men's Wearhouse",
            "https://www.menswearhouse.com/p/nike-af1",
            "Shop sneakers",
        )
        assert rejection_reason(nike_candidate, hit, trust_table) == "excluded_retailer"

    def test_womens_product(self, nike_candidate, hit_factory, trust_table):
        """여성 상품 결과"""
        hit = hit_factory(
            "Nike Air Force 1 '07 Women's Shoes",
            "https://www.nike.com/t/air-force-1-07-womens-shoes",
            "Shop now",
        )
        assert rejection_reason(nike_candidate, hit, trust_table) == "womens_product"

    def test_no_commerce_intent(self, nike_candidate, hit_factory, trust_table):
        """상거래 키워드 없음"""
        hit = hit_factory(
            "Nike Air Force 1 history",
            "https://www.nike.com/t/air-force-1-history",
            "The story of a classic sneaker.",
        )
        assert rejection_reason(nike_candidate, hit, trust_table) == "no_commerce_intent"

    @pytest.mark.parametrize(
        "link,title",
        [
            ("https://www.nike.com/", "Nike. Just Do It. Shop Nike.com"),
            ("https://www.nike.com", "Nike Shop"),
            ("https://www.nike.com/category/mens-shoes", "Nike Men's Shoes Shop"),
            ("https://www.nike.com/home", "Nike Shop"),
            ("https://www.nike.com/w/mens-shoes", "Shop All Men's Shoes | Nike"),
        ],
    )
    def test_homepage_or_category(self, nike_candidate, hit_factory, trust_table, link, title):
        """홈페이지/카테고리 루트"""
        hit = hit_factory(title, link)
        assert rejection_reason(nike_candidate, hit, trust_table) == "homepage_or_category"

    def test_irrelevant(self, nike_candidate, hit_factory, trust_table):
        """후보와 겹치는 단어 없음"""
        hit = hit_factory(
            "Shop Adidas Samba OG",
            "https://www.adidas.com/us/samba-og-shoes/B75806",
            "Buy the adidas Samba.",
        )
        assert rejection_reason(nike_candidate, hit, trust_table) == "irrelevant"

    def test_filter_keeps_provider_order(self, nike_candidate, nike_hit, amazon_nike_hit, hit_factory, trust_table):
        """통과 결과는 제공자 순서 유지"""
        junk = hit_factory("Nike jobs", "https://www.indeed.com/q-nike-jobs")
        survivors = filter_hits(nike_candidate, [amazon_nike_hit, junk, nike_hit], trust_table)
        assert survivors == [amazon_nike_hit, nike_hit]


class TestScoring:
    """점수 및 선택 테스트"""

    def test_score_brand_official(self, nike_candidate, nike_hit, trust_table):
        """후보 브랜드 도메인은 100점"""
        scored = score_hit(nike_candidate, nike_hit, trust_table)
        assert scored.score == 100
        assert scored.score_class == ScoreClass.BRAND_OFFICIAL

    def test_brand_domain_beats_retailer(self, nike_candidate, nike_hit, amazon_nike_hit, trust_table):
        """브랜드 도메인 결과가 리테일러보다 우선 (제공자 순서와 무관)"""
        amazon_first = amazon_nike_hit.model_copy(update={"position": 0})
        nike_second = nike_hit.model_copy(update={"position": 1})

        best = select_best(nike_candidate, [amazon_first, nike_second], trust_table)
        assert best.hit.host == "nike.com"

    def test_ties_follow_provider_order(self, nike_candidate, hit_factory, trust_table):
        """동점이면 제공자 순서"""
        later = hit_factory("Nike Air Force 1 - Shop", "https://www.kicksstore.com/p/nike-af1", position=1)
        earlier = hit_factory("Nike Air Force 1 - Shop", "https://www.sneakershop.com/p/nike-af1", position=0)

        best = select_best(nike_candidate, [later, earlier], trust_table)
        assert best.hit.host == "sneakershop.com"
        assert best.score_class == ScoreClass.OTHER

    def test_no_survivors(self, nike_candidate, hit_factory, trust_table):
        """통과 결과가 없으면 None"""
        hit = hit_factory("Nike jobs", "https://www.indeed.com/q-nike-jobs")
        assert select_best(nike_candidate, [hit], trust_table) is None
        assert select_best(nike_candidate, [], trust_table) is None

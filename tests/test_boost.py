import httpx
import pytest
from unittest.mock import AsyncMock

from support_ai.cms.client import CMSError, ContentstackClient
from support_ai.search.boost import (
    affinity_to_boost,
    position_score,
    rank_with_affinity,
    score_article,
    search_with_boost,
)

from conftest import make_article


def test_position_score_floors_at_zero():
    assert position_score(0) == 100
    assert position_score(1) == 95
    assert position_score(20) == 0
    assert position_score(24) == 0


def test_affinity_to_boost_rounds_half_up():
    assert affinity_to_boost(0.0) == 0
    assert affinity_to_boost(0.125) == 13
    assert affinity_to_boost(1.0) == 100


def test_boost_uses_max_not_sum():
    article = make_article("a", article_tags=["billing", "api", "account"])
    boost, matched = score_article(
        article, {"billing": 0.1, "api": 0.1, "account": 0.9}
    )
    assert boost == 90
    assert set(matched) == {"billing", "api", "account"}


def test_tag_overlap_matches_in_both_directions():
    article = make_article("a", article_tags=["authentication-sso"])
    boost, matched = score_article(article, {"authentication": 0.5})
    assert boost == 50
    assert matched == ["authentication"]

    article = make_article("b", article_tags=["api"])
    boost, _ = score_article(article, {"rest api": 0.3})
    assert boost == 30


def test_affinity_lifts_matching_article_above_baseline_leader():
    # "password reset" with a strong authentication affinity
    a = make_article("a", title="Password reset guide", excerpt="Reset steps")
    b = make_article("b", title="Reset your password", article_tags=["authentication"])

    results = rank_with_affinity([a, b], {"authentication": 0.9}, strict=False)

    assert [r.uid for r in results] == ["b", "a"]
    assert results[0].total_score == 185
    assert results[0].search_score == 95
    assert results[0].affinity_boost == 90
    assert results[0].matched_topics == ["authentication"]
    assert results[1].total_score == 100
    assert results[1].affinity_boost == 0


def test_equal_totals_keep_baseline_order():
    a = make_article("a", title="First")
    b = make_article("b", title="Second", article_tags=["billing"])

    # b: 95 + 5 ties a: 100 + 0
    results = rank_with_affinity([a, b], {"billing": 0.05}, strict=False)

    assert [r.total_score for r in results] == [100, 100]
    assert [r.uid for r in results] == ["a", "b"]


def test_empty_affinities_keep_baseline_order():
    articles = [make_article(str(i)) for i in range(4)]
    results = rank_with_affinity(articles, {}, strict=False)

    assert [r.uid for r in results] == ["0", "1", "2", "3"]
    assert all(r.affinity_boost == 0 for r in results)
    assert [r.search_score for r in results] == [100, 95, 90, 85]


def test_search_score_never_negative_for_long_baselines():
    articles = [make_article(str(i)) for i in range(25)]
    results = rank_with_affinity(articles, {}, strict=False)

    assert min(r.search_score for r in results) == 0
    assert results[-1].uid == "24"


def test_strict_matching_requires_word_boundaries():
    article = make_article("a", title="Rapid setup")

    loose_boost, _ = score_article(article, {"api": 0.7}, strict=False)
    strict_boost, strict_matched = score_article(article, {"api": 0.7}, strict=True)

    assert loose_boost == 70
    assert strict_boost == 0
    assert strict_matched == []


def test_result_serializes_camel_case_scores():
    results = rank_with_affinity([make_article("a")], {}, strict=False)
    payload = results[0].model_dump(by_alias=True)

    assert payload["searchScore"] == 100
    assert payload["affinityBoost"] == 0
    assert payload["totalScore"] == 100
    assert payload["matchedTopics"] == []
    assert payload["uid"] == "a"


@pytest.mark.asyncio
async def test_search_with_boost_returns_empty_on_cms_error():
    cms = AsyncMock()
    cms.search_articles.side_effect = CMSError("CMS request failed")

    assert await search_with_boost("password", {"authentication": 0.9}, cms) == []


@pytest.mark.asyncio
async def test_search_with_boost_skips_blank_query():
    cms = AsyncMock()

    assert await search_with_boost("   ", {}, cms) == []
    cms.search_articles.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_with_boost_reranks_baseline():
    cms = AsyncMock()
    cms.search_articles.return_value = [
        make_article("a", title="Invoice basics"),
        make_article("b", title="Invoice disputes", article_tags=["billing"]),
    ]

    results = await search_with_boost("invoice", {"billing": 0.4}, cms, strict=False)

    cms.search_articles.assert_awaited_once_with("invoice")
    assert [r.uid for r in results] == ["b", "a"]
    assert results[0].total_score == 135


@pytest.mark.asyncio
async def test_search_with_boost_ignores_malformed_cms_entries():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "entries": [
                    {"uid": "good", "title": "Password reset", "article_tags": ["authentication"]},
                    {"uid": "bad", "title": "Password help", "article_tags": None},
                ]
            },
        )

    cms = ContentstackClient(
        api_key="stack-key",
        delivery_token="delivery-token",
        transport=httpx.MockTransport(handler),
    )

    results = await search_with_boost("password", {"authentication": 0.9}, cms, strict=False)

    assert [r.uid for r in results] == ["good"]
    assert results[0].total_score == 190

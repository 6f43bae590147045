"""
Affinity-Boosted Search Ranking

Re-ranks baseline text search results with a user's topic affinities.

Scoring
-------
- searchScore   = 100 - 5 * baseline position, floored at 0
- affinityBoost = round(100 * max affinity among matched topics)
- totalScore    = searchScore + affinityBoost

A topic matches an article when it overlaps one of the article's tags (in
either direction) or occurs in the lower-cased title or excerpt. Taking
the max rather than the sum keeps an article that loosely touches many
weak topics below one that strongly matches a single topic.

The final sort is stable, so equal totals keep baseline order and the
output is deterministic for a given (query, affinities, baseline).
"""

from __future__ import annotations

import logging
import math
import re
from typing import List, Mapping, Optional, Sequence, Tuple

from pydantic import Field, ConfigDict

from ..cms.client import CMSError, ContentstackClient
from ..cms.models import Article
from ..config import settings

logger = logging.getLogger("support.search")

BASE_SCORE = 100
POSITION_STEP = 5


class BoostedSearchResult(Article):
    search_score: int = Field(..., alias="searchScore")
    affinity_boost: int = Field(..., alias="affinityBoost")
    total_score: int = Field(..., alias="totalScore")
    matched_topics: List[str] = Field(default_factory=list, alias="matchedTopics")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def position_score(index: int) -> int:
    return max(0, BASE_SCORE - index * POSITION_STEP)


def affinity_to_boost(affinity: float) -> int:
    """Scale a [0, 1] affinity to an integer percentage, rounding halves up."""
    return int(math.floor(affinity * 100 + 0.5))


def _contains(haystack: str, needle: str, strict: bool) -> bool:
    if not strict:
        return needle in haystack
    return re.search(rf"\b{re.escape(needle)}\b", haystack) is not None


def _topic_matches(
    topic: str,
    tags: Sequence[str],
    title: str,
    excerpt: str,
    strict: bool,
) -> bool:
    for tag in tags:
        if _contains(tag, topic, strict) or _contains(topic, tag, strict):
            return True
    return _contains(title, topic, strict) or _contains(excerpt, topic, strict)


def score_article(
    article: Article,
    affinities: Mapping[str, float],
    strict: bool = False,
) -> Tuple[int, List[str]]:
    """Return (affinityBoost, matched topics) for one article."""
    tags = [t.lower() for t in article.article_tags if t]
    title = (article.title or "").lower()
    excerpt = (article.excerpt or "").lower()

    matched: List[str] = []
    max_affinity = 0.0

    for topic, affinity in affinities.items():
        needle = topic.lower()
        if not needle:
            continue
        if _topic_matches(needle, tags, title, excerpt, strict):
            matched.append(topic)
            max_affinity = max(max_affinity, float(affinity))

    return affinity_to_boost(max_affinity), matched


def rank_with_affinity(
    base_results: Sequence[Article],
    affinities: Mapping[str, float],
    strict: Optional[bool] = None,
) -> List[BoostedSearchResult]:
    """
    Pure re-ranking step over an already ordered baseline result list.
    """
    if strict is None:
        strict = settings.strict_topic_matching

    boosted: List[BoostedSearchResult] = []
    for index, article in enumerate(base_results):
        boost, matched = score_article(article, affinities, strict)
        search_score = position_score(index)
        boosted.append(
            BoostedSearchResult(
                **article.model_dump(),
                search_score=search_score,
                affinity_boost=boost,
                total_score=search_score + boost,
                matched_topics=matched,
            )
        )

    # list.sort is stable: equal totals keep baseline order
    boosted.sort(key=lambda r: r.total_score, reverse=True)
    return boosted


async def search_with_boost(
    query: str,
    affinities: Mapping[str, float],
    cms: ContentstackClient,
    strict: Optional[bool] = None,
) -> List[BoostedSearchResult]:
    """
    Baseline CMS search followed by affinity re-ranking.

    CMS failures yield an empty list; an empty affinity map yields the
    baseline order with zero boosts.
    """
    if not query.strip():
        return []

    try:
        base_results = await cms.search_articles(query)
    except CMSError as exc:
        logger.error("Boosted search failed for %r: %s", query, exc)
        return []

    logger.info("Base results for %r: %d", query, len(base_results))
    results = rank_with_affinity(base_results, affinities, strict)

    logger.debug(
        "Boosted results: %s",
        [(r.title, r.affinity_boost, r.matched_topics) for r in results],
    )
    return results

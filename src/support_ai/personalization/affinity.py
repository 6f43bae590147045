"""
Topic Affinity Aggregation

Reduces a user's recommendation feed into one affinity per topic. The
affinity is the arithmetic mean of the topic's relevance scores across
all fetched recommendations, so a single strong match cannot dominate a
profile.

An empty feed gives an empty map. That is the normal state for anonymous
and new users and means "no personalization available".
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from ..cdp.client import LyticsClient
from ..cdp.models import Recommendation

logger = logging.getLogger("support.affinity")

AFFINITY_RECOMMENDATION_LIMIT = 10

TopicAffinityMap = Dict[str, float]


def aggregate_topic_affinities(recommendations: Iterable[Recommendation]) -> TopicAffinityMap:
    buckets: Dict[str, List[float]] = {}

    for rec in recommendations:
        for topic, relevance in rec.topic_relevances.items():
            buckets.setdefault(topic, []).append(float(relevance))

    return {topic: sum(scores) / len(scores) for topic, scores in buckets.items()}


async def get_user_topic_affinities(
    user_id: str,
    cdp: LyticsClient,
) -> TopicAffinityMap:
    recommendations = await cdp.fetch_recommendations(
        user_id, limit=AFFINITY_RECOMMENDATION_LIMIT
    )
    affinities = aggregate_topic_affinities(recommendations)
    logger.info("User %s topic affinities: %s", user_id, affinities)
    return affinities

import logging
from typing import List, Tuple

from ..cdp.client import CDPError, LyticsClient, ProfileParseError
from ..cms.client import CMSError, ContentstackClient
from ..cms.models import Article
from ..core.errors import ResourceNotReady

logger = logging.getLogger("support.recommendations")


async def _featured(cms: ContentstackClient, limit: int) -> List[Article]:
    try:
        return await cms.get_featured_articles(limit)
    except CMSError as exc:
        logger.error("Featured article fallback failed: %s", exc)
        return []


async def get_recommended_articles(
    user_id: str,
    cdp: LyticsClient,
    cms: ContentstackClient,
    limit: int = 3,
) -> Tuple[List[Article], bool]:
    """
    Resolve the user's top recommendations to CMS articles in CDP rank
    order. Falls back to featured articles when the user has no usable
    recommendations or a collaborator fails.

    Returns the articles and whether they are personalized.
    """
    if user_id:
        try:
            recommendations = await cdp.fetch_recommendations(user_id, limit)
            uids = [r.contentstack_uid for r in recommendations[:limit] if r.contentstack_uid]
            if uids:
                articles = await cms.get_documents_by_ids(uids)
                if articles:
                    return articles[:limit], True
        except (CDPError, ProfileParseError, CMSError, ResourceNotReady) as exc:
            logger.error("Personalized recommendations failed for %s: %s", user_id, exc)

    logger.info("Falling back to featured articles")
    return await _featured(cms, limit), False

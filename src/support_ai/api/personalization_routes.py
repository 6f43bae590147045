"""
Personalization Routes

Thin HTTP surface over the CDP client and the personalization library:

- GET /api/recommendations               raw recommendation feed proxy
- GET /api/personalization/affinities    per-topic affinity map for a user
- GET /api/personalization/articles      recommended articles, featured fallback
- GET /api/personalization/profile       normalized profile + primary segment

Boosted search itself stays a library call (`search.boost`); the search UI
fetches the affinity map once and holds it for the session.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from .dependencies import get_cdp_client, get_cms_client
from .models import (
    AffinityResponse,
    ProfileResponse,
    RecommendationFeed,
    RecommendedArticlesResponse,
)
from ..cdp.client import CDPError, LyticsClient, ProfileParseError
from ..cdp.segments import primary_segment
from ..cms.client import ContentstackClient
from ..core.errors import ConfigurationError, ResourceNotReady
from ..personalization.affinity import get_user_topic_affinities
from ..personalization.recommendations import get_recommended_articles

logger = logging.getLogger("support.api.personalization")

router = APIRouter(tags=["personalization"])


def _missing_uid() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Missing uid parameter"},
    )


@router.get(
    "/api/recommendations",
    response_model=RecommendationFeed,
    summary="Proxy the CDP recommendation feed",
)
async def recommendations(
    cdp: Annotated[LyticsClient, Depends(get_cdp_client)],
    uid: Optional[str] = Query(None),
    limit: int = Query(5, ge=1, le=50),
):
    if not uid:
        return _missing_uid()

    try:
        feed = await cdp.fetch_recommendations_raw(uid, limit)
    except ConfigurationError as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc)},
        )
    except CDPError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Failed to fetch recommendations", "details": exc.details},
        )
    except (ProfileParseError, ResourceNotReady) as exc:
        logger.error("Recommendation proxy failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    return RecommendationFeed.model_validate(feed)


@router.get(
    "/api/personalization/affinities",
    response_model=AffinityResponse,
    summary="Topic affinities for a user",
)
async def affinities(
    cdp: Annotated[LyticsClient, Depends(get_cdp_client)],
    uid: Optional[str] = Query(None),
):
    if not uid:
        return _missing_uid()

    try:
        topic_affinities = await get_user_topic_affinities(uid, cdp)
    except (CDPError, ProfileParseError, ResourceNotReady) as exc:
        # no personalization rather than an error for the search UI
        logger.error("Affinity lookup failed for %s: %s", uid, exc)
        topic_affinities = {}

    return AffinityResponse(uid=uid, affinities=topic_affinities)


@router.get(
    "/api/personalization/articles",
    response_model=RecommendedArticlesResponse,
    summary="Recommended articles for a user",
)
async def recommended_articles(
    cdp: Annotated[LyticsClient, Depends(get_cdp_client)],
    cms: Annotated[ContentstackClient, Depends(get_cms_client)],
    uid: Optional[str] = Query(None),
    limit: int = Query(3, ge=1, le=10),
):
    articles, personalized = await get_recommended_articles(uid or "", cdp, cms, limit)
    return RecommendedArticlesResponse(articles=articles, personalized=personalized)


@router.get(
    "/api/personalization/profile",
    response_model=ProfileResponse,
    summary="Normalized CDP profile for a user",
)
async def profile(
    cdp: Annotated[LyticsClient, Depends(get_cdp_client)],
    uid: Optional[str] = Query(None),
):
    if not uid:
        return _missing_uid()

    try:
        user_profile = await cdp.fetch_profile(uid)
    except CDPError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Failed to fetch profile", "details": exc.details},
        )
    except ProfileParseError as exc:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Unexpected profile format", "details": str(exc)},
        )

    return ProfileResponse(
        profile=user_profile,
        primary_segment=primary_segment(user_profile).value,
    )

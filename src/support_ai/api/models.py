"""
API Models

Pydantic models for request/response validation across the chat, sync,
recommendation and personalization endpoints.

Design Goals
------------
- Strong typing
- Safe defaults (no shared mutable state)
- camelCase on the wire, snake_case in Python
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

from ..cdp.models import UserProfile
from ..cms.models import Article
from ..rag.models import ChatMessage, SourceRef


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ---------------------------------------------------------------------
# Chat Models
# ---------------------------------------------------------------------

class ChatRequest(WireModel):
    """
    Chat turn request. History is held by the caller and sent every turn.
    """
    message: str = Field(..., min_length=1)
    conversation_history: List[ChatMessage] = Field(default_factory=list)
    session_id: Optional[str] = None


class ChatData(WireModel):
    message: str
    sources: List[SourceRef]
    intent: Optional[str] = None
    confidence: float
    session_id: str


class ChatResponse(WireModel):
    success: bool = True
    data: ChatData


# ---------------------------------------------------------------------
# Sync / Index Models
# ---------------------------------------------------------------------

class SyncResponse(WireModel):
    success: bool = True
    message: str
    synced: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    errors: Optional[List[str]] = None


class ResetIndexResponse(WireModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------
# Personalization Models
# ---------------------------------------------------------------------

class RecommendationFeed(BaseModel):
    """
    Recommendation feed proxied as returned by the CDP.
    """
    data: List[Dict[str, Any]] = Field(default_factory=list)
    message: Optional[str] = None
    status: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class AffinityResponse(WireModel):
    uid: str
    affinities: Dict[str, float]


class RecommendedArticlesResponse(WireModel):
    articles: List[Article]
    personalized: bool


class ProfileResponse(WireModel):
    profile: UserProfile
    primary_segment: str

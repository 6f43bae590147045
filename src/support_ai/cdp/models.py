"""
Customer Data Platform Models

Normalized records produced at the CDP boundary. The rest of the service
only ever sees these types, never the raw payloads.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict


class Recommendation(BaseModel):
    """
    One ranked content recommendation for a user.
    """
    contentstack_uid: str = ""
    title: str = ""
    url: str = ""
    topics: List[str] = Field(default_factory=list)
    topic_relevances: Dict[str, float] = Field(default_factory=dict)
    visited: bool = False
    confidence: float = 0.0

    model_config = ConfigDict(extra="ignore")


class UserProfile(BaseModel):
    """
    Behavioral profile of one user.
    """
    uid: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    audience_segments: List[str] = Field(default_factory=list)
    content_affinities: List[str] = Field(default_factory=list)
    search_history: List[str] = Field(default_factory=list)
    ticket_categories: List[str] = Field(default_factory=list)
    engagement_score: float = 0
    visit_count: int = 0
    last_visit: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

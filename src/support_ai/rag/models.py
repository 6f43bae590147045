"""
Chat turn models shared by the orchestrator and the HTTP layer.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ConfigDict


class ChatMessage(BaseModel):
    """
    Single message in a caller-held conversation.
    """
    role: Literal["user", "assistant", "system"]
    content: str

    model_config = ConfigDict(extra="forbid")


class SourceRef(BaseModel):
    title: str
    slug: str
    relevance: float

    model_config = ConfigDict(extra="forbid")


class AIResponse(BaseModel):
    """
    Result of one retrieval-augmented chat turn. Never persisted.
    """
    message: str
    sources: List[SourceRef] = Field(default_factory=list)
    intent: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid")


class RetrievedDocument(BaseModel):
    title: str
    slug: str
    content: str

    model_config = ConfigDict(frozen=True)

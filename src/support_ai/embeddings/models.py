"""
Embedding Data Models

This module defines the canonical records that flow through the vector
layer: the document chunk written during indexing and the match returned
by a similarity query.

Each DocumentChunk corresponds to ONE vector stored under ONE id.
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field, ConfigDict


class ChunkMetadata(BaseModel):
    """
    Metadata persisted next to every vector.
    """

    title: str = Field(..., min_length=1)
    slug: str = ""
    category: str = Field(
        default="",
        description="Category display name, empty when the article has none.",
    )
    source_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the CMS entry the chunk was built from.",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)


class DocumentChunk(BaseModel):
    """
    A single unit of indexed content.

    Re-upserting the same `id` replaces the stored chunk; chunks are never
    versioned.
    """

    id: str = Field(..., min_length=1)
    content: str = Field(
        ...,
        min_length=1,
        description="Normalized plain text, HTML stripped and length bounded.",
    )
    metadata: ChunkMetadata

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )

    def store_metadata(self, content_limit: int) -> Dict[str, Any]:
        """Flatten metadata for the vector store, keeping a truncated copy of the text."""
        return {
            "title": self.metadata.title,
            "slug": self.metadata.slug,
            "category": self.metadata.category,
            "source_id": self.metadata.source_id,
            "content": self.content[:content_limit],
        }


class SearchMatch(BaseModel):
    """
    One result of a similarity query, ordered by descending score.
    """

    id: str
    score: float = Field(..., ge=0.0, le=1.0)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

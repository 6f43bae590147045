"""
Shared helpers for the vector store adapters.

Both adapters expose the same coroutine interface:

- ensure_index() / reset_index() / delete_index()
- upsert(namespace, id, vector, metadata)
- query(namespace, vector, top_k) -> List[SearchMatch]
- count(namespace) -> int
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.errors import DimensionMismatchError
from ..embeddings.models import SearchMatch


class VectorStoreError(RuntimeError):
    """Raised when the vector store rejects or fails an operation."""


def validate_dimension(vector: Sequence[float], dimension: int) -> None:
    """Refuse vectors whose length differs from the index dimension."""
    if len(vector) != dimension:
        raise DimensionMismatchError(
            f"Vector has {len(vector)} dimensions, index expects {dimension}"
        )


def to_match(
    match_id: str,
    score: float,
    metadata: Optional[Dict[str, Any]],
) -> SearchMatch:
    # cosine can dip below zero for unrelated text
    clamped = max(0.0, min(1.0, float(score)))
    return SearchMatch(id=match_id, score=clamped, metadata=metadata or {})

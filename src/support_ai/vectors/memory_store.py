"""
In-Process Vector Index

A numpy-backed implementation of the vector store interface, selected
with `VECTOR_BACKEND=memory`. It is used for local development and by the
test-suite, and mirrors the serverless adapter's semantics:

- Namespaced storage keyed by id (upsert overwrites)
- Cosine similarity over L2-normalized vectors
- Strict dimension validation
- Index must exist before data-plane calls

Nothing is persisted; restarting the process empties the index.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config import settings
from ..embeddings.models import SearchMatch
from .base import VectorStoreError, to_match, validate_dimension

logger = logging.getLogger("support.vectors.memory")


class InMemoryVectorStore:
    """
    Dictionary-of-namespaces vector index.

    Ties in query scores keep insertion order of the original upsert.
    """

    def __init__(
        self,
        index_name: Optional[str] = None,
        dimension: Optional[int] = None,
        metric: str = "cosine",
    ) -> None:
        self.index_name = index_name or settings.vector_index_name
        self.dimension = dimension or settings.embedding_dimension
        self.metric = metric

        self._exists = False
        self._namespaces: Dict[str, Dict[str, Tuple[np.ndarray, Dict[str, Any]]]] = {}
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _require_index(self) -> None:
        if not self._exists:
            raise VectorStoreError(f"Index {self.index_name!r} does not exist")

    @staticmethod
    def _normalize(vector: Sequence[float]) -> np.ndarray:
        arr = np.asarray(vector, dtype="float32")
        norm = float(np.linalg.norm(arr))
        if norm == 0.0:
            return arr
        return arr / norm

    def _describe(self) -> Dict[str, Any]:
        return {
            "name": self.index_name,
            "dimension": self.dimension,
            "metric": self.metric,
            "host": "memory",
            "status": {"ready": True, "state": "Ready"},
        }

    # ------------------------------------------------------------------
    # Index administration
    # ------------------------------------------------------------------

    async def describe_index(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._describe() if self._exists else None

    async def ensure_index(self) -> Dict[str, Any]:
        with self._lock:
            if not self._exists:
                logger.info("Creating in-memory index %s", self.index_name)
                self._exists = True
            return self._describe()

    async def delete_index(self) -> bool:
        with self._lock:
            existed = self._exists
            self._exists = False
            self._namespaces.clear()
            return existed

    async def reset_index(self) -> Dict[str, Any]:
        await self.delete_index()
        return await self.ensure_index()

    # ------------------------------------------------------------------
    # Data plane
    # ------------------------------------------------------------------

    async def upsert(
        self,
        namespace: str,
        id: str,
        vector: Sequence[float],
        metadata: Dict[str, Any],
    ) -> None:
        validate_dimension(vector, self.dimension)
        with self._lock:
            self._require_index()
            entries = self._namespaces.setdefault(namespace, {})
            # re-assigning an existing key keeps its original position
            entries[id] = (self._normalize(vector), dict(metadata))

    async def query(
        self,
        namespace: str,
        vector: Sequence[float],
        top_k: int,
    ) -> List[SearchMatch]:
        validate_dimension(vector, self.dimension)
        with self._lock:
            self._require_index()
            entries = self._namespaces.get(namespace, {})
            if not entries or top_k <= 0:
                return []

            ids = list(entries.keys())
            matrix = np.stack([entries[i][0] for i in ids])
            scores = matrix @ self._normalize(vector)

            order = np.argsort(-scores, kind="stable")[:top_k]
            return [
                to_match(ids[i], float(scores[i]), entries[ids[i]][1])
                for i in order
            ]

    async def count(self, namespace: str) -> int:
        with self._lock:
            self._require_index()
            return len(self._namespaces.get(namespace, {}))

"""
Retrieval-Augmented Chat Orchestrator

One chat turn runs these stages in order:

1. Retrieve   - embed the user message, query the `articles` namespace
2. Classify   - keyword intent on the raw message
3. Compose    - system prompt holding only the retrieved documents
4. Fold       - prior turns serialized into a labeled transcript
5. Generate   - single-turn completion, first choice
6. Assemble   - sources with rank-decayed relevance, intent, confidence

Retrieval always completes before generation starts. Nothing is retried
here: any stage failure becomes a `ChatFailure` for the caller, flagged
`rate_limited` when the provider said so.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..config import settings
from ..core.errors import DimensionMismatchError, ResourceNotReady
from ..embeddings.embedder import Embedder, EmbeddingUnavailable
from ..intent.classifier import classify
from ..llm.client import LLMClient, LLMError
from ..prompts import build_system_prompt
from ..vectors import VectorStore, VectorStoreError
from .models import AIResponse, ChatMessage, RetrievedDocument, SourceRef

logger = logging.getLogger("support.rag")

RATE_LIMIT_MARKER = "rate limit"

_ROLE_LABELS = {"user": "User", "assistant": "Assistant", "system": "System"}


class ChatFailure(RuntimeError):
    """A chat turn failed; `rate_limited` tells the caller to back off."""

    def __init__(self, message: str, rate_limited: bool = False) -> None:
        super().__init__(message)
        self.rate_limited = rate_limited


def fold_history(user_message: str, history: Sequence[ChatMessage]) -> str:
    """
    Prepend prior turns to the current question.

    The chat model is called single-turn, so history travels inside the
    user message.
    """
    if not history:
        return user_message

    transcript = "\n".join(
        f"{_ROLE_LABELS[msg.role]}: {msg.content}" for msg in history
    )
    return f"Previous conversation:\n{transcript}\n\nCurrent question: {user_message}"


def rank_relevance(rank: int) -> float:
    """Linear decay by retrieval rank: 1.0, 0.9, 0.8, ..."""
    return round(1 - rank * 0.1, 4)


class RagOrchestrator:
    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        llm: LLMClient,
        namespace: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> None:
        self.embedder = embedder
        self.vector_store = vector_store
        self.llm = llm
        self.namespace = namespace or settings.vector_namespace
        self.top_k = top_k or settings.rag_top_k

    async def retrieve(self, query: str) -> List[RetrievedDocument]:
        vector = await self.embedder.embed(query)
        matches = await self.vector_store.query(self.namespace, vector, self.top_k)

        return [
            RetrievedDocument(
                title=str(m.metadata.get("title") or "Unknown"),
                slug=str(m.metadata.get("slug") or ""),
                content=str(m.metadata.get("content") or ""),
            )
            for m in matches
        ]

    async def chat(
        self,
        user_message: str,
        history: Sequence[ChatMessage] = (),
    ) -> AIResponse:
        logger.info("Processing message: %.50s", user_message)

        try:
            documents = await self.retrieve(user_message)
            logger.info("Found %d relevant documents", len(documents))

            intent = classify(user_message)

            system_prompt = build_system_prompt(
                [(doc.title, doc.content) for doc in documents]
            )
            answer = await self.llm.complete(
                system_prompt,
                fold_history(user_message, history),
            )
        except (
            EmbeddingUnavailable,
            VectorStoreError,
            DimensionMismatchError,
            ResourceNotReady,
            LLMError,
        ) as exc:
            rate_limited = RATE_LIMIT_MARKER in str(exc).lower()
            logger.error("Chat turn failed (rate_limited=%s): %s", rate_limited, exc)
            raise ChatFailure(str(exc), rate_limited=rate_limited) from exc

        logger.info("Generated response with intent: %s", intent.intent)

        return AIResponse(
            message=answer.strip(),
            sources=[
                SourceRef(title=doc.title, slug=doc.slug, relevance=rank_relevance(i))
                for i, doc in enumerate(documents)
            ],
            intent=intent.intent,
            confidence=intent.confidence,
        )

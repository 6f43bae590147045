from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from ..cdp.client import LyticsClient
from ..cms.client import ContentstackClient
from ..embeddings.embedder import Embedder
from ..indexing.sync import DocumentIndexer
from ..llm.client import LLMClient
from ..rag.orchestrator import RagOrchestrator
from ..vectors import VectorStore, build_vector_store


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient()


@lru_cache
def get_embedder() -> Embedder:
    return Embedder()


# Shared so the in-memory backend keeps its contents between requests
@lru_cache
def get_vector_store() -> VectorStore:
    return build_vector_store()


@lru_cache
def get_cms_client() -> ContentstackClient:
    return ContentstackClient()


def get_cdp_client(request: Request) -> LyticsClient:
    # Created and started by the application lifespan
    return request.app.state.cdp_client


def get_orchestrator(
    embedder: Annotated[Embedder, Depends(get_embedder)],
    vector_store: Annotated[VectorStore, Depends(get_vector_store)],
    llm: Annotated[LLMClient, Depends(get_llm_client)],
) -> RagOrchestrator:
    return RagOrchestrator(embedder=embedder, vector_store=vector_store, llm=llm)


def get_indexer(
    cms: Annotated[ContentstackClient, Depends(get_cms_client)],
    embedder: Annotated[Embedder, Depends(get_embedder)],
    vector_store: Annotated[VectorStore, Depends(get_vector_store)],
) -> DocumentIndexer:
    return DocumentIndexer(cms=cms, embedder=embedder, vector_store=vector_store)

"""
Vector Store Package

Provides the serverless (Pinecone-style) adapter and the in-process numpy
index behind one interface, plus a factory that picks the configured one.
"""

from typing import Union

from ..config import settings
from .base import VectorStoreError
from .memory_store import InMemoryVectorStore
from .pinecone_store import PineconeVectorStore

VectorStore = Union[PineconeVectorStore, InMemoryVectorStore]


def build_vector_store() -> VectorStore:
    """Instantiate the backend selected by `settings.vector_backend`."""
    if settings.vector_backend == "memory":
        return InMemoryVectorStore()
    return PineconeVectorStore()


__all__ = [
    "VectorStore",
    "VectorStoreError",
    "InMemoryVectorStore",
    "PineconeVectorStore",
    "build_vector_store",
]

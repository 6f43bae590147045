import hashlib
from typing import List

import pytest

from support_ai.cms.models import Article
from support_ai.vectors import InMemoryVectorStore

DIM = 384


class FakeEmbedder:
    """Deterministic 384-dim vectors derived from a hash of the text."""

    def __init__(self, dimension: int = DIM):
        self.dimension = dimension
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [((digest[i % len(digest)] + i) % 17) / 17.0 + 0.01 for i in range(self.dimension)]


def make_article(uid: str, **fields) -> Article:
    data = {
        "uid": uid,
        "title": fields.pop("title", f"Article {uid}"),
        "slug": fields.pop("slug", uid),
        "excerpt": fields.pop("excerpt", ""),
        "content": fields.pop("content", ""),
        "article_tags": fields.pop("article_tags", []),
    }
    data.update(fields)
    return Article(**data)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def memory_store():
    return InMemoryVectorStore(index_name="test-index", dimension=DIM)

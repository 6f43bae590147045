"""
Document Sync

Full resynchronization of CMS articles into the vector store.

Workflow
--------
1. Ensure the target index exists and is ready.
2. Read one page of articles (up to `sync_batch_limit`). Entries the CMS
   returns in an invalid shape are reported as errors and skipped.
3. For each article build the chunk text: title, excerpt and the
   HTML-stripped body capped at `sync_content_max_chars`.
4. Embed and upsert under the article uid. A failing article is logged,
   recorded, and skipped; the sync carries on.
5. Pause between articles to stay under third-party rate limits.

Upserts overwrite by id, so re-running the sync never duplicates entries.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional

from pydantic import BaseModel, Field

from ..cms.client import ContentstackClient
from ..cms.models import Article
from ..config import settings
from ..core.errors import ConfigurationError
from ..embeddings.embedder import Embedder
from ..embeddings.models import ChunkMetadata, DocumentChunk
from ..vectors import VectorStore

logger = logging.getLogger("support.sync")

_TAG_RE = re.compile(r"<[^>]*>")


class SyncResult(BaseModel):
    synced: int = 0
    total: int = 0
    errors: List[str] = Field(default_factory=list)


def strip_html(html: str) -> str:
    return _TAG_RE.sub(" ", html)


def build_document_content(article: Article, max_body_chars: Optional[int] = None) -> str:
    """
    Join title, excerpt and stripped body with blank lines, skipping empty
    parts. The body is cut to `max_body_chars` after stripping tags.
    """
    limit = max_body_chars if max_body_chars is not None else settings.sync_content_max_chars
    body = strip_html(article.content)[:limit] if article.content else ""

    parts = [article.title, article.excerpt or "", body]
    return "\n\n".join(part for part in parts if part and part.strip())


def build_chunk(article: Article) -> Optional[DocumentChunk]:
    """Return the chunk for an article, or None when it has no text."""
    content = build_document_content(article)
    if not content.strip():
        return None

    return DocumentChunk(
        id=article.uid,
        content=content,
        metadata=ChunkMetadata(
            title=article.title or article.uid,
            slug=article.slug,
            category=article.category_name,
            source_id=article.uid,
        ),
    )


class DocumentIndexer:
    def __init__(
        self,
        cms: ContentstackClient,
        embedder: Embedder,
        vector_store: VectorStore,
        namespace: Optional[str] = None,
        batch_limit: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ) -> None:
        self.cms = cms
        self.embedder = embedder
        self.vector_store = vector_store
        self.namespace = namespace or settings.vector_namespace
        self.batch_limit = batch_limit or settings.sync_batch_limit
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None else settings.sync_delay_seconds
        )

    async def index_chunk(self, chunk: DocumentChunk) -> None:
        vector = await self.embedder.embed(chunk.content)
        await self.vector_store.upsert(
            self.namespace,
            chunk.id,
            vector,
            chunk.store_metadata(settings.stored_content_max_chars),
        )

    async def sync_all(self) -> SyncResult:
        logger.info("Starting document sync")

        await self.vector_store.ensure_index()

        page = await self.cms.list_documents(limit=self.batch_limit, offset=0)
        logger.info(
            "Found %d articles (%d in CMS, %d invalid)",
            len(page.articles),
            page.total,
            len(page.rejected),
        )

        # invalid entries count toward the batch and are reported as failures
        result = SyncResult(
            total=len(page.articles) + len(page.rejected),
            errors=list(page.rejected),
        )

        for article in page.articles:
            chunk = build_chunk(article)
            if chunk is None:
                logger.warning("No content for %s, skipped", article.uid)
                continue

            try:
                await self.index_chunk(chunk)
            except ConfigurationError:
                raise
            except Exception as exc:
                logger.error("Error syncing %s: %s", chunk.metadata.title, exc)
                result.errors.append(f"{chunk.metadata.title}: {exc}")
                continue

            result.synced += 1
            logger.info("Synced: %s", chunk.metadata.title)

            if self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        logger.info("Sync complete: %d/%d articles", result.synced, result.total)
        return result

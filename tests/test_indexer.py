import httpx
import pytest
from unittest.mock import AsyncMock

from support_ai.cms.client import ContentstackClient
from support_ai.cms.models import ArticlePage, CategoryRef
from support_ai.core.errors import ConfigurationError
from support_ai.indexing.sync import (
    DocumentIndexer,
    build_chunk,
    build_document_content,
    strip_html,
)

from conftest import FakeEmbedder, make_article


def test_strip_html_replaces_tags_with_spaces():
    assert strip_html("<p>Hello</p><b>world</b>") == " Hello  world "


def test_document_content_joins_non_empty_parts():
    article = make_article(
        "a1",
        title="Reset password",
        excerpt="How to reset",
        content="<p>Open settings</p>",
    )
    assert build_document_content(article) == "Reset password\n\nHow to reset\n\n Open settings "


def test_document_content_skips_empty_excerpt():
    article = make_article("a1", title="Title", excerpt="", content="<p>Body</p>")
    assert build_document_content(article) == "Title\n\n Body "


def test_document_content_caps_stripped_body():
    article = make_article("a1", title="T", content="<div>" + "x" * 50 + "</div>")
    content = build_document_content(article, max_body_chars=10)
    assert content == "T\n\n " + "x" * 9


def test_build_chunk_uses_uid_and_category():
    article = make_article(
        "a1",
        title="Invoices",
        slug="invoices",
        content="Billing details",
        category=[CategoryRef(uid="c1", title="Billing")],
    )
    chunk = build_chunk(article)

    assert chunk.id == "a1"
    assert chunk.metadata.title == "Invoices"
    assert chunk.metadata.slug == "invoices"
    assert chunk.metadata.category == "Billing"
    assert chunk.metadata.source_id == "a1"


def test_build_chunk_returns_none_without_text():
    assert build_chunk(make_article("a1", title="", excerpt="", content="")) is None


def _indexer(articles, embedder, store):
    cms = AsyncMock()
    cms.list_documents.return_value = ArticlePage(articles=articles, total=len(articles))
    return DocumentIndexer(
        cms=cms,
        embedder=embedder,
        vector_store=store,
        namespace="articles",
        batch_limit=100,
        delay_seconds=0,
    )


@pytest.mark.asyncio
async def test_sync_indexes_every_article(fake_embedder, memory_store):
    articles = [
        make_article("a1", title="One", content="first"),
        make_article("a2", title="Two", content="second"),
    ]
    indexer = _indexer(articles, fake_embedder, memory_store)

    result = await indexer.sync_all()

    assert result.synced == 2
    assert result.total == 2
    assert result.errors == []
    assert await memory_store.count("articles") == 2
    indexer.cms.list_documents.assert_awaited_once_with(limit=100, offset=0)


@pytest.mark.asyncio
async def test_sync_twice_does_not_duplicate(fake_embedder, memory_store):
    articles = [make_article("a1", title="One"), make_article("a2", title="Two")]
    indexer = _indexer(articles, fake_embedder, memory_store)

    await indexer.sync_all()
    await indexer.sync_all()

    assert await memory_store.count("articles") == 2


@pytest.mark.asyncio
async def test_sync_skips_articles_without_text(fake_embedder, memory_store):
    articles = [
        make_article("a1", title="One"),
        make_article("a2", title="", excerpt="", content=""),
    ]
    indexer = _indexer(articles, fake_embedder, memory_store)

    result = await indexer.sync_all()

    assert result.synced == 1
    assert result.total == 2
    assert result.errors == []


class FlakyEmbedder(FakeEmbedder):
    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on

    async def embed(self, text):
        if text.startswith(self.fail_on):
            raise RuntimeError("Embedding service unavailable")
        return await super().embed(text)


@pytest.mark.asyncio
async def test_sync_records_failures_and_continues(memory_store):
    articles = [
        make_article("a1", title="Good one"),
        make_article("a2", title="Broken"),
        make_article("a3", title="Good two"),
    ]
    indexer = _indexer(articles, FlakyEmbedder(fail_on="Broken"), memory_store)

    result = await indexer.sync_all()

    assert result.synced == 2
    assert result.total == 3
    assert result.errors == ["Broken: Embedding service unavailable"]
    assert await memory_store.count("articles") == 2


@pytest.mark.asyncio
async def test_sync_stores_truncated_content_in_metadata(fake_embedder, memory_store):
    indexer = _indexer(
        [make_article("a1", title="One", content="y" * 5000)],
        fake_embedder,
        memory_store,
    )
    await indexer.sync_all()

    vector = await fake_embedder.embed(fake_embedder.calls[0])
    matches = await memory_store.query("articles", vector, 1)

    assert matches[0].id == "a1"
    assert len(matches[0].metadata["content"]) <= 1000
    assert matches[0].metadata["title"] == "One"


@pytest.mark.asyncio
async def test_sync_propagates_configuration_errors(memory_store):
    embedder = AsyncMock()
    embedder.embed.side_effect = ConfigurationError("HUGGINGFACE_API_KEY is not configured")
    indexer = _indexer([make_article("a1", title="One")], embedder, memory_store)

    with pytest.raises(ConfigurationError):
        await indexer.sync_all()


@pytest.mark.asyncio
async def test_sync_reports_malformed_cms_entries_and_continues(fake_embedder, memory_store):
    def handler(request):
        return httpx.Response(
            200,
            json={
                "entries": [
                    {"uid": "good", "title": "Reset your password"},
                    {"uid": "bad", "title": "Broken entry", "article_tags": None},
                    {"uid": "also-good", "title": "Update billing"},
                ],
                "count": 3,
            },
        )

    cms = ContentstackClient(
        api_key="stack-key",
        delivery_token="delivery-token",
        transport=httpx.MockTransport(handler),
    )
    indexer = DocumentIndexer(
        cms=cms,
        embedder=fake_embedder,
        vector_store=memory_store,
        namespace="articles",
        delay_seconds=0,
    )

    result = await indexer.sync_all()

    assert result.synced == 2
    assert result.total == 3
    assert len(result.errors) == 1
    assert result.errors[0].startswith("bad: invalid article_tags")
    assert await memory_store.count("articles") == 2

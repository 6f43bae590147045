import json

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from support_ai.config import settings
from support_ai.core.errors import ConfigurationError, DimensionMismatchError, ResourceNotReady
from support_ai.vectors import PineconeVectorStore, VectorStoreError

from conftest import DIM

CONTROLLER = "https://api.pinecone.io"
HOST = "test-index-abc123.svc.pinecone.io"


class FakePinecone:
    """Minimal control plane plus one data-plane host."""

    def __init__(self, dimension=None, ready_after=1):
        self.index = None
        self.describes = 0
        self.ready_after = ready_after
        self.vectors = {}
        self.requests = []
        if dimension is not None:
            self._create(dimension)

    def _create(self, dimension):
        self.index = {"name": "test-index", "dimension": dimension, "host": HOST}
        self.describes = 0

    def _describe(self):
        self.describes += 1
        ready = self.describes >= self.ready_after
        return {**self.index, "status": {"ready": ready, "state": "Ready" if ready else "Initializing"}}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content) if request.content else {}
        path = request.url.path

        if request.url.host == "api.pinecone.io":
            if request.method == "GET":
                if self.index is None:
                    return httpx.Response(404, json={"error": "not found"})
                return httpx.Response(200, json=self._describe())
            if request.method == "POST":
                if self.index is not None:
                    return httpx.Response(409, json={"error": "exists"})
                self._create(body["dimension"])
                return httpx.Response(201, json=self.index)
            if request.method == "DELETE":
                if self.index is None:
                    return httpx.Response(404)
                self.index = None
                self.vectors = {}
                return httpx.Response(202)

        assert request.url.host == HOST
        if path == "/vectors/upsert":
            for vec in body["vectors"]:
                self.vectors[(body["namespace"], vec["id"])] = vec
            return httpx.Response(200, json={"upsertedCount": len(body["vectors"])})
        if path == "/query":
            return httpx.Response(
                200,
                json={
                    "matches": [
                        {"id": "a1", "score": 1.2, "metadata": {"title": "One"}},
                        {"id": "a2", "score": 0.5, "metadata": {"title": "Two"}},
                        {"id": "a3", "score": -0.1},
                    ]
                },
            )
        if path == "/describe_index_stats":
            counts = {}
            for namespace, _ in self.vectors:
                counts[namespace] = counts.get(namespace, 0) + 1
            return httpx.Response(
                200,
                json={"namespaces": {ns: {"vectorCount": n} for ns, n in counts.items()}},
            )
        return httpx.Response(500)


def make_store(fake, **overrides):
    options = dict(
        api_key="pc-test-key",
        index_name="test-index",
        dimension=DIM,
        controller_url=CONTROLLER,
        api_version="2024-07",
        ready_timeout=5,
        poll_initial_delay=1,
        poll_max_delay=2,
        transport=httpx.MockTransport(fake.handler),
    )
    options.update(overrides)
    return PineconeVectorStore(**options)


@pytest.fixture
def mock_sleep():
    with patch("support_ai.vectors.pinecone_store.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.mark.asyncio
async def test_ensure_index_creates_and_polls_until_ready(mock_sleep):
    fake = FakePinecone(ready_after=3)
    store = make_store(fake)

    desc = await store.ensure_index()

    assert desc["status"]["ready"] is True
    assert fake.index["dimension"] == DIM
    assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]

    create = next(r for r in fake.requests if r.method == "POST")
    payload = json.loads(create.content)
    assert payload["spec"]["serverless"]["cloud"]
    assert create.headers["Api-Key"] == "pc-test-key"
    assert create.headers["X-Pinecone-API-Version"] == "2024-07"


@pytest.mark.asyncio
async def test_ensure_index_gives_up_after_deadline(mock_sleep):
    fake = FakePinecone(ready_after=1000)
    store = make_store(fake)

    with pytest.raises(ResourceNotReady):
        await store.ensure_index()

    slept = [c.args[0] for c in mock_sleep.await_args_list]
    assert slept == [1, 2, 2]
    assert sum(slept) <= 5


@pytest.mark.asyncio
async def test_existing_ready_index_is_reused(mock_sleep):
    fake = FakePinecone(dimension=DIM)
    store = make_store(fake)

    await store.ensure_index()

    assert not any(r.method == "POST" for r in fake.requests)
    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_existing_index_with_wrong_dimension_is_refused(mock_sleep):
    store = make_store(FakePinecone(dimension=768))

    with pytest.raises(DimensionMismatchError):
        await store.ensure_index()


@pytest.mark.asyncio
async def test_reset_index_recreates_with_configured_dimension(mock_sleep):
    fake = FakePinecone(dimension=768)
    store = make_store(fake)

    desc = await store.reset_index()

    assert desc["dimension"] == DIM
    assert [r.method for r in fake.requests if r.url.host == "api.pinecone.io"][:2] == [
        "DELETE",
        "GET",
    ]


@pytest.mark.asyncio
async def test_upsert_and_count_use_index_host(mock_sleep):
    fake = FakePinecone(dimension=DIM)
    store = make_store(fake)

    await store.upsert("articles", "a1", [0.1] * DIM, {"title": "One"})
    await store.upsert("articles", "a1", [0.2] * DIM, {"title": "One v2"})

    assert await store.count("articles") == 1
    assert await store.count("other") == 0
    assert fake.vectors[("articles", "a1")]["metadata"] == {"title": "One v2"}
    upsert = next(r for r in fake.requests if r.url.path == "/vectors/upsert")
    assert str(upsert.url) == f"https://{HOST}/vectors/upsert"


@pytest.mark.asyncio
async def test_query_clamps_scores(mock_sleep):
    store = make_store(FakePinecone(dimension=DIM))

    matches = await store.query("articles", [0.1] * DIM, 3)

    assert [m.id for m in matches] == ["a1", "a2", "a3"]
    assert [m.score for m in matches] == [1.0, 0.5, 0.0]
    assert matches[0].metadata == {"title": "One"}
    assert matches[2].metadata == {}


@pytest.mark.asyncio
async def test_data_plane_without_index_fails(mock_sleep):
    store = make_store(FakePinecone())

    with pytest.raises(VectorStoreError):
        await store.query("articles", [0.1] * DIM, 3)


@pytest.mark.asyncio
async def test_wrong_vector_dimension_is_rejected_before_request(mock_sleep):
    fake = FakePinecone(dimension=DIM)
    store = make_store(fake)

    with pytest.raises(DimensionMismatchError):
        await store.upsert("articles", "a1", [0.1] * 1536, {})
    assert fake.requests == []


@pytest.mark.asyncio
async def test_missing_api_key_is_configuration_error(mock_sleep, monkeypatch):
    monkeypatch.setattr(settings, "pinecone_api_key", None)
    store = make_store(FakePinecone(), api_key=None)

    with pytest.raises(ConfigurationError):
        await store.describe_index()


@pytest.mark.asyncio
async def test_wait_until_ready_without_description_is_store_error(mock_sleep):
    store = make_store(FakePinecone())

    with patch.object(store, "_wait_for", AsyncMock(return_value=None)):
        with pytest.raises(VectorStoreError, match="disappeared"):
            await store.wait_until_ready()

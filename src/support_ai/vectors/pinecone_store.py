"""
Serverless Vector Index Adapter

This module talks to a Pinecone-style serverless vector database over its
REST API:

- Control plane (index admin): list / describe / create / delete indexes
- Data plane (per-index host): namespaced upsert, query, stats

Index creation is asynchronous on the server. `ensure_index()` and
`reset_index()` therefore poll the index description with exponential
backoff and a hard deadline, raising `ResourceNotReady` instead of
sleeping for a fixed duration.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from ..config import settings, require_secret
from ..core.errors import DimensionMismatchError, ResourceNotReady
from ..embeddings.models import SearchMatch
from .base import VectorStoreError, to_match, validate_dimension

logger = logging.getLogger("support.vectors")

IndexDescription = Dict[str, Any]


class PineconeVectorStore:
    """
    Namespaced vector store backed by one serverless index.

    Upserts overwrite by id (no partial metadata merge). Query ties are
    ordered however the store returns them.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        index_name: Optional[str] = None,
        dimension: Optional[int] = None,
        metric: str = "cosine",
        cloud: Optional[str] = None,
        region: Optional[str] = None,
        controller_url: Optional[str] = None,
        api_version: Optional[str] = None,
        ready_timeout: Optional[float] = None,
        poll_initial_delay: Optional[float] = None,
        poll_max_delay: Optional[float] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self.index_name = index_name or settings.vector_index_name
        self.dimension = dimension or settings.embedding_dimension
        self.metric = metric
        self.cloud = cloud or settings.vector_cloud
        self.region = region or settings.vector_region
        self.controller_url = (controller_url or settings.pinecone_controller_url).rstrip("/")
        self.api_version = api_version or settings.pinecone_api_version
        self.ready_timeout = (
            ready_timeout if ready_timeout is not None else settings.index_ready_timeout
        )
        self.poll_initial_delay = (
            poll_initial_delay
            if poll_initial_delay is not None
            else settings.index_poll_initial_delay
        )
        self.poll_max_delay = (
            poll_max_delay if poll_max_delay is not None else settings.index_poll_max_delay
        )
        self.timeout = timeout
        self._transport = transport
        self._host: Optional[str] = None

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        api_key = self._api_key or require_secret(
            settings.pinecone_api_key, "PINECONE_API_KEY"
        )
        return {
            "Api-Key": api_key,
            "X-Pinecone-API-Version": self.api_version,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        allowed_status: Sequence[int] = (),
    ) -> httpx.Response:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise VectorStoreError(
                f"{method} {url} failed: {type(exc).__name__}: {exc}"
            ) from exc

        if resp.status_code in allowed_status:
            return resp

        if resp.is_error:
            raise VectorStoreError(
                f"{method} {url} returned {resp.status_code}: {resp.text}"
            )
        return resp

    async def _data_url(self, path: str) -> str:
        if self._host is None:
            desc = await self.describe_index()
            if desc is None:
                raise VectorStoreError(f"Index {self.index_name!r} does not exist")
            self._host = desc["host"]
        host = self._host
        if not host.startswith("http"):
            host = f"https://{host}"
        return f"{host}{path}"

    # ------------------------------------------------------------------
    # Index administration
    # ------------------------------------------------------------------

    async def describe_index(self) -> Optional[IndexDescription]:
        """Return the index description, or None if it does not exist."""
        resp = await self._request(
            "GET",
            f"{self.controller_url}/indexes/{self.index_name}",
            allowed_status=(404,),
        )
        if resp.status_code == 404:
            return None
        return resp.json()

    async def _create_index(self) -> None:
        logger.info(
            "Creating index %s (dimension=%d, metric=%s)",
            self.index_name,
            self.dimension,
            self.metric,
        )
        payload = {
            "name": self.index_name,
            "dimension": self.dimension,
            "metric": self.metric,
            "spec": {
                "serverless": {
                    "cloud": self.cloud,
                    "region": self.region,
                }
            },
        }
        # 409: a concurrent caller created it first
        await self._request(
            "POST",
            f"{self.controller_url}/indexes",
            json=payload,
            allowed_status=(409,),
        )

    async def _wait_for(
        self,
        predicate: Callable[[Optional[IndexDescription]], bool],
        what: str,
    ) -> Optional[IndexDescription]:
        """
        Poll the index description until `predicate` holds.

        The delay doubles after every attempt up to `poll_max_delay`; the
        total time slept never exceeds `ready_timeout`.
        """
        delay = self.poll_initial_delay
        waited = 0.0

        while True:
            desc = await self.describe_index()
            if predicate(desc):
                return desc

            if waited >= self.ready_timeout:
                raise ResourceNotReady(
                    f"Index {self.index_name!r} not {what} after {waited:.1f}s"
                )

            pause = min(delay, self.ready_timeout - waited)
            logger.debug("Index %s not %s yet; retrying in %.2fs", self.index_name, what, pause)
            await asyncio.sleep(pause)
            waited += pause
            delay = min(delay * 2, self.poll_max_delay)

    async def wait_until_ready(self) -> IndexDescription:
        desc = await self._wait_for(
            lambda d: bool(d and d.get("status", {}).get("ready")),
            "ready",
        )
        if desc is None:
            raise VectorStoreError(f"Index {self.index_name!r} disappeared while waiting")
        self._host = desc.get("host") or self._host
        return desc

    async def ensure_index(self) -> IndexDescription:
        """
        Create the index if it is absent and block until it is queryable.

        An existing index with a different dimension is never migrated;
        the operator must run `reset_index()`.
        """
        desc = await self.describe_index()

        if desc is None:
            await self._create_index()
            desc = await self.wait_until_ready()
            logger.info("Index %s created and ready", self.index_name)
            return desc

        existing_dim = desc.get("dimension")
        if existing_dim is not None and int(existing_dim) != self.dimension:
            raise DimensionMismatchError(
                f"Index {self.index_name!r} has dimension {existing_dim}, "
                f"expected {self.dimension}; reset the index to recreate it"
            )

        if not desc.get("status", {}).get("ready"):
            desc = await self.wait_until_ready()

        self._host = desc.get("host") or self._host
        logger.info("Index already exists: %s", self.index_name)
        return desc

    async def delete_index(self) -> bool:
        """Delete the index. Returns False if it did not exist."""
        resp = await self._request(
            "DELETE",
            f"{self.controller_url}/indexes/{self.index_name}",
            allowed_status=(404,),
        )
        self._host = None
        return resp.status_code != 404

    async def reset_index(self) -> IndexDescription:
        """
        Delete, wait for removal, recreate with the configured dimension,
        and wait until the new index is ready.
        """
        logger.info("Resetting index %s", self.index_name)
        if await self.delete_index():
            await self._wait_for(lambda d: d is None, "deleted")
        await self._create_index()
        desc = await self.wait_until_ready()
        logger.info(
            "Index %s recreated with dimension %d", self.index_name, self.dimension
        )
        return desc

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
        url = await self._data_url("/vectors/upsert")
        await self._request(
            "POST",
            url,
            json={
                "namespace": namespace,
                "vectors": [
                    {"id": id, "values": list(vector), "metadata": metadata},
                ],
            },
        )

    async def query(
        self,
        namespace: str,
        vector: Sequence[float],
        top_k: int,
    ) -> List[SearchMatch]:
        validate_dimension(vector, self.dimension)
        url = await self._data_url("/query")
        resp = await self._request(
            "POST",
            url,
            json={
                "namespace": namespace,
                "vector": list(vector),
                "topK": top_k,
                "includeMetadata": True,
            },
        )
        matches = resp.json().get("matches") or []
        return [
            to_match(m["id"], m.get("score") or 0.0, m.get("metadata"))
            for m in matches[:top_k]
        ]

    async def count(self, namespace: str) -> int:
        url = await self._data_url("/describe_index_stats")
        resp = await self._request("POST", url, json={})
        namespaces = resp.json().get("namespaces") or {}
        return int(namespaces.get(namespace, {}).get("vectorCount", 0))

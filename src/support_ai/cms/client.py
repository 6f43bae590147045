import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from ..config import settings, require_secret
from .models import Article, ArticlePage

logger = logging.getLogger("support.cms")

_REGION_HOSTS = {
    "us": "https://cdn.contentstack.io/v3",
    "eu": "https://eu-cdn.contentstack.com/v3",
}

SEARCH_FIELD_LIMIT = 10


class CMSError(RuntimeError):
    """Raised when the CMS delivery API cannot be read."""


class ContentstackClient:
    """Read-only client for `article` entries on the Contentstack delivery API."""

    content_type = "article"

    def __init__(
        self,
        api_key: Optional[str] = None,
        delivery_token: Optional[str] = None,
        environment: Optional[str] = None,
        region: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._delivery_token = delivery_token
        self.environment = environment or settings.contentstack_environment
        self.base_url = _REGION_HOSTS[region or settings.contentstack_region]
        self.timeout = timeout
        self._transport = transport

    async def _entries(
        self,
        query: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        skip: int = 0,
        include_count: bool = False,
        descending: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Fetch article entries with the category reference resolved.
        """
        headers = {
            "api_key": self._api_key
            or require_secret(settings.contentstack_api_key, "CONTENTSTACK_API_KEY"),
            "access_token": self._delivery_token
            or require_secret(
                settings.contentstack_delivery_token, "CONTENTSTACK_DELIVERY_TOKEN"
            ),
        }
        params: Dict[str, Any] = {
            "environment": self.environment,
            "include[]": "category",
        }
        if query:
            params["query"] = json.dumps(query)
        if limit is not None:
            params["limit"] = limit
        if skip:
            params["skip"] = skip
        if include_count:
            params["include_count"] = "true"
        if descending:
            params["desc"] = descending

        url = f"{self.base_url}/content_types/{self.content_type}/entries"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.get(url, params=params, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise CMSError(f"CMS request failed: {type(exc).__name__}: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise CMSError(f"CMS returned a non-JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise CMSError(f"CMS returned {type(data).__name__}, expected an object")
        return data

    @staticmethod
    def _parse_entries(data: Dict[str, Any]) -> Tuple[List[Article], List[str]]:
        """
        Validate entries one at a time. An invalid entry is logged and
        reported as "uid: reason" instead of failing the whole response.
        """
        entries = data.get("entries") or []
        if not isinstance(entries, list):
            raise CMSError("CMS response 'entries' must be a list")

        articles: List[Article] = []
        rejected: List[str] = []
        for entry in entries:
            try:
                articles.append(Article.model_validate(entry))
            except ValidationError as exc:
                uid = entry.get("uid") if isinstance(entry, dict) else None
                first = exc.errors()[0]
                field = ".".join(str(part) for part in first["loc"]) or "entry"
                reason = f"{uid or '<no uid>'}: invalid {field} ({first['msg']})"
                logger.warning("Skipping CMS entry %s", reason)
                rejected.append(reason)
        return articles, rejected

    @classmethod
    def _articles(cls, data: Dict[str, Any]) -> List[Article]:
        return cls._parse_entries(data)[0]

    async def list_documents(self, limit: int = 10, offset: int = 0) -> ArticlePage:
        """Newest-first page of articles plus the total count."""
        data = await self._entries(
            limit=limit,
            skip=offset,
            include_count=True,
            descending="created_at",
        )
        articles, rejected = self._parse_entries(data)
        return ArticlePage(
            articles=articles,
            total=int(data.get("count") or 0),
            rejected=rejected,
        )

    async def get_documents_by_ids(self, ids: Sequence[str]) -> List[Article]:
        """
        Fetch articles by uid, ordered like `ids`. Unknown uids are dropped.
        """
        if not ids:
            return []

        data = await self._entries(query={"uid": {"$in": list(ids)}})
        articles = self._articles(data)

        position = {uid: i for i, uid in enumerate(ids)}
        articles.sort(key=lambda a: position.get(a.uid, len(position)))
        return articles

    async def search_articles(self, query: str) -> List[Article]:
        """
        Baseline text search: case-insensitive substring match (the query
        is regex-escaped) on title, then on excerpt. Results keep that
        order, deduplicated by uid, at most 10.
        """
        if not query.strip():
            return []

        combined: List[Article] = []
        for field in ("title", "excerpt"):
            data = await self._entries(
                query={field: {"$regex": re.escape(query), "$options": "i"}},
                limit=SEARCH_FIELD_LIMIT,
            )
            combined.extend(self._articles(data))

        unique: Dict[str, Article] = {}
        for article in combined:
            unique.setdefault(article.uid, article)

        return list(unique.values())[:SEARCH_FIELD_LIMIT]

    async def get_featured_articles(self, limit: int = 3) -> List[Article]:
        data = await self._entries(query={"featured": True}, limit=limit)
        return self._articles(data)

"""
CDP Client

Explicit client object for the Lytics customer-data platform. It replaces
ambient global tag state with an injected instance:

- `start()` opens the shared HTTP client and marks the instance ready
- `wait_ready()` blocks callers for a bounded time until `start()` ran
- `close()` releases the connection pool

Raw payloads are converted into `Recommendation` / `UserProfile` here and
nowhere else. A payload that does not have the expected shape is a
`ProfileParseError`, not something to probe for alternate field locations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..config import settings, require_secret
from ..core.errors import ConfigurationError, ResourceNotReady
from .models import Recommendation, UserProfile

logger = logging.getLogger("support.cdp")


class CDPError(RuntimeError):
    """Raised when the CDP returns an error status or cannot be reached."""

    def __init__(self, message: str, status_code: int = 502, details: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ProfileParseError(ValueError):
    """Raised when a CDP payload does not match the expected shape."""


def parse_user_profile(payload: Any) -> UserProfile:
    """
    Convert an entity payload of the form ``{"data": {"user": {...}}}``
    into a UserProfile.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise ProfileParseError("Profile payload must be an object with a 'data' object")

    user = payload["data"].get("user")
    if not isinstance(user, dict):
        raise ProfileParseError("Profile payload has no 'data.user' object")

    if not user.get("_uid"):
        raise ProfileParseError("Profile payload user has no '_uid'")

    try:
        return UserProfile(
            uid=user["_uid"],
            email=user.get("email"),
            name=user.get("name"),
            interests=user.get("interests") or [],
            audience_segments=user.get("segments") or [],
            content_affinities=user.get("content_affinities") or [],
            search_history=user.get("search_history") or [],
            ticket_categories=user.get("ticket_categories") or [],
            engagement_score=user.get("engagement_score") or 0,
            visit_count=user.get("visit_count") or 0,
            last_visit=user.get("last_visit"),
        )
    except ValidationError as exc:
        raise ProfileParseError(f"Invalid profile field types: {exc.error_count()} errors") from exc


class LyticsClient:
    """
    Recommendation and profile reader for one CDP account.
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        ready_timeout: Optional[float] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._account_id = account_id
        self._api_token = api_token
        self.base_url = (base_url or settings.lytics_base_url).rstrip("/")
        self.ready_timeout = (
            ready_timeout if ready_timeout is not None else settings.cdp_ready_timeout
        )
        self.timeout = timeout
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        self._ready.set()
        logger.info("CDP client ready")

    async def close(self) -> None:
        self._ready.clear()
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        limit = self.ready_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=limit)
        except asyncio.TimeoutError as exc:
            raise ResourceNotReady(f"CDP client not started within {limit:.1f}s") from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def account_id(self) -> str:
        account_id = self._account_id or settings.lytics_account_id
        if not account_id:
            raise ConfigurationError("Lytics account ID not configured")
        return account_id

    def _auth_headers(self, required: bool = False) -> Dict[str, str]:
        token = self._api_token
        if token is None and (required or settings.lytics_api_token is not None):
            token = require_secret(settings.lytics_api_token, "LYTICS_API_TOKEN")
        return {"Authorization": token} if token else {}

    async def _get(self, url: str, params: Dict[str, Any], headers: Dict[str, str]) -> Any:
        await self.wait_ready()
        client = self._client
        if client is None:
            raise ResourceNotReady("CDP client has been closed")

        try:
            resp = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise CDPError(f"CDP request failed: {type(exc).__name__}: {exc}") from exc

        if resp.is_error:
            logger.error("CDP API error: %s %s", resp.status_code, resp.text)
            raise CDPError(
                f"CDP returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                details=resp.text,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise CDPError(f"CDP returned a non-JSON body: {exc}", details=resp.text) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_recommendations_raw(self, user_id: str, limit: int = 5) -> Dict[str, Any]:
        """Return the recommendation feed payload unmodified."""
        url = (
            f"{self.base_url}/api/content/recommend/{quote(self.account_id, safe='')}"
            f"/user/_uid/{quote(user_id, safe='')}"
        )
        data = await self._get(url, {"limit": limit}, self._auth_headers())
        if not isinstance(data, dict):
            raise ProfileParseError("Recommendation payload must be an object")
        return data

    async def fetch_recommendations(self, user_id: str, limit: int = 5) -> List[Recommendation]:
        """
        Ranked recommendations for a user. An empty user id yields [].
        """
        if not user_id:
            logger.info("Missing user id for recommendations")
            return []

        data = await self.fetch_recommendations_raw(user_id, limit)
        items = data.get("data") or []
        if not isinstance(items, list):
            raise ProfileParseError("Recommendation payload 'data' must be a list")

        try:
            recommendations = [Recommendation.model_validate(item) for item in items]
        except ValidationError as exc:
            raise ProfileParseError(
                f"Invalid recommendation entries: {exc.error_count()} errors"
            ) from exc

        logger.info("Recommendations received: %d", len(recommendations))
        return recommendations

    async def fetch_profile(self, user_id: str) -> UserProfile:
        url = f"{self.base_url}/api/entity/user/_uid/{quote(user_id, safe='')}"
        data = await self._get(url, {}, self._auth_headers(required=True))
        return parse_user_profile(data)

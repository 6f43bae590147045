"""
Embedding Client

This module implements the embedding client used by both the document
indexer and the chat retrieval step. It calls the Hugging Face
feature-extraction pipeline for a sentence-transformers model and is
responsible for:

- Transport error isolation
- Strict response validation
- Enforcing the configured vector dimension

The class is stateless and safe to reuse across requests. There is no
local fallback model: when the remote model is unavailable, the caller's
operation fails.
"""

from __future__ import annotations

from typing import Any, List, Optional
import logging
import httpx

from ..config import settings, require_secret
from ..core.errors import DimensionMismatchError

logger = logging.getLogger("support.embedder")


class EmbeddingUnavailable(RuntimeError):
    """Raised when the embedding model cannot produce a vector."""


class Embedder:
    """
    Asynchronous text-to-vector client.

    Output is deterministic for identical input as long as the remote model
    is fixed. This class performs no caching.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            Override for the Hugging Face token. Defaults to
            settings.huggingface_api_key, resolved lazily at call time.

        model : Optional[str]
            Override for the embedding model id.

        dimension : Optional[int]
            Expected vector length. Defaults to settings.embedding_dimension.

        base_url : Optional[str]
            Base URL of the inference router, without the model path.

        timeout : Optional[float]
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport, used by tests.
        """
        self._api_key = api_key
        self.model = model or settings.embedding_model
        self.dimension = dimension or settings.embedding_dimension
        self.base_url = (base_url or settings.embedding_base_url).rstrip("/")
        self.timeout = timeout or settings.embedding_timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model}/pipeline/feature-extraction"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding for one piece of text.

        Callers must not pass empty text; content is truncated upstream.

        Raises
        ------
        EmbeddingUnavailable
            If the request fails or the response is malformed.

        DimensionMismatchError
            If the model returns a vector of the wrong length.
        """
        api_key = self._api_key or require_secret(
            settings.huggingface_api_key, "HUGGINGFACE_API_KEY"
        )
        headers = {"Authorization": f"Bearer {api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    json={"inputs": text},
                    headers=headers,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Embedding request failed (%s): model=%s, error=%s",
                type(exc).__name__,
                self.model,
                str(exc),
            )
            raise EmbeddingUnavailable(
                f"Embedding generation failed: {type(exc).__name__}: {exc}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingUnavailable(
                f"Malformed embedding response: body is not JSON ({exc})"
            ) from exc

        vector = self._extract_vector(data)

        if len(vector) != self.dimension:
            raise DimensionMismatchError(
                f"Embedding model {self.model} returned {len(vector)} "
                f"dimensions, expected {self.dimension}"
            )

        return vector

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_vector(data: Any) -> List[float]:
        """
        Parse and validate the feature-extraction output.

        The pipeline returns either a flat list of floats or a list holding
        a single such list.
        """
        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]

        if not isinstance(data, list) or not data:
            raise EmbeddingUnavailable(
                f"Malformed embedding response: {type(data).__name__}"
            )

        if not all(
            isinstance(x, (float, int)) and not isinstance(x, bool) for x in data
        ):
            raise EmbeddingUnavailable("Invalid embedding vector: must be float list.")

        return [float(x) for x in data]

from typing import List, Dict, Optional
import logging

import httpx

from ..config import settings, require_secret

logger = logging.getLogger("support.llm")

FALLBACK_COMPLETION = "I apologize, I couldn't generate a response."


class LLMError(RuntimeError):
    """Raised when the chat model call fails. 429s carry 'rate limit' in the message."""


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self.model = model or settings.chat_model
        self.base_url = base_url or settings.chat_base_url
        self.timeout = timeout or settings.chat_timeout
        self._transport = transport

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Single-turn completion: one system message and one user message in,
        the text of the first choice out.
        """
        api_key = self._api_key or require_secret(
            settings.huggingface_api_key, "HUGGINGFACE_API_KEY"
        )
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens or settings.chat_max_tokens,
            "temperature": (
                temperature if temperature is not None else settings.chat_temperature
            ),
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(
                    self.base_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {api_key}"},
                )
        except httpx.HTTPError as exc:
            raise LLMError(f"Chat request failed: {type(exc).__name__}: {exc}") from exc

        if resp.status_code == 429:
            raise LLMError(f"Model provider rate limit reached: {resp.text}")
        if resp.is_error:
            logger.error("Chat completion returned %s: %s", resp.status_code, resp.text)
            raise LLMError(f"Chat completion failed with HTTP {resp.status_code}: {resp.text}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise LLMError(f"Chat completion returned a non-JSON body: {exc}") from exc

        try:
            content = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise LLMError("Chat completion response has no choices") from exc

        return content or FALLBACK_COMPLETION

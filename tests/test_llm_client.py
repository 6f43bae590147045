import json

import httpx
import pytest

from support_ai.llm.client import FALLBACK_COMPLETION, LLMClient, LLMError


def make_client(handler):
    return LLMClient(
        api_key="hf-test",
        model="meta-llama/Llama-3.2-3B-Instruct",
        base_url="https://router.example/v1/chat/completions",
        transport=httpx.MockTransport(handler),
    )


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.mark.asyncio
async def test_complete_sends_single_turn_payload():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion("Try resetting your password."))

    answer = await make_client(handler).complete("SYSTEM", "USER")

    assert answer == "Try resetting your password."
    body = seen["body"]
    assert body["model"] == "meta-llama/Llama-3.2-3B-Instruct"
    assert body["messages"] == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "USER"},
    ]
    assert body["max_tokens"] == 500
    assert body["temperature"] == 0.7


@pytest.mark.asyncio
async def test_empty_content_uses_fallback():
    client = make_client(lambda request: httpx.Response(200, json=completion(None)))

    assert await client.complete("s", "u") == FALLBACK_COMPLETION


@pytest.mark.asyncio
async def test_429_is_rate_limit_error():
    client = make_client(lambda request: httpx.Response(429, text="Too Many Requests"))

    with pytest.raises(LLMError, match="rate limit"):
        await client.complete("s", "u")


@pytest.mark.asyncio
async def test_server_error_is_llm_error():
    client = make_client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(LLMError) as excinfo:
        await client.complete("s", "u")
    assert "rate limit" not in str(excinfo.value).lower()


@pytest.mark.asyncio
async def test_response_without_choices_is_llm_error():
    client = make_client(lambda request: httpx.Response(200, json={"choices": []}))

    with pytest.raises(LLMError):
        await client.complete("s", "u")


@pytest.mark.asyncio
async def test_non_json_body_is_llm_error():
    client = make_client(lambda request: httpx.Response(200, text="<html>gateway</html>"))

    with pytest.raises(LLMError, match="non-JSON"):
        await client.complete("s", "u")

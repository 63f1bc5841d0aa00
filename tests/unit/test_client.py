"""Unit tests for the CompletionClient."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
import respx

from gateway.config.settings import Settings
from gateway.core.client import CompletionClient, CompletionRequest, Platform
from gateway.core.errors import AiTimeout, AiUnavailable

AI_URL = "http://ai.test/v1/chat/completions"


def _completion(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture
def client(settings: Settings):
    return CompletionClient(settings)


@respx.mock
@pytest.mark.asyncio
async def test_complete_returns_text(client: CompletionClient):
    route = respx.post(AI_URL).mock(return_value=httpx.Response(200, json=_completion("Hi!")))

    result = await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))

    assert result.text == "Hi!"
    assert route.call_count == 1


@respx.mock
@pytest.mark.asyncio
async def test_request_payload_and_headers(client: CompletionClient, settings: Settings):
    route = respx.post(AI_URL).mock(return_value=httpx.Response(200, json=_completion("ok")))

    await client.complete(CompletionRequest(platform=Platform.WHATSAPP, message="hey"))

    request = route.calls.last.request
    body = json.loads(request.content)
    assert body["model"] == settings.ai_model
    assert body["max_tokens"] == settings.ai_max_tokens
    assert body["temperature"] == settings.ai_temperature
    assert body["messages"] == [
        {"role": "system", "content": settings.system_prompts["whatsapp"]},
        {"role": "user", "content": "hey"},
    ]
    assert request.headers["User-Agent"] == "Premium-AI-Bot/2.0"
    assert "Authorization" not in request.headers


@respx.mock
@pytest.mark.asyncio
async def test_explicit_system_prompt_wins(client: CompletionClient):
    route = respx.post(AI_URL).mock(return_value=httpx.Response(200, json=_completion("ok")))

    await client.complete(
        CompletionRequest(platform=Platform.WEB, message="hey", system_prompt="Be brief.")
    )

    body = json.loads(route.calls.last.request.content)
    assert body["messages"][0] == {"role": "system", "content": "Be brief."}


@respx.mock
@pytest.mark.asyncio
async def test_api_key_sent_as_bearer():
    settings = Settings(ai_api_url=AI_URL, ai_api_key="sk-test")
    client = CompletionClient(settings)
    route = respx.post(AI_URL).mock(return_value=httpx.Response(200, json=_completion("ok")))

    await client.complete(CompletionRequest(platform=Platform.WEB, message="hi"))

    assert route.calls.last.request.headers["Authorization"] == "Bearer sk-test"


def test_unknown_platform_uses_default_prompt(client: CompletionClient, settings: Settings):
    assert client.system_prompt_for("telegram") == settings.system_prompts["default"]
    assert client.system_prompt_for(Platform.DEFAULT) == settings.system_prompts["default"]
    assert client.system_prompt_for(Platform.WEB) == settings.system_prompts["web"]


@respx.mock
@pytest.mark.asyncio
async def test_timeout_raises_ai_timeout(client: CompletionClient, settings: Settings):
    respx.post(AI_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

    with pytest.raises(AiTimeout) as exc_info:
        await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))

    assert exc_info.value.user_message == settings.error_ai_timeout_message
    assert "timed out" in exc_info.value.detail


@respx.mock
@pytest.mark.asyncio
async def test_http_error_raises_ai_unavailable(client: CompletionClient, settings: Settings):
    respx.post(AI_URL).mock(
        return_value=httpx.Response(500, json={"error": "internal stack trace here"})
    )

    with pytest.raises(AiUnavailable) as exc_info:
        await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))

    assert exc_info.value.user_message == settings.error_generic_message
    assert "stack trace" not in exc_info.value.user_message


@respx.mock
@pytest.mark.asyncio
async def test_connect_error_single_attempt(client: CompletionClient):
    route = respx.post(AI_URL).mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(AiUnavailable):
        await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))

    assert route.call_count == 1


@respx.mock
@pytest.mark.asyncio
async def test_connect_error_retried_when_configured():
    settings = Settings(ai_api_url=AI_URL, ai_max_attempts=2)
    client = CompletionClient(settings)
    route = respx.post(AI_URL)
    route.side_effect = [
        httpx.ConnectError("refused"),
        httpx.Response(200, json=_completion("second time lucky")),
    ]

    result = await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))

    assert result.text == "second time lucky"
    assert route.call_count == 2


@respx.mock
@pytest.mark.asyncio
async def test_malformed_payload_raises_ai_unavailable(client: CompletionClient):
    respx.post(AI_URL).mock(return_value=httpx.Response(200, json={"choices": []}))

    with pytest.raises(AiUnavailable):
        await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))


@respx.mock
@pytest.mark.asyncio
async def test_non_json_body_raises_ai_unavailable(client: CompletionClient):
    respx.post(AI_URL).mock(return_value=httpx.Response(200, text="<html>bad gateway</html>"))

    with pytest.raises(AiUnavailable):
        await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))


@respx.mock
@pytest.mark.asyncio
async def test_empty_reply_raises_ai_unavailable(client: CompletionClient):
    respx.post(AI_URL).mock(return_value=httpx.Response(200, json=_completion("   ")))

    with pytest.raises(AiUnavailable):
        await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))


@respx.mock
@pytest.mark.asyncio
async def test_total_timeout_raises_ai_timeout():
    settings = Settings(ai_api_url=AI_URL, ai_timeout=0.05)
    client = CompletionClient(settings)

    async def slow_response(request):
        await asyncio.sleep(1)
        return httpx.Response(200, json=_completion("too late"))

    respx.post(AI_URL).mock(side_effect=slow_response)

    with pytest.raises(AiTimeout) as exc_info:
        await client.complete(CompletionRequest(platform=Platform.WEB, message="hello"))

    assert exc_info.value.user_message == settings.error_ai_timeout_message

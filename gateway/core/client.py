"""HTTP client for the remote AI chat-completions API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gateway.config.settings import Settings
from gateway.core.errors import AiTimeout, AiUnavailable

logger = logging.getLogger("gateway.client")

USER_AGENT = "Premium-AI-Bot/2.0"


class Platform(str, Enum):
    WHATSAPP = "whatsapp"
    WEB = "web"
    DEFAULT = "default"


@dataclass(frozen=True)
class CompletionRequest:
    platform: Platform
    message: str
    system_prompt: str = ""


@dataclass(frozen=True)
class CompletionResult:
    text: str


class CompletionClient:
    """Async client that issues one chat completion per call.

    Timeouts surface as :class:`AiTimeout`; every other failure (transport,
    HTTP status, malformed payload) as :class:`AiUnavailable`. The underlying
    error is logged but never placed in the user-facing message.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._timeout = settings.ai_timeout
        self._max_attempts = max(1, settings.ai_max_attempts)
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        if settings.ai_api_key:
            headers["Authorization"] = f"Bearer {settings.ai_api_key}"
        self._http = httpx.AsyncClient(timeout=self._timeout, headers=headers)

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def system_prompt_for(self, platform: Platform | str) -> str:
        """Prompt configured for ``platform``, or the default prompt."""
        prompts = self._settings.system_prompts
        key = platform.value if isinstance(platform, Platform) else platform
        return prompts.get(key) or prompts["default"]

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run one completion for ``request`` within the configured timeout."""
        system_prompt = request.system_prompt or self.system_prompt_for(request.platform)
        payload = {
            "model": self._settings.ai_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": request.message},
            ],
            "max_tokens": self._settings.ai_max_tokens,
            "temperature": self._settings.ai_temperature,
        }

        try:
            data = await asyncio.wait_for(self._post(payload), timeout=self._timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error("AI API timeout after %.1fs: %r", self._timeout, e)
            raise AiTimeout(self._settings.error_ai_timeout_message, detail=repr(e)) from e
        except httpx.HTTPStatusError as e:
            logger.error("AI API error: HTTP %d %s", e.response.status_code, e.response.text[:200])
            raise AiUnavailable(self._settings.error_generic_message, detail=str(e)) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("AI API error: %r", e)
            raise AiUnavailable(self._settings.error_generic_message, detail=repr(e)) from e

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("AI API returned an unexpected payload: %s", str(data)[:200])
            raise AiUnavailable(self._settings.error_generic_message, detail=repr(e)) from e

        if not isinstance(text, str) or not text.strip():
            logger.error("AI API returned an empty reply")
            raise AiUnavailable(self._settings.error_generic_message, detail="empty reply")

        return CompletionResult(text=text)

    async def _post(self, payload: dict) -> dict:
        """POST the payload, retrying connection errors when configured to."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.ConnectError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "Retrying AI API call (attempt %d/%d)",
                        attempt.retry_state.attempt_number,
                        self._max_attempts,
                    )
                r = await self._http.post(self._settings.ai_api_url, json=payload)
                r.raise_for_status()
                return r.json()
        raise AssertionError("unreachable")  # pragma: no cover

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def close(self) -> None:
        await self._http.aclose()

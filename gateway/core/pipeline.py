"""Message pipeline shared by the WhatsApp and HTTP front-ends.

fingerprint -> cache lookup -> completion call -> cache store -> reply.
The pipeline knows nothing about FastAPI or the WhatsApp bridge; adapters
call :meth:`MessagePipeline.handle` and deliver the returned reply.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from gateway.core.cache import ResponseCache
from gateway.core.client import CompletionRequest, CompletionResult, Platform
from gateway.core.errors import CompletionError
from gateway.core.fingerprint import fingerprint, preview
from gateway.core.session import SessionState
from gateway.core.validators import MAX_WEB_MESSAGE_LENGTH, validate_message

logger = logging.getLogger("gateway.pipeline")


class Origin(str, Enum):
    CHAT = "chat"
    WEB = "web"


ORIGIN_PLATFORMS: dict[Origin, Platform] = {
    Origin.CHAT: Platform.WHATSAPP,
    Origin.WEB: Platform.WEB,
}


class Completer(Protocol):
    def system_prompt_for(self, platform: Platform | str) -> str: ...

    async def complete(self, request: CompletionRequest) -> CompletionResult: ...

    async def close(self) -> None: ...


class MessagePipeline:
    """Turns an inbound message into an AI reply, using the cache when possible."""

    def __init__(
        self,
        completer: Completer,
        cache: ResponseCache,
        session: SessionState,
        caching_enabled: bool = True,
    ) -> None:
        self._completer = completer
        self._cache = cache
        self._session = session
        self._caching_enabled = caching_enabled

    async def handle(self, origin: Origin, user_id: str | None, message: object) -> str:
        """Return the reply for ``message``.

        Raises:
            InvalidInput: If the message is blank, not text, or too long for the web origin.
            AiTimeout: If the completion call timed out.
            AiUnavailable: If the completion call failed for any other reason.
        """
        if user_id:
            self._session.record_user(user_id)

        max_length = MAX_WEB_MESSAGE_LENGTH if origin is Origin.WEB else None
        text = validate_message(message, max_length=max_length)

        platform = ORIGIN_PLATFORMS[origin]
        key = fingerprint(platform.value, text)

        if self._caching_enabled:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        request = CompletionRequest(
            platform=platform,
            message=text,
            system_prompt=self._completer.system_prompt_for(platform),
        )
        try:
            result = await self._completer.complete(request)
        except CompletionError as e:
            logger.error(
                "Completion failed for %s message '%s': %s",
                origin.value,
                preview(text),
                e.detail or type(e).__name__,
            )
            raise

        if self._caching_enabled:
            self._cache.set(key, result.text)

        return result.text

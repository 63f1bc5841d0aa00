"""HTTP client for the WhatsApp-Web bridge.

The bridge is a sidecar that owns the actual WhatsApp Web session (QR
pairing, auth persistence, reconnects). The gateway starts and stops the
session, sends messages through it, and receives client events on its own
``/bridge/events`` webhook.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gateway.config.settings import Settings

logger = logging.getLogger("gateway.whatsapp.bridge")

EVENTS_PATH = "/bridge/events"
SUBSCRIBED_EVENTS = ["qr", "authenticated", "ready", "disconnected", "message"]

# Session start only: sends must not be repeated
_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.ReadTimeout)),
    reraise=True,
)


class ChatClient(Protocol):
    """What the gateway needs from a messaging client."""

    async def initialize(self) -> None: ...

    async def send_message(self, chat_id: str, text: str) -> None: ...

    async def reply(self, chat_id: str, text: str, quoted_message_id: str | None = None) -> None: ...

    async def destroy(self) -> None: ...


class WhatsAppBridgeClient:
    """Async client for one named session on the bridge."""

    def __init__(
        self,
        base_url: str,
        session: str = "default",
        webhook_url: str | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.webhook_url = webhook_url
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=30.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> WhatsAppBridgeClient:
        return cls(
            base_url=settings.whatsapp_bridge_url,
            session=settings.whatsapp_session,
            webhook_url=f"{settings.public_url}{EVENTS_PATH}",
        )

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @_retry
    async def initialize(self) -> None:
        """POST /sessions/:name/start, registering the gateway's event webhook."""
        logger.info("Starting WhatsApp session '%s' on %s", self.session, self.base_url)
        r = await self._http.post(
            f"/sessions/{self.session}/start",
            json={"webhook": {"url": self.webhook_url, "events": SUBSCRIBED_EVENTS}},
        )
        r.raise_for_status()

    async def destroy(self) -> None:
        """POST /sessions/:name/stop, then close the HTTP client."""
        try:
            r = await self._http.post(f"/sessions/{self.session}/stop")
            r.raise_for_status()
            logger.info("WhatsApp session '%s' stopped", self.session)
        finally:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(self, chat_id: str, text: str) -> None:
        """POST /sessions/:name/messages"""
        r = await self._http.post(
            f"/sessions/{self.session}/messages",
            json={"chatId": chat_id, "text": text},
        )
        r.raise_for_status()

    async def reply(self, chat_id: str, text: str, quoted_message_id: str | None = None) -> None:
        """Send ``text`` to ``chat_id`` quoting the message it answers."""
        body: dict = {"chatId": chat_id, "text": text}
        if quoted_message_id:
            body["quotedMessageId"] = quoted_message_id
        r = await self._http.post(f"/sessions/{self.session}/messages", json=body)
        r.raise_for_status()

"""Translate WhatsApp client events into session updates and pipeline calls."""

from __future__ import annotations

import logging
from typing import Any

from gateway.config.settings import Settings
from gateway.core.errors import GatewayError
from gateway.core.fingerprint import preview
from gateway.core.pipeline import MessagePipeline, Origin
from gateway.core.session import LifecycleSignal, SessionState
from gateway.whatsapp.bridge import ChatClient

logger = logging.getLogger("gateway.whatsapp.events")

STATUS_BROADCAST = "status@broadcast"


class ChatEventAdapter:
    """Entry point for every event the bridge pushes to the gateway."""

    def __init__(
        self,
        settings: Settings,
        session: SessionState,
        pipeline: MessagePipeline,
        chat: ChatClient,
    ) -> None:
        self._settings = settings
        self._session = session
        self._pipeline = pipeline
        self._chat = chat

    async def dispatch(self, event: str, payload: dict[str, Any] | None = None) -> None:
        payload = payload or {}
        if event == "message":
            await self.on_message(payload)
            return

        try:
            signal = LifecycleSignal(event)
        except ValueError:
            logger.warning("Ignoring unknown bridge event '%s'", event)
            return

        self._session.apply(signal)
        if signal is LifecycleSignal.QR_ISSUED:
            logger.info("QR code generated, waiting for scan on the bridge")
        elif signal is LifecycleSignal.READY:
            logger.info(self._settings.bot_ready_message)
        elif signal is LifecycleSignal.AUTHENTICATED:
            logger.info("WhatsApp authentication successful")
        else:
            logger.warning("WhatsApp disconnected: %s", payload.get("reason", "unknown"))

    async def on_message(self, payload: dict[str, Any]) -> None:
        sender = payload.get("from")
        if not sender or sender == STATUS_BROADCAST or payload.get("fromMe"):
            return

        body = payload.get("body")
        message_id = payload.get("id")
        logger.info("Message from %s: %s", sender, preview(str(body or "")))

        try:
            reply = await self._pipeline.handle(Origin.CHAT, sender, body)
        except GatewayError as e:
            logger.error("Error processing message from %s: %s", sender, e.detail or e.user_message)
            reply = self._settings.error_generic_message
        except Exception:
            logger.exception("Unexpected error processing message from %s", sender)
            reply = self._settings.error_generic_message

        try:
            await self._chat.reply(sender, reply, message_id)
        except Exception as e:
            logger.error("Failed to send reply to %s: %s", sender, e)
            return

        logger.info("AI replied to %s: %s", sender, preview(reply))

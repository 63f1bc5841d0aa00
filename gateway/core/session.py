"""Connection status of the WhatsApp client and the users seen so far."""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger("gateway.session")


class BotStatus(str, Enum):
    INITIALIZING = "initializing"
    WAITING_FOR_QR = "waiting_for_qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"


class LifecycleSignal(str, Enum):
    """Events emitted by the chat client's connection lifecycle."""

    QR_ISSUED = "qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"


_TRANSITIONS: dict[LifecycleSignal, BotStatus] = {
    LifecycleSignal.QR_ISSUED: BotStatus.WAITING_FOR_QR,
    LifecycleSignal.AUTHENTICATED: BotStatus.AUTHENTICATED,
    LifecycleSignal.READY: BotStatus.READY,
    LifecycleSignal.DISCONNECTED: BotStatus.DISCONNECTED,
}


class SessionState:
    """Bot status plus the set of distinct user ids that messaged the bot."""

    def __init__(self) -> None:
        self._status = BotStatus.INITIALIZING
        self._active_users: set[str] = set()

    @property
    def status(self) -> BotStatus:
        return self._status

    @property
    def active_users(self) -> frozenset[str]:
        return frozenset(self._active_users)

    @property
    def is_ready(self) -> bool:
        return self._status is BotStatus.READY

    def apply(self, signal: LifecycleSignal) -> BotStatus:
        """Move to the status a lifecycle signal implies and return it."""
        new_status = _TRANSITIONS[signal]
        if new_status is not self._status:
            logger.info("Bot status %s -> %s", self._status.value, new_status.value)
        self._status = new_status
        return new_status

    def record_user(self, user_id: str) -> None:
        self._active_users.add(user_id)

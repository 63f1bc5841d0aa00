"""Error kinds raised by the gateway core and translated by the HTTP layer.

Every error carries a ``user_message`` that is safe to show to the end user
and an optional internal ``detail`` that is only ever logged.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""

    status_code: int = 500

    def __init__(self, user_message: str, detail: str | None = None) -> None:
        self.user_message = user_message
        self.detail = detail
        super().__init__(user_message)


class InvalidInput(GatewayError):
    """Malformed, missing or oversized request field."""

    status_code = 400


class CompletionError(GatewayError):
    """The remote completion call failed."""


class AiTimeout(CompletionError):
    """The completion call exceeded the configured timeout."""


class AiUnavailable(CompletionError):
    """Any other transport or API-level completion failure."""


class BotNotReady(GatewayError):
    """An outbound send was requested while the chat session is not ready."""

    status_code = 503

    def __init__(self, user_message: str = "WhatsApp bot not ready", detail: str | None = None) -> None:
        super().__init__(user_message, detail)

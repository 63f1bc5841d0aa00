"""Input validation for messages entering the gateway.

Guards against missing, non-text and oversized inputs before they reach the
completion API or the WhatsApp bridge.
"""

from __future__ import annotations

import re

from gateway.core.errors import InvalidInput

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_WEB_MESSAGE_LENGTH = 2000
WHATSAPP_USER_SUFFIX = "@c.us"

_NUMBER_RE = re.compile(r"^\+?[0-9][0-9\- ]{4,30}$")


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def validate_message(message: object, max_length: int | None = None) -> str:
    """Check that a message is non-blank text within ``max_length``.

    The message is returned unchanged; it is never truncated.

    Raises:
        InvalidInput: If the message is missing, not a string, blank, or too long.
    """
    if not isinstance(message, str) or not message.strip():
        raise InvalidInput("Message is required and must be a string")

    if max_length is not None and len(message) > max_length:
        raise InvalidInput(
            f"Message too long. Maximum {max_length} characters allowed."
        )

    return message


# ---------------------------------------------------------------------------
# Outbound sends
# ---------------------------------------------------------------------------

def format_chat_id(number: str) -> str:
    """Turn a bare phone number into a WhatsApp chat id.

    Values that already contain ``@`` (``123@c.us``, ``123-456@g.us``) are
    passed through untouched.

    Raises:
        InvalidInput: If a bare value does not look like a phone number.
    """
    cleaned = number.strip()
    if "@" in cleaned:
        return cleaned
    if not _NUMBER_RE.match(cleaned):
        raise InvalidInput(f"Invalid number '{number}'")
    digits = re.sub(r"[^0-9]", "", cleaned)
    return f"{digits}{WHATSAPP_USER_SUFFIX}"

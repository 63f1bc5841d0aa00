"""Unit tests for input validation."""

from __future__ import annotations

import pytest

from gateway.core.errors import InvalidInput
from gateway.core.validators import (
    MAX_WEB_MESSAGE_LENGTH,
    format_chat_id,
    validate_message,
)

# ---------------------------------------------------------------------------
# validate_message
# ---------------------------------------------------------------------------


class TestValidateMessage:
    def test_returns_message_unchanged(self):
        assert validate_message("  hello  ") == "  hello  "

    def test_rejects_none(self):
        with pytest.raises(InvalidInput, match="required"):
            validate_message(None)

    def test_rejects_non_string(self):
        with pytest.raises(InvalidInput, match="must be a string"):
            validate_message(123)

    def test_rejects_blank(self):
        with pytest.raises(InvalidInput):
            validate_message("   ")

    def test_max_length_boundary(self):
        assert validate_message("a" * MAX_WEB_MESSAGE_LENGTH, max_length=MAX_WEB_MESSAGE_LENGTH)

    def test_too_long(self):
        with pytest.raises(InvalidInput, match="Maximum 2000 characters"):
            validate_message("a" * 2001, max_length=MAX_WEB_MESSAGE_LENGTH)

    def test_no_limit_by_default(self):
        assert validate_message("a" * 10_000) == "a" * 10_000

    def test_invalid_input_is_400(self):
        with pytest.raises(InvalidInput) as exc_info:
            validate_message("")
        assert exc_info.value.status_code == 400


# ---------------------------------------------------------------------------
# format_chat_id
# ---------------------------------------------------------------------------


class TestFormatChatId:
    def test_bare_number(self):
        assert format_chat_id("15551234567") == "15551234567@c.us"

    def test_strips_plus_and_separators(self):
        assert format_chat_id("+1 555-123-4567") == "15551234567@c.us"

    def test_existing_chat_id_passthrough(self):
        assert format_chat_id("15551234567@c.us") == "15551234567@c.us"
        assert format_chat_id("120363-1234@g.us") == "120363-1234@g.us"

    def test_rejects_garbage(self):
        with pytest.raises(InvalidInput, match="Invalid number"):
            format_chat_id("call me maybe")

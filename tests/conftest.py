"""Shared test configuration and fakes for the gateway's collaborators."""

import os

# Must be set BEFORE any gateway imports
os.environ["WHATSAPP_ENABLED"] = "false"

import pytest  # noqa: E402

from gateway.config.settings import Settings  # noqa: E402
from gateway.core.client import CompletionResult  # noqa: E402


class FakeCompleter:
    """Stands in for CompletionClient; records every request."""

    def __init__(self, reply: str = "Hello! How can I help?", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.requests = []
        self.closed = False

    def system_prompt_for(self, platform):
        return f"prompt for {getattr(platform, 'value', platform)}"

    async def complete(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return CompletionResult(text=self.reply)

    async def close(self):
        self.closed = True


class FakeChat:
    """Stands in for the WhatsApp bridge client."""

    def __init__(self, fail_replies: bool = False):
        self.fail_replies = fail_replies
        self.initialized = False
        self.destroyed = False
        self.sent = []
        self.replies = []

    async def initialize(self):
        self.initialized = True

    async def send_message(self, chat_id, text):
        self.sent.append((chat_id, text))

    async def reply(self, chat_id, text, quoted_message_id=None):
        if self.fail_replies:
            raise RuntimeError("bridge unreachable")
        self.replies.append((chat_id, text, quoted_message_id))

    async def destroy(self):
        self.destroyed = True


@pytest.fixture
def settings():
    return Settings(
        ai_api_url="http://ai.test/v1/chat/completions",
        whatsapp_enabled=False,
        cache_ttl=300,
    )


@pytest.fixture
def completer():
    return FakeCompleter()


@pytest.fixture
def chat():
    return FakeChat()

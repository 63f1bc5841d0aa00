"""Process-scoped state shared by the HTTP routes and the WhatsApp adapter.

Created once at startup (see ``gateway.main.lifespan``) and torn down on
shutdown.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from gateway.config.settings import Settings
from gateway.core.cache import ResponseCache
from gateway.core.client import CompletionClient
from gateway.core.pipeline import Completer, MessagePipeline
from gateway.core.ratelimit import FixedWindowRateLimiter
from gateway.core.session import SessionState
from gateway.whatsapp.bridge import ChatClient, WhatsAppBridgeClient
from gateway.whatsapp.events import ChatEventAdapter

logger = logging.getLogger("gateway.context")


@dataclass
class AppContext:
    settings: Settings
    cache: ResponseCache
    session: SessionState
    completer: Completer
    pipeline: MessagePipeline
    limiter: FixedWindowRateLimiter
    chat: ChatClient | None = None
    events: ChatEventAdapter | None = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        """Seconds since the context was created."""
        return time.monotonic() - self.started_at


def build_context(
    settings: Settings,
    completer: Completer | None = None,
    chat: ChatClient | None = None,
) -> AppContext:
    """Wire up the cache, pipeline and collaborators for one process.

    ``completer`` and ``chat`` default to the real HTTP clients; the WhatsApp
    bridge is only created when ``whatsapp_enabled`` is set.
    """
    cache = ResponseCache(ttl_seconds=settings.cache_ttl, max_size=settings.cache_max_size)
    session = SessionState()
    completer = completer or CompletionClient(settings)
    pipeline = MessagePipeline(
        completer,
        cache,
        session,
        caching_enabled=settings.enable_caching,
    )
    if chat is None and settings.whatsapp_enabled:
        chat = WhatsAppBridgeClient.from_settings(settings)

    events = ChatEventAdapter(settings, session, pipeline, chat) if chat is not None else None
    if chat is None:
        logger.warning("WhatsApp bridge disabled; only the HTTP front-end is active")

    return AppContext(
        settings=settings,
        cache=cache,
        session=session,
        completer=completer,
        pipeline=pipeline,
        limiter=FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        chat=chat,
        events=events,
    )

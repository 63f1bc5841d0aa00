"""FastAPI application: the HTTP front-end of the WhatsApp AI gateway."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import pathlib
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import psutil
from fastapi import BackgroundTasks, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.config.settings import Settings
from gateway.config.settings import settings as default_settings
from gateway.core.context import AppContext, build_context
from gateway.core.errors import BotNotReady, GatewayError, InvalidInput
from gateway.core.fingerprint import preview
from gateway.core.pipeline import Origin
from gateway.core.validators import format_chat_id

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("gateway")

VERSION = "2.0.0"

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /api/status",
    "POST /api/chat",
    "POST /api/webhook",
    "POST /api/send",
    "POST /api/cache/clear",
    "GET /api/analytics",
]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
}


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


# ---------------------------------------------------------------------------
# Background work
# ---------------------------------------------------------------------------

async def _sweep_expired(ctx: AppContext) -> None:
    """Purge expired cache entries and stale rate-limit windows periodically."""
    while True:
        await asyncio.sleep(ctx.settings.cache_check_period)
        removed = ctx.cache.purge_expired()
        ctx.limiter.prune()
        if removed:
            logger.info("Cache sweep removed %d expired entries", removed)


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Log exceptions nobody awaited instead of letting them vanish."""
    logger.error(
        "Unhandled exception in event loop: %s",
        context.get("message", "unknown"),
        exc_info=context.get("exception"),
    )


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    """Web chat message. Content checks happen in the pipeline."""
    message: Any = None
    session_id: Any = Field(default=None, alias="sessionId")


class SendRequest(BaseModel):
    """Outbound WhatsApp message."""
    number: Any = None
    message: Any = None


class BridgeEvent(BaseModel):
    """Client event pushed by the WhatsApp bridge."""
    event: str = Field(..., min_length=1, max_length=50)
    payload: dict[str, Any] = Field(default_factory=dict)


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Configuration; defaults to the environment-derived settings.
        context: Pre-built context (tests inject fakes here). When omitted the
            lifespan builds one from ``settings`` on startup.
    """
    settings = settings or (context.settings if context else default_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start-up: build context, start sweeper and WhatsApp. Shutdown: release them."""
        ctx = context or build_context(settings)
        app.state.ctx = ctx
        asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
        sweeper = asyncio.create_task(_sweep_expired(ctx))

        logger.info("Premium AI Bot server starting on port %d", settings.port)
        logger.info("Environment: %s", settings.environment)

        if ctx.chat is not None:
            logger.info("Initializing WhatsApp bot...")
            try:
                await ctx.chat.initialize()
            except Exception as e:
                logger.error("Failed to start WhatsApp session: %s", e)

        yield

        logger.info("Shutting down gracefully")
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        if ctx.chat is not None:
            try:
                await ctx.chat.destroy()
            except Exception as e:
                logger.warning("WhatsApp session did not stop cleanly: %s", e)
        await ctx.completer.close()

    app = FastAPI(
        title="Premium AI Bot",
        description="WhatsApp and web gateway to an AI chat-completion API",
        version=VERSION,
        lifespan=lifespan,
    )

    _install_middleware(app, settings)
    _install_exception_handlers(app, settings)
    _install_routes(app)

    static_dir = pathlib.Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir), html=True), name="static")
    return app


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # Registered innermost first: the last middleware added wraps all others.
    if settings.enable_rate_limiting:
        @app.middleware("http")
        async def rate_limit(request: Request, call_next):
            if not request.url.path.startswith("/api/"):
                return await call_next(request)

            client_ip = request.client.host if request.client else "unknown"
            decision = request.app.state.ctx.limiter.hit(client_ip)
            headers = {
                "RateLimit-Limit": str(decision.limit),
                "RateLimit-Remaining": str(decision.remaining),
                "RateLimit-Reset": str(decision.reset_after),
            }
            if not decision.allowed:
                logger.warning("Rate limit exceeded for %s", client_ip)
                return JSONResponse(
                    status_code=429,
                    content={"error": settings.rate_limit_message},
                    headers={**headers, "Retry-After": str(decision.reset_after)},
                )
            response = await call_next(request)
            response.headers.update(headers)
            return response

    if settings.enable_logging:
        @app.middleware("http")
        async def request_logging(request: Request, call_next):
            request_id = str(uuid.uuid4())[:8]
            start = time.time()
            logger.info(f"[{request_id}] {request.method} {request.url.path}")
            response = await call_next(request)
            elapsed = time.time() - start
            logger.info(f"[{request_id}] completed in {elapsed:.2f}s status={response.status_code}")
            response.headers["X-Request-ID"] = request_id
            return response

    if settings.enable_compression:
        app.add_middleware(GZipMiddleware, minimum_size=1000)

    if settings.enable_security_headers:
        @app.middleware("http")
        async def security_headers(request: Request, call_next):
            response = await call_next(request)
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
            return response

    if settings.enable_cors:
        app.add_middleware(
            CORSMiddleware,  # type: ignore[arg-type]
            allow_origins=[settings.cors_origin],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        if exc.detail:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.user_message, "timestamp": _timestamp()},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": message, "timestamp": _timestamp()},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods are both "not found"
        if exc.status_code in (404, 405):
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Endpoint not found",
                    "available_endpoints": AVAILABLE_ENDPOINTS,
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": settings.error_generic_message, "timestamp": _timestamp()},
        )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _install_routes(app: FastAPI) -> None:
    @app.get("/")
    async def health(ctx: AppContext = Depends(get_context)):
        """Health check."""
        return {
            "status": "online",
            "botStatus": ctx.session.status.value,
            "timestamp": _timestamp(),
            "version": VERSION,
            "activeUsers": len(ctx.session.active_users),
        }

    @app.get("/api/status")
    async def status(ctx: AppContext = Depends(get_context)):
        """WhatsApp, server and cache status."""
        mem = psutil.Process().memory_info()
        return {
            "whatsapp": {
                "status": ctx.session.status.value,
                "connectedUsers": len(ctx.session.active_users),
            },
            "server": {
                "uptime": ctx.uptime,
                "memory": {"rss": mem.rss, "vms": mem.vms},
                "environment": ctx.settings.environment,
            },
            "cache": {
                "keys": len(ctx.cache.keys()),
                "stats": ctx.cache.stats(),
            },
        }

    @app.post("/api/chat")
    async def chat(req: ChatRequest, ctx: AppContext = Depends(get_context)):
        """Send a web chat message through the AI pipeline."""
        if isinstance(req.message, str):
            logger.info("Web chat message: %s", preview(req.message))

        reply = await ctx.pipeline.handle(Origin.WEB, None, req.message)

        logger.info("Web AI replied: %s", preview(reply))
        return {
            "success": True,
            "reply": reply,
            "timestamp": _timestamp(),
            "sessionId": req.session_id or "anonymous",
        }

    @app.post("/api/webhook")
    async def webhook(payload: Any = Body(None)):
        """Accept third-party webhooks. Nothing is processed yet."""
        logger.info("Webhook received: %s", preview(str(payload), 200))
        return {"success": True, "message": "Webhook processed successfully"}

    @app.post("/api/send")
    async def send(req: SendRequest, ctx: AppContext = Depends(get_context)):
        """Send a WhatsApp message to a number (requires a ready session)."""
        if ctx.chat is None or not ctx.session.is_ready:
            raise BotNotReady()

        if not req.number or not req.message:
            raise InvalidInput("Number and message are required")
        if not isinstance(req.number, str) or not isinstance(req.message, str):
            raise InvalidInput("Number and message must be strings")

        chat_id = format_chat_id(req.number)
        try:
            await ctx.chat.send_message(chat_id, req.message)
        except Exception as e:
            raise GatewayError(ctx.settings.error_generic_message, detail=f"send failed: {e}") from e

        logger.info("Message sent to %s: %s", chat_id, preview(req.message))
        return {"success": True, "message": "Message sent successfully"}

    @app.post("/api/cache/clear")
    async def clear_cache(ctx: AppContext = Depends(get_context)):
        """Flush the response cache."""
        ctx.cache.flush_all()
        logger.info("Cache cleared manually")
        return {"success": True, "message": "Cache cleared successfully"}

    @app.get("/api/analytics")
    async def analytics(ctx: AppContext = Depends(get_context)):
        """Usage counters."""
        stats = ctx.cache.stats()
        return {
            "totalUsers": len(ctx.session.active_users),
            "uptime": ctx.uptime,
            "cacheHits": stats["hits"],
            "cacheMisses": stats["misses"],
            "botStatus": ctx.session.status.value,
            "timestamp": _timestamp(),
        }

    @app.post("/bridge/events")
    async def bridge_events(
        event: BridgeEvent,
        background_tasks: BackgroundTasks,
        ctx: AppContext = Depends(get_context),
    ):
        """Receive WhatsApp client events from the bridge."""
        if ctx.events is None:
            raise BotNotReady("WhatsApp bridge is disabled")
        background_tasks.add_task(ctx.events.dispatch, event.event, event.payload)
        return {"success": True}


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def run() -> None:
    import uvicorn

    uvicorn.run(
        "gateway.main:app",
        host=default_settings.bind_host,
        port=default_settings.port,
    )


if __name__ == "__main__":
    run()

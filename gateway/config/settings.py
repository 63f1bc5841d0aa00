"""Application settings loaded from environment variables."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger("gateway.settings")

DEFAULT_SYSTEM_PROMPTS: dict[str, str] = {
    "whatsapp": (
        "You are a friendly, helpful WhatsApp AI assistant. Keep responses "
        "conversational and under 500 characters for WhatsApp compatibility."
    ),
    "web": "You are a smart, professional AI assistant. Provide detailed and helpful responses.",
    "default": "You are a helpful AI assistant.",
}


class Settings(BaseSettings):
    """Global configuration for the WhatsApp AI gateway."""

    # Completion API (any OpenAI-compatible chat-completions endpoint)
    ai_api_url: str = "https://api.puter.com/v2/chat/completions"
    ai_api_key: str = ""  # Sent as a bearer token when set
    ai_model: str = "gpt-4o-mini"
    ai_max_tokens: int = 1000
    ai_temperature: float = 0.7
    ai_timeout: float = 30.0  # seconds
    ai_max_attempts: int = 1  # >1 retries connection errors with backoff
    system_prompts: dict[str, str] = DEFAULT_SYSTEM_PROMPTS

    # Server
    bind_host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "production"
    cors_origin: str = "*"
    static_dir: str = "public"  # Web front-end, served under /static when present

    # WhatsApp bridge (whatsapp-web sidecar reached over HTTP)
    whatsapp_enabled: bool = True
    whatsapp_bridge_url: str = "http://localhost:3001"
    whatsapp_session: str = "default"
    public_url: str = "http://localhost:3000"  # Where the bridge posts events

    # Feature flags
    enable_logging: bool = True
    enable_caching: bool = True
    enable_rate_limiting: bool = True
    enable_cors: bool = True
    enable_compression: bool = True
    enable_security_headers: bool = True

    # Rate limiting (fixed window, /api/* only)
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100
    rate_limit_message: str = "Too many requests, please try again later."

    # Response cache
    cache_ttl: int = 300
    cache_check_period: int = 600
    cache_max_size: int = 1000

    # User-facing messages
    bot_ready_message: str = "Premium AI Bot is now online!"
    error_generic_message: str = "Sorry, something went wrong. Please try again!"
    error_ai_timeout_message: str = "AI response timeout. Please try with a shorter message."
    welcome_message: str = "Welcome to Premium AI! How can I help you today?"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("ai_api_url", "whatsapp_bridge_url", "public_url")
    @classmethod
    def url_has_http_scheme(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"'{v}' must be an http(s) URL.")
        return v.rstrip("/")

    @field_validator("ai_temperature")
    @classmethod
    def temperature_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("AI_TEMPERATURE must be between 0 and 2.")
        return v

    @field_validator("ai_timeout", "cache_ttl", "cache_check_period", "rate_limit_window_seconds")
    @classmethod
    def positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("system_prompts")
    @classmethod
    def default_prompt_present(cls, v: dict[str, str]) -> dict[str, str]:
        # Unknown platforms fall back to "default", so it must always exist
        if "default" not in v:
            v = {**v, "default": DEFAULT_SYSTEM_PROMPTS["default"]}
        return v


settings = Settings()

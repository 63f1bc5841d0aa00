"""Cache keys and log previews for inbound messages."""

from __future__ import annotations

import hashlib

PREVIEW_LENGTH = 50


def fingerprint(platform: str, message: str) -> str:
    """Deterministic cache key for a (platform, message) pair.

    The whole message is hashed, so two long messages sharing a prefix
    never collide.
    """
    # surrogatepass: JSON may carry lone surrogates, which strict UTF-8 rejects
    raw = f"{platform}:{message}".encode("utf-8", "surrogatepass")
    digest = hashlib.sha256(raw).hexdigest()
    return f"ai_{platform}_{digest}"


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Bounded excerpt of user content that is safe to log."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."

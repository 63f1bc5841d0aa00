"""Interactive CLI for chatting with the AI through the gateway pipeline."""

from __future__ import annotations

import asyncio

from gateway.config.settings import settings
from gateway.core.context import build_context
from gateway.core.errors import GatewayError
from gateway.core.pipeline import Origin


async def main() -> None:
    """Run an interactive REPL against the web pipeline (cache included)."""
    print("=" * 60)
    print("  Premium AI Bot: terminal chat")
    print(f"  {settings.welcome_message}")
    print("  Type 'quit' or 'exit' to stop, '/clear' to flush the cache.")
    print("=" * 60)
    print()

    ctx = build_context(settings.model_copy(update={"whatsapp_enabled": False}))

    try:
        while True:
            try:
                user_input = input("You: ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\nGoodbye!")
                break

            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print("Goodbye!")
                break
            if user_input == "/clear":
                ctx.cache.flush_all()
                print("\n(cache cleared)\n")
                continue

            try:
                reply = await ctx.pipeline.handle(Origin.WEB, "cli", user_input)
                print(f"\nAI: {reply}\n")
            except GatewayError as e:
                print(f"\nError: {e.user_message}\n")

        stats = ctx.cache.stats()
        print(f"Cache: {stats['hits']} hits, {stats['misses']} misses")
    finally:
        await ctx.completer.close()


def main_sync() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    main_sync()

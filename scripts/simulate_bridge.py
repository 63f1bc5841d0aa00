"""Drive a running gateway with fake WhatsApp bridge events.

Walks the session through qr -> authenticated -> ready, then delivers one
inbound message. Useful for local runs without a real WhatsApp session
(start the gateway with WHATSAPP_ENABLED=true and a bridge URL that points
nowhere; the failed reply delivery is logged by the gateway).

Usage:
    python scripts/simulate_bridge.py [gateway_url] [message]
"""

from __future__ import annotations

import asyncio
import sys

import httpx

LIFECYCLE = [
    ("qr", {"qr": "2@simulated-pairing-code"}),
    ("authenticated", {}),
    ("ready", {}),
]


async def simulate(base_url: str, message: str) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=60.0) as http:
        for event, payload in LIFECYCLE:
            r = await http.post("/bridge/events", json={"event": event, "payload": payload})
            r.raise_for_status()
            print(f"  {event:<14} -> {r.status_code}")

        r = await http.post(
            "/bridge/events",
            json={
                "event": "message",
                "payload": {
                    "id": "sim-1",
                    "from": "15550001111@c.us",
                    "fromMe": False,
                    "body": message,
                },
            },
        )
        r.raise_for_status()
        print(f"  {'message':<14} -> {r.status_code}")

        status = (await http.get("/api/status")).json()
        print(f"\nBot status: {status['whatsapp']['status']}")
        print(f"Connected users: {status['whatsapp']['connectedUsers']}")
        print(f"Cache: {status['cache']['stats']}")


def main() -> None:
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3000"
    message = sys.argv[2] if len(sys.argv) > 2 else "Hello from the simulator!"
    print(f"Simulating bridge events against {base_url}")
    try:
        asyncio.run(simulate(base_url, message))
    except httpx.HTTPError as e:
        print(f"Failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

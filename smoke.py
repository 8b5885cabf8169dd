"""
Post a solved Turnstile token to a running reveal endpoint, the way the page does.

    python smoke.py <token>

REVEAL_BASE (default http://localhost:8000) and REVEAL_HOSTNAME pick the
server and the hostname used for the site key.
"""
import asyncio
import os
import sys
from typing import Optional

import httpx

from widget import ChallengeWidget, WidgetState

BASE = os.environ.get("REVEAL_BASE", "http://localhost:8000")
HOSTNAME = os.environ.get("REVEAL_HOSTNAME", "localhost")


async def run(token: str, base: str = BASE, hostname: str = HOSTNAME,
              transport: Optional[httpx.AsyncBaseTransport] = None) -> ChallengeWidget:
    async with httpx.AsyncClient(base_url=base, timeout=15.0, transport=transport) as client:
        widget = ChallengeWidget(hostname, client)
        opts = widget.render()
        print(f"[..] sitekey={opts['sitekey']} action={opts['action']}")
        await widget.on_token(token)
    return widget


def summarize(widget: ChallengeWidget) -> str:
    tag = "[OK]  " if widget.state is WidgetState.DISCLOSED else "[FAIL]"
    return f"{tag} {widget.state.value} -> {widget.href}"


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("usage: python smoke.py <token>")
        return 2
    widget = asyncio.run(run(argv[0]))
    print(summarize(widget))
    return 0 if widget.state is WidgetState.DISCLOSED else 1


if __name__ == "__main__":
    sys.exit(main())

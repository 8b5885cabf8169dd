from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest

# Ensure the project root modules take precedence when running from a checkout.
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from config import Settings  # noqa: E402

SECRET = "test-secret-0x0000"
EMAIL = "contact@example.com"


def provider(payload=None, *, status=200, text=None, exc=None, seen=None) -> httpx.MockTransport:
    """Fake siteverify endpoint. Records requests into `seen` when given."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if exc is not None:
            raise exc
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


@pytest.fixture
def settings() -> Settings:
    return Settings(turnstile_secret=SECRET, contact_email=EMAIL)

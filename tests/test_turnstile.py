from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import SECRET, provider
from config import SITEVERIFY_URL
from turnstile import TurnstileVerifier, VerificationOutcome, VerificationTransportError


def _verify(transport, token="tok", remote_ip=None):
    verifier = TurnstileVerifier(SECRET, transport=transport)
    return asyncio.run(verifier.verify(token, remote_ip=remote_ip))


def test_posts_form_encoded_secret_and_response() -> None:
    seen = []
    _verify(provider({"success": True, "action": "email-reveal"}, seen=seen), token="abc")

    (req,) = seen
    assert req.method == "POST"
    assert str(req.url) == SITEVERIFY_URL
    assert req.headers["content-type"] == "application/x-www-form-urlencoded"
    form = parse_qs(req.content.decode())
    assert form == {"secret": [SECRET], "response": ["abc"]}


def test_forwards_remote_ip_when_known() -> None:
    seen = []
    _verify(provider({"success": True}, seen=seen), remote_ip="203.0.113.7")
    form = parse_qs(seen[0].content.decode())
    assert form["remoteip"] == ["203.0.113.7"]


def test_parses_provider_outcome() -> None:
    outcome = _verify(provider({
        "success": False,
        "error-codes": ["invalid-input-response", "timeout-or-duplicate"],
        "hostname": "www.powerium.io",
    }))
    assert outcome == VerificationOutcome(
        success=False,
        action=None,
        error_codes=["invalid-input-response", "timeout-or-duplicate"],
    )


def test_missing_fields_default_to_failure() -> None:
    outcome = _verify(provider({}))
    assert outcome.success is False
    assert outcome.action is None
    assert outcome.error_codes is None


@pytest.mark.parametrize(
    "transport",
    [
        provider(exc=httpx.ConnectError("connection refused")),
        provider(exc=httpx.ReadTimeout("too slow")),
        provider({"success": True}, status=502),
        provider(text="<html>bad gateway</html>"),
        provider(["not", "an", "object"]),
        provider({"success": "true", "action": "email-reveal"}),
        provider({"success": True, "action": 7}),
    ],
    ids=["unreachable", "timeout", "bad-status", "non-json", "non-object", "stringly-success", "bad-action"],
)
def test_transport_and_parse_failures_raise_one_error_type(transport) -> None:
    with pytest.raises(VerificationTransportError) as info:
        _verify(transport)
    assert SECRET not in str(info.value)


def test_secret_is_required_and_not_in_repr() -> None:
    with pytest.raises(ValueError):
        TurnstileVerifier("")
    assert SECRET not in repr(TurnstileVerifier(SECRET))


def test_configured_timeout_bounds_the_outbound_call() -> None:
    seen = []
    verifier = TurnstileVerifier(SECRET, timeout=2.5, transport=provider({"success": True}, seen=seen))

    asyncio.run(verifier.verify("tok"))

    assert seen[0].extensions["timeout"] == {"connect": 2.5, "read": 2.5, "write": 2.5, "pool": 2.5}

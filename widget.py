"""
Challenge widget: the browser half of the email reveal exchange.

templates/contact.html runs this flow in the page. The same steps live here so
they can be driven headless (smoke.py) and tested against the endpoint:

    IDLE -> CHALLENGE_RENDERED -> TOKEN_OBTAINED -> AWAITING_SERVER_RESPONSE
         -> DISCLOSED | FAILED

DISCLOSED and FAILED are terminal, nothing retries.
"""

import json
import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional

import httpx

from registry import REVEAL_PATH, RenderOptions, RevealResult, render_options

log = logging.getLogger("email_reveal.widget")

NOTICE_PREFIX = "Failed to retrieve email address"


class WidgetState(str, Enum):
    IDLE = "idle"
    CHALLENGE_RENDERED = "challenge_rendered"
    TOKEN_OBTAINED = "token_obtained"
    AWAITING_SERVER_RESPONSE = "awaiting_server_response"
    DISCLOSED = "disclosed"
    FAILED = "failed"


TRANSITIONS: Dict[WidgetState, FrozenSet[WidgetState]] = {
    WidgetState.IDLE: frozenset({WidgetState.CHALLENGE_RENDERED}),
    WidgetState.CHALLENGE_RENDERED: frozenset({WidgetState.TOKEN_OBTAINED}),
    WidgetState.TOKEN_OBTAINED: frozenset({WidgetState.AWAITING_SERVER_RESPONSE}),
    WidgetState.AWAITING_SERVER_RESPONSE: frozenset({WidgetState.DISCLOSED, WidgetState.FAILED}),
    WidgetState.DISCLOSED: frozenset(),
    WidgetState.FAILED: frozenset(),
}


class WidgetStateError(RuntimeError):
    pass


def transport_failure(detail: str) -> RevealResult:
    return {
        "success": False,
        "error": f"Failed to communicate with Turnstile verification backend: {detail}.",
    }


def parse_reveal_response(status_code: int, reason: str, text: str) -> RevealResult:
    """Turn the endpoint's reply into a RevealResult. Never raises."""
    try:
        body = json.loads(text)
    except ValueError:
        return transport_failure(f"{status_code} {reason}".strip())
    if not isinstance(body, dict):
        return transport_failure(f"{status_code} {reason}".strip())

    email = body.get("email")
    if body.get("success") is True and isinstance(email, str) and email:
        return {"success": True, "email": email}

    error = body.get("error")
    if not isinstance(error, str) or not error:
        error = f"unexpected response from server ({status_code})"
    return {"success": False, "error": error}


def contact_href(result: RevealResult) -> str:
    if result.get("success"):
        return f"mailto:{result['email']}"
    notice = f"{NOTICE_PREFIX}: {result.get('error', 'unknown error')}"
    # json.dumps gives a quoted, escaped JS string literal
    return f"javascript:alert({json.dumps(notice)});"


class ChallengeWidget:
    def __init__(self, hostname: str, client: httpx.AsyncClient, endpoint: str = REVEAL_PATH):
        self.hostname = hostname
        self.endpoint = endpoint
        self.state = WidgetState.IDLE
        self.href: Optional[str] = None
        self.result: Optional[RevealResult] = None
        self.container_hidden = False
        self._client = client

    def _advance(self, new_state: WidgetState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise WidgetStateError(f"cannot go from {self.state.value} to {new_state.value}")
        log.debug("widget %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    @property
    def done(self) -> bool:
        return not TRANSITIONS[self.state]

    def render(self) -> RenderOptions:
        self._advance(WidgetState.CHALLENGE_RENDERED)
        return render_options(self.hostname)

    async def on_token(self, token: str) -> RevealResult:
        """Token callback: submit to the endpoint and update the contact link."""
        self._advance(WidgetState.TOKEN_OBTAINED)
        self._advance(WidgetState.AWAITING_SERVER_RESPONSE)

        try:
            resp = await self._client.post(self.endpoint, json={"token": token})
        except httpx.TimeoutException:
            result = transport_failure("request timed out")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            result = transport_failure(e.__class__.__name__)
        else:
            result = parse_reveal_response(resp.status_code, resp.reason_phrase, resp.text)

        self.result = result
        self.href = contact_href(result)
        self.container_hidden = True
        self._advance(WidgetState.DISCLOSED if result.get("success") else WidgetState.FAILED)
        return result

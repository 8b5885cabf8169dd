"""Cloudflare Turnstile siteverify client.

The provider answers {success, action?, error-codes?}. Anything that keeps us
from reading such an answer (network error, timeout, bad status, bad body) is
raised as VerificationTransportError so callers deal with a single failure type.
"""

import logging
from typing import List, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError

from config import SITEVERIFY_URL

log = logging.getLogger("email_reveal.turnstile")


class VerificationTransportError(Exception):
    """The siteverify call failed or its answer could not be parsed."""


class VerificationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: StrictBool = False
    action: Optional[StrictStr] = None
    error_codes: Optional[List[str]] = Field(default=None, alias="error-codes")


class Verifier(Protocol):
    async def verify(self, token: str, remote_ip: Optional[str] = None) -> VerificationOutcome: ...


class TurnstileVerifier:
    def __init__(
        self,
        secret: str,
        siteverify_url: str = SITEVERIFY_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not secret:
            raise ValueError("Turnstile secret is required")
        self._secret = secret
        self._url = siteverify_url
        self._timeout = timeout
        self._transport = transport

    def __repr__(self) -> str:
        return f"TurnstileVerifier(url={self._url!r}, timeout={self._timeout})"

    async def verify(self, token: str, remote_ip: Optional[str] = None) -> VerificationOutcome:
        data = {"secret": self._secret, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, data=data)
                resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise VerificationTransportError(f"siteverify timed out after {self._timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise VerificationTransportError(f"siteverify answered HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise VerificationTransportError(f"siteverify unreachable: {e.__class__.__name__}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise VerificationTransportError("siteverify returned a non-JSON body") from e
        if not isinstance(payload, dict):
            raise VerificationTransportError("siteverify returned a non-object JSON body")

        try:
            outcome = VerificationOutcome.model_validate(payload)
        except ValidationError as e:
            raise VerificationTransportError(
                f"siteverify returned an unexpected body ({e.error_count()} errors)"
            ) from e

        log.debug("siteverify success=%s action=%s", outcome.success, outcome.action)
        return outcome

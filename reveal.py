import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel

from registry import EXPECTED_ACTION, RevealResult
from turnstile import VerificationOutcome, VerificationTransportError, Verifier

log = logging.getLogger("email_reveal.reveal")

GENERIC_ERROR = "Internal server error"


class RevealOutcome(str, Enum):
    DISCLOSED = "disclosed"
    ACTION_MISMATCH = "action_mismatch"
    VERIFICATION_FAILED = "verification_failed"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class RevealDecision:
    outcome: RevealOutcome
    email: Optional[str] = None
    action: Optional[str] = None
    error_codes: Tuple[str, ...] = ()

    def __repr__(self) -> str:
        # keep the address out of logs and tracebacks
        return f"RevealDecision(outcome={self.outcome.value}, action={self.action!r}, error_codes={self.error_codes!r})"


class RevealResponse(BaseModel):
    success: bool
    email: Optional[str] = None
    error: Optional[str] = None


# status code and error message for each outcome; None message means disclose
RESPONSES: Dict[RevealOutcome, Tuple[int, Optional[str]]] = {
    RevealOutcome.DISCLOSED: (200, None),
    RevealOutcome.ACTION_MISMATCH: (403, "Actual action does not match expected action"),
    RevealOutcome.VERIFICATION_FAILED: (403, "Challenge verification failed"),
    RevealOutcome.TRANSPORT_ERROR: (500, GENERIC_ERROR),
}


def classify(outcome: VerificationOutcome, email: str) -> RevealDecision:
    """
    Apply the reveal policy to a provider answer, in order:
    rejected token, then wrong action, then disclose.
    """
    codes = tuple(outcome.error_codes or ())

    if not outcome.success:
        log.warning("Reveal email failed: Turnstile rejected token: %s", ",".join(codes) or "no error codes")
        return RevealDecision(RevealOutcome.VERIFICATION_FAILED, action=outcome.action, error_codes=codes)

    if outcome.action != EXPECTED_ACTION:
        log.warning(
            "Reveal email failed: Turnstile succeeded but action %r does not match %r",
            outcome.action, EXPECTED_ACTION,
        )
        return RevealDecision(RevealOutcome.ACTION_MISMATCH, action=outcome.action, error_codes=codes)

    return RevealDecision(RevealOutcome.DISCLOSED, email=email, action=outcome.action)


async def reveal_email(
    token: str,
    verifier: Verifier,
    email: str,
    remote_ip: Optional[str] = None,
) -> RevealDecision:
    try:
        outcome = await verifier.verify(token, remote_ip=remote_ip)
    except VerificationTransportError as e:
        log.error("Reveal email failed: %s", e)
        return RevealDecision(RevealOutcome.TRANSPORT_ERROR)
    return classify(outcome, email)


def to_response(decision: RevealDecision) -> Tuple[int, RevealResult]:
    status, error = RESPONSES[decision.outcome]
    if error is None:
        body = RevealResponse(success=True, email=decision.email)
    else:
        body = RevealResponse(success=False, error=error)
    return status, body.model_dump(exclude_none=True)

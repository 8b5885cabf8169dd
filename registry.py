from typing import Dict, TypedDict

EXPECTED_ACTION = "email-reveal"
WIDGET_SIZE = "compact"
REVEAL_PATH = "/api/email-reveal"

# Turnstile site keys are public; one per deployed hostname.
SITE_KEYS: Dict[str, str] = {
    "www.powerium.io": "0x4AAAAAAAQ3M_-Iq3x2fswz",
}
DEFAULT_SITE_KEY = "0x4AAAAAAAQ3UBXJ3dlYJlAZ"


class RenderOptions(TypedDict):
    sitekey: str
    action: str
    size: str


class RevealResult(TypedDict, total=False):
    """
    Body exchanged between the endpoint and the widget.
    Either {success: True, email} or {success: False, error}.
    """
    success: bool
    email: str
    error: str


def _normalize_hostname(hostname: str) -> str:
    host = (hostname or "").strip().lower()
    if host.startswith("[") and "]" in host:
        # IPv6 literal, keep brackets out of the lookup
        return host[1:host.index("]")]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def site_key_for(hostname: str) -> str:
    return SITE_KEYS.get(_normalize_hostname(hostname), DEFAULT_SITE_KEY)


def render_options(hostname: str) -> RenderOptions:
    return {
        "sitekey": site_key_for(hostname),
        "action": EXPECTED_ACTION,
        "size": WIDGET_SIZE,
    }

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

SITEVERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _split_origins(raw: str) -> Tuple[str, ...]:
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or ("*",)


def _number(environ: Mapping[str, str], name: str, default: str, cast):
    raw = environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, loaded once and passed to the app."""

    turnstile_secret: Optional[str] = field(default=None, repr=False)
    contact_email: Optional[str] = field(default=None, repr=False)
    siteverify_url: str = SITEVERIFY_URL
    verify_timeout: float = 10.0
    allowed_origins: Tuple[str, ...] = ("*",)
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @property
    def is_configured(self) -> bool:
        return bool(self.turnstile_secret) and bool(self.contact_email)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment (and a .env file when present)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    return Settings(
        turnstile_secret=environ.get("CF_TURNSTILE_SECRET_KEY") or None,
        contact_email=environ.get("CONTACT_EMAIL") or None,
        siteverify_url=environ.get("CF_TURNSTILE_SITEVERIFY_URL") or SITEVERIFY_URL,
        verify_timeout=_number(environ, "VERIFY_TIMEOUT", "10.0", float),
        allowed_origins=_split_origins(environ.get("ALLOWED_ORIGINS", "*")),
        host=environ.get("HOST", "127.0.0.1"),
        port=_number(environ, "PORT", "8000", int),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    # basicConfig is a no-op once the root logger has handlers
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("email_reveal").setLevel(level)

# server.py
# Templates are read from ./templates next to this file; run from a checkout
# or an editable install (pip install -e .).
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from config import Settings, configure_logging, load_settings
from registry import REVEAL_PATH, render_options
from reveal import GENERIC_ERROR, reveal_email, to_response
from turnstile import TurnstileVerifier, Verifier

log = logging.getLogger("email_reveal.server")

TEMPLATES = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def _reply(status_code: int, error: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


async def _read_token(request: Request) -> Optional[str]:
    ct = (request.headers.get("content-type") or "").lower()
    try:
        if "application/x-www-form-urlencoded" in ct or "multipart/form-data" in ct:
            form = await request.form()
            token = form.get("token")
        else:
            data = await request.json()
            token = data.get("token") if isinstance(data, dict) else None
    except (ValueError, HTTPException, MultiPartException):
        # malformed body, same answer as a missing token
        return None
    if not isinstance(token, str) or not token.strip():
        return None
    return token.strip()


def create_app(settings: Optional[Settings] = None, verifier: Optional[Verifier] = None) -> FastAPI:
    settings = settings or load_settings()
    if verifier is None and settings.turnstile_secret:
        verifier = TurnstileVerifier(
            settings.turnstile_secret,
            siteverify_url=settings.siteverify_url,
            timeout=settings.verify_timeout,
        )

    app = FastAPI(title="Email reveal")
    app.state.settings = settings
    app.state.verifier = verifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {"ok": True, "service": "email-reveal"}

    @app.get(REVEAL_PATH)
    async def describe():
        return {
            "ok": True,
            "service": "email-reveal",
            "path": REVEAL_PATH,
            "configured": verifier is not None and bool(settings.contact_email),
        }

    @app.post(REVEAL_PATH)
    async def email_reveal(request: Request):
        token = await _read_token(request)
        if not token:
            return _reply(400, "Missing token")

        if verifier is None or not settings.contact_email:
            missing = "CF_TURNSTILE_SECRET_KEY" if verifier is None else "CONTACT_EMAIL"
            log.error("Reveal email failed: %s not configured", missing)
            return _reply(500, GENERIC_ERROR)

        remote_ip = request.client.host if getattr(request, "client", None) else None
        try:
            decision = await reveal_email(token, verifier, settings.contact_email, remote_ip=remote_ip)
        except Exception:
            log.exception("Reveal email failed: unexpected error")
            return _reply(500, GENERIC_ERROR)

        status, body = to_response(decision)
        return JSONResponse(body, status_code=status)

    @app.get("/contact")
    async def contact(request: Request):
        hostname = request.url.hostname or ""
        return TEMPLATES.TemplateResponse(
            request,
            "contact.html",
            {"render": render_options(hostname), "endpoint": REVEAL_PATH},
        )

    # quiet browser icon fetches
    @app.get("/favicon.ico")
    async def favicon_ico():
        return Response(status_code=204)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)

"""
Member Registry web application (FastAPI app factory).

Why:
    One factory wires the injected `AppServices`, the auth and security
    middlewares and the role routers. Tests build isolated apps with
    in-memory services; `uvicorn web.main:app` serves the module-level app
    wired from the environment.

Behavior:
    - Every request with a session cookie gets `request.state.session`
      (resumed, tokens renewed when needed). Non-public paths require one:
      API calls get 401 JSON, pages a 303 redirect to `/login?next=...`.
    - Security headers are added to every response; the CSP allows images
      from the configured Supabase origin (member images in Storage).
    - The realtime bridge (if configured) starts with the application and is
      stopped on shutdown.
"""
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlparse

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

from .auth_utils import SESSION_COOKIE_NAME, clear_session_cookie
from .config import current_environment, ensure_secure_config_on_startup
from .routes.admin import admin_router
from .routes.auth import auth_router
from .routes.context import json_error
from .routes.organisation import organisation_router
from .routes.public import public_router
from .routes.volunteer import volunteer_router
from .wiring import AppServices, build_services_from_env

logger = logging.getLogger("ssk.web")

STATIC_DIR = Path(__file__).parent / "static"
PUBLIC_PATHS = ("/", "/login", "/health", "/favicon.ico")
PUBLIC_PREFIXES = ("/static/", "/api/live/", "/media/")


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via SSK_ENABLE_DOTENV (default true outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("SSK_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    from dotenv import load_dotenv

    load_dotenv()


class AuthSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return current_environment()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


def _is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def _image_origin() -> Optional[str]:
    url = (os.getenv("SUPABASE_URL") or "").strip()
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def create_app(services: Optional[AppServices] = None, *, settings: Optional[AuthSettings] = None) -> FastAPI:
    ensure_secure_config_on_startup()
    services = services or build_services_from_env()
    settings = settings or AuthSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services.realtime is not None:
            await services.realtime.start()
        try:
            yield
        finally:
            if services.realtime is not None:
                await services.realtime.stop()

    app = FastAPI(title="Member Registry", description="Role-based membership registry", version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.state.settings = settings

    if STATIC_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    # --- Auth Middleware --------------------------------------------------------

    @app.middleware("http")
    async def auth_enforcement(request: Request, call_next):
        path = request.url.path
        sid = request.cookies.get(SESSION_COOKIE_NAME)
        rec = None
        if sid:
            try:
                rec = services.sessions.get(sid)
            except Exception as exc:
                logger.warning("Session resume failed: %s", exc.__class__.__name__)
        request.state.session = rec
        request.state.identity = rec.identity if rec else None

        if rec is None and not _is_public_path(path):
            if path.startswith("/api/"):
                return json_error("unauthenticated", "Sign in required.", status_code=401)
            target = "/login"
            if request.method == "GET" and path != "/logout":
                target += f"?next={quote(path, safe='/')}"
            response = RedirectResponse(url=target, status_code=303)
            response.headers["Cache-Control"] = "private, no-store"
            if sid:
                clear_session_cookie(response, environment=settings.environment)
            return response
        return await call_next(request)

    # --- Security Headers Middleware -------------------------------------------

    img_origin = _image_origin()
    img_src = "'self' data:" + (f" {img_origin}" if img_origin else "")

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            f"img-src {img_src}; font-src 'self' data:; connect-src 'self'; "
            "frame-ancestors 'none'; form-action 'self'; base-uri 'self'"
        )
        response.headers.setdefault("Content-Security-Policy", csp)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if settings.environment not in ("dev", "development", "test", "local"):
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    app.include_router(public_router)
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(organisation_router)
    app.include_router(volunteer_router)
    return app


app = create_app()

"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep sign-in, sign-out and the self-service password change in a
    dedicated router. All session state lives in the injected
    `SessionManager`; this module never holds globals.

Notes:
    - The login form is protected by a double-submit token (cookie + hidden
      field) because there is no session yet; every later form uses the
      per-session token.
    - A successful login redirects by role unless a safe in-app `next` path
      was supplied.
"""

from __future__ import annotations

import logging
import re
import secrets

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse

from identity_access.auth_client import AuthenticationError
from identity_access.resolver import IdentitySyncError
from identity_access.sessions import AccountDeactivatedError
from registry.validation import ValidationError

from ..auth_utils import clear_session_cookie, cookie_opts, set_session_cookie
from ..components import LoginForm
from .context import (
    PRIVATE_NO_STORE,
    app_services,
    current_session,
    flash_redirect,
    json_error,
    read_form,
    redirect,
    render_page,
)
from .security import _is_same_origin, csrf_token_matches

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("ssk.web")

LOGIN_CSRF_COOKIE = "ssk_login_csrf"
SYNC_FAILED_MESSAGE = "Signed in, but your account could not be loaded. Please try again."

# Disallow double slashes and path traversal (".."), allow dots in names
INAPP_PATH_PATTERN = re.compile(r"^(?!.*//)(?!.*\.\.)/[A-Za-z0-9._\-/]*$")
MAX_INAPP_REDIRECT_LEN = 256


def _is_inapp_path(value: str) -> bool:
    """Return True if value is an absolute in-app path, e.g. "/", "/volunteer".

    Examples (rejected): "volunteer" (not absolute), "https://evil.com",
    "//evil.com", "/a?b", "/a#b", "/.."
    """
    if not value or not isinstance(value, str):
        return False
    if len(value) > MAX_INAPP_REDIRECT_LEN:
        return False
    return bool(INAPP_PATH_PATTERN.match(value))


def _environment(request: Request) -> str:
    return request.app.state.settings.environment


def _login_page(request: Request, token: str, *, email: str = "", next_path: str = "", error: str | None = None, status_code: int = 200) -> HTMLResponse:
    content = f"""
    <section class="auth-card card">
        <h1>Sign in</h1>
        <p class="text-muted">Use the account issued by your organisation.</p>
        {LoginForm(token, email=email, next_path=next_path, error=error).render()}
    </section>"""
    response = render_page(request, "Sign in", content, status_code=status_code, show_nav=False)
    opts = cookie_opts(_environment(request))
    response.set_cookie(
        LOGIN_CSRF_COOKIE,
        token,
        httponly=True,
        secure=opts["secure"],
        samesite="strict",
        path="/login",
        max_age=900,
    )
    response.headers["Cache-Control"] = "private, no-store"
    return response


@auth_router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, next: str | None = None):
    rec = current_session(request)
    if rec is not None:
        return redirect(rec.identity.home_path)
    next_path = next if next and _is_inapp_path(next) else ""
    return _login_page(request, secrets.token_urlsafe(24), next_path=next_path)


@auth_router.post("/login")
async def login_submit(request: Request):
    form = await request.form()
    email = str(form.get("email") or "").strip()
    password = str(form.get("password") or "")
    next_raw = str(form.get("next") or "")
    next_path = next_raw if _is_inapp_path(next_raw) else ""
    submitted = form.get("csrf_token")
    if not _is_same_origin(request) or not csrf_token_matches(request.cookies.get(LOGIN_CSRF_COOKIE), submitted):
        logger.warning("login csrf check failed")
        return HTMLResponse("CSRF validation failed.", status_code=403, headers=PRIVATE_NO_STORE)

    fresh_token = secrets.token_urlsafe(24)
    if not email or not password:
        return _login_page(request, fresh_token, email=email, next_path=next_path, error="Email and password are required.", status_code=400)

    sessions = app_services(request).sessions
    try:
        rec = sessions.login(email, password)
    except AuthenticationError as exc:
        logger.info("login failed: code=%s", exc.code)
        return _login_page(request, fresh_token, email=email, next_path=next_path, error=exc.message, status_code=400)
    except AccountDeactivatedError as exc:
        return _login_page(request, fresh_token, email=email, next_path=next_path, error=exc.message, status_code=403)
    except IdentitySyncError:
        return _login_page(request, fresh_token, email=email, next_path=next_path, error=SYNC_FAILED_MESSAGE, status_code=502)

    target = next_path if next_path and next_path != "/login" else rec.identity.home_path
    response = redirect(target)
    set_session_cookie(response, rec.session_id, environment=_environment(request), max_age=sessions.ttl_seconds)
    response.delete_cookie(LOGIN_CSRF_COOKIE, path="/login")
    return response


@auth_router.post("/logout")
async def logout(request: Request):
    rec = current_session(request)
    if rec is not None:
        _form, error = await read_form(request, rec)
        if error:
            return error
        app_services(request).sessions.invalidate(rec.session_id)
        logger.info("session closed for %s", rec.identity.id)
    response = redirect("/")
    clear_session_cookie(response, environment=_environment(request))
    return response


@auth_router.post("/account/password")
async def change_password(request: Request):
    rec = current_session(request)
    if rec is None:
        return redirect("/login")
    form, error = await read_form(request, rec)
    if error:
        return error
    services = app_services(request)
    try:
        services.accounts(rec.access_token).change_password(
            rec.identity, str(form.get("new_password") or ""), str(form.get("confirm_password") or "")
        )
    except ValidationError as exc:
        return flash_redirect(request, rec.identity.home_path, exc.message, "error")
    refreshed = services.sessions.refresh(rec.session_id)
    home = (refreshed or rec).identity.home_path
    return flash_redirect(request, home, "Password updated.", "success")


@auth_router.get("/api/me")
async def api_me(request: Request):
    rec = current_session(request)
    if rec is None:
        return json_error("unauthenticated", "Sign in required.", status_code=401)
    return JSONResponse(rec.identity.to_public_dict(), headers=PRIVATE_NO_STORE)

"""
Request context helpers shared by the role routers.

Why:
    Every router needs the same few things: the injected `AppServices`, the
    session record set by the auth middleware, role gating, CSRF-checked form
    parsing, flash-and-redirect, and the page layout. Keeping them here keeps
    the routers focused on their screens.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional, Tuple

from fastapi import Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from identity_access.domain import Identity, Role
from identity_access.stores import SessionRecord

from ..components import Layout
from ..components.base import Component
from .security import is_valid_form_post

logger = logging.getLogger("ssk.web")

PRIVATE_NO_STORE = {"Cache-Control": "private, no-store"}


def app_services(request: Request):
    return request.app.state.services


def current_session(request: Request) -> Optional[SessionRecord]:
    return getattr(request.state, "session", None)


def current_identity(request: Request) -> Optional[Identity]:
    rec = current_session(request)
    return rec.identity if rec else None


def access_token(request: Request) -> Optional[str]:
    rec = current_session(request)
    return rec.access_token if rec else None


def json_error(error: str, detail: str, *, status_code: int) -> JSONResponse:
    return JSONResponse({"error": error, "detail": detail}, status_code=status_code, headers=PRIVATE_NO_STORE)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def flash_redirect(request: Request, url: str, message: str, kind: str = "info") -> RedirectResponse:
    rec = current_session(request)
    if rec is not None:
        rec.flash(message, kind)
    return redirect(url)


def require_role(request: Request, *roles: Role) -> Tuple[Optional[SessionRecord], Optional[Response]]:
    """Return the session when the caller holds one of `roles`, else a redirect.

    Signed-in users hitting another role's page go to their own home page.
    While a password reset is pending, only the home page is reachable.
    """
    rec = current_session(request)
    if rec is None:
        return None, redirect("/login")
    identity = rec.identity
    if identity.role not in roles:
        return None, redirect(identity.home_path)
    if identity.password_reset_pending and request.url.path != identity.home_path:
        return None, redirect(identity.home_path)
    return rec, None


async def read_form(request: Request, rec: SessionRecord) -> Tuple[Any, Optional[Response]]:
    """Parse the form and enforce CSRF (same origin + session token)."""
    form = await request.form()
    if not is_valid_form_post(request, rec.csrf_token, form.get("csrf_token")):
        logger.warning("csrf check failed on %s", request.url.path)
        return form, HTMLResponse("CSRF validation failed.", status_code=403, headers=PRIVATE_NO_STORE)
    return form, None


def render_page(
    request: Request,
    title: str,
    content: str,
    *,
    status_code: int = 200,
    scripts: Iterable[str] = (),
    show_nav: bool = True,
) -> HTMLResponse:
    """Render content inside the Layout; personalised pages are never cached."""
    rec = current_session(request)
    layout = Layout(
        title,
        content,
        rec.identity if rec else None,
        current_path=request.url.path,
        csrf_token=rec.csrf_token if rec else "",
        flashes=rec.pop_flashes() if rec else (),
        show_nav=show_nav,
        scripts=scripts,
    )
    response = HTMLResponse(layout.render(), status_code=status_code)
    if rec is not None:
        response.headers["Cache-Control"] = "private, no-store"
    return response


def parse_date(raw: Optional[str]) -> Optional[date]:
    """Lenient ISO date parsing for filter query params; invalid input is ignored."""
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"', **PRIVATE_NO_STORE},
    )


def error_card(message: str) -> str:
    return f'<div class="card card-error" role="alert">{Component.escape(message)}</div>'

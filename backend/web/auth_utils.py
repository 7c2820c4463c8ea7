"""
Shared authentication utilities.

Why:
    Keep the session cookie policy in one place for the app factory and the
    auth router.

Design:
    Pure helpers: callers pass the environment string and get cookie flags
    back.
"""

from __future__ import annotations

SESSION_COOKIE_NAME = "ssk_session"


def cookie_opts(environment: str) -> dict:
    """Return session cookie flags for an environment.

    - secure: True outside dev/test so the cookie never travels over plain http
    - samesite: "lax" so top-level navigations after login keep the session
    """
    env = (environment or "").lower()
    return {"secure": env not in ("dev", "development", "test", "local"), "samesite": "lax"}


def set_session_cookie(response, value: str, *, environment: str, max_age: int | None = None) -> None:
    opts = cookie_opts(environment)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def clear_session_cookie(response, *, environment: str) -> None:
    opts = cookie_opts(environment)
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        secure=opts["secure"],
        httponly=True,
        samesite=opts["samesite"],
    )

"""
Configuration and startup security checks for the registry web app.

Why: A registry of personal data must not start in production with a missing
or placeholder Supabase configuration. Development stays permissive and falls
back to in-memory backends when Supabase is not configured.

Permissions: The caller needs no special privileges. The functions only read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
from urllib.parse import urlparse

DEFAULT_SESSION_TTL_SECONDS = 8 * 3600
_LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1", "host.docker.internal"}


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def current_environment() -> str:
    return (os.getenv("SSK_ENV", "dev") or "dev").strip().lower()


def _env_flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes")


def supabase_configured() -> bool:
    """True when URL and anon key are set; otherwise the app runs on in-memory backends."""
    return bool((os.getenv("SUPABASE_URL") or "").strip() and (os.getenv("SUPABASE_ANON_KEY") or "").strip())


def realtime_enabled() -> bool:
    return supabase_configured() and _env_flag("SSK_REALTIME_ENABLED", "true")


def get_session_ttl_seconds() -> int:
    raw = (os.getenv("SSK_SESSION_TTL_SECONDS") or "").strip()
    try:
        value = int(raw) if raw else DEFAULT_SESSION_TTL_SECONDS
    except ValueError:
        value = DEFAULT_SESSION_TTL_SECONDS
    # At least five minutes, at most one week.
    return max(300, min(value, 7 * 24 * 3600))


def _must_be_https(url_value: str, var_name: str) -> None:
    if not url_value:
        return
    parsed = urlparse(url_value.strip())
    if not parsed.scheme or not parsed.hostname:
        raise SystemExit(f"Refusing to start: invalid {var_name} value in production.")
    if parsed.scheme.lower() != "https" and parsed.hostname.lower() not in _LOCAL_HOSTS:
        raise SystemExit(f"Refusing to start: {var_name} must use https in production (got {parsed.scheme}).")


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/stage only):
    - SUPABASE_URL and SUPABASE_ANON_KEY are set (no in-memory fallback in prod).
    - SUPABASE_SERVICE_ROLE_KEY is set and not a dummy placeholder.
    - SUPABASE_URL and SSK_SHEETS_WEBHOOK_URL use https unless local.
    """
    if not _is_prod_like(current_environment()):
        return

    if not supabase_configured():
        raise SystemExit(
            "Refusing to start: SUPABASE_URL and SUPABASE_ANON_KEY must be set in production."
        )

    srole = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not srole or srole.upper() == "DUMMY_DO_NOT_USE":
        raise SystemExit(
            "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a dummy placeholder in production."
        )

    _must_be_https(os.getenv("SUPABASE_URL", ""), "SUPABASE_URL")
    _must_be_https(os.getenv("SSK_SHEETS_WEBHOOK_URL", ""), "SSK_SHEETS_WEBHOOK_URL")

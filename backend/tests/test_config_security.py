"""Startup configuration guard and session TTL parsing."""
import pytest

from web.config import ensure_secure_config_on_startup, get_session_ttl_seconds, realtime_enabled, supabase_configured


def _prod(monkeypatch, **env):
    monkeypatch.setenv("SSK_ENV", "production")
    for name, value in env.items():
        monkeypatch.setenv(name, value)


def test_dev_is_permissive(monkeypatch):
    monkeypatch.setenv("SSK_ENV", "dev")
    ensure_secure_config_on_startup()


def test_prod_requires_supabase(monkeypatch):
    _prod(monkeypatch)
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup()


def test_prod_rejects_dummy_service_key(monkeypatch):
    _prod(monkeypatch, SUPABASE_URL="https://x.supabase.co", SUPABASE_ANON_KEY="anon", SUPABASE_SERVICE_ROLE_KEY="dummy_do_not_use")
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup()


def test_prod_requires_https(monkeypatch):
    _prod(monkeypatch, SUPABASE_URL="http://x.supabase.co", SUPABASE_ANON_KEY="anon", SUPABASE_SERVICE_ROLE_KEY="srk")
    with pytest.raises(SystemExit) as exc_info:
        ensure_secure_config_on_startup()
    assert "https" in str(exc_info.value)


def test_prod_allows_local_http_and_valid_config(monkeypatch):
    _prod(monkeypatch, SUPABASE_URL="http://localhost:54321", SUPABASE_ANON_KEY="anon", SUPABASE_SERVICE_ROLE_KEY="srk")
    ensure_secure_config_on_startup()
    monkeypatch.setenv("SSK_SHEETS_WEBHOOK_URL", "http://sheets.example.test/hook")
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup()


@pytest.mark.parametrize("raw, expected", [("", 8 * 3600), ("junk", 8 * 3600), ("10", 300), ("3600", 3600), ("99999999", 7 * 24 * 3600)])
def test_session_ttl_is_clamped(monkeypatch, raw, expected):
    monkeypatch.setenv("SSK_SESSION_TTL_SECONDS", raw)
    assert get_session_ttl_seconds() == expected


def test_realtime_needs_supabase(monkeypatch):
    assert not supabase_configured()
    assert not realtime_enabled()
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    assert realtime_enabled()
    monkeypatch.setenv("SSK_REALTIME_ENABLED", "false")
    assert not realtime_enabled()

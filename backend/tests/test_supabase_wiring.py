"""
Supabase wiring: which key each client is built with.

Requirements:
- Row-level security is the authorization layer, so per-user repositories are
  never built on the service-role client, not even without an access token.
- The public aggregates read through the service-role client.
"""
import pytest
import supabase

from web.wiring import build_supabase_services


class _Postgrest:
    def __init__(self):
        self.tokens = []

    def auth(self, token):
        self.tokens.append(token)


class _TaggedClient:
    def __init__(self, url, key):
        self.url = url
        self.key = key
        self.postgrest = _Postgrest()


@pytest.fixture
def services(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
    monkeypatch.setenv("SSK_REALTIME_ENABLED", "false")
    monkeypatch.delenv("AUTO_CREATE_STORAGE_BUCKETS", raising=False)
    monkeypatch.setattr(supabase, "create_client", _TaggedClient)
    return build_supabase_services()


@pytest.mark.parametrize("token", ["", None])
def test_repo_without_token_uses_anon_key(services, token):
    client = services.repo(token)._client
    assert client.key == "anon"
    assert client.postgrest.tokens == []


def test_repo_with_token_carries_user_jwt(services):
    client = services.repo("user-jwt")._client
    assert client.key == "anon"
    assert client.postgrest.tokens == ["user-jwt"]


def test_public_repo_and_realtime(services):
    assert services.public_repo._client.key == "service"
    assert services.realtime is None

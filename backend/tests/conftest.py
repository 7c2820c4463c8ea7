"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend, make the backend packages
importable, and give every web test a fresh in-memory application so sessions
and registry rows never leak between cases.
"""
import os
import sys
from pathlib import Path

import pytest

# Ensure modules in backend/ are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

# The module-level app in web.main is wired at import time; keep it on the
# in-memory backends regardless of the developer's shell.
for _var in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SSK_ENV", "SSK_SHEETS_WEBHOOK_URL"):
    os.environ.pop(_var, None)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles that may leak across tests; default is dev."""
    for var in (
        "SSK_ENV",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "SUPABASE_JWT_SECRET",
        "SSK_SHEETS_WEBHOOK_URL",
        "SSK_TRUST_PROXY",
        "SSK_SESSION_TTL_SECONDS",
        "SSK_MAX_IMAGE_BYTES",
        "SSK_MEMBER_IMAGES_BUCKET",
        "SSK_REALTIME_ENABLED",
        "AUTO_CREATE_STORAGE_BUCKETS",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def services():
    """In-memory service stack with the seeded MasterAdmin."""
    from web.wiring import build_dev_services

    return build_dev_services()


@pytest.fixture
def app(services):
    from web.main import create_app

    return create_app(services)


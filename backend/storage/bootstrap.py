"""
Supabase Storage bootstrap helpers.

Intent:
    Ensure the member image bucket exists on startup (dev/stage friendly).

Security & Safety:
    - Controlled by `AUTO_CREATE_STORAGE_BUCKETS=true` env flag.
    - Requires server-side `SUPABASE_SERVICE_ROLE_KEY`.
    - Idempotent: lists buckets first, creates only missing ones.
"""
from __future__ import annotations

import logging
import os
from typing import Iterable

import requests

from .config import get_member_images_bucket

_log = logging.getLogger("ssk.storage")

_TIMEOUT = (3, 10)


def _env_flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or "").strip().lower() == "true"


def _headers(key: str) -> dict:
    return {"apikey": key, "Authorization": f"Bearer {key}"}


def _list_buckets(base_url: str, key: str) -> list[dict]:
    url = f"{base_url.rstrip('/')}/storage/v1/bucket"
    try:
        resp = requests.get(url, headers=_headers(key), timeout=_TIMEOUT)
        _log.debug("GET /storage/v1/bucket status=%s", resp.status_code)
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        _log.warning("list buckets failed: error=%s", type(exc).__name__)
        return []
    return data if isinstance(data, list) else []


def _create_bucket(base_url: str, key: str, name: str, public: bool) -> bool:
    url = f"{base_url.rstrip('/')}/storage/v1/bucket"
    payload = {"name": name, "id": name, "public": public}
    try:
        resp = requests.post(url, headers=_headers(key), json=payload, timeout=_TIMEOUT)
    except requests.RequestException as exc:
        _log.warning("create bucket '%s' failed: error=%s", name, type(exc).__name__)
        return False
    if resp.status_code >= 300:
        # 409 conflict / 403 forbidden / 503 unavailable
        _log.warning("create bucket '%s' failed: status=%s body=%s", name, resp.status_code, resp.text)
        return False
    _log.info("created storage bucket '%s' (public=%s)", name, public)
    return True


def ensure_buckets(base_url: str, key: str, buckets: Iterable[str], *, public: bool = True) -> list[str]:
    """Ensure each bucket exists; create missing ones. Returns the names created.

    Permissions:
        Caller must supply a valid service-role key; anon keys yield 401/403.
    """
    existing = {str(it.get("name") or it.get("id") or "") for it in _list_buckets(base_url, key)}
    created = []
    for name in sorted(set(buckets)):
        if not name or name in existing:
            continue
        if _create_bucket(base_url, key, name, public=public):
            created.append(name)
    return created


def ensure_buckets_from_env() -> bool:
    """Create the member image bucket when AUTO_CREATE_STORAGE_BUCKETS=true.

    Returns False when disabled or when Supabase credentials are missing.
    """
    if not _env_flag("AUTO_CREATE_STORAGE_BUCKETS"):
        return False
    _log.warning(
        "AUTO_CREATE_STORAGE_BUCKETS=true detected (dev/test convenience only). Disable this flag in prod/stage environments."
    )
    base = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not base or not key:
        return False
    ensure_buckets(base, key, [get_member_images_bucket()], public=True)
    return True


__all__ = ["ensure_buckets", "ensure_buckets_from_env"]

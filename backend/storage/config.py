"""
Centralized storage configuration for member image uploads.

Intent:
    Single source of truth for the member image bucket name, the upload size
    limit and the accepted image types, so the upload form, the service layer
    and the bucket bootstrap cannot drift apart.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os


MEMBER_IMAGES_BUCKET_DEFAULT = "member-images"

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"})

_IMAGE_EXT_BY_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


def get_member_images_bucket() -> str:
    """Return the configured member images bucket name.

    Env:
        SSK_MEMBER_IMAGES_BUCKET – optional override; otherwise defaults to
        MEMBER_IMAGES_BUCKET_DEFAULT.
    """
    return (os.getenv("SSK_MEMBER_IMAGES_BUCKET") or MEMBER_IMAGES_BUCKET_DEFAULT).strip()


def image_ext_for_type(content_type: str | None) -> str:
    return _IMAGE_EXT_BY_TYPE.get((content_type or "").split(";")[0].strip().lower(), ".jpg")


# --- Size limits --------------------------------------------------------------

def _parse_int_env(name: str, default: int, *, contract_max: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_max_image_bytes() -> int:
    """Maximum member image size (default 5 MiB, clamped to 20 MiB)."""
    return _parse_int_env("SSK_MAX_IMAGE_BYTES", 5 * 1024 * 1024, contract_max=20 * 1024 * 1024)


__all__ = [
    "ALLOWED_IMAGE_TYPES",
    "MEMBER_IMAGES_BUCKET_DEFAULT",
    "get_max_image_bytes",
    "get_member_images_bucket",
    "image_ext_for_type",
]

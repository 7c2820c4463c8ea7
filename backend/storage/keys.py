"""
Helpers to generate storage keys for member images.

Conventions:
    - Member images: aadhaar_{uuid}.{ext} at the bucket root.

Security:
    - Extensions are lowercased and filtered to alphanumerics; unknown or
      missing extensions fall back to ".jpg".
    - The key never contains the Aadhaar number itself.
"""
from __future__ import annotations

import os
import re
import uuid

_EXT_RE = re.compile(r"^\.[a-z0-9]{1,8}$")


def _sanitize_ext_from_filename(filename: str | None, default_ext: str = ".jpg") -> str:
    if not filename:
        return default_ext
    _, ext = os.path.splitext(os.path.basename(filename))
    ext = "".join(ch for ch in ext.lower() if ch.isalnum() or ch == ".")
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext if _EXT_RE.match(ext or "") else default_ext


def make_member_image_key(*, filename: str | None = None, default_ext: str = ".jpg", uuid_hex: str | None = None) -> str:
    """Return `aadhaar_{uuid}{ext}` for a new member image upload."""
    ext = _sanitize_ext_from_filename(filename, default_ext=default_ext)
    hexpart = (uuid_hex or "").strip() or str(uuid.uuid4())
    return f"aadhaar_{hexpart}{ext}"


__all__ = ["make_member_image_key"]

"""
Storage adapters for member images.

The Supabase adapter is duck-typed: the client is expected to expose
`.storage.from_(bucket)` returning an object with `upload(path, body, options)`
and `get_public_url(path)`. Tests pass small stubs with the same shape.

Security:
- The caller must initialise the client with the service-role key; uploads
  happen server-side after the form has been validated.
- The member image bucket is public-read (images are shown in reports by URL).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Tuple

_log = logging.getLogger("ssk.storage")


class ImageStorageProtocol(Protocol):
    """Write an object and resolve the public URL it is served under."""

    def put_object(self, *, bucket: str, key: str, body: bytes, content_type: str) -> None: ...

    def public_url(self, *, bucket: str, key: str) -> str: ...


class NullStorageAdapter:
    """Fallback adapter that signals the storage backend is not configured."""

    def put_object(self, *, bucket: str, key: str, body: bytes, content_type: str) -> None:  # noqa: D401
        raise RuntimeError("storage_adapter_not_configured")

    def public_url(self, *, bucket: str, key: str) -> str:  # noqa: D401
        raise RuntimeError("storage_adapter_not_configured")


class InMemoryStorageAdapter:
    """Keeps uploads in process memory; served by the dev media route."""

    def __init__(self, *, url_prefix: str = "/media") -> None:
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}
        self._url_prefix = url_prefix.rstrip("/")

    def put_object(self, *, bucket: str, key: str, body: bytes, content_type: str) -> None:
        self.objects[(bucket, key.lstrip("/"))] = (bytes(body), content_type)

    def public_url(self, *, bucket: str, key: str) -> str:
        return f"{self._url_prefix}/{bucket}/{key.lstrip('/')}"

    def get_object(self, *, bucket: str, key: str) -> Optional[Tuple[bytes, str]]:
        return self.objects.get((bucket, key.lstrip("/")))


class SupabaseStorageAdapter:
    """Storage adapter using a supabase client for Storage operations."""

    def __init__(self, client: Any):
        # Duck-typed supabase client, e.g., from `supabase import create_client(...)`.
        self._client = client

    def _bucket(self, bucket: str) -> Any:
        """Return a bucket proxy from either a supabase client or a storage3 client."""
        c = self._client
        storage = getattr(c, "storage", None)
        if storage is not None and hasattr(storage, "from_"):
            return storage.from_(bucket)
        if hasattr(c, "from_"):
            return c.from_(bucket)
        raise RuntimeError("invalid_supabase_client")

    @staticmethod
    def _relative_key(bucket: str, key: str) -> str:
        # storage3 prepends the bucket id itself
        norm_key = key.lstrip("/")
        prefix = f"{bucket}/"
        if norm_key.startswith(prefix):
            norm_key = norm_key[len(prefix):]
        return norm_key

    def put_object(self, *, bucket: str, key: str, body: bytes, content_type: str) -> None:
        """Upload a binary object; client exceptions propagate to the caller."""
        b = self._bucket(bucket)
        # Some client versions expect file options with either kebab or camel case.
        opts = {"content-type": content_type, "contentType": content_type, "upsert": "false"}
        b.upload(self._relative_key(bucket, key), body, opts)
        _log.debug("uploaded object bucket=%s key=%s bytes=%s", bucket, key, len(body))

    def public_url(self, *, bucket: str, key: str) -> str:
        res = self._bucket(bucket).get_public_url(self._relative_key(bucket, key))
        if isinstance(res, dict):
            data = res.get("data") if isinstance(res.get("data"), dict) else res
            res = data.get("publicUrl") or data.get("publicURL") or data.get("public_url")
        url = str(res or "").rstrip("?")
        if not url:
            raise RuntimeError("failed_to_resolve_public_url")
        return url


__all__ = [
    "ImageStorageProtocol",
    "InMemoryStorageAdapter",
    "NullStorageAdapter",
    "SupabaseStorageAdapter",
]

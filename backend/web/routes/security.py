"""
Shared web security helpers for routes.

Contains the CSRF checks used by every form-handling router: a per-session
synchronizer token plus a same-origin check on Origin/Referer. Keeping one
implementation avoids drift between the role areas.
"""
from __future__ import annotations

import hmac
import os
from typing import Optional
from urllib.parse import urlparse

from fastapi import Request


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    return scheme, p.hostname.lower(), int(p.port if p.port is not None else _default_port(scheme))


def _server_origin(request: Request) -> tuple[str, str, int]:
    """Scheme/host/port of this server; X-Forwarded-* only with SSK_TRUST_PROXY=true."""
    trust_proxy = (os.getenv("SSK_TRUST_PROXY", "false") or "").lower() == "true"
    if trust_proxy:
        xf_proto = (request.headers.get("x-forwarded-proto") or request.url.scheme or "").split(",")[0].strip()
        xf_host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
        scheme = (xf_proto or request.url.scheme or "http").lower()
        if ":" in xf_host:
            host_only, port_str = xf_host.rsplit(":", 1)
            try:
                port = int(port_str)
            except ValueError:
                port = _default_port(scheme)
            host = host_only.lower()
        else:
            host = (xf_host or (request.url.hostname or "")).lower()
            port = _default_port(scheme)
        xf_port = (request.headers.get("x-forwarded-port") or "").split(",")[0].strip()
        if xf_port:
            try:
                port = int(xf_port)
            except ValueError:
                port = _default_port(scheme)
        return scheme, host, port

    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port) if request.url.port else _default_port(scheme)
    return scheme, host, port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    - Origin present: exact scheme/host/port match with the server.
    - Else Referer present: its origin must match the same way.
    - Neither header: allowed, the CSRF token still has to match.
    """
    try:
        server = _server_origin(request)
        origin_val = request.headers.get("origin")
        if origin_val:
            return _parse_origin(origin_val) == server
        referer_val = request.headers.get("referer")
        if referer_val:
            return _parse_origin(referer_val) == server
        return True
    except ValueError:
        return False


def csrf_token_matches(expected: Optional[str], submitted: Optional[str]) -> bool:
    if not expected or not submitted:
        return False
    return hmac.compare_digest(str(expected), str(submitted))


def is_valid_form_post(request: Request, expected_token: Optional[str], submitted_token: Optional[str]) -> bool:
    """Both checks together; used by every state-changing form handler."""
    return _is_same_origin(request) and csrf_token_matches(expected_token, submitted_token)

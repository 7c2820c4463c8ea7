"""
Access token verification for Supabase-issued JWTs.

Why: Session resume must know whether the stored access token is still usable
before handing it to row-level-security scoped queries. When the project's JWT
secret is configured we verify locally (signature, audience, expiry) instead
of asking the auth server on every request.

Security: Only HS256 tokens signed with `SUPABASE_JWT_SECRET` are accepted.
Claims are returned as-is; callers decide which ones to trust.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
import time

from jose import jwt
from jose.exceptions import JOSEError

from .domain import Principal


class AccessTokenError(Exception):
    """Raised when an access token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


SUPABASE_AUDIENCE = "authenticated"
MAX_CLOCK_SKEW_SECONDS = 5  # Allow minimal skew between servers


def verify_access_token(
    token: str,
    secret: str,
    *,
    audience: str = SUPABASE_AUDIENCE,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    """Validate a Supabase access token and return its claims.

    Raises
    ------
    AccessTokenError:
        `invalid_token` for signature/audience/shape problems, `expired` when
        `exp` lies in the past (beyond the allowed skew).
    """
    if not token or not secret:
        raise AccessTokenError("invalid_token")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={
                "verify_signature": True,
                "verify_aud": True,
                "verify_exp": False,
                "verify_iat": False,
                "verify_nbf": False,
            },
        )
    except JOSEError as exc:
        raise AccessTokenError("invalid_token") from exc

    _validate_temporal_claims(claims, now=now)
    return claims


def principal_from_claims(claims: Mapping[str, Any]) -> Optional[Principal]:
    """Build a `Principal` from verified claims (sub, email, user_metadata)."""
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        return None
    metadata = claims.get("user_metadata")
    return Principal(
        subject=sub,
        email=str(claims.get("email") or ""),
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
    )


def _validate_temporal_claims(claims: Mapping[str, Any], *, now: Optional[float] = None) -> None:
    now = time.time() if now is None else now
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise AccessTokenError("invalid_token")
    if exp + MAX_CLOCK_SKEW_SECONDS < now:
        raise AccessTokenError("expired")

    iat = claims.get("iat")
    if isinstance(iat, (int, float)) and iat - MAX_CLOCK_SKEW_SECONDS > now:
        raise AccessTokenError("invalid_token")

    nbf = claims.get("nbf")
    if isinstance(nbf, (int, float)) and nbf - MAX_CLOCK_SKEW_SECONDS > now:
        raise AccessTokenError("invalid_token")

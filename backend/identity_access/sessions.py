"""
Session lifecycle: login, resume, refresh and invalidate.

Why:
    Session state is owned by one explicit object that the application factory
    creates and injects; request handlers never reach for a module global.

Behavior:
    - `login`: authenticate at the provider, resolve the Identity, refuse
      deactivated accounts, store a new session record.
    - `get` (resume): return a live record, renewing provider tokens when the
      access token has expired. A session whose refresh token is rejected is
      invalidated; when the provider is unreachable the record is kept and
      returned as is so a network blip does not log the user out.
    - `refresh`: re-read the current principal with the session's token and
      re-run resolution; idempotent when nothing changed.
    - `invalidate`: sign out at the provider (best effort) and drop the record.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from .auth_client import AuthenticationError, AuthGateway, AuthResult
from .domain import Identity
from .resolver import IdentityResolver, IdentitySyncError
from .stores import SessionRecord, SessionStore
from .tokens import AccessTokenError, principal_from_claims, verify_access_token

logger = logging.getLogger("ssk.identity_access")

DEFAULT_SESSION_TTL_SECONDS = 8 * 3600
TOKEN_RENEW_MARGIN_SECONDS = 30

# Renewal failures that leave the session in place.
TRANSIENT_AUTH_CODES = frozenset({"unavailable"})


class AccountDeactivatedError(Exception):
    """The account authenticated but its profile status is Deactivated."""

    code = "account_deactivated"
    message = "This account has been deactivated. Contact your organisation."


class SessionManager:
    def __init__(
        self,
        *,
        store: SessionStore,
        gateway: AuthGateway,
        resolver: IdentityResolver,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        jwt_secret: Optional[str] = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.resolver = resolver
        self.ttl_seconds = ttl_seconds
        self._jwt_secret = jwt_secret or None

    def login(self, email: str, password: str) -> SessionRecord:
        """Authenticate and open a session.

        Raises `AuthenticationError` (credentials), `IdentitySyncError` (no
        principal after success) or `AccountDeactivatedError`.
        """
        result = self.gateway.sign_in(email.strip(), password)
        if not result.access_token:
            logger.error("sign-in succeeded without an access token; refusing session")
            raise AuthenticationError("unknown")
        identity = self.resolver.resolve(result.principal, access_token=result.access_token)
        if not identity.is_active:
            self.gateway.sign_out(result.access_token)
            logger.info("login refused for deactivated account %s", identity.id)
            raise AccountDeactivatedError()
        rec = self.store.create(
            identity=identity,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            token_expires_at=result.expires_at,
            ttl_seconds=self.ttl_seconds,
        )
        logger.info("session opened for %s role=%s", identity.id, identity.role.value)
        return rec

    def get(self, session_id: Optional[str]) -> Optional[SessionRecord]:
        if not session_id:
            return None
        rec = self.store.get(session_id)
        if rec is None:
            return None
        if self._token_usable(rec):
            return rec
        try:
            self._renew_tokens(rec)
        except AuthenticationError as exc:
            if exc.code in TRANSIENT_AUTH_CODES:
                logger.warning("token renewal for %s failed (code=%s); keeping session", rec.identity.id, exc.code)
                return rec
            logger.info("session %s dropped: token renewal failed (code=%s)", rec.identity.id, exc.code)
            self.store.delete(rec.session_id)
            return None
        return rec

    def refresh(self, session_id: str) -> Optional[SessionRecord]:
        """Re-resolve the Identity held by a session without re-authenticating."""
        rec = self.get(session_id)
        if rec is None:
            return None
        principal = self.gateway.get_principal(rec.access_token)
        if principal is None:
            try:
                result = self._renew_tokens(rec)
            except AuthenticationError as exc:
                if exc.code in TRANSIENT_AUTH_CODES:
                    return rec
                self.store.delete(rec.session_id)
                return None
            principal = result.principal
        try:
            identity = self.resolver.resolve(principal, access_token=rec.access_token)
        except IdentitySyncError:
            logger.warning("session refresh for %s lost its principal; keeping previous identity", rec.identity.id)
            return rec
        rec.identity = identity
        return rec

    def invalidate(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        rec = self.store.get(session_id)
        if rec is not None and rec.access_token:
            self.gateway.sign_out(rec.access_token)
        self.store.delete(session_id)

    def invalidate_user(self, user_id: str) -> int:
        """Drop all local sessions for a user (deactivation, password reset)."""
        return self.store.delete_for_user(user_id)

    def current_identity(self, session_id: Optional[str]) -> Optional[Identity]:
        rec = self.get(session_id)
        return rec.identity if rec else None

    def _token_usable(self, rec: SessionRecord) -> bool:
        if self._jwt_secret:
            try:
                claims = verify_access_token(rec.access_token, self._jwt_secret)
            except AccessTokenError:
                return False
            principal = principal_from_claims(claims)
            return principal is not None and principal.subject == rec.identity.id
        if rec.token_expires_at is None:
            return True
        return rec.token_expires_at - TOKEN_RENEW_MARGIN_SECONDS > int(time.time())

    def _renew_tokens(self, rec: SessionRecord) -> AuthResult:
        if not rec.refresh_token:
            raise AuthenticationError("invalid_credentials", "Session expired. Please sign in again.")
        result = self.gateway.refresh(rec.refresh_token)
        if not result.access_token:
            raise AuthenticationError("unknown")
        rec.access_token = result.access_token
        rec.refresh_token = result.refresh_token or rec.refresh_token
        rec.token_expires_at = result.expires_at
        return result


__all__ = ["AccountDeactivatedError", "SessionManager", "DEFAULT_SESSION_TTL_SECONDS", "TRANSIENT_AUTH_CODES"]

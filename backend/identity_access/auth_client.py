"""
Auth provider gateway (Supabase Auth / GoTrue).

Why:
    Keep supabase-py specifics (response shapes, error classes) out of the
    resolver and the web adapter. Callers only see `AuthResult`, `Principal`
    and `AuthenticationError(code)`.

Security:
    - Sign-in uses a fresh anon client per call so sessions never bleed between
      users sharing one process.
    - Account administration (create user, set password) uses the service-role
      client and must only be reachable from role-gated routes.
    - Passwords and tokens are never logged.
"""
from __future__ import annotations

import logging
import secrets
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

import httpx

from .domain import Principal

logger = logging.getLogger("ssk.identity_access")


class AuthenticationError(Exception):
    """Provider-level authentication/account failure with a classification.

    Codes: invalid_credentials, email_not_confirmed, user_not_found,
    weak_password, email_exists, unavailable, unknown.
    """

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.message = message or _DEFAULT_MESSAGES.get(code, "Authentication failed.")


_DEFAULT_MESSAGES = {
    "invalid_credentials": "Invalid login credentials.",
    "email_not_confirmed": "Email not confirmed. Please confirm your email address first.",
    "user_not_found": "User not found.",
    "weak_password": "Password is too weak.",
    "email_exists": "A user with this email address has already been registered.",
    "unavailable": "Authentication service unavailable. Please try again.",
    "unknown": "An unknown authentication error occurred.",
}

# (code, lower-cased message fragment) pairs; the first match wins.
_MESSAGE_RULES = (
    ("invalid_credentials", "invalid login credentials"),
    ("email_not_confirmed", "email not confirmed"),
    ("user_not_found", "user not found"),
    ("weak_password", "password should be"),
    ("email_exists", "already been registered"),
    ("email_exists", "already registered"),
)

_KNOWN_CODES = frozenset(_DEFAULT_MESSAGES)


def classify_auth_error(exc: BaseException) -> AuthenticationError:
    """Translate supabase/gotrue and transport errors into `AuthenticationError`."""
    if isinstance(exc, AuthenticationError):
        return exc
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return AuthenticationError("unavailable")
    code = str(getattr(exc, "code", "") or "").strip().lower()
    message = str(getattr(exc, "message", "") or exc).strip()
    if code == "user_already_exists":
        code = "email_exists"
    if code in _KNOWN_CODES:
        return AuthenticationError(code, _DEFAULT_MESSAGES[code])
    lowered = message.lower()
    for rule_code, fragment in _MESSAGE_RULES:
        if fragment in lowered:
            return AuthenticationError(rule_code, _DEFAULT_MESSAGES[rule_code])
    return AuthenticationError("unknown", message or _DEFAULT_MESSAGES["unknown"])


@dataclass(frozen=True)
class AuthResult:
    principal: Optional[Principal]
    access_token: str
    refresh_token: str = ""
    expires_at: Optional[int] = None


class AuthGateway(Protocol):
    def sign_in(self, email: str, password: str) -> AuthResult: ...

    def get_principal(self, access_token: str) -> Optional[Principal]: ...

    def refresh(self, refresh_token: str) -> AuthResult: ...

    def sign_out(self, access_token: str) -> None: ...

    def create_user(self, email: str, password: str, metadata: Mapping[str, Any]) -> str: ...

    def delete_user(self, user_id: str) -> None: ...

    def set_password(self, user_id: str, new_password: str, *, reset_pending: bool = False) -> None: ...


def principal_from_user(user: Any) -> Optional[Principal]:
    """Build a `Principal` from a gotrue `User` (object or mapping)."""
    if user is None:
        return None

    def get(name: str) -> Any:
        if isinstance(user, Mapping):
            return user.get(name)
        return getattr(user, name, None)

    subject = get("id")
    if not subject:
        return None
    metadata = get("user_metadata") or {}
    return Principal(subject=str(subject), email=str(get("email") or ""), metadata=dict(metadata))


class SupabaseAuthGateway:
    """`AuthGateway` over supabase-py.

    Parameters
    ----------
    anon_client_factory:
        Returns a new client built with the anon key (one per sign-in).
    service_client:
        Client built with the service-role key, used for admin operations.
    """

    def __init__(self, anon_client_factory: Callable[[], Any], service_client: Any) -> None:
        self._anon_client_factory = anon_client_factory
        self._service = service_client

    def sign_in(self, email: str, password: str) -> AuthResult:
        client = self._anon_client_factory()
        try:
            res = client.auth.sign_in_with_password({"email": email.strip(), "password": password})
        except Exception as exc:
            err = classify_auth_error(exc)
            logger.info("sign-in rejected (code=%s)", err.code)
            raise err from exc
        return self._result(res)

    def get_principal(self, access_token: str) -> Optional[Principal]:
        try:
            res = self._service.auth.get_user(access_token)
        except Exception as exc:
            logger.info("get_user failed: %s", exc.__class__.__name__)
            return None
        return principal_from_user(getattr(res, "user", None) if res is not None else None)

    def refresh(self, refresh_token: str) -> AuthResult:
        client = self._anon_client_factory()
        try:
            res = client.auth.refresh_session(refresh_token)
        except Exception as exc:
            raise classify_auth_error(exc) from exc
        return self._result(res)

    def sign_out(self, access_token: str) -> None:
        try:
            self._service.auth.admin.sign_out(access_token)
        except Exception as exc:
            # Local session is invalidated regardless; provider logout is best effort.
            logger.warning("provider sign-out failed: %s", exc.__class__.__name__)

    def create_user(self, email: str, password: str, metadata: Mapping[str, Any]) -> str:
        try:
            res = self._service.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": dict(metadata),
                }
            )
        except Exception as exc:
            raise classify_auth_error(exc) from exc
        principal = principal_from_user(getattr(res, "user", None))
        if principal is None:
            raise AuthenticationError("unknown", "User creation returned no user.")
        return principal.subject

    def delete_user(self, user_id: str) -> None:
        try:
            self._service.auth.admin.delete_user(user_id)
        except Exception as exc:
            raise classify_auth_error(exc) from exc

    def set_password(self, user_id: str, new_password: str, *, reset_pending: bool = False) -> None:
        try:
            self._service.auth.admin.update_user_by_id(
                user_id,
                {"password": new_password, "user_metadata": {"password_reset_pending": reset_pending}},
            )
        except Exception as exc:
            raise classify_auth_error(exc) from exc

    @staticmethod
    def _result(res: Any) -> AuthResult:
        session = getattr(res, "session", None)
        principal = principal_from_user(getattr(res, "user", None))
        if session is None:
            # Provider accepted the call but returned no session; SessionManager refuses an empty token.
            return AuthResult(principal=principal, access_token="")
        expires_at = getattr(session, "expires_at", None)
        return AuthResult(
            principal=principal,
            access_token=str(getattr(session, "access_token", "") or ""),
            refresh_token=str(getattr(session, "refresh_token", "") or ""),
            expires_at=int(expires_at) if expires_at else None,
        )


@dataclass
class _DemoUser:
    id: str
    email: str
    password: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    email_confirmed: bool = True


class InMemoryAuthGateway:
    """Process-local auth provider for development and tests.

    Mirrors the provider semantics the app relies on: credential errors,
    unconfirmed emails, opaque access/refresh tokens with expiry.
    """

    def __init__(self, *, token_ttl_seconds: int = 3600) -> None:
        self._users: Dict[str, _DemoUser] = {}
        self._access: Dict[str, tuple[str, int]] = {}
        self._refresh: Dict[str, str] = {}
        self._ttl = token_ttl_seconds

    def add_user(
        self,
        email: str,
        password: str,
        metadata: Optional[Mapping[str, Any]] = None,
        *,
        user_id: Optional[str] = None,
        email_confirmed: bool = True,
    ) -> str:
        key = email.strip().lower()
        if key in self._users:
            raise AuthenticationError("email_exists")
        user = _DemoUser(
            id=user_id or str(uuid.uuid4()),
            email=key,
            password=password,
            metadata=dict(metadata or {}),
            email_confirmed=email_confirmed,
        )
        self._users[key] = user
        return user.id

    def user_by_id(self, user_id: str) -> Optional[_DemoUser]:
        for user in self._users.values():
            if user.id == user_id:
                return user
        return None

    def sign_in(self, email: str, password: str) -> AuthResult:
        user = self._users.get(email.strip().lower())
        if user is None or not secrets.compare_digest(user.password, password):
            raise AuthenticationError("invalid_credentials")
        if not user.email_confirmed:
            raise AuthenticationError("email_not_confirmed")
        return self._issue(user)

    def get_principal(self, access_token: str) -> Optional[Principal]:
        entry = self._access.get(access_token)
        if entry is None or entry[1] < int(time.time()):
            return None
        user = self.user_by_id(entry[0])
        if user is None:
            return None
        return Principal(subject=user.id, email=user.email, metadata=dict(user.metadata))

    def refresh(self, refresh_token: str) -> AuthResult:
        user_id = self._refresh.pop(refresh_token, None)
        user = self.user_by_id(user_id) if user_id else None
        if user is None:
            raise AuthenticationError("invalid_credentials", "Session expired. Please sign in again.")
        return self._issue(user)

    def sign_out(self, access_token: str) -> None:
        entry = self._access.pop(access_token, None)
        if entry is None:
            return
        for token, user_id in list(self._refresh.items()):
            if user_id == entry[0]:
                self._refresh.pop(token, None)

    def create_user(self, email: str, password: str, metadata: Mapping[str, Any]) -> str:
        if len(password) < 6:
            raise AuthenticationError("weak_password", "Password should be at least 6 characters.")
        return self.add_user(email, password, metadata)

    def delete_user(self, user_id: str) -> None:
        user = self.user_by_id(user_id)
        if user is None:
            raise AuthenticationError("user_not_found")
        self._users.pop(user.email, None)

    def set_password(self, user_id: str, new_password: str, *, reset_pending: bool = False) -> None:
        user = self.user_by_id(user_id)
        if user is None:
            raise AuthenticationError("user_not_found")
        user.password = new_password
        user.metadata["password_reset_pending"] = reset_pending

    def _issue(self, user: _DemoUser) -> AuthResult:
        access = secrets.token_urlsafe(24)
        refresh = secrets.token_urlsafe(24)
        expires_at = int(time.time()) + self._ttl
        self._access[access] = (user.id, expires_at)
        self._refresh[refresh] = user.id
        principal = Principal(subject=user.id, email=user.email, metadata=dict(user.metadata))
        return AuthResult(principal=principal, access_token=access, refresh_token=refresh, expires_at=expires_at)


__all__ = [
    "AuthGateway",
    "AuthResult",
    "AuthenticationError",
    "InMemoryAuthGateway",
    "SupabaseAuthGateway",
    "classify_auth_error",
    "principal_from_user",
]

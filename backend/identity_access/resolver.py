"""
Session/Identity resolver.

Why:
    After a successful sign-in (or a silent session resume) three sources may
    disagree about who the user is: the profile row, the auth provider's
    metadata bag and the session principal itself. This module reconciles them
    into one canonical `Identity`.

Behavior:
    - Metadata hints (role, organisation id) are extracted first; they are
      provisional.
    - The profile row is read by subject id (joined with its organisation).
    - Row found: the row wins; an empty role or organisation on the row falls
      back to the matching metadata hint.
    - Row missing or read failed: the Identity is built from the principal and
      metadata hints only, status Active, no organisation name.
    - The role is normalized in every branch.

Errors:
    `resolve` never raises for an authenticated principal. A principal without
    a subject id means the provider reported success but handed back no user;
    that is surfaced as `IdentitySyncError` so callers can tell it apart from a
    credential error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .domain import (
    AccountStatus,
    Identity,
    Principal,
    is_known_role,
    normalize_role,
    parse_status,
)
from .profiles import (
    ProfileFound,
    ProfileLookup,
    ProfileReadFailed,
    ProfileStore,
    classify_read_error,
)

logger = logging.getLogger("ssk.identity_access")

ProfileStoreFactory = Callable[[Optional[str]], ProfileStore]

_ORG_HINT_KEYS = ("organisation_id", "organization_id", "org_id")


class IdentitySyncError(Exception):
    """Authentication succeeded but no usable identity could be built."""

    code = "sync_failed"

    def __init__(self, detail: str = "no authenticated user returned by the provider"):
        super().__init__(detail)
        self.detail = detail


@dataclass(frozen=True)
class MetadataHints:
    role: Optional[str]
    organisation_id: Optional[str]
    name: Optional[str]
    mobile: Optional[str]
    password_reset_pending: bool

    @classmethod
    def from_metadata(cls, metadata: Optional[Mapping[str, Any]]) -> "MetadataHints":
        meta = metadata if isinstance(metadata, Mapping) else {}
        org_hint = None
        for key in _ORG_HINT_KEYS:
            org_hint = _text(meta.get(key))
            if org_hint:
                break
        return cls(
            role=_text(meta.get("role")),
            organisation_id=org_hint,
            name=_text(meta.get("name")),
            mobile=_text(meta.get("mobile")),
            password_reset_pending=_truthy(meta.get("password_reset_pending")),
        )


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return False


def _joined_organisation_name(row: Mapping[str, Any]) -> Optional[str]:
    joined = row.get("organisations")
    if isinstance(joined, list):
        joined = joined[0] if joined else None
    if isinstance(joined, Mapping):
        return _text(joined.get("name"))
    return None


def _fallback_name(principal: Principal, hints: MetadataHints) -> str:
    if hints.name:
        return hints.name
    email = principal.email or ""
    return email.split("@", 1)[0] if email else ""


class IdentityResolver:
    """Build `Identity` values from authenticated principals.

    `profile_stores` is called with the session's access token and returns the
    profile store to read from, so each lookup runs under the caller's
    row-level security context.
    """

    def __init__(self, profile_stores: ProfileStoreFactory) -> None:
        self._profile_stores = profile_stores

    def lookup_profile(self, subject: str, access_token: Optional[str]) -> ProfileLookup:
        try:
            return self._profile_stores(access_token).lookup(subject)
        except Exception as exc:
            # Adapters are expected to return ProfileReadFailed themselves.
            return classify_read_error(exc)

    def resolve(self, principal: Optional[Principal], *, access_token: Optional[str] = None) -> Identity:
        if principal is None or not _text(principal.subject):
            logger.error("identity sync failed: authenticated session without subject")
            raise IdentitySyncError()

        hints = MetadataHints.from_metadata(principal.metadata)
        lookup = self.lookup_profile(principal.subject, access_token)

        if isinstance(lookup, ProfileFound):
            return self._from_row(principal, hints, lookup.row)
        if isinstance(lookup, ProfileReadFailed):
            logger.warning(
                "profile read failed (kind=%s detail=%s); using metadata fallback for %s",
                lookup.kind,
                lookup.detail,
                principal.subject,
            )
        else:
            logger.info("no profile row for %s; using metadata fallback", principal.subject)
        return self._from_metadata(principal, hints)

    def _from_metadata(self, principal: Principal, hints: MetadataHints) -> Identity:
        return Identity(
            id=principal.subject,
            name=_fallback_name(principal, hints),
            email=principal.email or "",
            role=self._role(hints.role, source="metadata"),
            organisation_id=hints.organisation_id,
            organisation_name=None,
            mobile=hints.mobile,
            status=AccountStatus.ACTIVE,
            password_reset_pending=hints.password_reset_pending,
        )

    def _from_row(self, principal: Principal, hints: MetadataHints, row: Mapping[str, Any]) -> Identity:
        row_role = _text(row.get("role"))
        pending = row.get("password_reset_pending")
        return Identity(
            id=_text(row.get("id")) or principal.subject,
            name=_text(row.get("name")) or _fallback_name(principal, hints),
            email=_text(row.get("email")) or principal.email or "",
            role=self._role(row_role or hints.role, source="profile" if row_role else "metadata"),
            organisation_id=_text(row.get("organisation_id")) or hints.organisation_id,
            organisation_name=_joined_organisation_name(row),
            mobile=_text(row.get("mobile")) or hints.mobile,
            status=parse_status(row.get("status")),
            password_reset_pending=_truthy(pending) if pending is not None else hints.password_reset_pending,
        )

    @staticmethod
    def _role(raw: Optional[str], *, source: str):
        # Unknown values fall back to the least-privileged role; log them so data issues surface.
        if raw and not is_known_role(raw):
            logger.warning("unrecognized %s role %r; defaulting to least-privileged role", source, raw)
        return normalize_role(raw)


__all__ = ["IdentityResolver", "IdentitySyncError", "MetadataHints", "ProfileStoreFactory"]

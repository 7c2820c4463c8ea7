"""
Identity domain: roles, account status and the canonical Identity value.

Why:
- Roles arrive as free-form strings from two independent sources (profile rows
  and auth metadata). Normalizing them here keeps the open string from leaking
  past the identity boundary.
- Downstream code (navigation, route gates, query scoping) only ever sees the
  closed `Role` enum.

Behavior:
- `normalize_role` is total: every input maps to exactly one role. Unknown,
  empty and non-string values map to the least-privileged role (Volunteer).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class Role(str, Enum):
    MASTER_ADMIN = "MasterAdmin"
    ORGANISATION = "Organisation"
    VOLUNTEER = "Volunteer"

    @property
    def home_path(self) -> str:
        return _HOME_PATHS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


class AccountStatus(str, Enum):
    ACTIVE = "Active"
    DEACTIVATED = "Deactivated"


LEAST_PRIVILEGED_ROLE = Role.VOLUNTEER

_HOME_PATHS = {
    Role.MASTER_ADMIN: "/admin",
    Role.ORGANISATION: "/organisation",
    Role.VOLUNTEER: "/volunteer",
}

_LABELS = {
    Role.MASTER_ADMIN: "Master Admin",
    Role.ORGANISATION: "Organisation",
    Role.VOLUNTEER: "Volunteer",
}

# Keys are compared after trimming, lower-casing and collapsing separators
# (whitespace, "-" and "_") into a single "_".
ROLE_SYNONYMS: Mapping[Role, frozenset[str]] = {
    Role.MASTER_ADMIN: frozenset(
        {"masteradmin", "master_admin", "superadmin", "super_admin", "super_user", "root"}
    ),
    Role.ORGANISATION: frozenset(
        {
            "organisation",
            "organization",
            "org",
            "admin",
            "org_admin",
            "orgadmin",
            "organisation_admin",
            "organization_admin",
        }
    ),
    Role.VOLUNTEER: frozenset({"volunteer", "agent", "field_agent"}),
}

_SYNONYM_INDEX = {alias: role for role, aliases in ROLE_SYNONYMS.items() for alias in aliases}

_SEPARATORS = re.compile(r"[\s\-_]+")

# Immutable set of canonical role names, shared with tooling and tests.
ALLOWED_ROLES = frozenset(role.value for role in Role)


def role_key(value: Any) -> str:
    """Return the lookup key for a raw role value ("" for non-strings)."""
    if not isinstance(value, str):
        return ""
    return _SEPARATORS.sub("_", value.strip().lower()).strip("_")


def is_known_role(value: Any) -> bool:
    """True when `value` matches one of the documented synonym sets."""
    return role_key(value) in _SYNONYM_INDEX


def normalize_role(value: Any) -> Role:
    """Map a free-form role string to exactly one `Role`.

    Examples:
        " MasterAdmin " -> Role.MASTER_ADMIN
        "org_admin"     -> Role.ORGANISATION
        None / "" / "?" -> Role.VOLUNTEER
    """
    if isinstance(value, Role):
        return value
    return _SYNONYM_INDEX.get(role_key(value), LEAST_PRIVILEGED_ROLE)


def parse_status(value: Any) -> AccountStatus:
    """Parse an account status; anything but "deactivated" counts as Active."""
    if isinstance(value, AccountStatus):
        return value
    if isinstance(value, str) and value.strip().lower() == "deactivated":
        return AccountStatus.DEACTIVATED
    return AccountStatus.ACTIVE


@dataclass(frozen=True)
class Principal:
    """Authenticated subject as reported by the auth provider."""

    subject: str
    email: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Identity:
    """Canonical, resolved representation of the logged-in actor."""

    id: str
    name: str
    email: str
    role: Role
    organisation_id: Optional[str] = None
    organisation_name: Optional[str] = None
    mobile: Optional[str] = None
    status: AccountStatus = AccountStatus.ACTIVE
    password_reset_pending: bool = False

    @property
    def is_active(self) -> bool:
        return self.status is AccountStatus.ACTIVE

    @property
    def home_path(self) -> str:
        return self.role.home_path

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "organisation_id": self.organisation_id,
            "organisation_name": self.organisation_name,
            "mobile": self.mobile,
            "status": self.status.value,
            "password_reset_pending": self.password_reset_pending,
        }


__all__ = [
    "ALLOWED_ROLES",
    "AccountStatus",
    "Identity",
    "LEAST_PRIVILEGED_ROLE",
    "Principal",
    "ROLE_SYNONYMS",
    "Role",
    "is_known_role",
    "normalize_role",
    "parse_status",
    "role_key",
]

"""
Registry repository contract and the in-memory implementation.

Why:
    Services and routes depend on this protocol only. The Supabase adapter
    (`registry.repo_supabase`) runs every call under the caller's access token
    so row-level security decides visibility; the in-memory repo backs local
    development without Supabase and the test suite.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol

from identity_access.domain import Role, normalize_role, parse_status

from .models import Member, MemberStatus, Organisation, Volunteer


class RepoError(Exception):
    """A registry read/write failed at the backend."""

    def __init__(self, message: str, *, code: str = ""):
        super().__init__(message)
        self.message = message
        self.code = code


class RegistryRepo(Protocol):
    def list_organisations(self) -> List[Organisation]: ...

    def get_organisation(self, org_id: str) -> Optional[Organisation]: ...

    def insert_organisation(self, *, name: str, mobile: str, secretary_name: str) -> Organisation: ...

    def update_organisation(self, org_id: str, fields: Mapping[str, Any]) -> Optional[Organisation]: ...

    def delete_organisation(self, org_id: str) -> None: ...

    def list_volunteers(self, organisation_id: Optional[str] = None) -> List[Volunteer]: ...

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]: ...

    def upsert_profile(self, row: Mapping[str, Any]) -> None: ...

    def update_profile(self, user_id: str, fields: Mapping[str, Any]) -> None: ...

    def list_members(
        self,
        *,
        organisation_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Member]: ...

    def aadhaar_exists(self, aadhaar: str) -> bool: ...

    def insert_member(self, row: Mapping[str, Any]) -> Member: ...

    def update_member_status(self, member_id: str, status: MemberStatus) -> Optional[Member]: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRegistryRepo:
    """Dictionary-backed registry with the same ordering rules as the Supabase adapter.

    `profiles` holds raw profile rows keyed by user id and is shared with the
    in-memory profile store used during identity resolution.
    """

    def __init__(self) -> None:
        self.organisations: Dict[str, Organisation] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.members: Dict[str, Member] = {}

    def organisation_name(self, org_id: str) -> Optional[str]:
        org = self.organisations.get(org_id)
        return org.name if org else None

    # Organisations -------------------------------------------------------

    def list_organisations(self) -> List[Organisation]:
        return sorted(self.organisations.values(), key=lambda o: o.name.lower())

    def get_organisation(self, org_id: str) -> Optional[Organisation]:
        return self.organisations.get(org_id)

    def insert_organisation(self, *, name: str, mobile: str, secretary_name: str) -> Organisation:
        org = Organisation(
            id=str(uuid.uuid4()),
            name=name,
            mobile=mobile,
            secretary_name=secretary_name,
            created_at=_utcnow(),
        )
        self.organisations[org.id] = org
        return org

    def update_organisation(self, org_id: str, fields: Mapping[str, Any]) -> Optional[Organisation]:
        org = self.organisations.get(org_id)
        if org is None:
            return None
        changes = dict(fields)
        if "status" in changes:
            changes["status"] = parse_status(changes["status"])
        org = replace(org, **changes)
        self.organisations[org_id] = org
        return org

    def delete_organisation(self, org_id: str) -> None:
        self.organisations.pop(org_id, None)

    # Profiles ------------------------------------------------------------

    def list_volunteers(self, organisation_id: Optional[str] = None) -> List[Volunteer]:
        out: List[Volunteer] = []
        for row in self.profiles.values():
            if str(row.get("role") or "") != Role.VOLUNTEER.value:
                continue
            if organisation_id and row.get("organisation_id") != organisation_id:
                continue
            vol = Volunteer.from_row(row)
            vol.organisation_name = self.organisation_name(vol.organisation_id or "")
            out.append(vol)
        out.sort(key=lambda v: v.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return out

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        row = self.profiles.get(user_id)
        return dict(row) if row is not None else None

    def upsert_profile(self, row: Mapping[str, Any]) -> None:
        data = dict(row)
        user_id = str(data["id"])
        existing = self.profiles.get(user_id, {"created_at": _utcnow().isoformat()})
        existing.update(data)
        if "role" in data:
            existing["role"] = normalize_role(data["role"]).value
        self.profiles[user_id] = existing

    def update_profile(self, user_id: str, fields: Mapping[str, Any]) -> None:
        row = self.profiles.get(user_id)
        if row is None:
            raise RepoError("Profile not found.", code="not_found")
        row.update(dict(fields))

    # Members -------------------------------------------------------------

    def list_members(
        self,
        *,
        organisation_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Member]:
        rows = [
            m
            for m in self.members.values()
            if (not organisation_id or m.organisation_id == organisation_id)
            and (not volunteer_id or m.volunteer_id == volunteer_id)
        ]
        rows.sort(key=lambda m: m.submission_date or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        out = []
        for m in rows[:limit] if limit else rows:
            agent = self.profiles.get(m.volunteer_id or "") or {}
            out.append(replace(m, agent_name=agent.get("name"), agent_mobile=agent.get("mobile")))
        return out

    def aadhaar_exists(self, aadhaar: str) -> bool:
        return any(m.aadhaar == aadhaar for m in self.members.values())

    def insert_member(self, row: Mapping[str, Any]) -> Member:
        if self.aadhaar_exists(str(row.get("aadhaar") or "")):
            raise RepoError("duplicate key value violates unique constraint \"members_aadhaar_key\"", code="23505")
        data = dict(row)
        data.setdefault("id", str(uuid.uuid4()))
        data.setdefault("submission_date", _utcnow().isoformat())
        member = Member.from_row(data)
        self.members[member.id] = member
        return member

    def update_member_status(self, member_id: str, status: MemberStatus) -> Optional[Member]:
        member = self.members.get(member_id)
        if member is None:
            return None
        member = replace(member, status=status)
        self.members[member_id] = member
        return member

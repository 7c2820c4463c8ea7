"""
Supabase (PostgREST) implementation of the registry repository.

The client passed in is expected to carry the caller's access token
(`client.postgrest.auth(token)`), so row-level security policies scope every
read and write. Errors are re-raised as `RepoError` carrying the backend
message, which routes surface as a single flash message.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from identity_access.domain import Role

from .models import Member, MemberStatus, Organisation, Volunteer
from .repo import RepoError

logger = logging.getLogger("ssk.registry")

MEMBER_SELECT = "*, agent_profile:profiles!volunteer_id(name, mobile)"
VOLUNTEER_SELECT = "*, organisations(name)"


def _rows(res: Any) -> List[Dict[str, Any]]:
    data = getattr(res, "data", None) if res is not None else None
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


class SupabaseRegistryRepo:
    def __init__(self, client: Any) -> None:
        self._client = client

    def _run(self, action: str, query: Any) -> List[Dict[str, Any]]:
        try:
            return _rows(query.execute())
        except Exception as exc:
            code = str(getattr(exc, "code", "") or "")
            message = str(getattr(exc, "message", "") or exc) or exc.__class__.__name__
            logger.warning("registry %s failed: %s code=%s", action, exc.__class__.__name__, code)
            raise RepoError(message, code=code) from exc

    def _table(self, name: str):
        return self._client.table(name)

    # Organisations -------------------------------------------------------

    def list_organisations(self) -> List[Organisation]:
        rows = self._run("list_organisations", self._table("organisations").select("*").order("name"))
        return [Organisation.from_row(r) for r in rows]

    def get_organisation(self, org_id: str) -> Optional[Organisation]:
        rows = self._run("get_organisation", self._table("organisations").select("*").eq("id", org_id).limit(1))
        return Organisation.from_row(rows[0]) if rows else None

    def insert_organisation(self, *, name: str, mobile: str, secretary_name: str) -> Organisation:
        payload = {"name": name, "mobile": mobile, "secretary_name": secretary_name, "status": "Active"}
        rows = self._run("insert_organisation", self._table("organisations").insert(payload))
        if not rows:
            raise RepoError("Organisation insert returned no row.")
        return Organisation.from_row(rows[0])

    def update_organisation(self, org_id: str, fields: Mapping[str, Any]) -> Optional[Organisation]:
        payload = {k: (v.value if hasattr(v, "value") else v) for k, v in fields.items()}
        rows = self._run("update_organisation", self._table("organisations").update(payload).eq("id", org_id))
        return Organisation.from_row(rows[0]) if rows else None

    def delete_organisation(self, org_id: str) -> None:
        self._run("delete_organisation", self._table("organisations").delete().eq("id", org_id))

    # Profiles ------------------------------------------------------------

    def list_volunteers(self, organisation_id: Optional[str] = None) -> List[Volunteer]:
        query = self._table("profiles").select(VOLUNTEER_SELECT).eq("role", Role.VOLUNTEER.value)
        if organisation_id:
            query = query.eq("organisation_id", organisation_id)
        rows = self._run("list_volunteers", query.order("created_at", desc=True))
        return [Volunteer.from_row(r) for r in rows]

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._run("get_profile", self._table("profiles").select("*").eq("id", user_id).limit(1))
        return rows[0] if rows else None

    def upsert_profile(self, row: Mapping[str, Any]) -> None:
        self._run("upsert_profile", self._table("profiles").upsert(dict(row)))

    def update_profile(self, user_id: str, fields: Mapping[str, Any]) -> None:
        self._run("update_profile", self._table("profiles").update(dict(fields)).eq("id", user_id))

    # Members -------------------------------------------------------------

    def list_members(
        self,
        *,
        organisation_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Member]:
        query = self._table("members").select(MEMBER_SELECT)
        if organisation_id:
            query = query.eq("organisation_id", organisation_id)
        if volunteer_id:
            query = query.eq("volunteer_id", volunteer_id)
        query = query.order("submission_date", desc=True)
        if limit:
            query = query.limit(limit)
        return [Member.from_row(r) for r in self._run("list_members", query)]

    def aadhaar_exists(self, aadhaar: str) -> bool:
        rows = self._run("aadhaar_exists", self._table("members").select("id").eq("aadhaar", aadhaar).limit(1))
        return bool(rows)

    def insert_member(self, row: Mapping[str, Any]) -> Member:
        rows = self._run("insert_member", self._table("members").insert(dict(row)))
        if not rows:
            raise RepoError("Member insert returned no row.")
        return Member.from_row(rows[0])

    def update_member_status(self, member_id: str, status: MemberStatus) -> Optional[Member]:
        rows = self._run(
            "update_member_status",
            self._table("members").update({"status": status.value}).eq("id", member_id),
        )
        return Member.from_row(rows[0]) if rows else None

"""
Profile store adapters for identity resolution.

Why:
    The resolver must tell "the profile read failed" apart from "there is no
    profile row yet", even though both end in the same metadata fallback. The
    lookup therefore returns a tagged result instead of `None`/exceptions.

Behavior:
    - `ProfileFound(row)`: a row exists; `row` includes the joined
      `organisations` object when the backend returned one.
    - `ProfileMissing()`: the read succeeded and returned no row.
    - `ProfileReadFailed(kind, detail)`: the read raised. `kind` is one of
      `recursion` (row-level security policy recursion, Postgres 42P17),
      `network` (transport errors) or `backend` (anything else).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union

import httpx

PROFILE_TABLE = "profiles"
PROFILE_SELECT = "*, organisations(name)"

RECURSION_ERROR_CODE = "42P17"


@dataclass(frozen=True)
class ProfileFound:
    row: Mapping[str, Any]


@dataclass(frozen=True)
class ProfileMissing:
    pass


@dataclass(frozen=True)
class ProfileReadFailed:
    kind: str
    detail: str = ""


ProfileLookup = Union[ProfileFound, ProfileMissing, ProfileReadFailed]


class ProfileStore(Protocol):
    def lookup(self, user_id: str) -> ProfileLookup: ...


def classify_read_error(exc: BaseException) -> ProfileReadFailed:
    """Map a profile read exception to a `ProfileReadFailed` value.

    The detail carries only the exception class and backend error code, never
    row data.
    """
    code = str(getattr(exc, "code", "") or "")
    message = str(getattr(exc, "message", "") or exc)
    if code == RECURSION_ERROR_CODE or "infinite recursion" in message.lower():
        return ProfileReadFailed(kind="recursion", detail=f"{exc.__class__.__name__}:{code or 'recursion'}")
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return ProfileReadFailed(kind="network", detail=exc.__class__.__name__)
    return ProfileReadFailed(kind="backend", detail=f"{exc.__class__.__name__}:{code}" if code else exc.__class__.__name__)


class SupabaseProfileStore:
    """Read profile rows through a supabase-py client.

    The client is expected to carry the caller's access token so row-level
    security applies to the read.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    def lookup(self, user_id: str) -> ProfileLookup:
        try:
            res = (
                self._client.table(PROFILE_TABLE)
                .select(PROFILE_SELECT)
                .eq("id", user_id)
                .maybe_single()
                .execute()
            )
        except Exception as exc:
            return classify_read_error(exc)
        # postgrest returns None (newer) or a response with data=None (older) when no row matches.
        data = getattr(res, "data", None) if res is not None else None
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            return ProfileMissing()
        return ProfileFound(row=dict(data))


class InMemoryProfileStore:
    """Dictionary-backed profile store used in dev mode and tests.

    `organisations` maps organisation ids to names so rows carry the same
    joined shape as the Supabase adapter.
    """

    def __init__(
        self,
        rows: Optional[Dict[str, Dict[str, Any]]] = None,
        organisations: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        # Shared by reference so a registry repo and this store see the same rows.
        self.rows: Dict[str, Dict[str, Any]] = rows if rows is not None else {}
        self._organisation_name = organisations or (lambda _org_id: None)
        self.failure: Optional[BaseException] = None

    def lookup(self, user_id: str) -> ProfileLookup:
        if self.failure is not None:
            return classify_read_error(self.failure)
        row = self.rows.get(user_id)
        if row is None:
            return ProfileMissing()
        joined = dict(row)
        org_id = joined.get("organisation_id")
        if org_id and "organisations" not in joined:
            name = self._organisation_name(str(org_id))
            joined["organisations"] = {"name": name} if name else None
        return ProfileFound(row=joined)


__all__ = [
    "InMemoryProfileStore",
    "ProfileFound",
    "ProfileLookup",
    "ProfileMissing",
    "ProfileReadFailed",
    "ProfileStore",
    "SupabaseProfileStore",
    "classify_read_error",
]

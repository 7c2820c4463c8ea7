"""
In-memory session store.

Why: Keep the resolved identity and provider tokens server-side. The cookie
only carries an opaque session id.

Security: Records expire after their TTL; `delete` is the explicit
invalidation used on logout.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import secrets
import time

from .domain import Identity


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    identity: Identity
    access_token: str
    refresh_token: str = ""
    token_expires_at: Optional[int] = None
    expires_at: Optional[int] = None
    csrf_token: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    flashes: List[Tuple[str, str]] = field(default_factory=list)

    def flash(self, message: str, kind: str = "info") -> None:
        self.flashes.append((kind, message))

    def pop_flashes(self) -> List[Tuple[str, str]]:
        items, self.flashes = self.flashes, []
        return items


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(
        self,
        *,
        identity: Identity,
        access_token: str,
        refresh_token: str = "",
        token_expires_at: Optional[int] = None,
        ttl_seconds: int = 3600,
    ) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(
            session_id=sid,
            identity=identity,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expires_at=token_expires_at,
            expires_at=_now() + ttl_seconds,
        )
        self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)

    def delete_for_user(self, user_id: str) -> int:
        """Drop every session of one user (e.g. after deactivation)."""
        doomed = [sid for sid, rec in self._data.items() if rec.identity.id == user_id]
        for sid in doomed:
            self._data.pop(sid, None)
        return len(doomed)

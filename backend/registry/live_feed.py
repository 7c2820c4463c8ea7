"""
Live marquee feed fed by Supabase realtime change notifications.

Why:
    The landing page shows scrolling strips of organisations and volunteers.
    New rows should appear (highlighted) without a full page reload. Browsers
    poll `/api/live/marquee?since=<revision>`; the server answers 204 until the
    feed revision moves.

Behavior:
    - `LiveFeed` keeps both strips in the order the repository returns them
      (organisations by name, volunteers newest first) and a monotonically
      increasing revision. Realtime INSERTs are prepended and highlighted for 30 s
      (organisations) or 45 s (volunteers); expiry of a highlight also bumps the
      revision so pollers re-render once.
    - Duplicate and out-of-order notifications are tolerated: items are keyed by
      id, a repeated INSERT updates in place.
    - `members` changes do not touch the strips; the landing page recomputes
      its aggregates on every request.
    - `RealtimeBridge` subscribes to channel `public-registry-monitor` with the
      async supabase client and forwards payloads to the feed.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from identity_access.domain import ROLE_SYNONYMS, Role, role_key

from .models import Organisation, Volunteer

_log = logging.getLogger("ssk.live")

ORG_HIGHLIGHT_SECONDS = 30
VOLUNTEER_HIGHLIGHT_SECONDS = 45

CHANNEL_NAME = "public-registry-monitor"
WATCHED_TABLES = ("members", "profiles", "organisations")


@dataclass(frozen=True)
class MarqueeItem:
    id: str
    label: str
    detail: str = ""
    highlight_until: Optional[float] = None

    def highlighted(self, now: float) -> bool:
        return self.highlight_until is not None and self.highlight_until > now


def _is_volunteer_row(record: Mapping[str, Any]) -> bool:
    return role_key(record.get("role")) in ROLE_SYNONYMS[Role.VOLUNTEER]


class LiveFeed:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._revision = 0
        self.loaded = False
        self._orgs: List[MarqueeItem] = []
        self._vols: List[MarqueeItem] = []
        self._org_names: Dict[str, str] = {}

    # --- Loading --------------------------------------------------------------

    def load(self, organisations: Iterable[Organisation], volunteers: Iterable[Volunteer]) -> None:
        """Replace both strips from a fresh read, keeping the given order."""
        orgs = list(organisations)
        self._org_names = {o.id: o.name for o in orgs}
        self._orgs = [MarqueeItem(id=o.id, label=o.name, detail=o.secretary_name) for o in orgs]
        self._vols = [
            MarqueeItem(id=v.id, label=v.name or "Volunteer", detail=v.organisation_name or self._org_names.get(v.organisation_id or "", ""))
            for v in volunteers
        ]
        self.loaded = True
        self._bump()

    def sync(self, organisations: Iterable[Organisation], volunteers: Iterable[Volunteer]) -> bool:
        """Reload only when the set of ids changed; used when realtime is off."""
        orgs, vols = list(organisations), list(volunteers)
        same = (
            self.loaded
            and {o.id for o in orgs} == {i.id for i in self._orgs}
            and {v.id for v in vols} == {i.id for i in self._vols}
        )
        if same:
            return False
        self.load(orgs, vols)
        return True

    # --- Realtime -------------------------------------------------------------

    def apply_change(self, table: str, event: str, record: Optional[Mapping[str, Any]], old: Optional[Mapping[str, Any]] = None) -> None:
        event = (event or "").upper()
        if table == "organisations":
            self._apply_org(event, record or {}, old or {})
        elif table == "profiles":
            self._apply_profile(event, record or {}, old or {})
        else:
            return
        self._bump()

    def _apply_org(self, event: str, record: Mapping[str, Any], old: Mapping[str, Any]) -> None:
        org_id = str(record.get("id") or old.get("id") or "")
        if not org_id:
            return
        if event == "DELETE":
            self._orgs = [i for i in self._orgs if i.id != org_id]
            self._org_names.pop(org_id, None)
            return
        name = str(record.get("name") or "")
        self._org_names[org_id] = name
        item = MarqueeItem(id=org_id, label=name, detail=str(record.get("secretary_name") or ""))
        self._orgs = self._upsert(self._orgs, item, highlight=ORG_HIGHLIGHT_SECONDS if event == "INSERT" else None)

    def _apply_profile(self, event: str, record: Mapping[str, Any], old: Mapping[str, Any]) -> None:
        user_id = str(record.get("id") or old.get("id") or "")
        if not user_id:
            return
        if event == "DELETE" or not _is_volunteer_row(record):
            self._vols = [i for i in self._vols if i.id != user_id]
            return
        org_name = self._org_names.get(str(record.get("organisation_id") or ""), "")
        item = MarqueeItem(id=user_id, label=str(record.get("name") or "Volunteer"), detail=org_name)
        self._vols = self._upsert(self._vols, item, highlight=VOLUNTEER_HIGHLIGHT_SECONDS if event == "INSERT" else None)

    def _upsert(self, items: List[MarqueeItem], item: MarqueeItem, *, highlight: Optional[int]) -> List[MarqueeItem]:
        existing = next((i for i in items if i.id == item.id), None)
        if existing is not None and highlight is None:
            return [replace(item, highlight_until=existing.highlight_until) if i.id == item.id else i for i in items]
        if highlight is not None:
            item = replace(item, highlight_until=self._clock() + highlight)
        return [item] + [i for i in items if i.id != item.id]

    # --- Reading --------------------------------------------------------------

    def _bump(self) -> None:
        self._revision += 1

    def _expire(self) -> None:
        now = self._clock()
        expired = False
        for name in ("_orgs", "_vols"):
            items = getattr(self, name)
            if any(i.highlight_until is not None and i.highlight_until <= now for i in items):
                setattr(
                    self,
                    name,
                    [replace(i, highlight_until=None) if i.highlight_until is not None and i.highlight_until <= now else i for i in items],
                )
                expired = True
        if expired:
            self._bump()

    @property
    def revision(self) -> int:
        self._expire()
        return self._revision

    def organisations(self) -> List[MarqueeItem]:
        self._expire()
        return list(self._orgs)

    def volunteers(self) -> List[MarqueeItem]:
        self._expire()
        return list(self._vols)

    def changed_since(self, revision: Optional[int]) -> bool:
        return revision is None or self.revision != revision

    def now(self) -> float:
        return self._clock()


def parse_realtime_payload(payload: Any) -> tuple[str, Optional[Mapping[str, Any]], Optional[Mapping[str, Any]]]:
    """Return (event, record, old_record) from realtime-py payload variants."""
    data = payload.get("data", payload) if isinstance(payload, Mapping) else {}
    if not isinstance(data, Mapping):
        data = {}
    event = str(data.get("type") or data.get("eventType") or "")
    record = data.get("record") or data.get("new") or None
    old = data.get("old_record") or data.get("old") or None
    return event, record, old


class RealtimeBridge:
    """Subscribe to postgres changes and forward them to a `LiveFeed`.

    The subscription is fire-and-forget: failures are logged and the landing
    page falls back to data read at request time.
    """

    def __init__(self, feed: LiveFeed, url: str, key: str, *, client_factory: Optional[Callable[..., Any]] = None) -> None:
        self.feed = feed
        self._url = url
        self._key = key
        self._client_factory = client_factory
        self._client: Any = None
        self._channel: Any = None

    def _callback(self, table: str) -> Callable[[Any], None]:
        def handle(payload: Any) -> None:
            event, record, old = parse_realtime_payload(payload)
            self.feed.apply_change(table, event, record, old)

        return handle

    async def start(self) -> bool:
        try:
            factory = self._client_factory
            if factory is None:
                from supabase import acreate_client

                factory = acreate_client
            self._client = await factory(self._url, self._key)
            channel = self._client.channel(CHANNEL_NAME)
            for table in WATCHED_TABLES:
                channel = channel.on_postgres_changes("*", schema="public", table=table, callback=self._callback(table))
            await channel.subscribe()
            self._channel = channel
        except Exception as exc:
            _log.warning("realtime subscription failed: %s", exc.__class__.__name__)
            return False
        _log.info("realtime subscription active on channel %s", CHANNEL_NAME)
        return True

    async def stop(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.remove_all_channels()
        except Exception as exc:
            _log.warning("realtime shutdown failed: %s", exc.__class__.__name__)
        self._client = None
        self._channel = None


__all__ = [
    "CHANNEL_NAME",
    "LiveFeed",
    "MarqueeItem",
    "ORG_HIGHLIGHT_SECONDS",
    "RealtimeBridge",
    "VOLUNTEER_HIGHLIGHT_SECONDS",
    "parse_realtime_payload",
]

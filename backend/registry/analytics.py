"""
Aggregations over already-fetched registry collections.

Pure functions only: dashboards fetch organisations, volunteers and members
once per request and derive counts, distributions, leaderboards, filters and
the weekly winners from those in-memory lists.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Gender, Member, MemberStatus, Occupation, Organisation, SupportNeed, Volunteer

ANONYMOUS_VOLUNTEER_NAME = "Anonymous Agent"
LEADERBOARD_SIZE = 5


@dataclass(frozen=True)
class OrganisationPerformance:
    organisation: Organisation
    enrollments: int


@dataclass(frozen=True)
class WeeklyWinners:
    week_start: datetime
    week_end: datetime
    volunteer: Optional[Volunteer]
    volunteer_enrollments: int
    organisation: Optional[Organisation]
    organisation_enrollments: int


@dataclass
class MemberFilter:
    """Report filters; empty fields do not constrain the result."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    volunteer_id: str = ""
    status: Optional[MemberStatus] = None
    search: str = ""
    phone: str = ""
    area: str = ""

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.start_date, self.end_date, self.volunteer_id, self.status, self.search, self.phone, self.area)
        )


# --- Distributions ------------------------------------------------------------

def distribution(values: Iterable[str], categories: Sequence[str]) -> List[Tuple[str, int]]:
    """Count values per category; every category is present, unknown values are ignored."""
    counts: Dict[str, int] = {c: 0 for c in categories}
    for value in values:
        if value in counts:
            counts[value] += 1
    return list(counts.items())


def gender_distribution(members: Iterable[Member]) -> List[Tuple[str, int]]:
    return distribution((m.gender for m in members), [g.value for g in Gender])


def occupation_distribution(members: Iterable[Member]) -> List[Tuple[str, int]]:
    return distribution((m.occupation for m in members), [o.value for o in Occupation])


def support_distribution(members: Iterable[Member]) -> List[Tuple[str, int]]:
    return distribution((m.support_need for m in members), [s.value for s in SupportNeed])


# --- Enrollments & performance ------------------------------------------------

def enrollment_counts(members: Iterable[Member], *, by: str = "volunteer_id") -> Counter:
    return Counter(getattr(m, by) for m in members if getattr(m, by))


def with_enrollments(volunteers: Iterable[Volunteer], members: Iterable[Member]) -> List[Volunteer]:
    """Copy volunteers with `enrollments` set and blank names replaced."""
    counts = enrollment_counts(members)
    return [
        replace(v, enrollments=counts.get(v.id, 0), name=v.name or ANONYMOUS_VOLUNTEER_NAME)
        for v in volunteers
    ]


def organisation_performance(
    organisations: Iterable[Organisation], members: Iterable[Member]
) -> List[OrganisationPerformance]:
    counts = enrollment_counts(members, by="organisation_id")
    rows = [OrganisationPerformance(o, counts.get(o.id, 0)) for o in organisations]
    # sorted() is stable, so equal counts keep the incoming (name) order
    return sorted(rows, key=lambda r: r.enrollments, reverse=True)


def volunteer_performance(volunteers: Iterable[Volunteer]) -> List[Volunteer]:
    return sorted(volunteers, key=lambda v: v.enrollments, reverse=True)


def search_by_organisation_mobile(
    term: str,
    organisations: Sequence[OrganisationPerformance],
    volunteers: Sequence[Volunteer],
) -> Tuple[List[OrganisationPerformance], List[Volunteer]]:
    """Narrow both lists to organisations whose mobile contains `term`."""
    term = (term or "").strip()
    if not term:
        return list(organisations), list(volunteers)
    matching = [r for r in organisations if term in r.organisation.mobile]
    ids = {r.organisation.id for r in matching}
    return matching, [v for v in volunteers if v.organisation_id in ids]


def top_volunteers(volunteers: Iterable[Volunteer], n: int = LEADERBOARD_SIZE) -> List[Volunteer]:
    return volunteer_performance(volunteers)[:n]


def top_organisations(
    organisations: Iterable[Organisation], members: Iterable[Member], n: int = LEADERBOARD_SIZE
) -> List[OrganisationPerformance]:
    return organisation_performance(organisations, members)[:n]


# --- Weekly winners -----------------------------------------------------------

def week_window(now: datetime) -> Tuple[datetime, datetime]:
    """Return [Monday 00:00, next Monday 00:00) of the week containing `now`.

    Naive datetimes are treated as UTC. Sunday belongs to the week that started
    six days earlier.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    monday = now.date() - timedelta(days=now.weekday())
    start = datetime.combine(monday, time.min, tzinfo=now.tzinfo)
    return start, start + timedelta(days=7)


def weekly_winners(
    members: Iterable[Member],
    volunteers: Iterable[Volunteer],
    organisations: Iterable[Organisation],
    *,
    now: Optional[datetime] = None,
) -> WeeklyWinners:
    """Top enroller and top organisation for the current Monday–Sunday week.

    Ties go to the name that sorts first; weeks without enrollments have no
    winners.
    """
    start, end = week_window(now or datetime.now(timezone.utc))
    in_week = [m for m in members if m.submission_date is not None and start <= m.submission_date < end]

    vol_counts = enrollment_counts(in_week)
    vol_by_id = {v.id: v for v in volunteers}
    best_vol, best_vol_count = _winner(vol_counts, vol_by_id)

    org_counts = enrollment_counts(in_week, by="organisation_id")
    org_by_id = {o.id: o for o in organisations}
    best_org, best_org_count = _winner(org_counts, org_by_id)

    return WeeklyWinners(
        week_start=start,
        week_end=end,
        volunteer=best_vol,
        volunteer_enrollments=best_vol_count,
        organisation=best_org,
        organisation_enrollments=best_org_count,
    )


def _winner(counts: Counter, known: Dict[str, object]):
    candidates = [(count, known[key]) for key, count in counts.items() if key in known]
    if not candidates:
        return None, 0
    candidates.sort(key=lambda c: (-c[0], (getattr(c[1], "name", "") or "").lower()))
    count, item = candidates[0]
    return item, count


# --- Member filters -----------------------------------------------------------

def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def _day_end(d: date) -> datetime:
    return datetime.combine(d, time.max, tzinfo=timezone.utc)


def filter_members(members: Iterable[Member], f: MemberFilter) -> List[Member]:
    """Apply report filters. The end date is inclusive up to 23:59:59.999999 UTC."""
    start = _day_start(f.start_date) if f.start_date else None
    end = _day_end(f.end_date) if f.end_date else None
    term = f.search.strip().lower()
    out = []
    for m in members:
        if f.volunteer_id and m.volunteer_id != f.volunteer_id:
            continue
        if f.status is not None and m.status is not f.status:
            continue
        if start or end:
            if m.submission_date is None:
                continue
            if start and m.submission_date < start:
                continue
            if end and m.submission_date > end:
                continue
        if f.phone and f.phone.strip() not in m.mobile:
            continue
        if f.area and f.area.strip() not in m.pincode:
            continue
        if term and not (
            term in m.name.lower()
            or term in m.surname.lower()
            or term in m.mobile
            or term in m.aadhaar
            or term in m.pincode
        ):
            continue
        out.append(m)
    return out


def display_name(first: Optional[str], last: Optional[str] = None) -> str:
    """Title-case a first/last name pair for display ("aNIL  kumar" -> "Anil Kumar")."""
    words = f"{(first or '').strip()} {(last or '').strip()}".lower().split()
    return " ".join(w[:1].upper() + w[1:] for w in words)

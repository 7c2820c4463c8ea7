"""
Public routes: landing page, live marquee API, health and dev media.

Behavior:
    - The landing page aggregates over the public (service) repository and
      needs no session.
    - Without a realtime subscription the live feed is re-synced from the
      repository on every landing and marquee request; with one, it is loaded
      once and then driven by change notifications.
    - `/media/...` only serves images stored by the in-memory adapter in dev
      mode; in Supabase mode images are served by Supabase Storage.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from registry import analytics
from registry.repo import RepoError
from storage.adapters import InMemoryStorageAdapter

from ..components import BarChart, Leaderboard, LiveMarquee, MarqueeStrip, StatCard, WinnerCard
from .context import app_services, error_card, json_error, logger, render_page

public_router = APIRouter(tags=["Public"])

NO_STORE = {"Cache-Control": "no-store"}


def _refresh_feed(services, organisations, volunteers) -> None:
    feed = services.feed
    if services.realtime is None:
        feed.sync(organisations, volunteers)
    elif not feed.loaded:
        feed.load(organisations, volunteers)


def _week_label(start: datetime, end: datetime) -> str:
    return f"{start.date().isoformat()} to {(end - timedelta(days=1)).date().isoformat()}"


@public_router.get("/", response_class=HTMLResponse)
async def landing(request: Request):
    services = app_services(request)
    repo = services.public_repo
    try:
        organisations = repo.list_organisations()
        members = repo.list_members()
        volunteers = analytics.with_enrollments(repo.list_volunteers(), members)
    except RepoError as exc:
        logger.warning("landing aggregates failed: %s", exc.code or "error")
        return render_page(request, "Welcome", error_card("The registry is temporarily unavailable."), status_code=503)

    _refresh_feed(services, organisations, volunteers)
    feed = services.feed
    org_names = {o.id: o.name for o in organisations}

    stats = "".join(
        [
            StatCard("Organisations", len(organisations), stat_id="stat-organisations").render(),
            StatCard("Volunteers", len(volunteers), stat_id="stat-volunteers").render(),
            StatCard("Members", len(members), stat_id="stat-members").render(),
        ]
    )
    charts = "".join(
        [
            BarChart("Gender", analytics.gender_distribution(members)).render(),
            BarChart("Occupation", analytics.occupation_distribution(members)).render(),
            BarChart("Support needed", analytics.support_distribution(members)).render(),
        ]
    )
    top_vols = Leaderboard(
        "Top volunteers",
        [
            (v.name, v.organisation_name or org_names.get(v.organisation_id or "", ""), v.enrollments)
            for v in analytics.top_volunteers(volunteers)
        ],
    ).render()
    top_orgs = Leaderboard(
        "Top organisations",
        [(r.organisation.name, r.organisation.secretary_name, r.enrollments) for r in analytics.top_organisations(organisations, members)],
    ).render()

    winners = analytics.weekly_winners(members, volunteers, organisations, now=datetime.now(timezone.utc))
    week = _week_label(winners.week_start, winners.week_end)
    rewards = "".join(
        [
            WinnerCard(
                "Volunteer of the week",
                winners.volunteer.name if winners.volunteer else None,
                winners.volunteer_enrollments,
                subtitle=week,
            ).render(),
            WinnerCard(
                "Organisation of the week",
                winners.organisation.name if winners.organisation else None,
                winners.organisation_enrollments,
                subtitle=week,
            ).render(),
        ]
    )
    marquee = LiveMarquee(feed.organisations(), feed.volunteers(), revision=feed.revision, now=feed.now()).render()

    content = f"""
    <section class="hero">
        <h1>Member Registry</h1>
        <p class="text-muted">Organisations and their volunteers enrolling members across the community.</p>
    </section>
    {marquee}
    <div class="stat-grid">{stats}</div>
    <section class="rewards"><h2>Weekly rewards</h2><div class="card-grid">{rewards}</div></section>
    <div class="card-grid">{top_vols}{top_orgs}</div>
    <section class="charts"><h2>Members at a glance</h2><div class="card-grid">{charts}</div></section>
    """
    return render_page(request, "Welcome", content, scripts=["live.js"])


@public_router.get("/api/live/marquee")
async def live_marquee(request: Request, since: int | None = None):
    services = app_services(request)
    if services.realtime is None or not services.feed.loaded:
        repo = services.public_repo
        try:
            _refresh_feed(services, repo.list_organisations(), repo.list_volunteers())
        except RepoError as exc:
            logger.warning("marquee sync failed: %s", exc.code or "error")
            return json_error("unavailable", "Live feed is temporarily unavailable.", status_code=503)
    feed = services.feed
    if not feed.changed_since(since):
        return Response(status_code=204, headers=NO_STORE)
    now = feed.now()
    return JSONResponse(
        {
            "revision": feed.revision,
            "organisations": MarqueeStrip("Organisations", feed.organisations(), now=now, strip_id="marquee-orgs").render(),
            "volunteers": MarqueeStrip("Volunteers", feed.volunteers(), now=now, strip_id="marquee-volunteers").render(),
        },
        headers=NO_STORE,
    )


@public_router.get("/health")
async def health():
    return {"status": "ok"}


@public_router.get("/media/{bucket}/{key:path}")
async def dev_media(request: Request, bucket: str, key: str):
    storage = app_services(request).storage
    if not isinstance(storage, InMemoryStorageAdapter):
        return Response(status_code=404)
    found = storage.get_object(bucket=bucket, key=key)
    if found is None:
        return Response(status_code=404)
    body, content_type = found
    return Response(content=body, media_type=content_type, headers={"Cache-Control": "private, max-age=300"})

"""
MasterAdmin area: registry overview, organisation management, reports.

Permissions:
    Every handler requires role MasterAdmin; other roles are redirected to
    their own home page by `require_role`.
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from identity_access.domain import Role
from registry import analytics, exports
from registry.repo import RepoError
from registry.validation import ValidationError

from ..components import (
    DataTable,
    OrganisationCreateForm,
    OrganisationEditForm,
    PasswordChangeForm,
    StatCard,
    TextInputField,
)
from .context import (
    app_services,
    csv_response,
    error_card,
    flash_redirect,
    logger,
    read_form,
    render_page,
    require_role,
)

admin_router = APIRouter(tags=["MasterAdmin"])

RECENT_MEMBERS_LIMIT = 100


@admin_router.get("/admin", response_class=HTMLResponse)
async def admin_dashboard(request: Request, q: str = ""):
    rec, denied = require_role(request, Role.MASTER_ADMIN)
    if denied:
        return denied
    repo = app_services(request).repo(rec.access_token)
    try:
        organisations = repo.list_organisations()
        members = repo.list_members()
        volunteers = analytics.with_enrollments(repo.list_volunteers(), members)
    except RepoError as exc:
        logger.warning("admin dashboard read failed: %s", exc.code or "error")
        return render_page(request, "Overview", error_card(f"Registry Fault: {exc.message}"), status_code=502)

    org_perf = analytics.organisation_performance(organisations, members)
    vol_perf = analytics.volunteer_performance(volunteers)
    org_rows, vol_rows = analytics.search_by_organisation_mobile(q, org_perf, vol_perf)
    org_names = {o.id: o.name for o in organisations}

    stats = "".join(
        [
            StatCard("Organisations", len(organisations)).render(),
            StatCard("Volunteers", len(volunteers)).render(),
            StatCard("Members", len(members)).render(),
        ]
    )
    search = TextInputField("q", "Search by organisation mobile").render(value=q, input_type="search", class_="form-input")
    org_table = DataTable(
        ["Organisation", "Secretary", "Mobile", "Status", "Enrollments"],
        (
            [r.organisation.name, r.organisation.secretary_name, r.organisation.mobile, r.organisation.status.value, r.enrollments]
            for r in org_rows
        ),
        empty_text="No organisations match.",
    ).render()
    vol_table = DataTable(
        ["Volunteer", "Organisation", "Mobile", "Status", "Enrollments"],
        (
            [v.name, v.organisation_name or org_names.get(v.organisation_id or "", "N/A"), v.mobile, v.status.value, v.enrollments]
            for v in vol_rows
        ),
        empty_text="No volunteers match.",
    ).render()
    content = f"""
    <h1>Registry overview</h1>
    <div class="stat-grid">{stats}</div>
    <form method="get" action="/admin" class="search-form">{search}<button class="btn btn-secondary" type="submit">Search</button></form>
    <section class="card"><h2>Organisation performance</h2>{org_table}</section>
    <section class="card"><h2>Volunteer performance</h2>{vol_table}</section>
    {PasswordChangeForm(rec.csrf_token).render()}
    """
    return render_page(request, "Overview", content)


def _organisations_page(request: Request, rec, *, values=None, error=None, status_code: int = 200):
    try:
        organisations = app_services(request).organisations(rec.access_token).list()
    except RepoError as exc:
        return render_page(request, "Organisations", error_card(f"Registry Fault: {exc.message}"), status_code=502)
    rows = [
        [
            o.name,
            o.secretary_name,
            o.mobile,
            o.status.value,
            OrganisationEditForm(
                o.id,
                rec.csrf_token,
                {"name": o.name, "secretary_name": o.secretary_name, "mobile": o.mobile, "status": o.status.value},
            ).render(),
        ]
        for o in organisations
    ]
    table = DataTable(
        ["Name", "Secretary", "Mobile", "Status", "Edit"],
        rows,
        raw_columns={4},
        empty_text="No organisations registered yet.",
    ).render()
    content = f"""
    <h1>Organisations</h1>
    <section class="card"><h2>Register organisation</h2>{OrganisationCreateForm(rec.csrf_token, values, error).render()}</section>
    <section class="card"><h2>All organisations</h2>{table}</section>
    """
    return render_page(request, "Organisations", content, status_code=status_code)


@admin_router.get("/admin/organisations", response_class=HTMLResponse)
async def organisations_index(request: Request):
    rec, denied = require_role(request, Role.MASTER_ADMIN)
    if denied:
        return denied
    return _organisations_page(request, rec)


@admin_router.post("/admin/organisations")
async def organisations_create(request: Request):
    rec, denied = require_role(request, Role.MASTER_ADMIN)
    if denied:
        return denied
    form, error = await read_form(request, rec)
    if error:
        return error
    values = {k: str(form.get(k) or "") for k in ("name", "mobile", "secretary_name", "email", "password")}
    try:
        org = app_services(request).organisations(rec.access_token).create(**values)
    except ValidationError as exc:
        values.pop("password", None)
        return _organisations_page(request, rec, values=values, error=exc.message, status_code=400)
    return flash_redirect(request, "/admin/organisations", f"Organisation {org.name} created.", "success")


@admin_router.post("/admin/organisations/{org_id}")
async def organisations_update(request: Request, org_id: str):
    rec, denied = require_role(request, Role.MASTER_ADMIN)
    if denied:
        return denied
    form, error = await read_form(request, rec)
    if error:
        return error
    try:
        org = app_services(request).organisations(rec.access_token).update(
            org_id,
            name=str(form.get("name") or ""),
            mobile=str(form.get("mobile") or ""),
            secretary_name=str(form.get("secretary_name") or ""),
            status=str(form.get("status") or ""),
        )
    except ValidationError as exc:
        return flash_redirect(request, "/admin/organisations", exc.message, "error")
    return flash_redirect(request, "/admin/organisations", f"Organisation {org.name} updated.", "success")


@admin_router.get("/admin/reports", response_class=HTMLResponse)
async def admin_reports(request: Request):
    rec, denied = require_role(request, Role.MASTER_ADMIN)
    if denied:
        return denied
    repo = app_services(request).repo(rec.access_token)
    try:
        members = repo.list_members(limit=RECENT_MEMBERS_LIMIT)
        org_names = {o.id: o.name for o in repo.list_organisations()}
    except RepoError as exc:
        return render_page(request, "Registry reports", error_card(f"Registry Fault: {exc.message}"), status_code=502)
    table = DataTable(
        ["Date", "Name", "Mobile", "Organisation", "Volunteer", "Status"],
        (
            [
                m.submission_date.date().isoformat() if m.submission_date else "",
                analytics.display_name(m.name, m.surname),
                m.mobile,
                org_names.get(m.organisation_id or "", "N/A"),
                m.agent_name or "N/A",
                m.status.value,
            ]
            for m in members
        ),
        empty_text="No members enrolled yet.",
    ).render()
    content = f"""
    <h1>Registry reports</h1>
    <p><a class="btn btn-primary" href="/admin/reports/members.csv">Download all members (CSV)</a></p>
    <section class="card"><h2>Latest {RECENT_MEMBERS_LIMIT} enrollments</h2>{table}</section>
    """
    return render_page(request, "Registry reports", content)


@admin_router.get("/admin/reports/members.csv")
async def admin_members_csv(request: Request):
    rec, denied = require_role(request, Role.MASTER_ADMIN)
    if denied:
        return denied
    repo = app_services(request).repo(rec.access_token)
    try:
        members = repo.list_members()
        organisations = repo.list_organisations()
    except RepoError as exc:
        return flash_redirect(request, "/admin/reports", f"Registry Fault: {exc.message}", "error")
    return csv_response(
        exports.admin_members_csv(members, organisations),
        exports.admin_members_filename(date.today()),
    )

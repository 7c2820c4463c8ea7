"""
Organisation area: dashboard, volunteer management and member reports.

Permissions:
    Role Organisation only. Every read and write is scoped to the caller's
    `organisation_id`; services reject ids that belong to another
    organisation, and row-level security applies underneath.
"""
from __future__ import annotations

from datetime import date
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from identity_access.domain import AccountStatus, Role
from registry import analytics, exports
from registry.analytics import MemberFilter
from registry.models import MemberStatus
from registry.repo import RepoError
from registry.services import MemberService
from registry.validation import ValidationError

from ..components import (
    DataTable,
    PasswordChangeForm,
    SelectField,
    StatCard,
    SubmitButton,
    TextInputField,
    VolunteerRegisterForm,
    csrf_input,
)
from ..components.base import Component
from .context import (
    app_services,
    csv_response,
    error_card,
    flash_redirect,
    logger,
    parse_date,
    read_form,
    render_page,
    require_role,
)

organisation_router = APIRouter(tags=["Organisation"])

RECENT_MEMBERS_LIMIT = 10


def _action_form(action: str, csrf_token: str, label: str, *, variant: str = "secondary", extra: str = "") -> str:
    return (
        f'<form method="post" action="{Component.escape(action)}" class="inline-form">'
        f"{csrf_input(csrf_token)}{extra}{SubmitButton(label, variant=variant).render()}</form>"
    )


@organisation_router.get("/organisation", response_class=HTMLResponse)
async def organisation_dashboard(request: Request):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    identity = rec.identity
    repo = app_services(request).repo(rec.access_token)
    try:
        org = repo.get_organisation(identity.organisation_id or "")
        volunteers = repo.list_volunteers(identity.organisation_id)
        members = repo.list_members(organisation_id=identity.organisation_id)
    except RepoError as exc:
        logger.warning("organisation dashboard read failed: %s", exc.code or "error")
        return render_page(request, "Dashboard", error_card(f"Registry Fault: {exc.message}"), status_code=502)

    title = org.name if org else (identity.organisation_name or "Organisation")
    details = ""
    if org is not None:
        details = f"""
        <dl class="details">
            <dt>Secretary</dt><dd>{Component.escape(org.secretary_name)}</dd>
            <dt>Mobile</dt><dd>{Component.escape(org.mobile)}</dd>
            <dt>Status</dt><dd>{Component.escape(org.status.value)}</dd>
        </dl>"""
    pending = sum(1 for m in members if m.status is MemberStatus.PENDING)
    stats = "".join(
        [
            StatCard("Volunteers", len(volunteers)).render(),
            StatCard("Members", len(members)).render(),
            StatCard("Pending verification", pending).render(),
        ]
    )
    recent = DataTable(
        ["Date", "Name", "Mobile", "Volunteer", "Status"],
        (
            [
                m.submission_date.date().isoformat() if m.submission_date else "",
                analytics.display_name(m.name, m.surname),
                m.mobile,
                m.agent_name or "N/A",
                m.status.value,
            ]
            for m in members[:RECENT_MEMBERS_LIMIT]
        ),
        empty_text="No members enrolled yet.",
    ).render()
    content = f"""
    <h1>{Component.escape(title)}</h1>
    <section class="card">{details}</section>
    <div class="stat-grid">{stats}</div>
    <section class="card"><h2>Recent enrollments</h2>{recent}</section>
    {PasswordChangeForm(rec.csrf_token).render()}
    """
    return render_page(request, "Dashboard", content)


def _volunteers_page(request: Request, rec, *, values=None, error=None, status_code: int = 200):
    identity = rec.identity
    try:
        volunteers = app_services(request).volunteers(rec.access_token).list_for_organisation(identity.organisation_id or "")
    except RepoError as exc:
        return render_page(request, "Volunteers", error_card(f"Registry Fault: {exc.message}"), status_code=502)
    rows = []
    for v in volunteers:
        toggle_label = "Deactivate" if v.status is AccountStatus.ACTIVE else "Activate"
        reset = _action_form(
            f"/organisation/volunteers/{v.id}/password",
            rec.csrf_token,
            "Reset password",
            extra=(
                '<input type="password" name="password" minlength="6" required '
                'autocomplete="new-password" placeholder="Temporary password" class="form-input">'
            ),
        )
        toggle = _action_form(f"/organisation/volunteers/{v.id}/toggle", rec.csrf_token, toggle_label)
        rows.append([v.name, v.email, v.mobile, v.status.value, v.enrollments, toggle + reset])
    table = DataTable(
        ["Name", "Email", "Mobile", "Status", "Enrollments", "Actions"],
        rows,
        raw_columns={5},
        empty_text="No volunteers registered yet.",
    ).render()
    content = f"""
    <h1>Volunteers</h1>
    <section class="card"><h2>Register volunteer</h2>{VolunteerRegisterForm(rec.csrf_token, values, error).render()}</section>
    <section class="card">
        <h2>Your volunteers</h2>
        <p><a class="btn btn-secondary" href="/organisation/volunteers.csv">Download CSV</a></p>
        {table}
    </section>
    """
    return render_page(request, "Volunteers", content, status_code=status_code)


@organisation_router.get("/organisation/volunteers", response_class=HTMLResponse)
async def volunteers_index(request: Request):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    return _volunteers_page(request, rec)


@organisation_router.post("/organisation/volunteers")
async def volunteers_register(request: Request):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    form, error = await read_form(request, rec)
    if error:
        return error
    values = {k: str(form.get(k) or "") for k in ("name", "mobile", "email", "password")}
    try:
        app_services(request).volunteers(rec.access_token).register(rec.identity, **values)
    except ValidationError as exc:
        values.pop("password", None)
        return _volunteers_page(request, rec, values=values, error=exc.message, status_code=400)
    return flash_redirect(request, "/organisation/volunteers", f"Volunteer {values['name'].strip()} registered.", "success")


@organisation_router.post("/organisation/volunteers/{volunteer_id}/toggle")
async def volunteers_toggle(request: Request, volunteer_id: str):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    _form, error = await read_form(request, rec)
    if error:
        return error
    services = app_services(request)
    try:
        vol = services.volunteers(rec.access_token).toggle_status(rec.identity, volunteer_id)
    except ValidationError as exc:
        return flash_redirect(request, "/organisation/volunteers", exc.message, "error")
    if vol.status is AccountStatus.DEACTIVATED:
        closed = services.sessions.invalidate_user(vol.id)
        logger.info("volunteer %s deactivated, %d session(s) closed", vol.id, closed)
    return flash_redirect(request, "/organisation/volunteers", f"{vol.name} is now {vol.status.value}.", "success")


@organisation_router.post("/organisation/volunteers/{volunteer_id}/password")
async def volunteers_reset_password(request: Request, volunteer_id: str):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    form, error = await read_form(request, rec)
    if error:
        return error
    services = app_services(request)
    try:
        vol = services.volunteers(rec.access_token).reset_password(
            rec.identity, volunteer_id, str(form.get("password") or "")
        )
    except ValidationError as exc:
        return flash_redirect(request, "/organisation/volunteers", exc.message, "error")
    services.sessions.invalidate_user(vol.id)
    return flash_redirect(
        request,
        "/organisation/volunteers",
        f"Temporary password set for {vol.name}. They must change it on next login.",
        "success",
    )


@organisation_router.get("/organisation/volunteers.csv")
async def volunteers_csv(request: Request):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    try:
        volunteers = app_services(request).volunteers(rec.access_token).list_for_organisation(rec.identity.organisation_id or "")
    except RepoError as exc:
        return flash_redirect(request, "/organisation/volunteers", f"Registry Fault: {exc.message}", "error")
    return csv_response(exports.volunteers_csv(volunteers), exports.volunteers_filename(rec.identity.organisation_name))


def _report_filter(request: Request) -> MemberFilter:
    params = request.query_params
    return MemberFilter(
        start_date=parse_date(params.get("start")),
        end_date=parse_date(params.get("end")),
        volunteer_id=(params.get("volunteer") or "").strip(),
        status=MemberService.parse_status_filter(params.get("status")),
        search=(params.get("q") or "").strip(),
    )


def _report_data(request: Request, rec):
    repo = app_services(request).repo(rec.access_token)
    org_id = rec.identity.organisation_id
    volunteers = repo.list_volunteers(org_id)
    members = repo.list_members(organisation_id=org_id)
    return volunteers, analytics.filter_members(members, _report_filter(request))


@organisation_router.get("/organisation/reports", response_class=HTMLResponse)
async def organisation_reports(request: Request):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    try:
        volunteers, members = _report_data(request, rec)
    except RepoError as exc:
        return render_page(request, "Reports", error_card(f"Registry Fault: {exc.message}"), status_code=502)

    params = request.query_params
    agents = {v.id: v for v in volunteers}
    filters = f"""
    <form method="get" action="/organisation/reports" class="filter-form">
        {TextInputField("start", "From").render(value=params.get("start", ""), input_type="date", class_="form-input")}
        {TextInputField("end", "To").render(value=params.get("end", ""), input_type="date", class_="form-input")}
        {SelectField("volunteer", "Volunteer").render([(v.id, v.name or analytics.ANONYMOUS_VOLUNTEER_NAME) for v in volunteers], value=params.get("volunteer", ""), placeholder="All volunteers")}
        {SelectField("status", "Status").render([s.value for s in MemberStatus], value=params.get("status", ""), placeholder="All")}
        {TextInputField("q", "Search").render(value=params.get("q", ""), input_type="search", placeholder="Name, mobile, Aadhaar or pincode", class_="form-input")}
        <div class="form-actions"><button class="btn btn-secondary" type="submit">Apply</button></div>
    </form>"""
    rows = []
    for m in members:
        agent = agents.get(m.volunteer_id or "")
        label = "Mark pending" if m.status is MemberStatus.ACCEPTED else "Accept"
        rows.append(
            [
                m.submission_date.date().isoformat() if m.submission_date else "",
                analytics.display_name(m.name, m.surname),
                m.mobile,
                m.pincode,
                m.agent_name or (agent.name if agent else "") or "N/A",
                m.status.value,
                _action_form(f"/organisation/reports/{m.id}/verify", rec.csrf_token, label),
            ]
        )
    table = DataTable(
        ["Date", "Name", "Mobile", "Pincode", "Volunteer", "Status", "Verify"],
        rows,
        raw_columns={6},
        empty_text="No members match these filters.",
        table_id="member-report",
    ).render()
    query = urlencode({k: v for k, v in params.items() if v})
    csv_href = "/organisation/reports.csv" + (f"?{query}" if query else "")
    content = f"""
    <h1>Member reports</h1>
    <section class="card">{filters}</section>
    <section class="card">
        <h2>{len(members)} member(s)</h2>
        <p><a class="btn btn-primary" href="{Component.escape(csv_href)}">Download CSV</a></p>
        {table}
    </section>
    """
    return render_page(request, "Reports", content)


@organisation_router.post("/organisation/reports/{member_id}/verify")
async def organisation_verify_member(request: Request, member_id: str):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    _form, error = await read_form(request, rec)
    if error:
        return error
    try:
        member = app_services(request).members(rec.access_token).toggle_status(rec.identity.organisation_id, member_id)
    except ValidationError as exc:
        return flash_redirect(request, "/organisation/reports", exc.message, "error")
    return flash_redirect(
        request,
        "/organisation/reports",
        f"{analytics.display_name(member.name, member.surname)} marked {member.status.value}.",
        "success",
    )


@organisation_router.get("/organisation/reports.csv")
async def organisation_reports_csv(request: Request):
    rec, denied = require_role(request, Role.ORGANISATION)
    if denied:
        return denied
    try:
        volunteers, members = _report_data(request, rec)
    except RepoError as exc:
        return flash_redirect(request, "/organisation/reports", f"Registry Fault: {exc.message}", "error")
    return csv_response(
        exports.member_report_csv(members, {v.id: v for v in volunteers}),
        exports.member_report_filename(date.today()),
    )

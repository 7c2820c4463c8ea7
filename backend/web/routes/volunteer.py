"""
Volunteer area: own enrollments and the two-step member enrollment.

Permissions:
    Role Volunteer only. While `password_reset_pending` is set the dashboard
    shows nothing but the password form, and `require_role` keeps the other
    volunteer pages out of reach.
"""
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from starlette.datastructures import UploadFile

from identity_access.domain import Role
from registry import analytics
from registry.analytics import MemberFilter
from registry.repo import RepoError
from registry.services import ImageUpload
from registry.validation import ValidationError, validate_member_form

from ..components import (
    DataTable,
    MemberIdentityForm,
    MemberProfileForm,
    PasswordChangeForm,
    StatCard,
    TextInputField,
)
from ..components.base import Component
from .context import (
    app_services,
    error_card,
    flash_redirect,
    parse_date,
    read_form,
    render_page,
    require_role,
)

volunteer_router = APIRouter(tags=["Volunteer"])

PROFILE_FIELDS = (
    "aadhaar",
    "mobile",
    "name",
    "surname",
    "father_name",
    "dob",
    "gender",
    "emergency_contact",
    "pincode",
    "address",
    "occupation",
    "support_need",
)


@volunteer_router.get("/volunteer", response_class=HTMLResponse)
async def volunteer_dashboard(request: Request):
    rec, denied = require_role(request, Role.VOLUNTEER)
    if denied:
        return denied
    identity = rec.identity
    if identity.password_reset_pending:
        content = f"""
        <h1>Welcome, {Component.escape(identity.name)}</h1>
        <p class="text-muted">Your organisation set a temporary password. Choose a new one to continue.</p>
        {PasswordChangeForm(rec.csrf_token, heading="Set a new password").render()}
        """
        return render_page(request, "Set a new password", content)

    params = request.query_params
    member_filter = MemberFilter(
        start_date=parse_date(params.get("start")),
        end_date=parse_date(params.get("end")),
        phone=(params.get("phone") or "").strip(),
        area=(params.get("area") or "").strip(),
    )
    try:
        own = app_services(request).repo(rec.access_token).list_members(volunteer_id=identity.id)
    except RepoError as exc:
        return render_page(request, "Dashboard", error_card(f"Registry Fault: {exc.message}"), status_code=502)
    members = analytics.filter_members(own, member_filter)

    stats = "".join(
        [
            StatCard("Total enrollments", len(own)).render(),
            StatCard("Matching filters", len(members)).render(),
        ]
    )
    filters = f"""
    <form method="get" action="/volunteer" class="filter-form">
        {TextInputField("start", "From").render(value=params.get("start", ""), input_type="date", class_="form-input")}
        {TextInputField("end", "To").render(value=params.get("end", ""), input_type="date", class_="form-input")}
        {TextInputField("phone", "Phone").render(value=params.get("phone", ""), input_type="tel", class_="form-input")}
        {TextInputField("area", "Area (pincode)").render(value=params.get("area", ""), class_="form-input")}
        <div class="form-actions"><button class="btn btn-secondary" type="submit">Apply</button></div>
    </form>"""
    table = DataTable(
        ["Date", "Name", "Mobile", "Pincode", "Status"],
        (
            [
                m.submission_date.date().isoformat() if m.submission_date else "",
                analytics.display_name(m.name, m.surname),
                m.mobile,
                m.pincode,
                m.status.value,
            ]
            for m in members
        ),
        empty_text="No enrollments match these filters.",
        table_id="volunteer-members",
    ).render()
    content = f"""
    <h1>Welcome, {Component.escape(identity.name)}</h1>
    <p><a class="btn btn-primary" href="/volunteer/members/new">Enroll a member</a></p>
    <div class="stat-grid">{stats}</div>
    <section class="card">{filters}</section>
    <section class="card"><h2>Your enrollments</h2>{table}</section>
    {PasswordChangeForm(rec.csrf_token).render()}
    """
    return render_page(request, "Dashboard", content)


def _identity_step(request: Request, rec, *, values=None, error=None, status_code: int = 200):
    content = f"""
    <h1>Enroll a member</h1>
    <section class="card"><h2>Step 1: identity</h2>{MemberIdentityForm(rec.csrf_token, values, error).render()}</section>
    """
    return render_page(request, "Enroll a member", content, status_code=status_code)


def _profile_step(request: Request, rec, values, *, error=None, status_code: int = 200):
    content = f"""
    <h1>Enroll a member</h1>
    <section class="card"><h2>Step 2: member profile</h2>{MemberProfileForm(rec.csrf_token, values, error).render()}</section>
    """
    return render_page(request, "Enroll a member", content, status_code=status_code)


@volunteer_router.get("/volunteer/members/new", response_class=HTMLResponse)
async def member_new(request: Request):
    rec, denied = require_role(request, Role.VOLUNTEER)
    if denied:
        return denied
    return _identity_step(request, rec)


@volunteer_router.post("/volunteer/members/check")
async def member_check(request: Request):
    rec, denied = require_role(request, Role.VOLUNTEER)
    if denied:
        return denied
    form, error = await read_form(request, rec)
    if error:
        return error
    values = {"aadhaar": str(form.get("aadhaar") or ""), "mobile": str(form.get("mobile") or "")}
    try:
        aadhaar, mobile = app_services(request).members(rec.access_token).check_identity(values["aadhaar"], values["mobile"])
    except ValidationError as exc:
        return _identity_step(request, rec, values=values, error=exc.message, status_code=400)
    return _profile_step(request, rec, {"aadhaar": aadhaar, "mobile": mobile})


@volunteer_router.post("/volunteer/members")
async def member_submit(request: Request):
    rec, denied = require_role(request, Role.VOLUNTEER)
    if denied:
        return denied
    form, error = await read_form(request, rec)
    if error:
        return error
    services = app_services(request)
    values = {name: str(form.get(name) or "") for name in PROFILE_FIELDS}

    upload = form.get("aadhaar_image")
    image = None
    if isinstance(upload, UploadFile):
        # One byte over the limit is enough to reject oversized files.
        body = await upload.read(services.max_image_bytes + 1)
        await upload.close()
        if body:
            image = ImageUpload(filename=upload.filename, content_type=upload.content_type, body=body)

    try:
        draft = validate_member_form(form)
        services.members(rec.access_token).submit(rec.identity, draft, image)
    except ValidationError as exc:
        return _profile_step(request, rec, values, error=exc.message, status_code=400)
    return flash_redirect(request, "/volunteer", "Member enrolled successfully.", "success")

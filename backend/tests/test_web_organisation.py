"""
Organisation area: volunteer management, member reports and verification.

Requirements:
- Deactivating a volunteer or resetting their password closes their sessions.
- Another organisation's volunteers and members cannot be changed.
"""
import pytest

from identity_access.domain import AccountStatus
from registry.models import MemberStatus
from registry.services import ImageUpload
from registry.validation import validate_member_form
from web_helpers import SAME_ORIGIN, add_organisation, add_volunteer, client_for, sign_in

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _member_form(aadhaar="123412341234", **overrides):
    form = {
        "aadhaar": aadhaar,
        "mobile": "9876543210",
        "name": "sita",
        "surname": "devi",
        "father_name": "Ram",
        "dob": "1990-02-01",
        "gender": "Female",
        "emergency_contact": "9123456780",
        "pincode": "560001",
        "address": "12 MG Road",
        "occupation": "Job",
        "support_need": "Medical",
    }
    form.update(overrides)
    return form


def _setup(services):
    org = add_organisation(services)
    org_rec = services.sessions.login("org@example.com", "orgpass1")
    vol_id = add_volunteer(services, org_rec.identity)
    return org, org_rec, vol_id


def _enroll(services, **form):
    vol_rec = services.sessions.login("vol@example.com", "volpass1")
    return services.members(None).submit(
        vol_rec.identity, validate_member_form(_member_form(**form)), ImageUpload("card.png", "image/png", PNG)
    )


@pytest.mark.anyio
async def test_dashboard_shows_organisation_details(app, services):
    _setup(services)
    _enroll(services)
    async with client_for(app) as client:
        sign_in(client, services, "org@example.com", "orgpass1")
        resp = await client.get("/organisation")
        assert resp.status_code == 200
        assert "Seva Trust" in resp.text
        assert "Pending verification" in resp.text
        assert "Sita Devi" in resp.text


@pytest.mark.anyio
async def test_register_volunteer_via_form(app, services):
    add_organisation(services)
    async with client_for(app) as client:
        rec = sign_in(client, services, "org@example.com", "orgpass1")
        resp = await client.post(
            "/organisation/volunteers",
            data={
                "csrf_token": rec.csrf_token,
                "name": "Asha",
                "mobile": "9123456789",
                "email": "asha@example.com",
                "password": "ashapass",
            },
            headers=SAME_ORIGIN,
        )
        assert resp.status_code == 303
        page = await client.get("/organisation/volunteers")
        assert "Volunteer Asha registered." in page.text
        assert "asha@example.com" in page.text

        bad = await client.post(
            "/organisation/volunteers",
            data={"csrf_token": rec.csrf_token, "name": "Bad", "mobile": "1", "email": "bad@example.com", "password": "badpass"},
            headers=SAME_ORIGIN,
        )
        assert bad.status_code == 400
    assert services.sessions.login("asha@example.com", "ashapass").identity.organisation_id == rec.identity.organisation_id


@pytest.mark.anyio
async def test_deactivating_volunteer_closes_their_sessions(app, services):
    _, _, vol_id = _setup(services)
    vol_session = services.sessions.login("vol@example.com", "volpass1")
    async with client_for(app) as client:
        rec = sign_in(client, services, "org@example.com", "orgpass1")
        resp = await client.post(
            f"/organisation/volunteers/{vol_id}/toggle", data={"csrf_token": rec.csrf_token}, headers=SAME_ORIGIN
        )
        assert resp.status_code == 303
        page = await client.get("/organisation/volunteers")
        assert "Ravi Kumar is now Deactivated." in page.text
    assert services.sessions.get(vol_session.session_id) is None
    assert services.public_repo.get_profile(vol_id)["status"] == AccountStatus.DEACTIVATED.value


@pytest.mark.anyio
async def test_other_organisation_cannot_toggle_volunteer(app, services):
    _, _, vol_id = _setup(services)
    add_organisation(services, name="Other Trust", mobile="9000011111", email="other@example.com")
    async with client_for(app) as client:
        rec = sign_in(client, services, "other@example.com", "orgpass1")
        resp = await client.post(
            f"/organisation/volunteers/{vol_id}/toggle", data={"csrf_token": rec.csrf_token}, headers=SAME_ORIGIN
        )
        assert resp.status_code == 303
        page = await client.get("/organisation/volunteers")
        assert "Volunteer not found in your organisation." in page.text
    assert services.public_repo.get_profile(vol_id)["status"] == AccountStatus.ACTIVE.value


@pytest.mark.anyio
async def test_password_reset_forces_change_on_next_login(app, services):
    _, _, vol_id = _setup(services)
    old_session = services.sessions.login("vol@example.com", "volpass1")
    async with client_for(app) as client:
        rec = sign_in(client, services, "org@example.com", "orgpass1")
        resp = await client.post(
            f"/organisation/volunteers/{vol_id}/password",
            data={"csrf_token": rec.csrf_token, "password": "temp123"},
            headers=SAME_ORIGIN,
        )
        assert resp.status_code == 303
    assert services.sessions.get(old_session.session_id) is None

    async with client_for(app) as client:
        vol = sign_in(client, services, "vol@example.com", "temp123")
        assert vol.identity.password_reset_pending
        dashboard = await client.get("/volunteer")
        assert "Set a new password" in dashboard.text
        assert "Enroll a member" not in dashboard.text

        blocked = await client.get("/volunteer/members/new")
        assert blocked.status_code == 303
        assert blocked.headers["location"] == "/volunteer"

        changed = await client.post(
            "/account/password",
            data={"csrf_token": vol.csrf_token, "new_password": "mine123", "confirm_password": "mine123"},
            headers=SAME_ORIGIN,
        )
        assert changed.status_code == 303
        assert services.sessions.get(vol.session_id).identity.password_reset_pending is False
        dashboard = await client.get("/volunteer")
        assert "Enroll a member" in dashboard.text


@pytest.mark.anyio
async def test_volunteers_csv(app, services):
    _setup(services)
    async with client_for(app) as client:
        sign_in(client, services, "org@example.com", "orgpass1")
        resp = await client.get("/organisation/volunteers.csv")
        assert resp.status_code == 200
        assert 'filename="volunteers_Seva_Trust.csv"' in resp.headers["content-disposition"]
        lines = resp.text.splitlines()
        assert lines[0] == "Name,Email,Mobile,Status,Enrollments"
        assert lines[1].startswith("Ravi Kumar,vol@example.com,9123456780,Active,0")


@pytest.mark.anyio
async def test_reports_filter_and_verify(app, services):
    _setup(services)
    first = _enroll(services)
    _enroll(services, aadhaar="999988887777", name="gita", mobile="9000000001")
    async with client_for(app) as client:
        rec = sign_in(client, services, "org@example.com", "orgpass1")
        page = await client.get("/organisation/reports")
        assert "2 member(s)" in page.text

        filtered = await client.get("/organisation/reports", params={"q": "gita"})
        assert "1 member(s)" in filtered.text
        assert "reports.csv?q=gita" in filtered.text

        resp = await client.post(
            f"/organisation/reports/{first.id}/verify", data={"csrf_token": rec.csrf_token}, headers=SAME_ORIGIN
        )
        assert resp.status_code == 303
        page = await client.get("/organisation/reports", params={"status": "Accepted"})
        assert "Sita Devi marked Accepted." in page.text
        assert "1 member(s)" in page.text

        csv_resp = await client.get("/organisation/reports.csv", params={"status": "Accepted"})
        lines = csv_resp.text.splitlines()
        assert len(lines) == 2
        assert lines[1].startswith("123412341234,sita devi")
        assert "Ravi Kumar" in lines[1]
    assert services.public_repo.members[first.id].status is MemberStatus.ACCEPTED

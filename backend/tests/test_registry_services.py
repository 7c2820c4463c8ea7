"""
Registry service tests on the in-memory repo and auth gateway.

Requirements:
- Organisation creation is all-or-nothing: a failed user or profile step
  removes what was already written.
- Volunteer admin actions are scoped to the caller's organisation.
- Member enrollment rejects duplicate Aadhaar numbers and invalid images.
"""
import pytest

from identity_access.auth_client import InMemoryAuthGateway
from identity_access.domain import AccountStatus, Identity, Role
from registry.models import MemberStatus
from registry.repo import InMemoryRegistryRepo, RepoError
from registry.services import (
    AADHAAR_CONFLICT_MESSAGE,
    AccountService,
    ImageUpload,
    MemberService,
    OrganisationService,
    VolunteerService,
)
from registry.sheets_sync import SheetsSync, SheetType
from registry.validation import ValidationError, validate_member_form
from storage.adapters import InMemoryStorageAdapter

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class RecordingSheets(SheetsSync):
    def __init__(self):
        super().__init__("https://sheets.example.test/hook")
        self.pushed = []

    def push(self, sheet, data):
        self.pushed.append((sheet, dict(data)))
        return True


class FailingProfileRepo(InMemoryRegistryRepo):
    def upsert_profile(self, row):
        raise RepoError("permission denied", code="42501")


@pytest.fixture
def repo():
    return InMemoryRegistryRepo()


@pytest.fixture
def gateway():
    return InMemoryAuthGateway()


def _org_identity(org_id, uid="org-user"):
    return Identity(id=uid, name="Sec", email="org@example.com", role=Role.ORGANISATION, organisation_id=org_id)


def _create_org(repo, gateway, sheets=None, **kw):
    fields = dict(name="Seva Trust", mobile="9876543210", secretary_name="Meena", email="org@example.com", password="orgpass1")
    fields.update(kw)
    return OrganisationService(repo, gateway, sheets).create(**fields)


def test_create_organisation_provisions_user_and_profile(repo, gateway):
    sheets = RecordingSheets()
    org = _create_org(repo, gateway, sheets)

    assert repo.get_organisation(org.id).name == "Seva Trust"
    result = gateway.sign_in("org@example.com", "orgpass1")
    profile = repo.get_profile(result.principal.subject)
    assert profile["role"] == "Organisation"
    assert profile["organisation_id"] == org.id
    assert result.principal.metadata["organisation_id"] == org.id
    assert sheets.pushed[0][0] is SheetType.ORGANISATIONS


@pytest.mark.parametrize(
    "overrides",
    [{"name": " "}, {"mobile": "123"}, {"email": "nope"}, {"password": "123"}],
)
def test_create_organisation_validation(repo, gateway, overrides):
    with pytest.raises(ValidationError):
        _create_org(repo, gateway, **overrides)
    assert repo.list_organisations() == []


def test_create_organisation_removes_row_when_user_exists(repo, gateway):
    gateway.add_user("org@example.com", "taken1")
    with pytest.raises(ValidationError) as exc_info:
        _create_org(repo, gateway)
    assert exc_info.value.message.startswith("Failed to create user")
    assert repo.list_organisations() == []


def test_create_organisation_removes_user_when_profile_fails(gateway):
    repo = FailingProfileRepo()
    with pytest.raises(ValidationError) as exc_info:
        _create_org(repo, gateway)
    assert "Failed to create profile" in exc_info.value.message
    assert repo.list_organisations() == []
    assert gateway._users == {}


def test_update_organisation(repo, gateway):
    org = _create_org(repo, gateway)
    svc = OrganisationService(repo, gateway)
    updated = svc.update(org.id, name="Seva North", mobile="9000000000", secretary_name="Meena", status="Deactivated")
    assert updated.status is AccountStatus.DEACTIVATED
    with pytest.raises(ValidationError):
        svc.update("missing", name="X", mobile="9000000000", secretary_name="Y", status="Active")
    with pytest.raises(ValidationError):
        svc.update(org.id, name="X", mobile="9000000000", secretary_name="Y", status="Suspended")


def test_register_volunteer_and_list_with_enrollments(repo, gateway):
    org = _create_org(repo, gateway)
    svc = VolunteerService(repo, gateway)
    uid = svc.register(_org_identity(org.id), name="Ravi", mobile="9123456780", email="vol@example.com", password="volpass1")

    vols = svc.list_for_organisation(org.id)
    assert [(v.id, v.enrollments) for v in vols] == [(uid, 0)]
    assert gateway.sign_in("vol@example.com", "volpass1").principal.metadata["role"] == "Volunteer"


def test_register_volunteer_requires_organisation_context(repo, gateway):
    with pytest.raises(ValidationError):
        VolunteerService(repo, gateway).register(
            _org_identity(None), name="Ravi", mobile="9123456780", email="vol@example.com", password="volpass1"
        )


def test_duplicate_volunteer_email_surfaces_provider_message(repo, gateway):
    org = _create_org(repo, gateway)
    svc = VolunteerService(repo, gateway)
    with pytest.raises(ValidationError):
        svc.register(_org_identity(org.id), name="Ravi", mobile="9123456780", email="org@example.com", password="volpass1")


def test_toggle_and_reset_are_scoped_to_own_organisation(repo, gateway):
    org = _create_org(repo, gateway)
    other = _create_org(repo, gateway, name="Other", email="other@example.com")
    svc = VolunteerService(repo, gateway)
    uid = svc.register(_org_identity(org.id), name="Ravi", mobile="9123456780", email="vol@example.com", password="volpass1")

    with pytest.raises(ValidationError):
        svc.toggle_status(_org_identity(other.id), uid)

    assert svc.toggle_status(_org_identity(org.id), uid).status is AccountStatus.DEACTIVATED
    assert repo.get_profile(uid)["status"] == "Deactivated"
    assert svc.toggle_status(_org_identity(org.id), uid).status is AccountStatus.ACTIVE

    svc.reset_password(_org_identity(org.id), uid, "temp123")
    assert repo.get_profile(uid)["password_reset_pending"] is True
    assert gateway.sign_in("vol@example.com", "temp123").principal.metadata["password_reset_pending"] is True
    with pytest.raises(ValidationError):
        svc.reset_password(_org_identity(org.id), uid, "123")


def test_change_password_clears_reset_flag(repo, gateway):
    uid = gateway.add_user("v@example.com", "old123")
    repo.upsert_profile({"id": uid, "role": "Volunteer", "password_reset_pending": True})
    ident = Identity(id=uid, name="V", email="v@example.com", role=Role.VOLUNTEER, password_reset_pending=True)

    AccountService(repo, gateway).change_password(ident, "new123", "new123")

    assert repo.get_profile(uid)["password_reset_pending"] is False
    assert gateway.sign_in("v@example.com", "new123")


def _member_form(aadhaar="123412341234"):
    return {
        "aadhaar": aadhaar,
        "mobile": "9876543210",
        "name": "Sita",
        "surname": "Devi",
        "father_name": "Ram",
        "dob": "1990-02-01",
        "gender": "Female",
        "emergency_contact": "9123456780",
        "pincode": "560001",
        "address": "12 MG Road",
        "occupation": "Job",
        "support_need": "Medical",
    }


def _volunteer(org_id="o1"):
    return Identity(id="vol-1", name="Ravi", email="vol@example.com", role=Role.VOLUNTEER, organisation_id=org_id)


def _member_service(repo, storage=None, sheets=None):
    return MemberService(repo, storage or InMemoryStorageAdapter(), bucket="member-images", max_image_bytes=1024, sheets=sheets)


def test_submit_member_uploads_image_and_inserts_pending_row(repo):
    storage = InMemoryStorageAdapter()
    sheets = RecordingSheets()
    member = _member_service(repo, storage, sheets).submit(
        _volunteer(), validate_member_form(_member_form()), ImageUpload("card.PNG", "image/png", PNG)
    )

    assert member.status is MemberStatus.PENDING
    assert member.volunteer_id == "vol-1"
    assert member.organisation_id == "o1"
    assert member.member_image_url.startswith("/media/member-images/aadhaar_")
    assert member.member_image_url.endswith(".png")
    (bucket, key), = storage.objects.keys()
    assert bucket == "member-images"
    assert "123412341234" not in key
    sheet, data = sheets.pushed[0]
    assert sheet is SheetType.MEMBERS
    assert "aadhaar" not in data
    assert data["id"] == member.id


def test_duplicate_aadhaar_is_rejected_at_check_and_submit(repo):
    svc = _member_service(repo)
    svc.submit(_volunteer(), validate_member_form(_member_form()), ImageUpload("a.jpg", "image/jpeg", PNG))

    with pytest.raises(ValidationError) as check:
        svc.check_identity("123412341234", "9876543210")
    assert check.value.message == AADHAAR_CONFLICT_MESSAGE

    with pytest.raises(ValidationError) as submit:
        svc.submit(_volunteer(), validate_member_form(_member_form()), ImageUpload("a.jpg", "image/jpeg", PNG))
    assert submit.value.message == AADHAAR_CONFLICT_MESSAGE


def test_insert_conflict_maps_to_conflict_message(repo):
    class RacingRepo(InMemoryRegistryRepo):
        def aadhaar_exists(self, aadhaar):
            return False

        def insert_member(self, row):
            raise RepoError("duplicate key", code="23505")

    with pytest.raises(ValidationError) as exc_info:
        _member_service(RacingRepo()).submit(
            _volunteer(), validate_member_form(_member_form()), ImageUpload("a.jpg", "image/jpeg", PNG)
        )
    assert exc_info.value.message == AADHAAR_CONFLICT_MESSAGE


@pytest.mark.parametrize(
    "image",
    [
        None,
        ImageUpload("a.jpg", "image/jpeg", b""),
        ImageUpload("a.pdf", "application/pdf", PNG),
        ImageUpload("a.jpg", "image/jpeg", b"x" * 2048),
    ],
)
def test_submit_rejects_bad_images(repo, image):
    with pytest.raises(ValidationError):
        _member_service(repo).submit(_volunteer(), validate_member_form(_member_form()), image)
    assert repo.members == {}


def test_only_volunteers_with_organisation_can_enroll(repo):
    admin = Identity(id="a", name="A", email="a@example.com", role=Role.MASTER_ADMIN)
    with pytest.raises(ValidationError):
        _member_service(repo).submit(admin, validate_member_form(_member_form()), ImageUpload("a.jpg", "image/jpeg", PNG))
    with pytest.raises(ValidationError):
        _member_service(repo).submit(_volunteer(None), validate_member_form(_member_form()), ImageUpload("a.jpg", "image/jpeg", PNG))


def test_member_toggle_status_flips_and_is_scoped(repo):
    svc = _member_service(repo)
    member = svc.submit(_volunteer(), validate_member_form(_member_form()), ImageUpload("a.jpg", "image/jpeg", PNG))

    assert svc.toggle_status("o1", member.id).status is MemberStatus.ACCEPTED
    assert svc.toggle_status("o1", member.id).status is MemberStatus.PENDING
    with pytest.raises(ValidationError):
        svc.toggle_status("o2", member.id)


def test_parse_status_filter():
    assert MemberService.parse_status_filter("Accepted") is MemberStatus.ACCEPTED
    assert MemberService.parse_status_filter("") is None
    assert MemberService.parse_status_filter("bogus") is None

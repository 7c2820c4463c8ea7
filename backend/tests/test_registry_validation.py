"""Form validation for member enrollment and account forms."""
from datetime import date

import pytest

from identity_access.domain import AccountStatus
from registry.models import Gender, MemberStatus, Occupation, SupportNeed
from registry.validation import (
    ValidationError,
    parse_account_status,
    parse_member_status,
    validate_email,
    validate_identity_step,
    validate_image,
    validate_member_form,
    validate_password_change,
)


def _form(**overrides):
    form = {
        "aadhaar": "123412341234",
        "mobile": "9876543210",
        "name": " Sita ",
        "surname": "Devi",
        "father_name": "Ram",
        "dob": "1990-02-01",
        "gender": "Female",
        "emergency_contact": "9123456780",
        "pincode": "560001",
        "address": "12 MG Road",
        "occupation": "Housewife",
        "support_need": "Govt Assistance",
    }
    form.update(overrides)
    return form


@pytest.mark.parametrize(
    "aadhaar, mobile, message",
    [
        ("", "9876543210", "mandatory"),
        ("12341234123", "9876543210", "12 numeric digits"),
        ("12341234123a", "9876543210", "12 numeric digits"),
        ("123412341234", "98765", "10 numeric digits"),
    ],
)
def test_identity_step_rejects(aadhaar, mobile, message):
    with pytest.raises(ValidationError) as exc_info:
        validate_identity_step(aadhaar, mobile)
    assert message in exc_info.value.message


def test_identity_step_strips_whitespace():
    assert validate_identity_step(" 123412341234 ", "9876543210 ") == ("123412341234", "9876543210")


def test_member_form_parses_enums_and_trims():
    draft = validate_member_form(_form())
    assert draft.name == "Sita"
    assert draft.gender is Gender.FEMALE
    assert draft.occupation is Occupation.HOUSEWIFE
    assert draft.support_need is SupportNeed.GOVT_ASSISTANCE
    row = draft.to_row(volunteer_id="v1", organisation_id="o1", image_url="/media/x.jpg")
    assert row["status"] == MemberStatus.PENDING.value
    assert row["gender"] == "Female"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"address": "  "}, "All profile fields"),
        ({"emergency_contact": "123"}, "Emergency contact"),
        ({"pincode": "56001"}, "Pincode"),
        ({"dob": "01/02/1990"}, "valid date"),
        ({"dob": "2031-01-01"}, "future"),
        ({"gender": "Unknown"}, "gender"),
        ({"support_need": ""}, "support need"),
    ],
)
def test_member_form_rejects(overrides, message):
    with pytest.raises(ValidationError) as exc_info:
        validate_member_form(_form(**overrides), today=date(2030, 1, 1))
    assert message in exc_info.value.message


def test_validate_image():
    allowed = frozenset({"image/jpeg", "image/png"})
    assert validate_image("image/PNG; charset=binary", 10, max_bytes=100, allowed=allowed) == "image/png"
    with pytest.raises(ValidationError):
        validate_image("image/png", 0, max_bytes=100, allowed=allowed)
    with pytest.raises(ValidationError):
        validate_image("application/pdf", 10, max_bytes=100, allowed=allowed)
    with pytest.raises(ValidationError) as too_big:
        validate_image("image/jpeg", 3 * 1024 * 1024, max_bytes=2 * 1024 * 1024, allowed=allowed)
    assert "2 MB" in too_big.value.message


def test_password_change():
    assert validate_password_change("abcdef", "abcdef") == "abcdef"
    with pytest.raises(ValidationError):
        validate_password_change("abc", "abc")
    with pytest.raises(ValidationError) as mismatch:
        validate_password_change("abcdef", "abcdeg")
    assert mismatch.value.message == "Passwords do not match."


def test_email_and_status_parsing():
    assert validate_email(" Org@Example.COM ") == "org@example.com"
    with pytest.raises(ValidationError):
        validate_email("not-an-email")
    assert parse_account_status("Deactivated") is AccountStatus.DEACTIVATED
    assert parse_member_status("Accepted") is MemberStatus.ACCEPTED
    with pytest.raises(ValidationError):
        parse_member_status("Rejected")

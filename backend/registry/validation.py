"""
Form validation for registry writes.

Every check raises `ValidationError` with one user-facing message; routes show
it as a flash message and re-render the form. Validators return cleaned
values (trimmed strings, parsed enums) so services never see raw form input.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Any, Mapping, Optional, Tuple

from identity_access.domain import AccountStatus

from .models import Gender, MemberDraft, MemberStatus, Occupation, SupportNeed

AADHAAR_RE = re.compile(r"^\d{12}$")
MOBILE_RE = re.compile(r"^\d{10}$")
PINCODE_RE = re.compile(r"^\d{6}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6


class ValidationError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _clean(form: Mapping[str, Any], name: str) -> str:
    value = form.get(name)
    return "" if value is None else str(value).strip()


def _enum(enum_cls, raw: str, label: str):
    try:
        return enum_cls(raw)
    except ValueError:
        raise ValidationError(f"Please choose a valid {label}.") from None


def validate_identity_step(aadhaar: Optional[str], mobile: Optional[str]) -> Tuple[str, str]:
    """Step one of member enrollment: Aadhaar and mobile number."""
    aadhaar = (aadhaar or "").strip()
    mobile = (mobile or "").strip()
    if not aadhaar or not mobile:
        raise ValidationError("Aadhaar and Mobile Number are both mandatory.")
    if not AADHAAR_RE.match(aadhaar):
        raise ValidationError("Aadhaar ID must be exactly 12 numeric digits.")
    if not MOBILE_RE.match(mobile):
        raise ValidationError("Mobile Number must be exactly 10 numeric digits.")
    return aadhaar, mobile


def validate_member_form(form: Mapping[str, Any], *, today: Optional[date] = None) -> MemberDraft:
    """Step two: the full member profile. Re-checks step one fields."""
    aadhaar, mobile = validate_identity_step(_clean(form, "aadhaar"), _clean(form, "mobile"))
    required = ("name", "surname", "father_name", "dob", "emergency_contact", "pincode", "address")
    values = {name: _clean(form, name) for name in required}
    if not all(values.values()):
        raise ValidationError("All profile fields must be completed.")
    if not MOBILE_RE.match(values["emergency_contact"]):
        raise ValidationError("Emergency contact must be a valid 10-digit number.")
    if not PINCODE_RE.match(values["pincode"]):
        raise ValidationError("Pincode must be exactly 6 numeric digits.")
    try:
        dob = date.fromisoformat(values["dob"])
    except ValueError:
        raise ValidationError("Date of birth must be a valid date (YYYY-MM-DD).") from None
    if dob > (today or date.today()):
        raise ValidationError("Date of birth cannot be in the future.")
    return MemberDraft(
        aadhaar=aadhaar,
        mobile=mobile,
        name=values["name"],
        surname=values["surname"],
        father_name=values["father_name"],
        dob=dob.isoformat(),
        gender=_enum(Gender, _clean(form, "gender"), "gender"),
        emergency_contact=values["emergency_contact"],
        pincode=values["pincode"],
        address=values["address"],
        occupation=_enum(Occupation, _clean(form, "occupation"), "occupation"),
        support_need=_enum(SupportNeed, _clean(form, "support_need"), "support need"),
    )


def validate_image(content_type: Optional[str], size: int, *, max_bytes: int, allowed: frozenset) -> str:
    """Return the normalized content type of an uploaded member image."""
    if size <= 0:
        raise ValidationError("Aadhaar card image is missing.")
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype not in allowed:
        raise ValidationError("Image must be a JPEG, PNG, WEBP or HEIC file.")
    if size > max_bytes:
        raise ValidationError(f"Image is too large (maximum {max_bytes // (1024 * 1024)} MB).")
    return ctype


def validate_password_change(new_password: Optional[str], confirm: Optional[str]) -> str:
    new_password = new_password or ""
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if new_password != (confirm or ""):
        raise ValidationError("Passwords do not match.")
    return new_password


def validate_email(email: Optional[str]) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please enter a valid email address.")
    return email


def validate_mobile(mobile: Optional[str]) -> str:
    mobile = (mobile or "").strip()
    if not MOBILE_RE.match(mobile):
        raise ValidationError("Mobile Number must be exactly 10 numeric digits.")
    return mobile


def parse_account_status(raw: Optional[str]) -> AccountStatus:
    return _enum(AccountStatus, (raw or "").strip(), "status")


def parse_member_status(raw: Optional[str]) -> MemberStatus:
    return _enum(MemberStatus, (raw or "").strip(), "status")

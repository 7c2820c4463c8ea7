"""Registry entities and closed vocabularies (organisations, volunteers, members)."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Mapping, Optional

from identity_access.domain import AccountStatus, parse_status


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Occupation(str, Enum):
    JOB = "Job"
    BUSINESS = "Business"
    PROFESSIONAL = "Professional"
    HOUSEWIFE = "Housewife"
    STUDENT = "Student"
    RETIRED = "Retired"
    OTHER = "Other"


class SupportNeed(str, Enum):
    EDUCATION = "Education"
    MEDICAL = "Medical"
    MARRIAGE = "Marriage"
    HOUSING = "Housing"
    JOB = "Job"
    INVESTMENT = "Investment"
    GOVT_ASSISTANCE = "Govt Assistance"
    OTHER = "Other"


class MemberStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"

    def toggled(self) -> "MemberStatus":
        return MemberStatus.ACCEPTED if self is MemberStatus.PENDING else MemberStatus.PENDING


def enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse PostgREST timestamps ("2024-05-06T10:00:00+00:00", trailing "Z") to aware UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _joined_name(row: Mapping[str, Any], key: str) -> Optional[str]:
    joined = row.get(key)
    if isinstance(joined, list):
        joined = joined[0] if joined else None
    if isinstance(joined, Mapping):
        name = joined.get("name")
        return str(name) if name else None
    return None


def _str(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass
class Organisation:
    id: str
    name: str
    secretary_name: str = ""
    mobile: str = ""
    status: AccountStatus = AccountStatus.ACTIVE
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Organisation":
        return cls(
            id=_str(row.get("id")),
            name=_str(row.get("name")),
            secretary_name=_str(row.get("secretary_name")),
            mobile=_str(row.get("mobile")),
            status=parse_status(row.get("status")),
            profile_photo_url=row.get("profile_photo_url") or None,
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass
class Volunteer:
    """A profile row with role Volunteer, plus its enrollment count."""

    id: str
    name: str
    email: str = ""
    mobile: str = ""
    organisation_id: Optional[str] = None
    organisation_name: Optional[str] = None
    status: AccountStatus = AccountStatus.ACTIVE
    enrollments: int = 0
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Volunteer":
        return cls(
            id=_str(row.get("id")),
            name=_str(row.get("name")),
            email=_str(row.get("email")),
            mobile=_str(row.get("mobile")),
            organisation_id=row.get("organisation_id") or None,
            organisation_name=_joined_name(row, "organisations"),
            status=parse_status(row.get("status")),
            profile_photo_url=row.get("profile_photo_url") or None,
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass
class Member:
    id: str
    aadhaar: str
    mobile: str
    name: str
    surname: str
    father_name: str = ""
    dob: str = ""
    gender: str = Gender.OTHER.value
    emergency_contact: str = ""
    pincode: str = ""
    address: str = ""
    member_image_url: str = ""
    occupation: str = Occupation.OTHER.value
    support_need: str = SupportNeed.OTHER.value
    volunteer_id: Optional[str] = None
    organisation_id: Optional[str] = None
    submission_date: Optional[datetime] = None
    status: MemberStatus = MemberStatus.PENDING
    agent_name: Optional[str] = None
    agent_mobile: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}".strip()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Member":
        agent = row.get("agent_profile")
        if isinstance(agent, list):
            agent = agent[0] if agent else None
        agent = agent if isinstance(agent, Mapping) else {}
        try:
            status = MemberStatus(row.get("status") or MemberStatus.PENDING.value)
        except ValueError:
            status = MemberStatus.PENDING
        return cls(
            id=_str(row.get("id")),
            aadhaar=_str(row.get("aadhaar")),
            mobile=_str(row.get("mobile")),
            name=_str(row.get("name")),
            surname=_str(row.get("surname")),
            father_name=_str(row.get("father_name")),
            dob=_str(row.get("dob")),
            gender=_str(row.get("gender")) or Gender.OTHER.value,
            emergency_contact=_str(row.get("emergency_contact")),
            pincode=_str(row.get("pincode")),
            address=_str(row.get("address")),
            member_image_url=_str(row.get("member_image_url")),
            occupation=_str(row.get("occupation")) or Occupation.OTHER.value,
            support_need=_str(row.get("support_need")) or SupportNeed.OTHER.value,
            volunteer_id=row.get("volunteer_id") or None,
            organisation_id=row.get("organisation_id") or None,
            submission_date=parse_timestamp(row.get("submission_date")),
            status=status,
            agent_name=agent.get("name") or None,
            agent_mobile=agent.get("mobile") or None,
        )


@dataclass
class MemberDraft:
    """Validated member form data, ready to be inserted."""

    aadhaar: str
    mobile: str
    name: str
    surname: str
    father_name: str
    dob: str
    gender: Gender
    emergency_contact: str
    pincode: str
    address: str
    occupation: Occupation
    support_need: SupportNeed

    def to_row(self, *, volunteer_id: str, organisation_id: str, image_url: str) -> dict:
        return {
            "aadhaar": self.aadhaar,
            "mobile": self.mobile,
            "name": self.name,
            "surname": self.surname,
            "father_name": self.father_name,
            "dob": self.dob,
            "gender": self.gender.value,
            "emergency_contact": self.emergency_contact,
            "pincode": self.pincode,
            "address": self.address,
            "member_image_url": image_url,
            "occupation": self.occupation.value,
            "support_need": self.support_need.value,
            "volunteer_id": volunteer_id,
            "organisation_id": organisation_id,
            "status": MemberStatus.PENDING.value,
        }

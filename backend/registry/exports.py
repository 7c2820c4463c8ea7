"""CSV exports for volunteer lists and member reports."""
from __future__ import annotations

import csv
import io
import re
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence

from .models import Member, Organisation, Volunteer

VOLUNTEER_HEADERS = ["Name", "Email", "Mobile", "Status", "Enrollments"]
MEMBER_REPORT_HEADERS = [
    "Aadhaar",
    "Full Name",
    "Father Name",
    "Mobile",
    "DOB",
    "Pincode",
    "Address",
    "VOLUNTEER",
    "VOL_MOBILE",
    "Date",
    "Status",
]
ADMIN_MEMBER_HEADERS = ["Aadhaar", "Full Name", "Mobile", "Gender", "Occupation", "Support Need", "Organisation", "Date", "Status"]

_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")
# Cells starting with these are evaluated as formulas by spreadsheet apps.
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _cell(value: object) -> str:
    text = "" if value is None else str(value)
    if text.startswith(_FORMULA_PREFIXES) and not text.lstrip("-+").isdigit():
        return "'" + text
    return text


def _to_csv(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(v) for v in row])
    return buf.getvalue()


def safe_filename_part(value: Optional[str], fallback: str) -> str:
    cleaned = _FILENAME_RE.sub("_", (value or "").strip()).strip("_.")
    return cleaned or fallback


def volunteers_csv(volunteers: Iterable[Volunteer]) -> str:
    return _to_csv(
        VOLUNTEER_HEADERS,
        ([v.name, v.email, v.mobile, v.status.value, v.enrollments] for v in volunteers),
    )


def volunteers_filename(organisation_name: Optional[str]) -> str:
    return f"volunteers_{safe_filename_part(organisation_name, 'registry')}.csv"


def member_report_csv(members: Iterable[Member], agents: Optional[Mapping[str, Volunteer]] = None) -> str:
    """Organisation report; the agent name falls back to the volunteer list, then "N/A"."""
    agents = agents or {}
    rows: List[List[object]] = []
    for m in members:
        fallback = agents.get(m.volunteer_id or "")
        rows.append(
            [
                m.aadhaar,
                m.full_name,
                m.father_name,
                m.mobile,
                m.dob,
                m.pincode,
                m.address,
                m.agent_name or (fallback.name if fallback else "") or "N/A",
                m.agent_mobile or "N/A",
                m.submission_date.date().isoformat() if m.submission_date else "",
                m.status.value,
            ]
        )
    return _to_csv(MEMBER_REPORT_HEADERS, rows)


def member_report_filename(today: date) -> str:
    return f"Sector_Report_{today.isoformat()}.csv"


def admin_members_csv(members: Iterable[Member], organisations: Iterable[Organisation]) -> str:
    names = {o.id: o.name for o in organisations}
    return _to_csv(
        ADMIN_MEMBER_HEADERS,
        (
            [
                m.aadhaar,
                m.full_name,
                m.mobile,
                m.gender,
                m.occupation,
                m.support_need,
                names.get(m.organisation_id or "", "N/A"),
                m.submission_date.date().isoformat() if m.submission_date else "",
                m.status.value,
            ]
            for m in members
        ),
    )


def admin_members_filename(today: date) -> str:
    return f"Registry_Members_{today.isoformat()}.csv"

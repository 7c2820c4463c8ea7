"""
Registry use cases for organisations, volunteers and members.

Why:
    Routes stay thin: they parse the request, call one service method and turn
    `ValidationError` into a flash message. Services own the multi-step writes
    (organisation + login user + profile, image upload + member insert) and
    their compensation when a later step fails.

Permissions:
    Services trust the caller's Identity for scoping (organisation id,
    volunteer id). Role checks happen in the web layer before a service is
    reached; row-level security applies underneath for Supabase-backed repos.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from identity_access.auth_client import AuthenticationError, AuthGateway
from identity_access.domain import AccountStatus, Identity, Role
from storage.adapters import ImageStorageProtocol
from storage.config import ALLOWED_IMAGE_TYPES, image_ext_for_type
from storage.keys import make_member_image_key

from . import analytics
from .models import Member, MemberDraft, MemberStatus, Organisation, Volunteer
from .repo import RegistryRepo, RepoError
from .sheets_sync import SheetsSync, SheetType
from .validation import (
    MIN_PASSWORD_LENGTH,
    ValidationError,
    parse_account_status,
    validate_email,
    validate_identity_step,
    validate_image,
    validate_mobile,
    validate_password_change,
)

_log = logging.getLogger("ssk.registry")

AADHAAR_CONFLICT_MESSAGE = "Identification Conflict: This Aadhaar ID is already registered."


def _require_password(password: str) -> str:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    return password


class OrganisationService:
    def __init__(self, repo: RegistryRepo, accounts: AuthGateway, sheets: Optional[SheetsSync] = None) -> None:
        self.repo = repo
        self.accounts = accounts
        self.sheets = sheets or SheetsSync()

    def list(self) -> List[Organisation]:
        return self.repo.list_organisations()

    def create(self, *, name: str, mobile: str, secretary_name: str, email: str, password: str) -> Organisation:
        """Create an organisation with its login user and profile.

        The organisation row is written first; when the login user or the
        profile cannot be created, the row (and a created user) is removed
        again so no half-provisioned organisation remains.
        """
        name, secretary_name = (name or "").strip(), (secretary_name or "").strip()
        if not all((name, (mobile or "").strip(), secretary_name, (email or "").strip(), password)):
            raise ValidationError("All fields are required.")
        mobile = validate_mobile(mobile)
        email = validate_email(email)
        _require_password(password)

        try:
            org = self.repo.insert_organisation(name=name, mobile=mobile, secretary_name=secretary_name)
        except RepoError as exc:
            raise ValidationError(f"Failed to create organisation: {exc.message}") from exc

        metadata = {"name": secretary_name, "mobile": mobile, "role": Role.ORGANISATION.value, "organisation_id": org.id}
        try:
            user_id = self.accounts.create_user(email, password, metadata)
        except AuthenticationError as exc:
            self._discard_organisation(org.id)
            raise ValidationError(f"Failed to create user: {exc.message}") from exc

        try:
            self.repo.upsert_profile(
                {
                    "id": user_id,
                    "name": secretary_name,
                    "email": email,
                    "mobile": mobile,
                    "role": Role.ORGANISATION.value,
                    "organisation_id": org.id,
                    "status": AccountStatus.ACTIVE.value,
                }
            )
        except RepoError as exc:
            self._discard_user(user_id)
            self._discard_organisation(org.id)
            raise ValidationError(f"Failed to create profile: {exc.message}") from exc

        _log.info("organisation created id=%s", org.id)
        self.sheets.push(
            SheetType.ORGANISATIONS,
            {"id": org.id, "name": org.name, "mobile": org.mobile, "secretary_name": org.secretary_name, "email": email},
        )
        return org

    def update(self, org_id: str, *, name: str, mobile: str, secretary_name: str, status: str) -> Organisation:
        name, secretary_name = (name or "").strip(), (secretary_name or "").strip()
        if not name or not secretary_name:
            raise ValidationError("Name and secretary name are required.")
        fields = {
            "name": name,
            "mobile": validate_mobile(mobile),
            "secretary_name": secretary_name,
            "status": parse_account_status(status),
        }
        try:
            org = self.repo.update_organisation(org_id, fields)
        except RepoError as exc:
            raise ValidationError(f"Failed to update organisation: {exc.message}") from exc
        if org is None:
            raise ValidationError("Organisation not found.")
        return org

    def _discard_organisation(self, org_id: str) -> None:
        try:
            self.repo.delete_organisation(org_id)
        except RepoError as exc:
            _log.error("cleanup of organisation %s failed: %s", org_id, exc.code or exc.__class__.__name__)

    def _discard_user(self, user_id: str) -> None:
        try:
            self.accounts.delete_user(user_id)
        except AuthenticationError as exc:
            _log.error("cleanup of user %s failed: %s", user_id, exc.code)


class VolunteerService:
    def __init__(self, repo: RegistryRepo, accounts: AuthGateway, sheets: Optional[SheetsSync] = None) -> None:
        self.repo = repo
        self.accounts = accounts
        self.sheets = sheets or SheetsSync()

    def list_for_organisation(self, organisation_id: str) -> List[Volunteer]:
        volunteers = self.repo.list_volunteers(organisation_id)
        members = self.repo.list_members(organisation_id=organisation_id)
        return analytics.with_enrollments(volunteers, members)

    def register(self, organisation: Identity, *, name: str, mobile: str, email: str, password: str) -> str:
        """Create a volunteer login (and profile) under the caller's organisation."""
        if not organisation.organisation_id:
            raise ValidationError("Organisation context missing.")
        name = (name or "").strip()
        if not all((name, (mobile or "").strip(), (email or "").strip(), password)):
            raise ValidationError("Name, Mobile, Email and Password are all required.")
        mobile = validate_mobile(mobile)
        email = validate_email(email)
        _require_password(password)

        metadata = {
            "name": name,
            "mobile": mobile,
            "role": Role.VOLUNTEER.value,
            "organisation_id": str(organisation.organisation_id),
        }
        try:
            user_id = self.accounts.create_user(email, password, metadata)
        except AuthenticationError as exc:
            raise ValidationError(exc.message) from exc
        try:
            self.repo.upsert_profile(
                {
                    "id": user_id,
                    "name": name,
                    "email": email,
                    "mobile": mobile,
                    "role": Role.VOLUNTEER.value,
                    "organisation_id": organisation.organisation_id,
                    "status": AccountStatus.ACTIVE.value,
                }
            )
        except RepoError as exc:
            # Profiles are also provisioned by the signup trigger; the login already works.
            _log.warning("volunteer profile upsert failed for %s: %s", user_id, exc.code or "error")
        self.sheets.push(
            SheetType.VOLUNTEERS,
            {"id": user_id, "name": name, "email": email, "mobile": mobile, "organisation_id": organisation.organisation_id},
        )
        return user_id

    def _owned_volunteer(self, organisation_id: Optional[str], volunteer_id: str) -> Volunteer:
        for vol in self.repo.list_volunteers(organisation_id):
            if vol.id == volunteer_id:
                return vol
        raise ValidationError("Volunteer not found in your organisation.")

    def toggle_status(self, organisation: Identity, volunteer_id: str) -> Volunteer:
        vol = self._owned_volunteer(organisation.organisation_id, volunteer_id)
        new_status = AccountStatus.DEACTIVATED if vol.status is AccountStatus.ACTIVE else AccountStatus.ACTIVE
        try:
            self.repo.update_profile(vol.id, {"status": new_status.value})
        except RepoError as exc:
            raise ValidationError("Failed to update status.") from exc
        vol.status = new_status
        return vol

    def reset_password(self, organisation: Identity, volunteer_id: str, new_password: str) -> Volunteer:
        """Set a temporary password; the volunteer must change it on next login."""
        vol = self._owned_volunteer(organisation.organisation_id, volunteer_id)
        _require_password(new_password)
        try:
            self.accounts.set_password(vol.id, new_password, reset_pending=True)
        except AuthenticationError as exc:
            raise ValidationError(exc.message) from exc
        try:
            self.repo.update_profile(vol.id, {"password_reset_pending": True})
        except RepoError as exc:
            _log.warning("could not flag password reset on profile %s: %s", vol.id, exc.code or "error")
        return vol


class AccountService:
    """Self-service account changes for the logged-in user."""

    def __init__(self, repo: RegistryRepo, accounts: AuthGateway) -> None:
        self.repo = repo
        self.accounts = accounts

    def change_password(self, identity: Identity, new_password: str, confirm: str) -> None:
        new_password = validate_password_change(new_password, confirm)
        try:
            self.accounts.set_password(identity.id, new_password, reset_pending=False)
        except AuthenticationError as exc:
            raise ValidationError(exc.message) from exc
        if identity.password_reset_pending:
            try:
                self.repo.update_profile(identity.id, {"password_reset_pending": False})
            except RepoError as exc:
                _log.warning("could not clear password reset flag on %s: %s", identity.id, exc.code or "error")


@dataclass
class ImageUpload:
    filename: Optional[str]
    content_type: Optional[str]
    body: bytes


class MemberService:
    def __init__(
        self,
        repo: RegistryRepo,
        storage: ImageStorageProtocol,
        *,
        bucket: str,
        max_image_bytes: int,
        sheets: Optional[SheetsSync] = None,
    ) -> None:
        self.repo = repo
        self.storage = storage
        self.bucket = bucket
        self.max_image_bytes = max_image_bytes
        self.sheets = sheets or SheetsSync()

    def check_identity(self, aadhaar: str, mobile: str) -> tuple[str, str]:
        """Validate step one and reject Aadhaar numbers already registered."""
        aadhaar, mobile = validate_identity_step(aadhaar, mobile)
        try:
            exists = self.repo.aadhaar_exists(aadhaar)
        except RepoError as exc:
            raise ValidationError(f"Registry Fault: {exc.message}") from exc
        if exists:
            raise ValidationError(AADHAAR_CONFLICT_MESSAGE)
        return aadhaar, mobile

    def submit(self, volunteer: Identity, draft: MemberDraft, image: Optional[ImageUpload]) -> Member:
        if volunteer.role is not Role.VOLUNTEER or not volunteer.organisation_id:
            raise ValidationError("Only volunteers of an organisation can enroll members.")
        if image is None:
            raise ValidationError("Aadhaar card image is missing.")
        content_type = validate_image(
            image.content_type, len(image.body), max_bytes=self.max_image_bytes, allowed=ALLOWED_IMAGE_TYPES
        )
        self.check_identity(draft.aadhaar, draft.mobile)

        key = make_member_image_key(filename=image.filename, default_ext=image_ext_for_type(content_type))
        try:
            self.storage.put_object(bucket=self.bucket, key=key, body=image.body, content_type=content_type)
            image_url = self.storage.public_url(bucket=self.bucket, key=key)
        except Exception as exc:
            _log.warning("member image upload failed: %s", exc.__class__.__name__)
            raise ValidationError(f"Registry Fault: image upload failed ({exc})") from exc

        row = draft.to_row(volunteer_id=volunteer.id, organisation_id=volunteer.organisation_id, image_url=image_url)
        try:
            member = self.repo.insert_member(row)
        except RepoError as exc:
            if exc.code == "23505":
                raise ValidationError(AADHAAR_CONFLICT_MESSAGE) from exc
            raise ValidationError(f"Registry Fault: {exc.message}") from exc

        _log.info("member enrolled id=%s organisation=%s", member.id, volunteer.organisation_id)
        self.sheets.push(SheetType.MEMBERS, {k: v for k, v in row.items() if k != "aadhaar"} | {"id": member.id})
        return member

    def toggle_status(self, organisation_id: Optional[str], member_id: str) -> Member:
        """Flip Pending <-> Accepted for a member of the caller's organisation."""
        current = next((m for m in self.repo.list_members(organisation_id=organisation_id) if m.id == member_id), None)
        if current is None:
            raise ValidationError("Member not found in your organisation.")
        try:
            updated = self.repo.update_member_status(member_id, current.status.toggled())
        except RepoError as exc:
            raise ValidationError(f"Failed to update status: {exc.message}") from exc
        if updated is None:
            raise ValidationError("Member not found in your organisation.")
        return updated

    @staticmethod
    def parse_status_filter(raw: Any) -> Optional[MemberStatus]:
        if not raw:
            return None
        try:
            return MemberStatus(str(raw))
        except ValueError:
            return None


__all__ = [
    "AccountService",
    "AADHAAR_CONFLICT_MESSAGE",
    "ImageUpload",
    "MemberService",
    "OrganisationService",
    "VolunteerService",
]

"""
Two-step member enrollment forms.

Step one asks for Aadhaar and mobile only; after the server confirms the
Aadhaar is not registered yet, step two shows the full profile with both
values carried as read-only fields.
"""
from typing import Dict, Optional

from registry.models import Gender, Occupation, SupportNeed, enum_values

from ..base import Component
from .fields import FileUploadField, SelectField, TextAreaField, TextInputField, csrf_input
from .submit import SubmitButton

IMAGE_ACCEPT = "image/jpeg,image/png,image/webp,image/heic,image/heif"


class MemberIdentityForm(Component):
    def __init__(self, csrf_token: str, values: Optional[Dict[str, str]] = None, error: Optional[str] = None) -> None:
        self.csrf_token = csrf_token
        self.values = values or {}
        self.error = error

    def render(self) -> str:
        aadhaar = TextInputField("aadhaar", "Aadhaar ID", required=True, help_text="12 digits")
        mobile = TextInputField("mobile", "Mobile number", required=True, help_text="10 digits")
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        return f"""
        <form method="post" action="/volunteer/members/check" class="member-identity-form">
            {csrf_input(self.csrf_token)}
            {aadhaar.render(value=self.values.get("aadhaar", ""), inputmode="numeric", maxlength="12", class_="form-input")}
            {mobile.render(value=self.values.get("mobile", ""), input_type="tel", maxlength="10", class_="form-input")}
            {error_html}
            <div class="form-actions">{SubmitButton("Continue").render()}</div>
        </form>
        """


class MemberProfileForm(Component):
    def __init__(self, csrf_token: str, values: Optional[Dict[str, str]] = None, error: Optional[str] = None) -> None:
        self.csrf_token = csrf_token
        self.values = values or {}
        self.error = error

    def render(self) -> str:
        v = self.values
        text_fields = [
            (TextInputField("name", "First name", required=True), "text"),
            (TextInputField("surname", "Surname", required=True), "text"),
            (TextInputField("father_name", "Father's name", required=True), "text"),
            (TextInputField("dob", "Date of birth", required=True), "date"),
            (TextInputField("emergency_contact", "Emergency contact", required=True), "tel"),
            (TextInputField("pincode", "Pincode", required=True), "text"),
        ]
        rendered = "\n".join(
            f.render(value=v.get(f.field_id, ""), input_type=kind, class_="form-input") for f, kind in text_fields
        )
        selects = "\n".join(
            [
                SelectField("gender", "Gender", required=True).render(enum_values(Gender), value=v.get("gender", ""), placeholder="Select"),
                SelectField("occupation", "Occupation", required=True).render(enum_values(Occupation), value=v.get("occupation", ""), placeholder="Select"),
                SelectField("support_need", "Support needed", required=True).render(enum_values(SupportNeed), value=v.get("support_need", ""), placeholder="Select"),
            ]
        )
        address = TextAreaField("address", "Address", required=True).render(value=v.get("address", ""), class_="form-input")
        image = FileUploadField("aadhaar_image", "Aadhaar card image", required=True).render(accept=IMAGE_ACCEPT)
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        return f"""
        <form method="post" action="/volunteer/members" enctype="multipart/form-data" class="member-profile-form">
            {csrf_input(self.csrf_token)}
            {TextInputField("aadhaar", "Aadhaar ID").render(value=v.get("aadhaar", ""), readonly=True, class_="form-input")}
            {TextInputField("mobile", "Mobile number").render(value=v.get("mobile", ""), readonly=True, class_="form-input")}
            {rendered}
            {selects}
            {address}
            {image}
            {error_html}
            <div class="form-actions">
                <a class="btn btn-secondary" href="/volunteer/members/new">Back</a>
                {SubmitButton("Submit enrollment").render()}
            </div>
        </form>
        """

"""
Organisation forms (create, edit) for the MasterAdmin area.
"""
from typing import Dict, Optional

from identity_access.domain import AccountStatus

from ..base import Component
from .fields import SelectField, TextInputField, csrf_input
from .submit import SubmitButton


class OrganisationCreateForm(Component):
    """Organisation details plus the login of its secretary."""

    def __init__(self, csrf_token: str, values: Optional[Dict[str, str]] = None, error: Optional[str] = None) -> None:
        self.csrf_token = csrf_token
        self.values = values or {}
        self.error = error

    def render(self) -> str:
        fields = [
            (TextInputField("name", "Organisation name", required=True), "text"),
            (TextInputField("secretary_name", "Secretary name", required=True), "text"),
            (TextInputField("mobile", "Mobile number", required=True, help_text="10 digits"), "tel"),
            (TextInputField("email", "Login email", required=True), "email"),
            (TextInputField("password", "Initial password", required=True, help_text="At least 6 characters"), "password"),
        ]
        rendered = "\n".join(
            f.render(value=self.values.get(f.field_id, ""), input_type=kind, class_="form-input") for f, kind in fields
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        return f"""
        <form method="post" action="/admin/organisations" class="organisation-create-form">
            {csrf_input(self.csrf_token)}
            {rendered}
            {error_html}
            <div class="form-actions">{SubmitButton("Create organisation").render()}</div>
        </form>
        """


class OrganisationEditForm(Component):
    def __init__(self, org_id: str, csrf_token: str, values: Optional[Dict[str, str]] = None) -> None:
        self.org_id = org_id
        self.csrf_token = csrf_token
        self.values = values or {}

    def render(self) -> str:
        name = TextInputField(f"name-{self.org_id}", "Name", required=True)
        secretary = TextInputField(f"secretary-{self.org_id}", "Secretary", required=True)
        mobile = TextInputField(f"mobile-{self.org_id}", "Mobile", required=True)
        status = SelectField(f"status-{self.org_id}", "Status")
        return f"""
        <form method="post" action="/admin/organisations/{self.escape(self.org_id)}" class="organisation-edit-form">
            {csrf_input(self.csrf_token)}
            {name.render(value=self.values.get("name", ""), name="name", class_="form-input")}
            {secretary.render(value=self.values.get("secretary_name", ""), name="secretary_name", class_="form-input")}
            {mobile.render(value=self.values.get("mobile", ""), input_type="tel", name="mobile", class_="form-input")}
            {status.render([s.value for s in AccountStatus], value=self.values.get("status", AccountStatus.ACTIVE.value), name="status")}
            <div class="form-actions">{SubmitButton("Save", variant="secondary").render()}</div>
        </form>
        """

"""
Volunteer registration form for the Organisation area.
"""
from typing import Dict, Optional

from ..base import Component
from .fields import TextInputField, csrf_input
from .submit import SubmitButton


class VolunteerRegisterForm(Component):
    def __init__(self, csrf_token: str, values: Optional[Dict[str, str]] = None, error: Optional[str] = None) -> None:
        self.csrf_token = csrf_token
        self.values = values or {}
        self.error = error

    def render(self) -> str:
        fields = [
            (TextInputField("name", "Full name", required=True), "text"),
            (TextInputField("mobile", "Mobile number", required=True), "tel"),
            (TextInputField("email", "Login email", required=True), "email"),
            (TextInputField("password", "Initial password", required=True), "password"),
        ]
        rendered = "\n".join(
            f.render(value=self.values.get(f.field_id, ""), input_type=kind, class_="form-input") for f, kind in fields
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        return f"""
        <form method="post" action="/organisation/volunteers" class="volunteer-register-form">
            {csrf_input(self.csrf_token)}
            {rendered}
            {error_html}
            <div class="form-actions">{SubmitButton("Register volunteer").render()}</div>
        </form>
        """

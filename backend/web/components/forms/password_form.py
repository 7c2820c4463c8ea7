"""
Password Change Form Component

Used from every dashboard; when an organisation has reset the password the
volunteer dashboard shows only this form.
"""
from typing import Optional

from ..base import Component
from .fields import TextInputField, csrf_input
from .submit import SubmitButton


class PasswordChangeForm(Component):
    def __init__(self, csrf_token: str, *, error: Optional[str] = None, heading: str = "Change password") -> None:
        self.csrf_token = csrf_token
        self.error = error
        self.heading = heading

    def render(self) -> str:
        fields = [
            TextInputField("new_password", "New password", required=True),
            TextInputField("confirm_password", "Confirm new password", required=True),
        ]
        rendered = "\n".join(
            f.render(input_type="password", autocomplete="new-password", minlength="6", class_="form-input") for f in fields
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        return f"""
        <section class="card password-card">
            <h2>{self.escape(self.heading)}</h2>
            <form method="post" action="/account/password">
                {csrf_input(self.csrf_token)}
                {rendered}
                {error_html}
                <div class="form-actions">{SubmitButton("Update password").render()}</div>
            </form>
        </section>
        """

"""
Login Form Component

Email/password form posting to /login. The `next` field carries an optional
in-app redirect target; the route validates it again.
"""
from typing import Optional

from ..base import Component
from .fields import TextInputField, csrf_input, hidden_input
from .submit import SubmitButton


class LoginForm(Component):
    def __init__(self, csrf_token: str, *, email: str = "", next_path: str = "", error: Optional[str] = None) -> None:
        self.csrf_token = csrf_token
        self.email = email
        self.next_path = next_path
        self.error = error

    def render(self) -> str:
        email = TextInputField("email", "Email", required=True).render(
            value=self.email, input_type="email", autocomplete="username", class_="form-input"
        )
        password = TextInputField("password", "Password", required=True).render(
            input_type="password", autocomplete="current-password", class_="form-input"
        )
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        next_html = hidden_input("next", self.next_path) if self.next_path else ""
        return f"""
        <form method="post" action="/login" class="login-form">
            {csrf_input(self.csrf_token)}
            {next_html}
            {email}
            {password}
            {error_html}
            <div class="form-actions">
                {SubmitButton("Sign in").render()}
            </div>
        </form>
        """

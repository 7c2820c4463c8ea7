"""
Form components for the registry.

Provides basic building blocks such as FormField and SubmitButton plus the
concrete forms used by the role areas.
"""

from .fields import FormField, TextAreaField, FileUploadField, TextInputField, SelectField, csrf_input, hidden_input
from .submit import SubmitButton
from .login_form import LoginForm
from .password_form import PasswordChangeForm
from .organisation_form import OrganisationCreateForm, OrganisationEditForm
from .volunteer_form import VolunteerRegisterForm
from .member_form import MemberIdentityForm, MemberProfileForm

__all__ = [
    "FormField",
    "TextAreaField",
    "FileUploadField",
    "TextInputField",
    "SelectField",
    "SubmitButton",
    "csrf_input",
    "hidden_input",
    "LoginForm",
    "PasswordChangeForm",
    "OrganisationCreateForm",
    "OrganisationEditForm",
    "VolunteerRegisterForm",
    "MemberIdentityForm",
    "MemberProfileForm",
]

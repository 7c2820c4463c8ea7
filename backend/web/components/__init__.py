# Registry Component System
# Pure Python components for server-rendered HTML

from .base import Component
from .layout import Layout
from .navigation import Navigation
from .flash import FlashMessages
from .table import DataTable
from .charts import BarChart
from .leaderboard import Leaderboard
from .marquee import LiveMarquee, MarqueeStrip
from .cards import StatCard, WinnerCard
from .forms import (
    FormField,
    TextAreaField,
    FileUploadField,
    TextInputField,
    SelectField,
    SubmitButton,
    LoginForm,
    PasswordChangeForm,
    OrganisationCreateForm,
    OrganisationEditForm,
    VolunteerRegisterForm,
    MemberIdentityForm,
    MemberProfileForm,
    csrf_input,
    hidden_input,
)

__all__ = [
    "Component",
    "Layout",
    "Navigation",
    "FlashMessages",
    "DataTable",
    "BarChart",
    "Leaderboard",
    "LiveMarquee",
    "MarqueeStrip",
    "StatCard",
    "WinnerCard",
    "FormField",
    "TextAreaField",
    "FileUploadField",
    "TextInputField",
    "SelectField",
    "SubmitButton",
    "LoginForm",
    "PasswordChangeForm",
    "OrganisationCreateForm",
    "OrganisationEditForm",
    "VolunteerRegisterForm",
    "MemberIdentityForm",
    "MemberProfileForm",
    "csrf_input",
    "hidden_input",
]

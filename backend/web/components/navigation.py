"""
Navigation Component for the registry

Role-based sidebar that adapts to the signed-in actor (MasterAdmin,
Organisation, Volunteer). Anonymous visitors see the public menu.
"""

from typing import Dict, List, Optional, Tuple

from identity_access.domain import Identity, Role

from .base import Component
from .forms.fields import csrf_input

NavItem = Tuple[str, str, str]

NAV_CONFIG: Dict[Role, List[NavItem]] = {
    Role.MASTER_ADMIN: [
        ("/admin", "Overview", "\U0001F4CA"),
        ("/admin/organisations", "Organisations", "\U0001F3E2"),
        ("/admin/reports", "Registry reports", "\U0001F4C4"),
        ("/", "Live board", "\U0001F4E1"),
    ],
    Role.ORGANISATION: [
        ("/organisation", "Overview", "\U0001F4CA"),
        ("/organisation/volunteers", "Volunteers", "\U0001F465"),
        ("/organisation/reports", "Member reports", "\U0001F4C4"),
        ("/", "Live board", "\U0001F4E1"),
    ],
    Role.VOLUNTEER: [
        ("/volunteer", "My enrollments", "\U0001F4CB"),
        ("/volunteer/members/new", "Enroll member", "➕"),
        ("/", "Live board", "\U0001F4E1"),
    ],
}

PUBLIC_NAV: List[NavItem] = [
    ("/", "Live board", "\U0001F4E1"),
    ("/login", "Sign in", "\U0001F511"),
]


class Navigation(Component):
    """Navigation component with role-based menu items"""

    def __init__(self, identity: Optional[Identity] = None, current_path: str = "/", csrf_token: str = ""):
        """
        Args:
            identity: Resolved actor, or None for anonymous visitors
            current_path: The current URL path for active link highlighting
            csrf_token: Session CSRF token for the logout form
        """
        self.identity = identity
        self.current_path = current_path or "/"
        self.csrf_token = csrf_token

    def items(self) -> List[NavItem]:
        if self.identity is None:
            return PUBLIC_NAV
        if self.identity.password_reset_pending:
            # Only the password form is reachable until the reset is completed.
            return [(self.identity.home_path, "Change password", "\U0001F512")]
        return NAV_CONFIG.get(self.identity.role, PUBLIC_NAV)

    def active_href(self, items: List[NavItem]) -> str:
        """Pick the single active href using best prefix match."""
        best, best_len = "", 0
        for href, _text, _icon in items:
            if href == self.current_path:
                return href
            if href != "/" and self.current_path.startswith(href + "/") and len(href) > best_len:
                best, best_len = href, len(href)
        return best

    def render(self) -> str:
        items = self.items()
        active = self.active_href(items)
        links = [self._create_nav_link(href, text, icon, is_active=(href == active)) for href, text, icon in items]
        if self.identity is not None:
            links.append(self._render_logout())
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="Sidebar">
        <nav class="sidebar-nav" role="navigation" aria-label="Main navigation">
            <div class="sidebar-header">
                <span class="sidebar-title">Member Registry</span>
            </div>
            <div class="sidebar-items">
                {''.join(links)}
            </div>
            {self._render_user()}
        </nav>
    </aside>"""

    def _render_user(self) -> str:
        if self.identity is None:
            return ""
        org = (
            f'<div class="user-org">{self.escape(self.identity.organisation_name)}</div>'
            if self.identity.organisation_name
            else ""
        )
        return f"""
            <div class="sidebar-footer">
                <div class="user-name">{self.escape(self.identity.name)}</div>
                <div class="user-role">{self.escape(self.identity.role.label)}</div>
                {org}
            </div>"""

    def _create_nav_link(self, href: str, text: str, icon: str = "", *, is_active: bool = False) -> str:
        icon_html = f'<span class="nav-icon" aria-hidden="true">{icon}</span>' if icon else ""
        active_class = " active" if is_active else ""
        aria_attr = ' aria-current="page"' if is_active else ""
        return f"""
        <a href="{self.escape(href)}" class="sidebar-link{active_class}"{aria_attr}>
            {icon_html}
            <span class="nav-text">{self.escape(text)}</span>
        </a>"""

    def _render_logout(self) -> str:
        """Logout is a POST so it is covered by the CSRF checks."""
        return f"""
        <form method="post" action="/logout" class="sidebar-logout">
            {csrf_input(self.csrf_token)}
            <button type="submit" class="sidebar-link">
                <span class="nav-icon" aria-hidden="true">\U0001F6AA</span>
                <span class="nav-text">Sign out</span>
            </button>
        </form>"""

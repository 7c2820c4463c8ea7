"""
Layout Component for the registry

Main layout wrapper that combines navigation, flash messages and page content
into a complete HTML document.
"""

from typing import Iterable, Optional, Tuple

from identity_access.domain import Identity

from .base import Component
from .flash import FlashMessages
from .navigation import Navigation

APP_TITLE = "Member Registry"


class Layout(Component):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        identity: Optional[Identity] = None,
        *,
        current_path: str = "/",
        csrf_token: str = "",
        flashes: Iterable[Tuple[str, str]] = (),
        show_nav: bool = True,
        scripts: Iterable[str] = (),
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            identity: Signed-in actor (optional)
            current_path: Current URL path for active navigation highlighting
            csrf_token: Session CSRF token (logout form)
            flashes: (kind, message) pairs shown above the content
            show_nav: Whether to show the sidebar
            scripts: Extra script paths under /static
        """
        self.title = title
        self.content = content
        self.identity = identity
        self.current_path = current_path
        self.csrf_token = csrf_token
        self.flashes = list(flashes)
        self.show_nav = show_nav
        self.scripts = list(scripts)

    def render(self) -> str:
        nav_html = Navigation(self.identity, self.current_path, self.csrf_token).render() if self.show_nav else ""
        flash_html = FlashMessages(self.flashes).render()
        layout_class = "app" if self.show_nav else "app app--bare"
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    {self._render_head()}
</head>
<body>
    <a href="#main-content" class="skip-link">Skip to main content</a>
    <div class="{layout_class}">
        {nav_html}
        <main id="main-content" class="main-content" role="main">
            {flash_html}
            {self.content}
            <footer class="content-footer" role="contentinfo">
                <p class="text-muted">{APP_TITLE}</p>
            </footer>
        </main>
    </div>
</body>
</html>"""

    def _render_head(self) -> str:
        scripts = "".join(
            f'\n    <script src="/static/js/{self.escape(name)}" defer></script>' for name in self.scripts
        )
        return f"""
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - {APP_TITLE}</title>
    <link rel="stylesheet" href="/static/css/registry.css?v=1">{scripts}
    """

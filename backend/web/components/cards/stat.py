"""
Stat and winner cards.

Small summary tiles used on the landing page and the role dashboards.
"""

from typing import Optional

from ..base import Component


class StatCard(Component):
    def __init__(self, label: str, value: object, *, hint: Optional[str] = None, stat_id: Optional[str] = None) -> None:
        self.label = label
        self.value = value
        self.hint = hint
        self.stat_id = stat_id

    def render(self) -> str:
        hint_html = f'<p class="stat-hint">{self.escape(self.hint)}</p>' if self.hint else ""
        id_attr = f' id="{self.escape(self.stat_id)}"' if self.stat_id else ""
        return f"""
        <div class="card stat-card"{id_attr}>
            <p class="stat-label">{self.escape(self.label)}</p>
            <p class="stat-value">{self.escape(self.value)}</p>
            {hint_html}
        </div>"""


class WinnerCard(Component):
    """Weekly reward tile; renders a neutral placeholder when there is no winner."""

    def __init__(self, title: str, winner_name: Optional[str], enrollments: int, *, subtitle: str = "") -> None:
        self.title = title
        self.winner_name = winner_name
        self.enrollments = enrollments
        self.subtitle = subtitle

    def render(self) -> str:
        if not self.winner_name:
            body = '<p class="winner-empty">No enrollments this week yet.</p>'
        else:
            body = (
                f'<p class="winner-name">{self.escape(self.winner_name)}</p>'
                f'<p class="winner-count">{self.escape(self.enrollments)} enrollments</p>'
            )
        subtitle = f'<p class="winner-subtitle">{self.escape(self.subtitle)}</p>' if self.subtitle else ""
        return f"""
        <div class="card winner-card">
            <h3>{self.escape(self.title)}</h3>
            {subtitle}
            {body}
        </div>"""

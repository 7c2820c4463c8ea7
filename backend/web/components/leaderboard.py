"""Top-N leaderboard list (volunteers or organisations)."""

from typing import Sequence, Tuple

from .base import Component


class Leaderboard(Component):
    def __init__(self, title: str, entries: Sequence[Tuple[str, str, int]]) -> None:
        """entries: (name, detail, enrollments), already ordered."""
        self.title = title
        self.entries = list(entries)

    def render(self) -> str:
        if not self.entries:
            items = '<li class="leaderboard-empty">No enrollments yet.</li>'
        else:
            items = "".join(
                f"""
                <li class="leaderboard-item">
                    <span class="leaderboard-rank">{rank}</span>
                    <span class="leaderboard-name">{self.escape(name)}</span>
                    <span class="leaderboard-detail">{self.escape(detail)}</span>
                    <span class="leaderboard-count">{self.escape(count)}</span>
                </li>"""
                for rank, (name, detail, count) in enumerate(self.entries, start=1)
            )
        return f"""
        <section class="card leaderboard">
            <h3>{self.escape(self.title)}</h3>
            <ol class="leaderboard-list">{items}</ol>
        </section>"""

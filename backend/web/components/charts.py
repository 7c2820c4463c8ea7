"""
Distribution bar chart drawn with plain HTML/CSS.

Bar widths are percentages of the largest bucket, rounded to steps of 5 and
applied through `w-<n>` classes so the page needs no inline styles under the
strict CSP. Zero-count buckets stay visible so every category is shown.
"""

from typing import Sequence, Tuple

from .base import Component


def width_step(count: int, peak: int) -> int:
    if peak <= 0 or count <= 0:
        return 0
    return max(5, int(round(20 * count / peak)) * 5)


class BarChart(Component):
    def __init__(self, title: str, data: Sequence[Tuple[str, int]]) -> None:
        self.title = title
        self.data = list(data)

    def render(self) -> str:
        peak = max((count for _label, count in self.data), default=0)
        rows = []
        for label, count in self.data:
            rows.append(
                f"""
            <div class="bar-row">
                <span class="bar-label">{self.escape(label)}</span>
                <span class="bar-track"><span class="bar-fill w-{width_step(count, peak)}"></span></span>
                <span class="bar-count">{self.escape(count)}</span>
            </div>"""
            )
        return f"""
        <section class="card chart-card">
            <h3>{self.escape(self.title)}</h3>
            {''.join(rows)}
        </section>"""

"""
Live marquee strips for organisations and volunteers.

The container carries the feed revision in `data-revision`; the polling
script asks `/api/live/marquee?since=<revision>` and swaps the inner HTML when
the server returns 200.
"""

from typing import Sequence

from registry.live_feed import MarqueeItem

from .base import Component


class MarqueeStrip(Component):
    def __init__(self, title: str, items: Sequence[MarqueeItem], *, now: float, strip_id: str) -> None:
        self.title = title
        self.items = list(items)
        self.now = now
        self.strip_id = strip_id

    def render(self) -> str:
        if not self.items:
            entries = '<span class="marquee-empty">Waiting for the first registrations.</span>'
        else:
            entries = "".join(
                f'<span class="marquee-item{" marquee-item--new" if item.highlighted(self.now) else ""}">'
                f"{self.escape(item.label)}"
                + (f' <small>{self.escape(item.detail)}</small>' if item.detail else "")
                + "</span>"
                for item in self.items
            )
        return f"""
        <div class="marquee" id="{self.escape(self.strip_id)}">
            <span class="marquee-title">{self.escape(self.title)}</span>
            <div class="marquee-track">{entries}</div>
        </div>"""


class LiveMarquee(Component):
    def __init__(
        self,
        organisations: Sequence[MarqueeItem],
        volunteers: Sequence[MarqueeItem],
        *,
        revision: int,
        now: float,
    ) -> None:
        self.organisations = organisations
        self.volunteers = volunteers
        self.revision = revision
        self.now = now

    def render_inner(self) -> str:
        return (
            MarqueeStrip("Organisations", self.organisations, now=self.now, strip_id="marquee-orgs").render()
            + MarqueeStrip("Volunteers", self.volunteers, now=self.now, strip_id="marquee-volunteers").render()
        )

    def render(self) -> str:
        return f"""
        <section class="live-marquee" id="live-marquee" data-revision="{self.revision}" aria-live="polite">
            {self.render_inner()}
        </section>"""

"""Flash message list rendered above page content."""

from typing import Iterable, Tuple

from .base import Component

_KINDS = {"info", "success", "error", "warning"}


class FlashMessages(Component):
    def __init__(self, messages: Iterable[Tuple[str, str]]) -> None:
        self.messages = list(messages)

    def render(self) -> str:
        if not self.messages:
            return ""
        items = []
        for kind, text in self.messages:
            kind = kind if kind in _KINDS else "info"
            role = "alert" if kind == "error" else "status"
            items.append(f'<div class="flash flash-{kind}" role="{role}">{self.escape(text)}</div>')
        return f'<div class="flash-list">{"".join(items)}</div>'

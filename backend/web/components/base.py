"""
Base class for server-rendered HTML components.

Components are plain Python objects whose `render()` returns an HTML string.
All user-provided text goes through `escape`; attribute dicts go through
`attributes`, which maps Python-safe names (`class_`, `for_`, `aria_label`)
to their HTML spelling.
"""

from __future__ import annotations

import html
from abc import ABC, abstractmethod
from typing import Any


class Component(ABC):
    @abstractmethod
    def render(self, *args: Any, **kwargs: Any) -> str:
        """Return the component markup."""

    @staticmethod
    def escape(value: Any) -> str:
        return html.escape("" if value is None else str(value), quote=True)

    @classmethod
    def attributes(cls, **attrs: Any) -> str:
        """Render `key="value"` pairs; None/False are dropped, True is a bare flag."""
        parts = []
        for key, value in attrs.items():
            if value is None or value is False:
                continue
            name = key.rstrip("_").replace("_", "-")
            if value is True:
                parts.append(name)
            else:
                parts.append(f'{name}="{cls.escape(value)}"')
        return " ".join(parts)

    def __str__(self) -> str:
        return self.render()

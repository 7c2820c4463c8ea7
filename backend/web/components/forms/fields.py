"""
Form field components.

These small components keep markup consistent across the registry forms.
"""

from typing import Optional, Sequence, Tuple, Union

from ..base import Component


class FormField(Component):
    """Wrapper that renders label, input slot, help, and error text."""

    def __init__(
        self,
        field_id: str,
        label: str,
        *,
        required: bool = False,
        help_text: Optional[str] = None,
        error_text: Optional[str] = None,
        state: str = "default",
    ) -> None:
        self.field_id = field_id
        self.label = label
        self.required = required
        self.help_text = help_text
        self.error_text = error_text
        self.state = state

    def render(self, input_html: str) -> str:
        state_class = f" form-field--{self.state}" if self.state != "default" else ""
        required_marker = (
            '<span class="form-required" aria-hidden="true">*</span>'
            if self.required
            else ""
        )
        help_html = (
            f'<p class="form-help" id="{self.field_id}-help">{self.escape(self.help_text)}</p>'
            if self.help_text
            else ""
        )
        error_html = (
            f'<p class="form-error" role="alert" id="{self.field_id}-error">{self.escape(self.error_text)}</p>'
            if self.error_text
            else ""
        )
        label_attrs = self.attributes(for_=self.field_id, class_="form-label")
        return (
            f'<div class="form-field{state_class}">'
            f"<label {label_attrs}>"
            f"{self.escape(self.label)}{required_marker}"
            "</label>"
            f"{input_html}"
            f"{help_html}"
            f"{error_html}"
            "</div>"
        )

    def _input_attrs(self, defaults: dict, overrides: dict) -> str:
        """Merge base attributes with caller overrides (e.g. a custom `name`)."""
        merged = {
            "id": self.field_id,
            "name": self.field_id,
            "required": self.required,
            "aria_describedby": f"{self.field_id}-help" if self.help_text else None,
            "aria_invalid": "true" if self.error_text else "false",
        }
        merged.update(defaults)
        merged.update(overrides)
        return self.attributes(**merged)


class TextAreaField(FormField):
    """Convenience helper for textareas."""

    def render(self, value: str = "", rows: int = 3, **attrs: str) -> str:
        textarea_attrs = self._input_attrs({"rows": str(rows)}, attrs)
        return super().render(f"<textarea {textarea_attrs}>{self.escape(value)}</textarea>")


class FileUploadField(FormField):
    """File upload control with consistent styling."""

    def render(self, accept: Optional[str] = None, **attrs: str) -> str:
        input_attrs = self._input_attrs({"type": "file", "accept": accept}, attrs)
        return super().render(f"<input {input_attrs}>")


class TextInputField(FormField):
    """Single-line input (text, email, password, tel, date)."""

    def render(
        self,
        *,
        value: str = "",
        input_type: str = "text",
        autocomplete: Optional[str] = None,
        placeholder: Optional[str] = None,
        **attrs: str,
    ) -> str:
        defaults = {
            "type": input_type,
            # Passwords are never echoed back into the page.
            "value": value if input_type != "password" else None,
            "autocomplete": autocomplete,
            "placeholder": placeholder,
        }
        return super().render(f"<input {self._input_attrs(defaults, attrs)}>")


Option = Union[str, Tuple[str, str]]


class SelectField(FormField):
    """Select box; options are values or (value, label) pairs."""

    def render(self, options: Sequence[Option], *, value: str = "", placeholder: Optional[str] = None, **attrs: str) -> str:
        items = []
        if placeholder is not None:
            items.append(f'<option value="">{self.escape(placeholder)}</option>')
        for opt in options:
            opt_value, opt_label = opt if isinstance(opt, tuple) else (opt, opt)
            selected = " selected" if str(opt_value) == str(value) else ""
            items.append(f'<option value="{self.escape(opt_value)}"{selected}>{self.escape(opt_label)}</option>')
        return super().render(f"<select {self._input_attrs({}, attrs)}>{''.join(items)}</select>")


def csrf_input(token: str) -> str:
    return f'<input type="hidden" name="csrf_token" value="{Component.escape(token)}">'


def hidden_input(name: str, value: str) -> str:
    return f'<input type="hidden" name="{Component.escape(name)}" value="{Component.escape(value)}">'

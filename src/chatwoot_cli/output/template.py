"""Format-string templates for --template output."""

from __future__ import annotations

import json
import string
from typing import Any

from ..errors import UserInputError


class _Missing(dict):
    """Mapping that renders unknown keys as empty strings."""

    def __missing__(self, key):
        return ""


class _TemplateFormatter(string.Formatter):
    def get_field(self, field_name, args, kwargs):
        try:
            return super().get_field(field_name, args, kwargs)
        except (KeyError, IndexError, TypeError):
            return "", field_name

    def format_field(self, value, format_spec):
        if value is None:
            return ""
        if isinstance(value, (dict, list)) and not format_spec:
            return json.dumps(value, separators=(",", ":"))
        return super().format_field(value, format_spec)


_formatter = _TemplateFormatter()


def render_template(value: Any, template: str) -> str:
    """Render ``value`` through a Python format string.

    Object keys are available by name (``{id}``, ``{contact[name]}``). Any
    other value is exposed as ``{value}``; lists also as ``{items}``.
    """
    if isinstance(value, dict):
        fields = _Missing(value)
    else:
        fields = _Missing(value=value)
        if isinstance(value, list):
            fields["items"] = value
    try:
        return _formatter.vformat(template, (), fields)
    except (ValueError, AttributeError) as e:
        raise UserInputError(f"invalid template: {e}") from e

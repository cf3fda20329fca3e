"""Context resolution helpers shared by the commands."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import describe_context, resolve_context


def resolve_context_info(path: Optional[Path] = None) -> dict:
    """Return the resolved account context, token redacted."""
    context = resolve_context(path)
    info = describe_context(context)
    info["configured"] = context.is_configured()
    return info

"""Shared output rendering and the list engine."""

from .format import Formatter, dumps, write_error
from .modes import Mode, OutputContext, apply_force_json, parse_mode, resolve_effective_mode
from .pagination import (
    ListConfig,
    ListContext,
    ListOptions,
    ListResult,
    ListSummary,
    build_payload,
    iter_pages,
    run_list,
    validate_options,
)

__all__ = [
    "Formatter",
    "dumps",
    "write_error",
    "Mode",
    "OutputContext",
    "apply_force_json",
    "parse_mode",
    "resolve_effective_mode",
    "ListConfig",
    "ListContext",
    "ListOptions",
    "ListResult",
    "ListSummary",
    "build_payload",
    "iter_pages",
    "run_list",
    "validate_options",
]

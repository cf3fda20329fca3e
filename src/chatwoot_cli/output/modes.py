"""Render modes and the request-scoped output context."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TextIO

from ..errors import UserInputError


class Mode(Enum):
    """How a command renders its results."""
    TEXT = "text"
    JSON = "json"
    JSONL = "jsonl"
    AGENT = "agent"

    @property
    def is_json(self) -> bool:
        return self is not Mode.TEXT


_MODE_NAMES = {
    "": Mode.TEXT,
    "text": Mode.TEXT,
    "json": Mode.JSON,
    "jsonl": Mode.JSONL,
    "ndjson": Mode.JSONL,
    "agent": Mode.AGENT,
}


def parse_mode(value: str | None) -> Mode:
    """Parse an --output value."""
    key = (value or "").strip().lower()
    if key not in _MODE_NAMES:
        raise UserInputError(
            f"invalid output format: {value!r} (use 'text', 'json', 'jsonl', 'ndjson', or 'agent')"
        )
    return _MODE_NAMES[key]


@dataclass(frozen=True)
class OutputContext:
    """Ambient output settings for one invocation.

    Never mutated; use ``replace`` or ``apply_force_json`` to derive a new one.
    """

    mode: Mode = Mode.TEXT
    light: bool = False
    compact: bool = False
    query: str = ""
    template: str = ""
    quiet: bool = False
    silent: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout, compare=False)
    err: TextIO = field(default_factory=lambda: sys.stderr, compare=False)

    def with_mode(self, mode: Mode) -> "OutputContext":
        return replace(self, mode=mode)

    def with_light(self, light: bool = True) -> "OutputContext":
        return replace(self, light=light)


def resolve_effective_mode(requested: Mode, force_json: bool) -> Mode:
    """Return the mode a command actually renders in.

    Forcing JSON only upgrades plain text; an explicit json, jsonl or agent
    choice is kept.
    """
    if force_json and requested is Mode.TEXT:
        return Mode.JSON
    return requested


def apply_force_json(output: OutputContext, force_json: bool) -> OutputContext:
    """Derive the context for a command whose force-JSON predicate fired.

    A forced command always renders light, so query keys stay literal even
    when the mode was already JSON.
    """
    if not force_json:
        return output
    return replace(
        output,
        mode=resolve_effective_mode(output.mode, force_json),
        light=True,
    )

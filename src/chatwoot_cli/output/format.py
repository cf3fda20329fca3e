"""Output formatting for CLI commands.

The Formatter is the single sink commands write through: aligned tables
for humans (rendered by rich), JSON documents or JSON lines for machines.
Data lines and notes are written to their streams unchanged; only tables go
through the rich console.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Optional, Sequence, TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..errors import OutputWriteError
from .modes import Mode, OutputContext
from .query import apply_query
from .template import render_template

# Tables are never wrapped when stdout is a pipe or a file.
PIPE_WIDTH = 10_000


def _json_default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, tuple)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(value: Any, compact: bool = False) -> str:
    """Serialize to JSON: 2-space indent, or single-line when compact."""
    if compact:
        return json.dumps(value, default=_json_default, separators=(",", ":"), ensure_ascii=False)
    return json.dumps(value, default=_json_default, indent=2, ensure_ascii=False)


def to_jsonable(value: Any) -> Any:
    """Convert models and dataclasses to plain JSON-compatible data."""
    return json.loads(json.dumps(value, default=_json_default))


def normalize_document(value: Any) -> Any:
    """Wrap a bare list as ``{"items": [...]}`` so ``.items[]`` always works."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return {"items": list(value)}
    return value


def make_console(stream: TextIO) -> Console:
    """Create a Rich console that writes plain text when not on a terminal."""
    isatty = getattr(stream, "isatty", None)
    on_terminal = bool(isatty and isatty())
    return Console(
        file=stream,
        width=None if on_terminal else PIPE_WIDTH,
        soft_wrap=True,
        markup=False,
        highlight=False,
        emoji=False,
    )


def filter_value(value: Any, output: OutputContext) -> Any:
    """Apply the active query, with literal keys in light mode."""
    if not output.query:
        return value
    return apply_query(to_jsonable(value), output.query, literal=output.light)


class Formatter:
    """Writes command output according to the OutputContext."""

    def __init__(self, output: OutputContext):
        self.ctx = output
        self._out = make_console(output.out)
        self._headers: Optional[list[str]] = None
        self._widths: list[int] = []
        self._pending: list[list[str]] = []
        self._header_written = False
        self._failed = False

    # -- low-level writes -------------------------------------------------

    def _guarded(self, write: Callable[[], None]) -> None:
        if self._failed:
            raise OutputWriteError("output stream is closed after an earlier write failure")
        try:
            write()
        except (OSError, UnicodeEncodeError) as e:
            self._failed = True
            raise OutputWriteError(f"failed to write output: {e}") from e

    def _write(self, stream: TextIO, text: str) -> None:
        def write() -> None:
            stream.write(text + "\n")
            stream.flush()
        self._guarded(write)

    def _print(self, console: Console, renderable: Any) -> None:
        def write() -> None:
            console.print(renderable)
            console.file.flush()
        self._guarded(write)

    def write_line(self, text: str) -> None:
        """Write one line of data to stdout, byte for byte."""
        self._write(self.ctx.out, text)

    def note(self, message: str) -> None:
        """Write a diagnostic line to stderr."""
        self._write(self.ctx.err, message)

    # -- tables -----------------------------------------------------------

    def start_table(self, headers: Sequence[str]) -> bool:
        """Begin a table. Returns False when the mode is not text."""
        if self.ctx.mode.is_json:
            return False
        self._headers = list(headers)
        self._widths = [len(h) for h in self._headers]
        self._pending = []
        self._header_written = False
        return True

    def row(self, *columns: str) -> None:
        values = ["" if c is None else str(c) for c in columns]
        for i, value in enumerate(values):
            if i < len(self._widths):
                self._widths[i] = max(self._widths[i], len(value))
            else:
                self._widths.append(len(value))
        self._pending.append(values)

    def flush_rows(self) -> None:
        """Write buffered rows now, keeping column widths from earlier flushes.

        Rows already written are never laid out again: a later value wider
        than its column widens that column from this flush on, so streamed
        pages line up with the header only while their values fit.
        """
        if self._headers is None:
            return
        if not self._pending and self._header_written:
            return

        show_header = not self._header_written
        table = Table(
            box=None,
            show_header=show_header,
            header_style="bold",
            pad_edge=False,
            show_edge=False,
        )
        columns = max([len(self._headers)] + [len(r) for r in self._pending])
        for i in range(columns):
            header = self._headers[i] if i < len(self._headers) else ""
            width = self._widths[i] if i < len(self._widths) else 0
            table.add_column(header, min_width=width, no_wrap=True)
        for values in self._pending:
            padded = values + [""] * (columns - len(values))
            table.add_row(*(Text(v) for v in padded))

        self._pending = []
        self._header_written = True
        self._print(self._out, table)

    def end_table(self) -> None:
        self.flush_rows()
        self._headers = None

    def empty(self, message: str) -> None:
        """Report an empty result on stderr so stdout stays data-only."""
        self.note(message)

    # -- JSON -------------------------------------------------------------

    def output(self, data: Any, raw: bool = False) -> None:
        """Write one JSON document (or template rendering) for JSON-ish modes.

        ``raw`` skips the list-to-envelope normalisation, for callers that
        deliberately emit a top-level array.
        """
        if not self.ctx.mode.is_json:
            return
        value = data if raw else normalize_document(data)
        value = filter_value(value, self.ctx)
        if self.ctx.template:
            self.write_line(render_template(to_jsonable(value), self.ctx.template))
            return
        self.write_line(dumps(value, compact=self.ctx.compact))

    def write_json_line(self, item: Any) -> None:
        """Write one JSONL record, filtered per item."""
        value = filter_value(item, self.ctx)
        if self.ctx.template:
            self.write_line(render_template(to_jsonable(value), self.ctx.template))
            return
        self.write_line(dumps(value, compact=True))


def write_error(output: OutputContext, error: BaseException, kind: str = "error") -> None:
    """Report an error: agent envelope on stdout in agent mode, else stderr."""
    formatter = Formatter(output)
    if output.mode is Mode.AGENT:
        envelope = {
            "kind": kind,
            "error": {
                "code": getattr(error, "code", "error"),
                "message": str(error),
            },
        }
        formatter.write_line(dumps(envelope, compact=output.compact))
        return
    if output.silent:
        return
    formatter.note(f"Error: {error}")

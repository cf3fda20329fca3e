"""jq queries applied to JSON output (--query).

Outside light mode, short key aliases in path steps (``.st``, ``.ib`` ...)
are rewritten to the full field names before the expression is compiled.
Light payloads use those short keys literally, so light output is queried
without rewriting.
"""

from __future__ import annotations

import re
from typing import Any

import jq

from ..errors import UserInputError


QUERY_ALIASES = {
    "st": "status",
    "ib": "inbox_id",
    "nm": "name",
    "em": "email",
    "ph": "phone_number",
    "ur": "unread_count",
    "la": "last_activity_at",
    "mc": "messages_count",
    "lm": "last_message",
    "cid": "contact_id",
    "aid": "assignee_id",
    "tid": "team_id",
    "ch": "channel_type",
    "av": "availability_status",
}

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_WORD = re.compile(r"\$?\w+")


class QueryError(UserInputError):
    """The query could not be compiled or evaluated."""


def normalize_expression(expression: str, literal: bool = False) -> str:
    """Undo shell escaping of ``!`` and expand path aliases.

    String literals and comments are copied unchanged, as are keys written
    in bracket form (``.["st"]``).
    """
    expression = expression.replace("\\!", "!")
    if literal:
        return expression

    out = []
    pos = 0
    length = len(expression)
    while pos < length:
        ch = expression[pos]
        if ch == '"':
            end = pos + 1
            while end < length and expression[end] != '"':
                end += 2 if expression[end] == "\\" else 1
            out.append(expression[pos:end + 1])
            pos = end + 1
        elif ch == "#":
            end = expression.find("\n", pos)
            end = length if end == -1 else end
            out.append(expression[pos:end])
            pos = end
        elif ch == ".":
            match = _IDENT.match(expression, pos + 1)
            if match:
                out.append("." + QUERY_ALIASES.get(match.group(0), match.group(0)))
                pos = match.end()
            else:
                out.append(ch)
                pos += 1
        elif _WORD.match(expression, pos):
            # variables and bare names ($st, select) are never aliases
            match = _WORD.match(expression, pos)
            out.append(match.group(0))
            pos = match.end()
        else:
            out.append(ch)
            pos += 1
    return "".join(out)


def _looks_like_root_array_query(expression: str) -> bool:
    return expression.strip().startswith((".[]", "[.[]", "(.[]"))


def _compile(expression: str):
    try:
        return jq.compile(expression)
    except ValueError as e:
        raise QueryError(f"invalid query {expression!r}: {e}") from e


def _run(program, data: Any) -> list:
    try:
        return program.input_value(data).all()
    except ValueError as e:
        raise QueryError(f"query failed: {e}") from e


def apply_query(data: Any, expression: str, literal: bool = False) -> Any:
    """Evaluate a jq expression against JSON-compatible data.

    One result is returned bare; zero or several come back as None or a list.
    """
    if not expression:
        return data

    expression = normalize_expression(expression, literal)
    program = _compile(expression)
    try:
        results = _run(program, data)
    except QueryError:
        # `.[] | .id` against an {items: [...]} envelope means the items.
        items = data.get("items") if isinstance(data, dict) else None
        if not (_looks_like_root_array_query(expression) and isinstance(items, list)):
            raise
        results = _run(program, items)

    if not results:
        return None
    if len(results) == 1:
        return results[0]
    return results

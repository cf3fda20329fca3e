"""Conversation listing."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..errors import UserInputError
from ..models import Conversation, format_timestamp
from ..output.format import Formatter
from ..output.pagination import ListConfig, ListContext, ListResult, ListSummary
from .light import force_light, light_conversations, light_transform

STATUSES = ("open", "resolved", "pending", "snoozed", "all")
ASSIGNEE_TYPES = ("me", "assigned", "unassigned")

HEADERS = ("ID", "INBOX", "STATUS", "PRIORITY", "UNREAD", "MSGS", "CREATED", "LAST_ACTIVITY")


def normalize_enum(flag: str, value: str, valid: Sequence[str]) -> str:
    """Accept an exact value or an unambiguous prefix (``o`` -> ``open``)."""
    value = (value or "").strip().lower()
    if value in valid:
        return value
    matches = [v for v in valid if value and v.startswith(value)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise UserInputError(f"ambiguous {flag} {value!r}: matches {', '.join(matches)}")
    raise UserInputError(f"invalid {flag} {value!r}: must be one of {', '.join(valid)}")


def split_labels(value: Any) -> Optional[list[str]]:
    if not value:
        return None
    if isinstance(value, str):
        value = value.split(",")
    labels = [v.strip() for v in value if v and v.strip()]
    return labels or None


def resolve_inbox_id(client, value: Any) -> Optional[int]:
    """Inbox filter by numeric id, or by name (case-insensitive)."""
    if value is None or value == "":
        return None
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    matches = [inbox for inbox in client.list_inboxes() if inbox.name.lower() == text.lower()]
    if not matches:
        raise UserInputError(f"inbox {text!r} not found")
    if len(matches) > 1:
        ids = ", ".join(str(inbox.id) for inbox in matches)
        raise UserInputError(f"inbox name {text!r} is ambiguous (ids: {ids})")
    return matches[0].id


def validate_filters(params: dict) -> None:
    """Raise UserInputError for bad filter values before any fetch."""
    normalize_enum("status", params.get("status") or "all", STATUSES)
    if params.get("assignee_type"):
        normalize_enum("assignee-type", params["assignee_type"], ASSIGNEE_TYPES)


def fetch_conversations(ctx: ListContext, client, page: int, page_size: int) -> ListResult[Conversation]:
    status = normalize_enum("status", ctx.param("status") or "all", STATUSES)
    assignee_type = ctx.param("assignee_type")
    if assignee_type:
        assignee_type = normalize_enum("assignee-type", assignee_type, ASSIGNEE_TYPES)

    conversations, meta = client.list_conversations(
        status=status,
        inbox_id=resolve_inbox_id(client, ctx.param("inbox_id")),
        assignee_type=assignee_type or None,
        team_id=ctx.param("team_id") or None,
        labels=split_labels(ctx.param("labels")),
        query=ctx.param("search") or None,
        page=page,
    )
    if ctx.param("unread_only"):
        conversations = [c for c in conversations if c.unread_count > 0]

    try:
        total_pages = int(meta.get("total_pages") or 0)
    except (TypeError, ValueError):
        total_pages = 0
    return ListResult(items=conversations, has_more=total_pages > 0 and page < total_pages)


def conversation_row(conv: Conversation) -> list[str]:
    display_id = conv.display_id if conv.display_id is not None else conv.id
    return [
        str(display_id),
        str(conv.inbox_id),
        conv.status,
        conv.priority or "-",
        str(conv.unread_count),
        str(conv.messages_count) if conv.messages_count else "-",
        format_timestamp(conv.created_at),
        format_timestamp(conv.last_activity_at),
    ]


def conversations_list_summary(ctx: ListContext, summary: ListSummary) -> None:
    formatter = Formatter(ctx.output)
    formatter.write_line("")
    if summary.all:
        formatter.write_line(f"Total: {summary.total_items} conversations ({summary.pages_fetched} pages)")
    else:
        formatter.write_line(f"Page {summary.page} ({summary.total_items} conversations)")


LIST_CONFIG: ListConfig[Conversation] = ListConfig(
    fetch=fetch_conversations,
    headers=HEADERS,
    row=conversation_row,
    disable_limit=True,
    agent_transform=light_transform(light_conversations),
    json_transform=light_transform(light_conversations),
    force_json=force_light,
    after_output=conversations_list_summary,
)

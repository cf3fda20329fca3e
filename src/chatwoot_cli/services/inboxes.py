"""Inbox listing."""

from __future__ import annotations

from ..models import Inbox
from ..output.pagination import ListConfig, ListContext, ListResult
from .light import force_light, light_inboxes, light_transform


def fetch_inboxes(ctx: ListContext, client, page: int, page_size: int) -> ListResult[Inbox]:
    return ListResult(items=client.list_inboxes(), has_more=False)


def inbox_row(inbox: Inbox) -> list[str]:
    return [
        str(inbox.id),
        inbox.name,
        inbox.channel_type,
        "true" if inbox.enable_auto_assignment else "false",
    ]


LIST_CONFIG: ListConfig[Inbox] = ListConfig(
    fetch=fetch_inboxes,
    headers=("ID", "NAME", "CHANNEL TYPE", "AUTO ASSIGN"),
    row=inbox_row,
    empty_message="No inboxes found",
    disable_pagination=True,
    agent_transform=light_transform(light_inboxes),
    json_transform=light_transform(light_inboxes),
    force_json=force_light,
)

"""Message listing for one conversation."""

from __future__ import annotations

from ..errors import UserInputError
from ..models import Message, format_timestamp
from ..output.pagination import ListConfig, ListContext, ListResult

CONTENT_WIDTH = 60


def fetch_messages(ctx: ListContext, client, page: int, page_size: int) -> ListResult[Message]:
    conversation_id = ctx.param("conversation_id")
    if not conversation_id or int(conversation_id) < 1:
        raise UserInputError("conversation id must be a positive integer")
    return ListResult(items=client.list_messages(int(conversation_id)), has_more=False)


def message_row(message: Message) -> list[str]:
    content = " ".join(message.content.split())
    if len(content) > CONTENT_WIDTH:
        content = content[:CONTENT_WIDTH - 3] + "..."
    sender = message.sender_name or (str(message.sender_id) if message.sender_id is not None else "-")
    return [
        str(message.id),
        message.message_type_name,
        sender,
        "yes" if message.private else "no",
        format_timestamp(message.created_at),
        content,
    ]


# Agent output uses the generic message summaries (path breadcrumbs included).
LIST_CONFIG: ListConfig[Message] = ListConfig(
    fetch=fetch_messages,
    headers=("ID", "TYPE", "SENDER", "PRIVATE", "CREATED", "CONTENT"),
    row=message_row,
    empty_message="No messages found",
    disable_pagination=True,
)

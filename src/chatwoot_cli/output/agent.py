"""Agent-mode shaping: compact summaries with breadcrumb paths.

Agent output is aimed at LLM tooling, so known resources are reduced to the
fields an agent needs to act, timestamps carry both unix and ISO forms, and
each item says where it lives (inbox > contact > conversation).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from ..models import Contact, Conversation, Message


def kind_from_command_path(path: str, program: str = "cw") -> str:
    """``"cw conversations list"`` -> ``"conversations.list"``."""
    parts = path.split()
    if parts and parts[0] == program:
        parts = parts[1:]
    if not parts:
        return "unknown"
    return ".".join(parts)


def _compact(values: dict) -> dict:
    return {k: v for k, v in values.items() if v is not None and v != [] and v != {}}


def timestamp(unix: Optional[int]) -> Optional[dict]:
    if not unix:
        return None
    iso = datetime.fromtimestamp(unix, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return {"unix": unix, "iso": iso}


def _contact_ref(meta: dict) -> Optional[dict]:
    source = meta.get("sender") or meta.get("contact")
    if not isinstance(source, dict):
        return None
    try:
        contact_id = int(source.get("id") or 0)
    except (TypeError, ValueError):
        contact_id = 0
    ref = _compact({
        "id": contact_id or None,
        "name": source.get("name") or None,
        "email": source.get("email") or None,
        "phone": source.get("phone_number") or None,
    })
    return ref or None


def conversation_path(conv: Conversation, contact: Optional[dict] = None) -> list[dict]:
    path = []
    if conv.inbox_id > 0:
        path.append({"type": "inbox", "id": conv.inbox_id})
    if conv.contact_id > 0:
        entry = {"type": "contact", "id": conv.contact_id}
        if contact and contact.get("name"):
            entry["label"] = contact["name"]
        path.append(entry)
    path.append({"type": "conversation", "id": conv.id})
    return path


def conversation_summary(conv: Conversation) -> dict:
    contact = _contact_ref(conv.meta)
    summary = {
        "id": conv.id,
        "display_id": conv.display_id if conv.display_id is not None else conv.id,
        "status": conv.status,
        "priority": conv.priority,
        "inbox_id": conv.inbox_id,
        "contact_id": conv.contact_id or None,
        "assignee_id": conv.assignee_id,
        "team_id": conv.team_id,
        "unread_count": conv.unread_count,
        "messages_count": conv.messages_count or None,
        "labels": conv.labels,
        "created_at": timestamp(conv.created_at),
        "last_activity_at": timestamp(conv.last_activity_at),
        "path": conversation_path(conv, contact),
        "contact": contact,
    }
    out = _compact(summary)
    # unread_count is always present, even when zero
    out["unread_count"] = conv.unread_count
    return out


def contact_summary(contact: Contact) -> dict:
    return _compact({
        "id": contact.id,
        "name": contact.name,
        "email": contact.email or None,
        "phone_number": contact.phone_number or None,
        "identifier": contact.identifier or None,
        "created_at": timestamp(contact.created_at),
        "last_activity_at": timestamp(contact.last_activity_at),
        "path": [{"type": "contact", "id": contact.id}],
    })


def message_summary(message: Message) -> dict:
    sender = None
    if message.sender_id is not None or message.sender_type:
        sender = _compact({
            "id": message.sender_id,
            "name": message.sender_name or None,
            "type": message.sender_type or None,
        })
    attachments = [
        _compact({
            "id": att.get("id"),
            "file_type": att.get("file_type"),
            "data_url": att.get("data_url"),
            "thumb_url": att.get("thumb_url"),
            "file_size": att.get("file_size"),
        })
        for att in message.attachments
    ]
    summary = _compact({
        "id": message.id,
        "conversation_id": message.conversation_id,
        "type": message.message_type_name,
        "content": message.content,
        "sender": sender,
        "created_at": timestamp(message.created_at),
        "attachments": attachments,
        "path": [
            {"type": "conversation", "id": message.conversation_id},
            {"type": "message", "id": message.id},
        ],
    })
    summary["private"] = message.private
    summary.setdefault("content", "")
    return summary


_SUMMARISERS = (
    (Conversation, conversation_summary),
    (Contact, contact_summary),
    (Message, message_summary),
)


def transform_list_items(items: Sequence[Any]) -> Any:
    """Summarise a homogeneous list of known resources; pass others through."""
    if not items:
        return list(items)
    for model, summarise in _SUMMARISERS:
        if all(isinstance(item, model) for item in items):
            return [summarise(item) for item in items]
    return items

"""Minimal lookup payloads for ``--light``.

Keys are deliberately short (``st``, ``ib``, ``nm``...) so that light output
stays small; queries run against them literally, without alias expansion.
"""

from __future__ import annotations

from typing import Callable, Optional

from ..models import Agent, Contact, Conversation, Inbox, Label

_SHORT_STATUS = {
    "open": "o",
    "pending": "p",
    "resolved": "r",
    "snoozed": "s",
}


def short_status(status: str) -> str:
    status = (status or "").strip()
    return _SHORT_STATUS.get(status, status)


def light_conversation_contact(conv: Conversation) -> Optional[dict]:
    """Contact reference, with meta.sender winning over contact_id."""
    contact: dict = {}
    if conv.contact_id > 0:
        contact["id"] = conv.contact_id
    sender = conv.meta.get("sender") if conv.meta else None
    if isinstance(sender, dict):
        try:
            sender_id = int(sender.get("id") or 0)
        except (TypeError, ValueError):
            sender_id = 0
        if sender_id > 0:
            contact["id"] = sender_id
        if isinstance(sender.get("name"), str):
            contact["nm"] = sender["name"]
    return contact or None


def light_conversation(conv: Conversation) -> dict:
    item = {
        "id": conv.id,
        "st": short_status(conv.status),
        "ib": conv.inbox_id,
        "ur": conv.unread_count,
    }
    if conv.last_activity_at:
        item["la"] = conv.last_activity_at
    if conv.messages_count:
        item["mc"] = conv.messages_count
    contact = light_conversation_contact(conv)
    if contact:
        item["ct"] = contact
    if conv.last_message:
        item["lm"] = conv.last_message
    return item


def light_conversations(conversations: list[Conversation]) -> list[dict]:
    return [light_conversation(c) for c in conversations]


def light_contacts(contacts: list[Contact]) -> list[dict]:
    out = []
    for contact in contacts:
        item = {"id": contact.id}
        for key, value in (
            ("nm", contact.name.strip()),
            ("em", contact.email.strip()),
            ("ph", contact.phone_number.strip()),
        ):
            if value:
                item[key] = value
        out.append(item)
    return out


def light_labels(labels: list[Label]) -> list[dict]:
    return [{"id": label.id, "t": label.title} for label in labels]


def light_inboxes(inboxes: list[Inbox]) -> list[dict]:
    return [{"id": inbox.id, "nm": inbox.name, "ch": inbox.channel_type} for inbox in inboxes]


def light_agents(agents: list[Agent]) -> list[dict]:
    return [{"id": agent.id, "nm": agent.name, "av": agent.availability_status} for agent in agents]


def light_transform(build: Callable[[list], list[dict]]):
    """ListConfig hook returning light items when ``--light`` was given.

    Returns None otherwise, so the engine keeps its default shaping.
    """
    def transform(ctx, client, items):
        if not ctx.param("light"):
            return None
        return build(items)
    return transform


def force_light(ctx) -> bool:
    return bool(ctx.param("light"))

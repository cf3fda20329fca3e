"""Per-resource list configurations and shared helpers."""

from .context import resolve_context_info
from . import agents, contacts, conversations, inboxes, labels, messages

LIST_CONFIGS = {
    "conversations": conversations.LIST_CONFIG,
    "contacts": contacts.LIST_CONFIG,
    "labels": labels.LIST_CONFIG,
    "inboxes": inboxes.LIST_CONFIG,
    "agents": agents.LIST_CONFIG,
    "messages": messages.LIST_CONFIG,
}

__all__ = [
    "resolve_context_info",
    "LIST_CONFIGS",
    "agents",
    "contacts",
    "conversations",
    "inboxes",
    "labels",
    "messages",
]

"""Chatwoot resource models."""

from .resources import Agent, Contact, Conversation, Inbox, Label, Message, format_timestamp

__all__ = ["Agent", "Contact", "Conversation", "Inbox", "Label", "Message", "format_timestamp"]

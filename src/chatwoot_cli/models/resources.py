"""Chatwoot API resource models."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Optional


def _int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _timestamp(value: Any) -> int:
    """Chatwoot sends unix seconds, occasionally as ISO-8601 strings."""
    if isinstance(value, str) and value and not value.lstrip("-").isdigit():
        try:
            return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
        except ValueError:
            return 0
    return _int(value)


class _Resource:
    """Shared serialisation: JSON-ready dict without empty optional fields."""

    def to_dict(self) -> dict:
        out = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.metadata.get("omitempty") and not value:
                continue
            out[f.name] = value
        return out


def _omit():
    return {"omitempty": True}


@dataclass
class Conversation(_Resource):
    """A support conversation."""
    id: int
    inbox_id: int = 0
    status: str = ""
    account_id: int = 0
    priority: Optional[str] = None
    assignee_id: Optional[int] = None
    team_id: Optional[int] = None
    contact_id: int = field(default=0, metadata=_omit())
    display_id: Optional[int] = None
    muted: bool = False
    unread_count: int = 0
    messages_count: int = field(default=0, metadata=_omit())
    created_at: int = 0
    last_activity_at: int = field(default=0, metadata=_omit())
    labels: list[str] = field(default_factory=list, metadata=_omit())
    meta: dict = field(default_factory=dict, metadata=_omit())
    custom_attributes: dict = field(default_factory=dict, metadata=_omit())
    last_message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Conversation":
        last = data.get("last_non_activity_message") or {}
        meta = data.get("meta") or {}
        contact_id = _int(data.get("contact_id"))
        if not contact_id:
            sender = meta.get("sender") if isinstance(meta, dict) else None
            if isinstance(sender, dict):
                contact_id = _int(sender.get("id"))
        return cls(
            id=_int(data.get("id")),
            inbox_id=_int(data.get("inbox_id")),
            status=data.get("status") or "",
            account_id=_int(data.get("account_id")),
            priority=data.get("priority"),
            assignee_id=_opt_int(data.get("assignee_id")),
            team_id=_opt_int(data.get("team_id")),
            contact_id=contact_id,
            display_id=_opt_int(data.get("display_id")),
            muted=bool(data.get("muted")),
            unread_count=_int(data.get("unread_count")),
            messages_count=_int(data.get("messages_count")),
            created_at=_timestamp(data.get("created_at")),
            last_activity_at=_timestamp(data.get("last_activity_at")),
            labels=list(data.get("labels") or []),
            meta=meta if isinstance(meta, dict) else {},
            custom_attributes=data.get("custom_attributes") or {},
            last_message=last.get("content") if isinstance(last, dict) else None,
        )


@dataclass
class Contact(_Resource):
    """A customer contact."""
    id: int
    name: str = ""
    email: str = field(default="", metadata=_omit())
    phone_number: str = field(default="", metadata=_omit())
    identifier: str = field(default="", metadata=_omit())
    thumbnail: str = field(default="", metadata=_omit())
    custom_attributes: dict = field(default_factory=dict, metadata=_omit())
    created_at: int = 0
    last_activity_at: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Contact":
        last = data.get("last_activity_at")
        return cls(
            id=_int(data.get("id")),
            name=data.get("name") or "",
            email=data.get("email") or "",
            phone_number=data.get("phone_number") or "",
            identifier=data.get("identifier") or "",
            thumbnail=data.get("thumbnail") or "",
            custom_attributes=data.get("custom_attributes") or {},
            created_at=_timestamp(data.get("created_at")),
            last_activity_at=_timestamp(last) if last is not None else None,
        )


@dataclass
class Message(_Resource):
    """A message inside a conversation."""
    id: int
    conversation_id: int = 0
    content: str = ""
    content_type: str = ""
    message_type: int = 0
    private: bool = False
    created_at: int = 0
    sender_id: Optional[int] = None
    sender_type: str = field(default="", metadata=_omit())
    sender_name: str = field(default="", metadata=_omit())
    attachments: list[dict] = field(default_factory=list, metadata=_omit())

    # message_type values used by the Chatwoot API
    TYPE_NAMES = {0: "incoming", 1: "outgoing", 2: "activity", 3: "template"}

    @property
    def message_type_name(self) -> str:
        return self.TYPE_NAMES.get(self.message_type, "unknown")

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        sender = data.get("sender") or {}
        message_type = data.get("message_type")
        if isinstance(message_type, str):
            names = {v: k for k, v in cls.TYPE_NAMES.items()}
            message_type = names.get(message_type, 0)
        return cls(
            id=_int(data.get("id")),
            conversation_id=_int(data.get("conversation_id")),
            content=data.get("content") or "",
            content_type=data.get("content_type") or "",
            message_type=_int(message_type),
            private=bool(data.get("private")),
            created_at=_timestamp(data.get("created_at")),
            sender_id=_opt_int(sender.get("id")) if sender else _opt_int(data.get("sender_id")),
            sender_type=(sender.get("type") if sender else data.get("sender_type")) or "",
            sender_name=sender.get("name", "") if sender else "",
            attachments=list(data.get("attachments") or []),
        )


@dataclass
class Label(_Resource):
    """An account-level label."""
    id: int
    title: str = ""
    description: str = ""
    color: str = ""
    show_on_sidebar: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Label":
        return cls(
            id=_int(data.get("id")),
            title=data.get("title") or "",
            description=data.get("description") or "",
            color=data.get("color") or "",
            show_on_sidebar=bool(data.get("show_on_sidebar")),
        )


@dataclass
class Inbox(_Resource):
    """A channel inbox."""
    id: int
    name: str = ""
    channel_type: str = ""
    avatar_url: str = field(default="", metadata=_omit())
    website_url: str = field(default="", metadata=_omit())
    greeting_enabled: bool = False
    greeting_message: str = field(default="", metadata=_omit())
    enable_auto_assignment: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Inbox":
        return cls(
            id=_int(data.get("id")),
            name=data.get("name") or "",
            channel_type=data.get("channel_type") or "",
            avatar_url=data.get("avatar_url") or "",
            website_url=data.get("website_url") or "",
            greeting_enabled=bool(data.get("greeting_enabled")),
            greeting_message=data.get("greeting_message") or "",
            enable_auto_assignment=bool(data.get("enable_auto_assignment")),
        )


@dataclass
class Agent(_Resource):
    """A support agent."""
    id: int
    name: str = ""
    email: str = ""
    role: str = ""
    availability_status: str = field(default="", metadata=_omit())
    thumbnail: str = field(default="", metadata=_omit())

    @classmethod
    def from_dict(cls, data: dict) -> "Agent":
        return cls(
            id=_int(data.get("id")),
            name=data.get("name") or "",
            email=data.get("email") or "",
            role=data.get("role") or "",
            availability_status=data.get("availability_status") or "",
            thumbnail=data.get("thumbnail") or "",
        )


def format_timestamp(unix: int) -> str:
    """Short UTC timestamp for tables, '-' when unknown."""
    if not unix:
        return "-"
    return datetime.fromtimestamp(unix, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")

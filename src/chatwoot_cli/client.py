"""Chatwoot REST API client."""

import copy
import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional

from .config import CWContext
from .errors import APIError, AuthenticationError, NetworkError
from .models import Agent, Contact, Conversation, Inbox, Label, Message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Reset values above this are unix timestamps, below it seconds from now.
UNIX_TIMESTAMP_THRESHOLD = 1_000_000_000


@dataclass
class RateLimitInfo:
    """Parsed rate limit headers from the most recent response."""
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset_at: Optional[datetime] = None
    reset_raw: str = ""

    def meta(self) -> Optional[dict]:
        """JSON-ready form for list metadata, or None when nothing is known."""
        meta = {}
        if self.limit is not None:
            meta["limit"] = self.limit
        if self.remaining is not None:
            meta["remaining"] = self.remaining
        if self.reset_at is not None:
            meta["reset_at"] = self.reset_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        elif self.reset_raw:
            meta["reset"] = self.reset_raw
        return meta or None


def _first_header(headers: Mapping[str, str], *names: str) -> str:
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in names:
        value = (lowered.get(name.lower()) or "").strip()
        if value:
            return value
    return ""


def parse_rate_limit_reset(value: str, now: datetime) -> Optional[datetime]:
    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        seconds = int(trimmed)
    except ValueError:
        seconds = None
    if seconds is not None:
        if seconds > UNIX_TIMESTAMP_THRESHOLD:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if seconds >= 0:
            return now + timedelta(seconds=seconds)
        return None
    try:
        parsed = parsedate_to_datetime(trimmed)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_rate_limit_info(headers: Optional[Mapping[str, str]], now: Optional[datetime] = None) -> Optional[RateLimitInfo]:
    """Read X-RateLimit-* (or RateLimit-*) headers."""
    if not headers:
        return None
    now = now or datetime.now(timezone.utc)
    limit = _first_header(headers, "X-RateLimit-Limit", "RateLimit-Limit")
    remaining = _first_header(headers, "X-RateLimit-Remaining", "RateLimit-Remaining")
    reset = _first_header(headers, "X-RateLimit-Reset", "RateLimit-Reset")
    if not (limit or remaining or reset):
        return None

    info = RateLimitInfo()
    if limit.isdigit():
        info.limit = int(limit)
    if remaining.isdigit():
        info.remaining = int(remaining)
    if reset:
        info.reset_raw = reset
        info.reset_at = parse_rate_limit_reset(reset, now)
    return info


@dataclass
class ChatwootConfig:
    """Connection settings for one Chatwoot account."""
    base_url: str
    api_token: str
    account_id: int
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_context(cls, context: CWContext) -> "ChatwootConfig":
        context.require()
        return cls(
            base_url=context.base_url.rstrip("/"),
            api_token=context.api_token,
            account_id=context.account_id,
        )


class ChatwootClient:
    """Client for the Chatwoot account API."""

    def __init__(self, config: ChatwootConfig):
        self.config = config
        self._last_rate_limit: Optional[RateLimitInfo] = None

    @classmethod
    def from_context(cls, context: CWContext) -> "ChatwootClient":
        return cls(ChatwootConfig.from_context(context))

    # -- plumbing ---------------------------------------------------------

    def account_path(self, path: str) -> str:
        if path and not path.startswith("/"):
            path = "/" + path
        return f"{self.config.base_url}/api/v1/accounts/{self.config.account_id}{path}"

    @property
    def last_rate_limit(self) -> Optional[RateLimitInfo]:
        """A copy of the rate limit info from the most recent response."""
        return copy.deepcopy(self._last_rate_limit)

    def set_rate_limit_info(self, info: Optional[RateLimitInfo]) -> None:
        self._last_rate_limit = info

    def rate_limit_meta(self) -> Optional[dict]:
        if self._last_rate_limit is None:
            return None
        return self._last_rate_limit.meta()

    def _request(self, method: str, path: str, params: Optional[dict] = None, body: Optional[dict] = None):
        """Make a request against the account API and decode the JSON reply."""
        url = self.account_path(path)
        if params:
            query = urllib.parse.urlencode(
                [(k, v) for k, v in params.items() if v not in (None, "", [])],
                doseq=True,
            )
            if query:
                url = f"{url}?{query}"

        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(
            url,
            data=data,
            method=method,
            headers={
                "api_access_token": self.config.api_token,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                self._last_rate_limit = parse_rate_limit_info(dict(response.headers.items()))
                raw = response.read().decode("utf-8")
                logger.debug("%s %s -> %s", method, url, response.status)
        except urllib.error.HTTPError as e:
            self._last_rate_limit = parse_rate_limit_info(dict(e.headers.items()) if e.headers else None)
            error_body = e.read().decode("utf-8", errors="replace")
            logger.debug("%s %s -> %s", method, url, e.code)
            if e.code == 401:
                raise AuthenticationError(f"authentication error: {error_body or e.reason}") from e
            raise APIError(e.code, error_body or str(e.reason), method=method, url=url) from e
        except (urllib.error.URLError, socket.timeout, ConnectionError) as e:
            raise NetworkError(f"{method} {url} failed: {getattr(e, 'reason', e)}") from e

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise APIError(200, f"invalid JSON response: {e}", method=method, url=url) from e

    # -- resources --------------------------------------------------------

    def list_conversations(
        self,
        status: Optional[str] = None,
        inbox_id: Optional[int] = None,
        assignee_type: Optional[str] = None,
        team_id: Optional[int] = None,
        labels: Optional[list[str]] = None,
        query: Optional[str] = None,
        page: int = 1,
    ) -> tuple[list[Conversation], dict]:
        """Return one page of conversations and the pagination meta."""
        result = self._request("GET", "/conversations", params={
            "status": status,
            "inbox_id": inbox_id,
            "assignee_type": assignee_type,
            "team_id": team_id,
            "labels[]": labels or None,
            "q": query,
            "page": page,
        }) or {}
        data = result.get("data") or {}
        conversations = [Conversation.from_dict(c) for c in data.get("payload") or []]
        return conversations, data.get("meta") or {}

    def list_contacts(self, page: int = 1, sort: Optional[str] = None) -> tuple[list[Contact], dict]:
        """Return one page of contacts and the pagination meta."""
        result = self._request("GET", "/contacts", params={"page": page, "sort": sort}) or {}
        contacts = [Contact.from_dict(c) for c in result.get("payload") or []]
        return contacts, result.get("meta") or {}

    def list_labels(self) -> list[Label]:
        result = self._request("GET", "/labels") or {}
        return [Label.from_dict(l) for l in result.get("payload") or []]

    def list_inboxes(self) -> list[Inbox]:
        result = self._request("GET", "/inboxes") or {}
        return [Inbox.from_dict(i) for i in result.get("payload") or []]

    def list_agents(self) -> list[Agent]:
        result = self._request("GET", "/agents") or []
        if isinstance(result, dict):
            result = result.get("payload") or []
        return [Agent.from_dict(a) for a in result]

    def list_messages(self, conversation_id: int) -> list[Message]:
        result = self._request("GET", f"/conversations/{conversation_id}/messages") or {}
        messages = []
        for m in result.get("payload") or []:
            m.setdefault("conversation_id", conversation_id)
            messages.append(Message.from_dict(m))
        return messages

"""Tests for the Chatwoot API client."""

import io
import json
import urllib.error
from datetime import datetime, timedelta, timezone
from email.message import Message as HeaderMessage
from unittest.mock import MagicMock, patch

import pytest

from chatwoot_cli.client import (
    ChatwootClient,
    ChatwootConfig,
    RateLimitInfo,
    parse_rate_limit_info,
    parse_rate_limit_reset,
)
from chatwoot_cli.config import CWContext
from chatwoot_cli.errors import APIError, AuthenticationError, NetworkError

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def headers(**values):
    msg = HeaderMessage()
    for key, value in values.items():
        msg[key.replace("_", "-")] = value
    return msg


def fake_response(body, status=200, response_headers=None):
    response = MagicMock()
    response.read.return_value = json.dumps(body).encode("utf-8") if body is not None else b""
    response.status = status
    response.headers = response_headers or headers()
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


@pytest.fixture
def client():
    return ChatwootClient(ChatwootConfig(base_url="https://chat.example.com", api_token="tok", account_id=7))


class TestParseRateLimitReset:
    def test_unix_timestamp(self):
        assert parse_rate_limit_reset("1714568400", NOW) == datetime(2024, 5, 1, 13, 0, tzinfo=timezone.utc)

    def test_seconds_from_now(self):
        assert parse_rate_limit_reset("30", NOW) == NOW + timedelta(seconds=30)

    def test_http_date(self):
        assert parse_rate_limit_reset("Wed, 01 May 2024 12:05:00 GMT", NOW) == datetime(2024, 5, 1, 12, 5, tzinfo=timezone.utc)

    def test_garbage(self):
        assert parse_rate_limit_reset("soon", NOW) is None

    def test_negative(self):
        assert parse_rate_limit_reset("-5", NOW) is None


class TestParseRateLimitInfo:
    def test_no_headers(self):
        assert parse_rate_limit_info({}) is None
        assert parse_rate_limit_info({"Content-Type": "application/json"}) is None

    def test_x_ratelimit_headers(self):
        info = parse_rate_limit_info(
            {"X-RateLimit-Limit": "60", "X-RateLimit-Remaining": "12", "X-RateLimit-Reset": "30"},
            NOW,
        )
        assert info.limit == 60
        assert info.remaining == 12
        assert info.reset_at == NOW + timedelta(seconds=30)

    def test_standard_headers_case_insensitive(self):
        info = parse_rate_limit_info({"ratelimit-limit": "100", "ratelimit-remaining": "99"}, NOW)
        assert (info.limit, info.remaining) == (100, 99)

    def test_meta_with_reset_at(self):
        info = RateLimitInfo(limit=60, remaining=1, reset_at=NOW, reset_raw="0")
        assert info.meta() == {"limit": 60, "remaining": 1, "reset_at": "2024-05-01T12:00:00Z"}

    def test_meta_keeps_unparsable_reset(self):
        info = parse_rate_limit_info({"X-RateLimit-Reset": "soon"}, NOW)
        assert info.meta() == {"reset": "soon"}


class TestClientRequests:
    def test_account_path(self, client):
        assert client.account_path("labels") == "https://chat.example.com/api/v1/accounts/7/labels"

    def test_from_context_requires_configuration(self):
        with pytest.raises(AuthenticationError):
            ChatwootClient.from_context(CWContext())

    def test_from_context_trims_base_url(self):
        context = CWContext(base_url="https://chat.example.com/", account_id=3, api_token="t")
        client = ChatwootClient.from_context(context)
        assert client.account_path("/x") == "https://chat.example.com/api/v1/accounts/3/x"

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_sends_token_and_decodes(self, mock_urlopen, client):
        mock_urlopen.return_value = fake_response({"payload": [{"id": 1, "title": "vip"}]})

        labels = client.list_labels()

        request = mock_urlopen.call_args[0][0]
        assert request.get_header("Api_access_token") == "tok"
        assert request.full_url == "https://chat.example.com/api/v1/accounts/7/labels"
        assert labels[0].title == "vip"

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_records_rate_limit(self, mock_urlopen, client):
        mock_urlopen.return_value = fake_response(
            {"payload": []},
            response_headers=headers(X_RateLimit_Limit="60", X_RateLimit_Remaining="59"),
        )
        client.list_inboxes()
        assert client.rate_limit_meta() == {"limit": 60, "remaining": 59}

    def test_last_rate_limit_is_a_copy(self, client):
        client.set_rate_limit_info(RateLimitInfo(limit=5))
        copy = client.last_rate_limit
        copy.limit = 99
        assert client.last_rate_limit.limit == 5

    def test_no_rate_limit_before_requests(self, client):
        assert client.rate_limit_meta() is None

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_conversation_filters_in_query(self, mock_urlopen, client):
        mock_urlopen.return_value = fake_response({
            "data": {"meta": {"total_pages": 2}, "payload": [{"id": 1, "status": "open"}]},
        })

        conversations, meta = client.list_conversations(status="open", labels=["a", "b"], page=2)

        url = mock_urlopen.call_args[0][0].full_url
        assert "status=open" in url
        assert "labels%5B%5D=a" in url and "labels%5B%5D=b" in url
        assert "page=2" in url
        assert "inbox_id" not in url
        assert conversations[0].status == "open"
        assert meta == {"total_pages": 2}

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_messages_carry_conversation_id(self, mock_urlopen, client):
        mock_urlopen.return_value = fake_response({"payload": [{"id": 5, "content": "hi"}]})
        messages = client.list_messages(12)
        assert messages[0].conversation_id == 12

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_agents_accepts_bare_list(self, mock_urlopen, client):
        mock_urlopen.return_value = fake_response([{"id": 1, "name": "Ann"}])
        assert client.list_agents()[0].name == "Ann"


class TestClientErrors:
    def http_error(self, code, body=b"nope"):
        return urllib.error.HTTPError(
            "https://chat.example.com/api/v1/accounts/7/labels", code, "err", headers(), io.BytesIO(body)
        )

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_not_found(self, mock_urlopen, client):
        mock_urlopen.side_effect = self.http_error(404)
        with pytest.raises(APIError) as exc_info:
            client.list_labels()
        assert exc_info.value.status == 404
        assert exc_info.value.exit_code == 4

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_unauthorized(self, mock_urlopen, client):
        mock_urlopen.side_effect = self.http_error(401)
        with pytest.raises(AuthenticationError):
            client.list_labels()

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_rate_limited(self, mock_urlopen, client):
        mock_urlopen.side_effect = self.http_error(429)
        with pytest.raises(APIError) as exc_info:
            client.list_labels()
        assert exc_info.value.code == "rate_limited"
        assert exc_info.value.exit_code == 6

    @patch("chatwoot_cli.client.urllib.request.urlopen")
    def test_network_error(self, mock_urlopen, client):
        mock_urlopen.side_effect = urllib.error.URLError("connection refused")
        with pytest.raises(NetworkError, match="connection refused"):
            client.list_labels()

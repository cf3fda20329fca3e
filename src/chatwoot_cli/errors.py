"""Error types for the Chatwoot CLI.

Every error the CLI reports derives from ChatwootError and carries the
process exit code the top-level handler uses.
"""

from __future__ import annotations

from typing import Optional


EXIT_OK = 0
EXIT_GENERIC = 1
EXIT_USAGE = 2
EXIT_AUTH = 3
EXIT_NOT_FOUND = 4
EXIT_FORBIDDEN = 5
EXIT_RATE_LIMITED = 6
EXIT_SERVER = 7
EXIT_NETWORK = 8
EXIT_CANCELLED = 130


class ChatwootError(Exception):
    """Base class for all CLI errors."""

    exit_code = EXIT_GENERIC
    code = "error"


class UserInputError(ChatwootError):
    """Invalid flag or argument value, detected before any network call."""

    exit_code = EXIT_USAGE
    code = "invalid_input"


class AuthenticationError(ChatwootError):
    """Raised when Chatwoot credentials are missing or rejected."""

    exit_code = EXIT_AUTH
    code = "unauthorized"

    def __init__(self, message: str, suggestions: list[str] | None = None):
        super().__init__(message)
        self.suggestions = suggestions or []


class UpstreamFetchError(ChatwootError):
    """A fetch adapter failed to produce a page."""

    code = "fetch_failed"


class APIError(UpstreamFetchError):
    """Non-2xx response from the Chatwoot API."""

    def __init__(self, status: int, message: str, method: str = "GET", url: str = ""):
        super().__init__(f"{method} {url} failed (status {status}): {message}")
        self.status = status
        self.method = method
        self.url = url
        self.body = message

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        if self.status == 401:
            return EXIT_AUTH
        if self.status == 403:
            return EXIT_FORBIDDEN
        if self.status == 404:
            return EXIT_NOT_FOUND
        if self.status == 429:
            return EXIT_RATE_LIMITED
        if self.status >= 500:
            return EXIT_SERVER
        return EXIT_GENERIC

    @property
    def code(self) -> str:  # type: ignore[override]
        return {
            401: "unauthorized",
            403: "forbidden",
            404: "not_found",
            429: "rate_limited",
        }.get(self.status, "server_error" if self.status >= 500 else "api_error")


class NetworkError(UpstreamFetchError):
    """The API could not be reached."""

    exit_code = EXIT_NETWORK
    code = "network_error"


class SafetyLimitError(ChatwootError):
    """Draining pages hit the --max-pages cap without a natural stop."""

    code = "safety_limit"

    def __init__(self, pages_fetched: int, items_fetched: int):
        super().__init__(
            f"safety limit reached: fetched {pages_fetched} pages ({items_fetched} items). "
            "Use --max-pages to increase the limit"
        )
        self.pages_fetched = pages_fetched
        self.items_fetched = items_fetched


class OutputWriteError(ChatwootError):
    """Writing to the destination stream failed (broken pipe, encoding)."""

    code = "output_write_failed"


class ListCancelledError(ChatwootError):
    """The invocation was cancelled before the next page was fetched."""

    exit_code = EXIT_CANCELLED
    code = "cancelled"


def exit_code_for(error: Optional[BaseException]) -> int:
    """Map an exception to a process exit code."""
    if error is None:
        return EXIT_OK
    if isinstance(error, ChatwootError):
        return error.exit_code
    if isinstance(error, KeyboardInterrupt):
        return EXIT_CANCELLED
    return EXIT_GENERIC

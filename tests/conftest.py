"""Shared fixtures for chatwoot_cli tests."""

import io

import pytest

from chatwoot_cli.output import ListResult, Mode, OutputContext


class FakeClient:
    """Stands in for ChatwootClient where only rate-limit telemetry matters."""

    def __init__(self, rate_limit=None):
        self.rate_limit = rate_limit

    def rate_limit_meta(self):
        return self.rate_limit


class PageSpy:
    """Fetch adapter serving canned pages and recording every call."""

    def __init__(self, pages):
        # pages: list of (items, has_more) or Exception instances
        self.pages = list(pages)
        self.calls = []

    def __call__(self, ctx, client, page, page_size):
        self.calls.append((page, page_size))
        index = len(self.calls) - 1
        if index >= len(self.pages):
            return ListResult(items=[], has_more=False)
        entry = self.pages[index]
        if isinstance(entry, Exception):
            raise entry
        items, has_more = entry
        return ListResult(items=list(items), has_more=has_more)

    @property
    def pages_requested(self):
        return [page for page, _ in self.calls]


@pytest.fixture
def streams():
    """(stdout, stderr) string buffers."""
    return io.StringIO(), io.StringIO()


@pytest.fixture
def make_output(streams):
    """Build an OutputContext writing to the captured streams."""
    out, err = streams

    def factory(mode=Mode.TEXT, **kwargs):
        return OutputContext(mode=mode, out=out, err=err, **kwargs)

    return factory


@pytest.fixture
def page_spy():
    """The PageSpy class, for building fetch adapters in tests."""
    return PageSpy


@pytest.fixture
def fake_client():
    return FakeClient()

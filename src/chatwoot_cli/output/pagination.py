"""List engine shared by every ``<resource> list`` command.

A resource describes itself once with a ListConfig (how to fetch a page,
how to render a row, how to reshape items for JSON and agent output).
``run_list`` then reconciles the render mode, the pagination strategy and
the page safety limit for one invocation.

Two pagination strategies exist:

* single page: one fetch, rendered as-is, ``has_more`` mirrors the API;
* drain all (``--all``): fetch pages in order until an empty page, a page
  reporting no more results, or the ``--max-pages`` cap (an error).

While draining, text and JSONL output stream page by page, so rows written
before a failure stay written. JSON and agent output buffer every page and
emit a single document at the end, so a failure writes nothing.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Iterator, Mapping, Optional, Sequence, TypeVar

from ..errors import (
    ChatwootError,
    ListCancelledError,
    SafetyLimitError,
    UpstreamFetchError,
    UserInputError,
)
from .agent import kind_from_command_path, transform_list_items
from .format import Formatter
from .modes import Mode, OutputContext, apply_force_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
DEFAULT_MIN_LIMIT = 10
DEFAULT_MAX_PAGES = 100

MORE_RESULTS_NOTE = "# More results available"


@dataclass(frozen=True)
class ListResult(Generic[T]):
    """One fetched page."""
    items: list[T]
    has_more: bool = False


@dataclass(frozen=True)
class ListSummary:
    """What a list invocation rendered."""
    page: int
    page_size: int
    pages_fetched: int
    total_items: int
    has_more: bool
    all: bool


@dataclass(frozen=True)
class ListOptions:
    """Per-invocation pagination flags. ``None`` means the config default."""
    page: Optional[int] = None
    limit: Optional[int] = None
    all: bool = False
    max_pages: Optional[int] = None


@dataclass(frozen=True)
class ListContext:
    """Everything a ListConfig hook may consult for one invocation."""
    output: OutputContext = field(default_factory=OutputContext)
    params: Mapping[str, Any] = field(default_factory=dict)
    command_path: str = ""
    cancel: Optional[threading.Event] = field(default=None, compare=False)

    def param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    @property
    def light(self) -> bool:
        return self.output.light

    def check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise ListCancelledError("cancelled")


Fetch = Callable[[ListContext, Any, int, int], ListResult[T]]
RowFunc = Callable[[T], Sequence[str]]
Transform = Callable[[ListContext, Any, list[T]], Any]
ForceJSON = Callable[[ListContext], bool]
AfterOutput = Callable[[ListContext, ListSummary], None]


@dataclass(frozen=True)
class ListConfig(Generic[T]):
    """How one resource plugs into the list engine. Built once, never mutated."""

    fetch: Fetch
    headers: Sequence[str] = ()
    row: Optional[RowFunc] = None
    empty_message: str = ""
    # No page/limit flags at all; always page 1 with default_limit.
    disable_pagination: bool = False
    # No --limit flag, for APIs with a fixed page size.
    disable_limit: bool = False
    default_page: int = DEFAULT_PAGE
    default_limit: int = DEFAULT_LIMIT
    min_limit: int = DEFAULT_MIN_LIMIT
    default_max_pages: int = DEFAULT_MAX_PAGES
    # Agent items; returning None falls back to the generic summariser.
    agent_transform: Optional[Transform] = None
    # JSON items; returning None keeps the raw items.
    json_transform: Optional[Transform] = None
    force_json: Optional[ForceJSON] = None
    # Endpoints without a pagination concept: never emit has_more/meta.
    strip_pagination: bool = False
    # Emit the items value itself as the document when forced or light.
    force_json_unwrap_items: bool = False
    # Text mode only, after the table.
    after_output: Optional[AfterOutput] = None


@dataclass(frozen=True)
class _Plan:
    page: int
    page_size: int
    max_pages: int
    drain: bool
    force_json: bool


def _plan(config: ListConfig, options: ListOptions, force_json: bool) -> _Plan:
    if config.disable_pagination:
        return _Plan(1, config.default_limit, 0, False, force_json)

    page = config.default_page if options.page is None else options.page
    if page < 1:
        raise UserInputError("page must be >= 1")

    if config.disable_limit or options.limit is None:
        page_size = config.default_limit
    else:
        page_size = options.limit
    page_size = max(page_size, config.min_limit)

    max_pages = config.default_max_pages if options.max_pages is None else options.max_pages
    if options.all and max_pages < 1:
        raise UserInputError("max-pages must be >= 1")

    return _Plan(page, page_size, max_pages, options.all, force_json)


def validate_options(config: ListConfig, options: ListOptions) -> None:
    """Raise UserInputError for invalid flags without fetching anything."""
    _plan(config, options, False)


def _fetch_page(config: ListConfig, ctx: ListContext, client: Any, page: int, page_size: int) -> ListResult:
    ctx.check_cancelled()
    logger.debug("fetching page %d (page size %d)", page, page_size)
    try:
        result = config.fetch(ctx, client, page, page_size)
    except ChatwootError:
        raise
    except Exception as e:
        raise UpstreamFetchError(str(e) or type(e).__name__) from e
    items = list(result.items or [])
    return ListResult(items=items, has_more=bool(result.has_more))


def iter_pages(
    config: ListConfig,
    ctx: ListContext,
    client: Any,
    start_page: int,
    page_size: int,
    max_pages: int,
    before_fetch: Optional[Callable[[int], None]] = None,
) -> Iterator[ListResult]:
    """Yield non-empty pages in order until a natural stop.

    Raises SafetyLimitError when ``max_pages`` pages were fetched and the API
    still reported more.
    """
    current = start_page
    pages_fetched = 0
    total_items = 0
    while True:
        if max_pages > 0 and pages_fetched >= max_pages:
            logger.debug("safety limit hit after %d pages", pages_fetched)
            raise SafetyLimitError(pages_fetched, total_items)
        if before_fetch is not None:
            before_fetch(current)
        result = _fetch_page(config, ctx, client, current, page_size)
        if not result.items:
            logger.debug("page %d is empty, stopping", current)
            return
        pages_fetched += 1
        total_items += len(result.items)
        yield result
        if not result.has_more:
            logger.debug("page %d is the last page", current)
            return
        current += 1


def rate_limit_meta(client: Any) -> Optional[dict]:
    """Rate-limit telemetry from the client's last response, if it has any."""
    getter = getattr(client, "rate_limit_meta", None)
    if not callable(getter):
        return None
    return getter()


def build_meta(
    client: Any,
    page: int,
    page_size: int,
    pages_fetched: int,
    total_items: int,
    fetch_all: bool,
) -> dict:
    meta = {
        "page": page,
        "page_size": page_size,
        "pages_fetched": pages_fetched,
        "total_items": total_items,
        "all": fetch_all,
    }
    rate_limit = rate_limit_meta(client)
    if rate_limit:
        meta["rate_limit"] = rate_limit
    return meta


def build_payload(
    config: ListConfig,
    ctx: ListContext,
    client: Any,
    items: list,
    *,
    page: int,
    page_size: int,
    pages_fetched: int,
    has_more: bool,
    fetch_all: bool,
    force_json: bool,
) -> tuple[Any, bool]:
    """Compose the JSON/agent document for ``items``.

    Returns ``(document, raw)``; ``raw`` means the document is the bare
    items value and must not be wrapped in an envelope.
    """
    mode = ctx.output.mode
    payload: dict = {}
    if mode is Mode.AGENT:
        payload["kind"] = kind_from_command_path(ctx.command_path)

    shaped: Any = items
    if mode is Mode.AGENT:
        shaped = None
        if config.agent_transform is not None:
            shaped = config.agent_transform(ctx, client, items)
        if shaped is None:
            shaped = transform_list_items(items)
    elif config.json_transform is not None:
        transformed = config.json_transform(ctx, client, items)
        if transformed is not None:
            shaped = transformed
    payload["items"] = shaped

    if not config.strip_pagination and not force_json:
        if config.disable_pagination:
            page_size = len(items)
        payload["has_more"] = has_more
        payload["meta"] = build_meta(client, page, page_size, pages_fetched, len(items), fetch_all)

    if config.force_json_unwrap_items and (force_json or ctx.output.light):
        return shaped, True
    return payload, False


def _render_rows(config: ListConfig, formatter: Formatter, items: list) -> None:
    for item in items:
        formatter.row(*config.row(item))


def _run_single(config: ListConfig, ctx: ListContext, client: Any, plan: _Plan, formatter: Formatter) -> ListSummary:
    result = _fetch_page(config, ctx, client, plan.page, plan.page_size)
    mode = ctx.output.mode
    summary = ListSummary(
        page=plan.page,
        page_size=plan.page_size,
        pages_fetched=1,
        total_items=len(result.items),
        has_more=result.has_more,
        all=False,
    )

    if mode is Mode.JSONL:
        for item in result.items:
            formatter.write_json_line(item)
        return summary

    if mode in (Mode.JSON, Mode.AGENT):
        document, raw = build_payload(
            config, ctx, client, result.items,
            page=plan.page,
            page_size=plan.page_size,
            pages_fetched=1,
            has_more=result.has_more,
            fetch_all=False,
            force_json=plan.force_json,
        )
        formatter.output(document, raw=raw)
        return summary

    if not result.items:
        if config.empty_message:
            formatter.empty(config.empty_message)
        return summary

    formatter.start_table(config.headers)
    _render_rows(config, formatter, result.items)
    formatter.end_table()
    if config.after_output is not None:
        config.after_output(ctx, summary)
    if result.has_more:
        formatter.note(MORE_RESULTS_NOTE)
    return summary


def _drain_jsonl(config: ListConfig, ctx: ListContext, client: Any, plan: _Plan, formatter: Formatter) -> ListSummary:
    pages_fetched = 0
    total_items = 0
    for result in iter_pages(config, ctx, client, plan.page, plan.page_size, plan.max_pages):
        for item in result.items:
            formatter.write_json_line(item)
            total_items += 1
        pages_fetched += 1
    return ListSummary(plan.page, plan.page_size, pages_fetched, total_items, False, True)


def _drain_text(config: ListConfig, ctx: ListContext, client: Any, plan: _Plan, formatter: Formatter) -> ListSummary:
    output = ctx.output

    def announce(page: int) -> None:
        if page > plan.page and not output.quiet and not output.silent:
            formatter.note(f"Fetching page {page}...")

    pages_fetched = 0
    total_items = 0
    started = False
    # Each page is flushed as it arrives; a later failure leaves earlier rows on stdout.
    for result in iter_pages(config, ctx, client, plan.page, plan.page_size, plan.max_pages, announce):
        if not started:
            formatter.start_table(config.headers)
            started = True
        _render_rows(config, formatter, result.items)
        formatter.flush_rows()
        total_items += len(result.items)
        pages_fetched += 1

    summary = ListSummary(plan.page, plan.page_size, pages_fetched, total_items, False, True)
    if not started:
        if config.empty_message:
            formatter.empty(config.empty_message)
        return summary

    formatter.end_table()
    if config.after_output is not None:
        config.after_output(ctx, summary)
    return summary


def _drain_buffered(config: ListConfig, ctx: ListContext, client: Any, plan: _Plan, formatter: Formatter) -> ListSummary:
    items: list = []
    pages_fetched = 0
    for result in iter_pages(config, ctx, client, plan.page, plan.page_size, plan.max_pages):
        items.extend(result.items)
        pages_fetched += 1

    document, raw = build_payload(
        config, ctx, client, items,
        page=plan.page,
        page_size=plan.page_size,
        pages_fetched=pages_fetched,
        has_more=False,
        fetch_all=True,
        force_json=plan.force_json,
    )
    formatter.output(document, raw=raw)
    return ListSummary(plan.page, plan.page_size, pages_fetched, len(items), False, True)


def run_list(
    config: ListConfig,
    ctx: ListContext,
    client: Any,
    options: Optional[ListOptions] = None,
) -> ListSummary:
    """Fetch, shape and render one list invocation."""
    options = options or ListOptions()
    force_json = bool(config.force_json is not None and config.force_json(ctx))
    plan = _plan(config, options, force_json)

    if force_json:
        ctx = replace(ctx, output=apply_force_json(ctx.output, True))
    formatter = Formatter(ctx.output)
    mode = ctx.output.mode

    if not plan.drain:
        return _run_single(config, ctx, client, plan, formatter)
    if mode is Mode.JSONL:
        return _drain_jsonl(config, ctx, client, plan, formatter)
    if mode is Mode.TEXT:
        return _drain_text(config, ctx, client, plan, formatter)
    return _drain_buffered(config, ctx, client, plan, formatter)

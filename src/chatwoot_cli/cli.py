"""Main CLI for the Chatwoot command-line client."""

import logging
import signal
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .client import ChatwootClient
from .config import CW_CONFIG_DIR, CW_CONFIG_FILES, CWContext, create_cw_config, resolve_context
from .errors import AuthenticationError, ChatwootError, ListCancelledError, UserInputError, exit_code_for
from .output import (
    Formatter,
    ListContext,
    ListOptions,
    Mode,
    OutputContext,
    parse_mode,
    run_list,
    validate_options,
    write_error,
)
from .output.pagination import DEFAULT_MAX_PAGES, DEFAULT_PAGE
from .services import LIST_CONFIGS, contacts, conversations, resolve_context_info

PROGRAM = "cw"

logger = logging.getLogger(__name__)

app = typer.Typer(
    name=PROGRAM,
    help="Chatwoot command-line client",
    no_args_is_help=True,
)


@dataclass
class AppState:
    """Settings resolved once by the root callback, shared by every command."""
    output: OutputContext
    context: CWContext
    debug: bool = False


def setup_logging(debug: bool) -> None:
    """Route library logging to stderr through Rich."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )


def get_client(context: CWContext) -> ChatwootClient:
    """Build the API client, raising AuthenticationError when unconfigured."""
    return ChatwootClient.from_context(context)


def fail(output: OutputContext, error: ChatwootError) -> None:
    """Report ``error`` and exit with its code."""
    write_error(output, error)
    if isinstance(error, AuthenticationError) and output.mode is not Mode.AGENT and not output.silent:
        formatter = Formatter(output)
        for suggestion in error.suggestions:
            formatter.note(f"  {suggestion}")
    raise typer.Exit(exit_code_for(error))


def _state(ctx: typer.Context) -> AppState:
    root = ctx.find_root()
    if not isinstance(root.obj, AppState):
        # Commands invoked without the root callback (library use).
        root.obj = AppState(
            output=OutputContext(out=sys.stdout, err=sys.stderr),
            context=resolve_context(),
        )
    return root.obj


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PROGRAM} {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None, "--output", "-o", envvar="CW_OUTPUT",
        help="Output format (text|json|jsonl|ndjson|agent)",
    ),
    compact: bool = typer.Option(False, "--compact", help="Compact JSON output"),
    query: str = typer.Option("", "--query", "-q", help="Filter JSON output with a path query (e.g. '.items[].id')"),
    template: str = typer.Option("", "--template", help="Render JSON output with a format template (e.g. '{id} {name}')"),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress progress notes on stderr"),
    silent: bool = typer.Option(False, "--silent", help="Suppress progress notes and error messages"),
    debug: bool = typer.Option(False, "--debug", help="Log HTTP requests and pagination to stderr"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit",
    ),
):
    """Chatwoot command-line client.

    Global options go before the command, e.g. ``cw -o json labels list``.
    """
    setup_logging(debug)
    fallback = OutputContext(quiet=quiet, silent=silent, out=sys.stdout, err=sys.stderr)
    try:
        context = resolve_context()
        mode = parse_mode(output if output is not None else context.output)
    except ChatwootError as e:
        fail(fallback, e)

    ctx.obj = AppState(
        output=OutputContext(
            mode=mode,
            compact=compact or context.compact,
            query=query,
            template=template,
            quiet=quiet,
            silent=silent,
            out=sys.stdout,
            err=sys.stderr,
        ),
        context=context,
        debug=debug,
    )
    logger.debug("output mode %s, config source %s", mode.value, context.config_source)


# ============================================================================
# List commands
# ============================================================================

PAGE_HELP = f"Page to fetch (default {DEFAULT_PAGE})"
ALL_HELP = "Fetch every page"
MAX_PAGES_HELP = f"Page cap for --all (default {DEFAULT_MAX_PAGES})"
LIGHT_HELP = "Minimal payload for lookups (implies JSON)"


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event) -> Iterator[None]:
    """First Ctrl-C stops before the next page fetch; a second one interrupts."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handle(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        logger.debug("interrupt received, stopping before the next page")
        cancel.set()

    previous = signal.signal(signal.SIGINT, handle)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _run_list(
    ctx: typer.Context,
    resource: str,
    params: Optional[dict] = None,
    options: Optional[ListOptions] = None,
    validate: Optional[Callable[[dict], None]] = None,
) -> None:
    """Run ``cw <resource> list`` through the list engine.

    ``params`` holds the resource's own flags; the ListConfig hooks read them
    through ``ListContext.param``.
    """
    state = _state(ctx)
    config = LIST_CONFIGS[resource]
    options = options or ListOptions()
    params = params or {}
    command_path = f"{PROGRAM} {resource} list"
    list_ctx = ListContext(
        output=state.output,
        params=params,
        command_path=command_path,
        cancel=threading.Event(),
    )
    try:
        validate_options(config, options)
        if validate is not None:
            validate(params)
        client = get_client(state.context)
        with _cancel_on_interrupt(list_ctx.cancel):
            run_list(config, list_ctx, client, options)
    except KeyboardInterrupt:
        fail(state.output, ListCancelledError("cancelled"))
    except ChatwootError as e:
        logger.debug("%s failed: %r", command_path, e)
        fail(state.output, e)


conversations_app = typer.Typer(help="Conversation commands", no_args_is_help=True)
app.add_typer(conversations_app, name="conversations")


@conversations_app.command("list")
def conversations_list(
    ctx: typer.Context,
    status: str = typer.Option("all", "--status", "-s", help="open|resolved|pending|snoozed|all (prefixes accepted)"),
    inbox_id: Optional[str] = typer.Option(None, "--inbox-id", "-I", help="Filter by inbox ID or name"),
    assignee_type: Optional[str] = typer.Option(None, "--assignee-type", help="me|assigned|unassigned"),
    team_id: Optional[int] = typer.Option(None, "--team-id", help="Filter by team ID"),
    labels: Optional[str] = typer.Option(None, "--labels", "-L", help="Filter by labels (comma-separated)"),
    search: Optional[str] = typer.Option(None, "--search", help="Filter by search query"),
    unread_only: bool = typer.Option(False, "--unread-only", help="Only conversations with unread messages"),
    light: bool = typer.Option(False, "--light", "--li", help=LIGHT_HELP),
    page: Optional[int] = typer.Option(None, "--page", "-p", help=PAGE_HELP),
    all_pages: bool = typer.Option(False, "--all", "-a", help=ALL_HELP),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", "-M", "--mp", help=MAX_PAGES_HELP),
):
    """List conversations filtered by status and inbox."""
    _run_list(
        ctx,
        "conversations",
        params={
            "status": status,
            "inbox_id": inbox_id,
            "assignee_type": assignee_type,
            "team_id": team_id,
            "labels": labels,
            "search": search,
            "unread_only": unread_only,
            "light": light,
        },
        options=ListOptions(page=page, all=all_pages, max_pages=max_pages),
        validate=conversations.validate_filters,
    )


contacts_app = typer.Typer(help="Contact commands", no_args_is_help=True)
app.add_typer(contacts_app, name="contacts")


@contacts_app.command("list")
def contacts_list(
    ctx: typer.Context,
    sort: Optional[str] = typer.Option(
        None, "--sort",
        help="name|email|phone_number|last_activity_at (aliases n|e|pn|la); prefix '-' for descending",
    ),
    light: bool = typer.Option(False, "--light", "--li", help=LIGHT_HELP),
    page: Optional[int] = typer.Option(None, "--page", "-p", help=PAGE_HELP),
    all_pages: bool = typer.Option(False, "--all", "-a", help=ALL_HELP),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", "-M", "--mp", help=MAX_PAGES_HELP),
):
    """List contacts in the account."""
    _run_list(
        ctx,
        "contacts",
        params={"sort": sort, "light": light},
        options=ListOptions(page=page, all=all_pages, max_pages=max_pages),
        validate=lambda params: contacts.parse_sort(params["sort"]),
    )


labels_app = typer.Typer(help="Label commands", no_args_is_help=True)
app.add_typer(labels_app, name="labels")


@labels_app.command("list")
def labels_list(
    ctx: typer.Context,
    light: bool = typer.Option(False, "--light", "--li", help=LIGHT_HELP),
):
    """List all labels."""
    _run_list(ctx, "labels", params={"light": light})


inboxes_app = typer.Typer(help="Inbox commands", no_args_is_help=True)
app.add_typer(inboxes_app, name="inboxes")


@inboxes_app.command("list")
def inboxes_list(
    ctx: typer.Context,
    light: bool = typer.Option(False, "--light", "--li", help=LIGHT_HELP),
):
    """List all inboxes."""
    _run_list(ctx, "inboxes", params={"light": light})


agents_app = typer.Typer(help="Agent commands", no_args_is_help=True)
app.add_typer(agents_app, name="agents")


@agents_app.command("list")
def agents_list(
    ctx: typer.Context,
    light: bool = typer.Option(False, "--light", "--li", help=LIGHT_HELP),
):
    """List all agents."""
    _run_list(ctx, "agents", params={"light": light})


messages_app = typer.Typer(help="Message commands", no_args_is_help=True)
app.add_typer(messages_app, name="messages")


@messages_app.command("list")
def messages_list(
    ctx: typer.Context,
    conversation_id: int = typer.Argument(..., help="Conversation ID"),
):
    """List messages in a conversation."""
    _run_list(ctx, "messages", params={"conversation_id": conversation_id})


# ============================================================================
# Config commands
# ============================================================================

config_app = typer.Typer(help="Configuration commands", no_args_is_help=True)
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    path: Optional[Path] = typer.Option(None, "--path", help="Directory to resolve config for"),
):
    """Show the resolved account configuration (token redacted)."""
    state = _state(ctx)
    try:
        info = resolve_context_info(path)
        formatter = Formatter(state.output)
        if state.output.mode.is_json:
            formatter.output(info)
            return
        formatter.start_table(["KEY", "VALUE"])
        for key, value in info.items():
            formatter.row(key, "-" if value is None else str(value))
        formatter.end_table()
    except ChatwootError as e:
        fail(state.output, e)


@config_app.command("init")
def config_init(
    ctx: typer.Context,
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory to initialize"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Chatwoot URL, e.g. https://app.chatwoot.com"),
    account_id: Optional[int] = typer.Option(None, "--account-id", help="Account ID"),
    api_token_env: Optional[str] = typer.Option(None, "--api-token-env", help="Environment variable holding the API token"),
    output: Optional[str] = typer.Option(None, "--default-output", help="Default output format for this directory"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config without asking"),
):
    """Initialize .cw/config.yaml in the current or given directory.

    API tokens are never written to the file; point ``--api-token-env`` at
    the environment variable that holds one.
    """
    state = _state(ctx)
    target_path = Path(path) if path else Path.cwd()
    formatter = Formatter(state.output)

    try:
        if not target_path.is_dir():
            raise UserInputError(f"directory not found: {target_path}")
        if output:
            parse_mode(output)

        existing = [target_path / CW_CONFIG_DIR / name for name in CW_CONFIG_FILES]
        existing = [p for p in existing if p.exists()]
        if existing and not force:
            if not typer.confirm(f"Config already exists at {existing[0]}. Overwrite?"):
                raise typer.Exit(0)

        if not base_url:
            base_url = typer.prompt("Chatwoot base URL", default="https://app.chatwoot.com")
        if account_id is None:
            account_id = typer.prompt("Account ID", type=int)
        if account_id < 1:
            raise UserInputError("account id must be a positive integer")

        config_path = create_cw_config(
            path=target_path,
            base_url=base_url,
            account_id=account_id,
            api_token_env=api_token_env,
            output=output,
        )
    except ChatwootError as e:
        fail(state.output, e)

    if state.output.mode.is_json:
        formatter.output({"created": str(config_path)})
        return
    formatter.write_line(f"Created: {config_path}")
    if not state.output.quiet:
        formatter.note(f"Make sure {api_token_env or 'CHATWOOT_API_TOKEN'} is set in your environment.")


def main() -> None:
    app(prog_name=PROGRAM)


if __name__ == "__main__":
    main()

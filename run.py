#!/usr/bin/env python3
"""
Snowbasin - Utah Snow & Transit Chat Assistant CLI

Run the API server, chat with it from the terminal, and inspect saved chats.
"""

import asyncio
import json
import signal
from typing import Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from src.client.session import ChatClientSession, ChatRequestError, GuestChatClientSession
from src.client.transcript import ChatState
from src.utilities.config import get_config
from src.utilities.utils import log_error, log_info, log_success, log_warning, setup_logging

app = typer.Typer(
    name="snowbasin",
    help="Snowbasin - chat assistant for Utah snow and transit questions",
    add_completion=False,
)

console = Console()


# ========== HELPER FUNCTIONS ==========
def print_banner():
    """Print Snowbasin banner"""
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║      ❄  S N O W B A S I N  ❄                                  ║
║                                                               ║
║         Utah Snow & Transit Assistant                         ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    console.print(banner, style="bold cyan")


def print_config_summary():
    """Print current configuration summary"""
    config = get_config(from_env=True)

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    # Model
    table.add_row("Model", config.llm.model)
    table.add_row("Ollama URL", config.llm.base_url)
    table.add_row("Temperature", str(config.llm.temperature))

    # Transit
    table.add_row("Transit Enrichment", "✓" if config.transit.enabled else "✗")
    table.add_row("Transit API", config.transit.base_url)

    # Storage / server
    table.add_row("Database", config.storage.database_path)
    table.add_row("Server", f"{config.server.host}:{config.server.port}")
    table.add_row("Auth Tokens", str(len(config.auth.tokens)))

    console.print(table)


def print_transcript(session: ChatClientSession):
    """Print the numbered transcript of the active chat"""
    if not len(session.transcript):
        console.print("(empty conversation)\n", style="dim")
        return

    for index, entry in enumerate(session.transcript, 1):
        style = "bold cyan" if entry.role == "user" else "green"
        console.print(f"[{style}][{index}] {entry.role}[/{style}]: {entry.content}")
    console.print()


class StreamView:
    """Renders the in-flight reply of a session with rich Live."""

    def __init__(self):
        self.live: Optional[Live] = None

    def render(self, session: ChatClientSession):
        text = session.streaming_content or "…"
        if session.stream_error:
            text += f"\n\n⚠️  {session.stream_error}"
        return Panel(Markdown(text), title="Snowbasin", border_style="green")

    def on_update(self, session: ChatClientSession):
        if self.live is not None and session.is_loading:
            self.live.update(self.render(session))


# ========== SERVE COMMAND ==========
@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """
    Start the API server.
    """
    import uvicorn

    print_banner()
    config = get_config(from_env=True)

    uvicorn.run(
        "backend.app:app",
        host=host or config.server.host,
        port=port or config.server.port,
        reload=reload,
        log_level=config.logging.level.value,
    )


# ========== CHAT COMMAND ==========
async def _live_turn(session: ChatClientSession, view: StreamView, start_turn) -> ChatState:
    """Run one turn, rendering it live; Ctrl-C aborts the reply."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, session.abort)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        # No signal handlers on this platform's event loop
        handler_installed = False

    try:
        with Live(view.render(session), console=console, refresh_per_second=12, transient=True) as live:
            view.live = live
            outcome = await start_turn()
    finally:
        view.live = None
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)

    return outcome


def _report_turn(session: ChatClientSession, outcome: ChatState):
    if outcome == ChatState.COMMITTED:
        last = session.transcript[-1] if len(session.transcript) else None
        if last is not None and last.role == "assistant":
            console.print(Panel(Markdown(last.content), title="Snowbasin", border_style="green"))
        if session.stream_error:
            console.print(f"⚠️  {session.stream_error}", style="yellow")
    elif outcome == ChatState.ABORTED:
        log_warning("Reply stopped.")
    elif outcome == ChatState.ERRORED:
        error = session.last_error
        if isinstance(error, ChatRequestError) and error.status_code == 401:
            log_error("Unauthorized: set SNOWBASIN_CLIENT_TOKEN or use --guest")
        else:
            log_error(f"Error: {error}")
    console.print()


async def _edit_command(session: ChatClientSession, view: StreamView, argument: str):
    parts = argument.split(maxsplit=1)
    if len(parts) != 2 or not parts[0].isdigit():
        console.print("Usage: /edit N new text\n", style="yellow")
        return

    index = int(parts[0]) - 1
    if not 0 <= index < len(session.transcript) or session.transcript[index].role != "user":
        console.print(f"Entry {parts[0]} is not one of your messages.\n", style="yellow")
        return

    entry = session.transcript[index]
    outcome = await _live_turn(session, view, lambda: session.edit_message(entry.id, parts[1]))
    _report_turn(session, outcome)


async def _chat_loop(session: ChatClientSession, view: StreamView, guest: bool):
    while True:
        try:
            text = await asyncio.to_thread(console.input, "[bold cyan]❯[/bold cyan] ")
        except (KeyboardInterrupt, EOFError):
            console.print("\n\n👋 Goodbye!", style="bold cyan")
            break

        text = text.strip()
        if not text:
            continue

        if text.lower() in ["exit", "quit", "q"]:
            console.print("\n👋 Goodbye!", style="bold cyan")
            break

        if text == "/new":
            await session.select_chat(None)
            log_info("New conversation")
            continue

        if text == "/history":
            print_transcript(session)
            continue

        if text.startswith("/edit"):
            await _edit_command(session, view, text[len("/edit"):].strip())
            continue

        if text == "/chats" and not guest:
            chats = await session.refresh_chats()
            _print_chat_table(chats)
            continue

        if text.startswith("/open") and not guest:
            chat_id = text[len("/open"):].strip()
            if await session.select_chat(chat_id):
                log_success(f"Opened chat {chat_id}")
                print_transcript(session)
            else:
                log_error(f"Could not open chat {chat_id}")
            continue

        outcome = await _live_turn(session, view, lambda: session.send(text))
        _report_turn(session, outcome)


async def _run_chat(base_url: str, token: Optional[str], guest: bool):
    view = StreamView()
    if guest:
        session = GuestChatClientSession(base_url=base_url, on_update=view.on_update)
    else:
        session = ChatClientSession(base_url=base_url, token=token, on_update=view.on_update)

    async with session:
        await _chat_loop(session, view, guest)


@app.command()
def chat(
    guest: bool = typer.Option(False, "--guest", "-g", help="Chat without an account (nothing is saved)"),
    base_url: Optional[str] = typer.Option(None, "--url", "-u", help="API base URL"),
    token: Optional[str] = typer.Option(None, "--token", "-t", help="Bearer token"),
):
    """
    Start an interactive chat.

    Commands: /new, /history, /edit N text, /chats, /open ID.
    Press Ctrl-C while a reply is streaming to stop it.
    Type 'exit' or 'quit' to exit.
    """
    print_banner()
    config = get_config(from_env=True)
    config.logging.log_to_console = False
    setup_logging(config)

    mode = "Guest Mode" if guest else "Chat Mode"
    console.print(f"💬 [bold cyan]{mode}[/bold cyan]", style="bold")
    console.print("   Ask about snow, lifts, buses or TRAX. Type 'exit' or 'quit' to exit.\n", style="dim")

    asyncio.run(_run_chat(base_url or config.client.base_url, token or config.client.token, guest))


# ========== CHATS COMMAND ==========
def _print_chat_table(chats: list[dict]):
    if not chats:
        console.print("No chats yet.\n", style="yellow")
        return

    table = Table(title="Chats", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Updated", style="green")
    table.add_column("Shared")

    for item in chats:
        shared = f"✓ {item.get('share_id')}" if item.get("shared") else ""
        table.add_row(item["id"], item["title"], item["updated_at"], shared)

    console.print(table)
    console.print()


@app.command()
def chats(
    base_url: Optional[str] = typer.Option(None, "--url", "-u", help="API base URL"),
    token: Optional[str] = typer.Option(None, "--token", "-t", help="Bearer token"),
):
    """
    List your saved chats.
    """
    config = get_config(from_env=True)

    async def fetch():
        async with ChatClientSession(
            base_url=base_url or config.client.base_url,
            token=token or config.client.token,
        ) as session:
            return await session.refresh_chats()

    _print_chat_table(asyncio.run(fetch()))


# ========== CONFIG COMMAND ==========
@app.command()
def config(
    show_all: bool = typer.Option(False, "--all", "-a", help="Show all configuration options"),
):
    """
    Show current configuration.
    """
    print_banner()

    if show_all:
        config = get_config(from_env=True)
        config_dict = config.model_dump()
        # Never print bearer tokens
        config_dict["auth"]["tokens"] = [f"***:{user}" for user in config_dict["auth"]["tokens"].values()]
        config_dict["transit"]["api_key"] = "***" if config_dict["transit"]["api_key"] else ""
        config_dict["client"]["token"] = "***" if config_dict["client"]["token"] else ""

        json_str = json.dumps(config_dict, indent=2)
        syntax = Syntax(json_str, "json", theme="monokai", line_numbers=True)

        console.print(Panel(syntax, title="Full Configuration", border_style="cyan"))
    else:
        print_config_summary()


# ========== MAIN ==========
@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-V", help="Show version"),
):
    """
    Snowbasin - Utah Snow & Transit Assistant
    """
    if version:
        config = get_config()
        console.print(f"Snowbasin v{config.version}", style="bold cyan")
        raise typer.Exit(0)

    if ctx.invoked_subcommand is None:
        print_banner()
        console.print("Use --help to see available commands\n", style="dim")


if __name__ == "__main__":
    app()

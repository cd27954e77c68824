"""Entry point when the package is executed as a module."""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import click
from pydantic import ValidationError

from map_assistant.chat import ChatError, ChatSession, ConversationStore, MapView, PollResult, create_map_registry
from map_assistant.chat.message_log import MessageLogView
from map_assistant.platform.clients.relay import RelayClient, RelayClientConfig, TransportError
from map_assistant.platform.observability import configure_logging, render_metrics, start_metrics_server
from map_assistant.platform.settings import Settings

EXIT_COMMANDS = {"/quit", "/exit"}


class TranscriptPrinter:
    """Echoes log entries and map changes not shown yet."""

    def __init__(self, session: ChatSession | None = None) -> None:
        self._session = session
        self._seen: set[str] = set()
        self._last_map: str | None = None

    def bind(self, session: ChatSession) -> None:
        self._session = session

    def forget(self) -> None:
        self._seen.clear()

    def mark_seen(self) -> None:
        """Treat everything currently in the log as already printed."""
        if self._session is None:
            return
        for index, entry in enumerate(self._session.log_view.entries):
            self._seen.add(entry.message_id or f"#{index}")
        self._last_map = self._session.map_view.describe()

    def on_update(self, result: PollResult) -> None:
        self.flush()

    def on_error(self, error: Exception) -> None:
        click.secho(f"! {error}", fg="red", err=True)

    def flush(self) -> None:
        if self._session is None:
            return
        self._print_entries(self._session.log_view)
        description = self._session.map_view.describe()
        if description != self._last_map:
            if self._last_map is not None:
                click.secho(f"[{description}]", fg="cyan")
            self._last_map = description

    def _print_entries(self, log_view: MessageLogView) -> None:
        for index, entry in enumerate(log_view.entries):
            key = entry.message_id or f"#{index}"
            if key in self._seen:
                continue
            self._seen.add(key)
            click.echo(f"{click.style(entry.label, bold=True)}: {entry.text}")


def _load_settings() -> Settings:
    try:
        settings = Settings()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration:\n{e}") from e
    configure_logging(settings.logging)
    return settings


def _print_metrics() -> None:
    body, _ = render_metrics()
    click.echo(body.decode(), err=True, nl=False)


def _build_transport(settings: Settings) -> RelayClient:
    return RelayClient(settings.relay.base_url, config=RelayClientConfig.from_settings(settings.relay))


async def _open(session: ChatSession) -> None:
    try:
        await session.open()
    except TransportError as e:
        raise click.ClickException(str(e)) from e


async def _run_turn(
    session: ChatSession,
    printer: TranscriptPrinter,
    submit: Callable[[ChatSession], Awaitable[str]] | None = None,
) -> bool:
    try:
        if submit is not None:
            await submit(session)
        await session.wait_for_reply()
    except (ChatError, TransportError, ValueError) as e:
        click.secho(f"! {e}", fg="red", err=True)
        return False
    finally:
        printer.flush()
    return True


async def _chat(settings: Settings) -> None:
    printer = TranscriptPrinter()
    async with _build_transport(settings) as transport:
        session = ChatSession.from_settings(
            settings.chat,
            transport,
            on_update=printer.on_update,
            on_error=printer.on_error,
        )
        printer.bind(session)
        await _open(session)
        printer.flush()
        if session.poller.is_running:
            await _run_turn(session, printer)

        click.secho("Where do you want to go? (/reset to start over, /quit to leave)", dim=True)
        while True:
            try:
                text = await asyncio.to_thread(click.prompt, "", prompt_suffix="> ", default="", show_default=False)
            except click.Abort:
                break
            text = text.strip()
            if text in EXIT_COMMANDS:
                break
            if text == "/reset":
                session.reset()
                printer.forget()
                await _open(session)
                click.secho("Started a new conversation.", dim=True)
                continue
            if not text:
                continue
            await _run_turn(session, printer, lambda s: s.send(text))


async def _one_shot(settings: Settings, submit: Callable[[ChatSession], Awaitable[str]]) -> bool:
    printer = TranscriptPrinter()
    async with _build_transport(settings) as transport:
        session = ChatSession.from_settings(
            settings.chat,
            transport,
            on_update=printer.on_update,
            on_error=printer.on_error,
        )
        printer.bind(session)
        await _open(session)
        printer.mark_seen()
        return await _run_turn(session, printer, submit)


@click.group()
def cli():
    """Talk to the map assistant through the chat relay."""


@cli.command()
@click.option("--metrics-port", type=int, help="Serve Prometheus metrics on this local port while chatting.")
def chat(metrics_port):
    """Interactive chat session."""
    settings = _load_settings()
    if metrics_port is not None:
        start_metrics_server(metrics_port)
    asyncio.run(_chat(settings))


@cli.command()
@click.argument("text")
@click.option("--print-metrics", is_flag=True, help="Write Prometheus metrics to stderr afterwards.")
def say(text, print_metrics):
    """Send one message and print the reply."""
    settings = _load_settings()
    ok = asyncio.run(_one_shot(settings, lambda s: s.send(text)))
    if print_metrics:
        _print_metrics()
    if not ok:
        sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--content-type", default="audio/webm", show_default=True)
@click.option("--print-metrics", is_flag=True, help="Write Prometheus metrics to stderr afterwards.")
def audio(path, content_type, print_metrics):
    """Send a recorded audio clip and print the reply."""
    settings = _load_settings()
    clip = path.read_bytes()
    ok = asyncio.run(_one_shot(settings, lambda s: s.send_audio(clip, content_type)))
    if print_metrics:
        _print_metrics()
    if not ok:
        sys.exit(1)


@cli.command()
def reset():
    """Forget the stored conversation."""
    settings = _load_settings()
    store = ConversationStore(settings.chat.state_path)
    store.clear()
    click.echo(f"Cleared {store.path}")


@cli.command()
def tools():
    """Print the function definitions to configure the assistant with."""
    click.echo(json.dumps(create_map_registry(MapView()).definitions(), indent=2))


if __name__ == "__main__":
    sys.exit(cli())

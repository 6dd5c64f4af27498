from __future__ import annotations

import signal
from functools import partial
from pathlib import Path

import anyio
import typer

from .. import __version__
from ..api_models import CallbackQuery, Message
from ..client import TelegramClient
from ..config import PollerSettings, load_settings
from ..errors import ConfigError, MalformedToken, TelestateError
from ..handlers import CallbackFuncHandler, HandlerChain, MessageFuncHandler
from ..logging import get_logger, setup_logging
from ..poller import Poller
from ..state import new_state
from .token import token_app

logger = get_logger(__name__)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Long-poll a Telegram bot and route updates to handlers.",
)
app.add_typer(token_app, name="token")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """telestate command line."""


async def _log_message(message: Message) -> None:
    logger.info(
        "bot.message",
        chat_id=message.chat.id,
        message_id=message.message_id,
        command=message.command or None,
        text=message.text,
    )


async def _log_callback(query: CallbackQuery) -> None:
    try:
        state = new_state().from_callback(query)
    except MalformedToken:
        logger.info("bot.callback", callback_id=query.id, data=query.data)
        return
    logger.info(
        "bot.callback",
        callback_id=query.id,
        chat_id=state.chat_id,
        message_id=state.message_id,
        prefix=state.prefix,
        state=state.name,
        action=state.action,
        key=state.key or None,
        value=state.value or None,
    )


def build_logging_chain() -> HandlerChain:
    return HandlerChain(
        message_handlers=[MessageFuncHandler(_log_message)],
        callback_handlers=[CallbackFuncHandler(_log_callback)],
    )


async def _cancel_on_signal(scope: anyio.CancelScope) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            logger.info("cli.signal", signal=signum)
            scope.cancel()
            return


async def _run_bot(settings: PollerSettings) -> None:
    client = TelegramClient(
        settings.bot_token,
        api_url=settings.api_url,
        timeout_s=settings.request_timeout,
    )
    poller = Poller(
        client,
        build_logging_chain(),
        limit=settings.poll_limit,
        timeout=settings.poll_timeout,
        allowed_updates=settings.allowed_updates,
        handler_timeout=settings.handler_timeout,
        error_backoff=settings.error_backoff,
    )
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(_cancel_on_signal, tg.cancel_scope)
            if settings.drain_backlog:
                try:
                    await poller.drain_backlog()
                except TelestateError as e:
                    logger.error("cli.backlog.failed", error=str(e))
            await poller.run_forever()
    finally:
        await client.close()


@app.command()
def run(
    config: Path | None = typer.Option(
        None, "--config", help="Path to telestate.toml."
    ),
    debug: bool = typer.Option(False, "--debug", help="Log debug output."),
) -> None:
    """Poll for updates and log every message and callback."""
    setup_logging(debug=debug)
    try:
        settings, cfg_path = load_settings(config)
    except ConfigError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from None
    logger.info("cli.config", path=str(cfg_path))
    anyio.run(partial(_run_bot, settings))


def main() -> None:
    app()

from __future__ import annotations

import enum
import re
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol

from .api_models import BotCommand, CallbackQuery, Message, Update
from .errors import HandlerFailure, InvalidSeparator
from .logging import get_logger
from .state import DEFAULT_SEPARATOR

logger = get_logger(__name__)


class Outcome(enum.Enum):
    HANDLED = "handled"
    NOT_INTERESTED = "not_interested"


MessageFunc = Callable[[Message], Awaitable[object]]
CallbackFunc = Callable[[CallbackQuery], Awaitable[object]]


class MessageHandler(Protocol):
    async def handle(self, message: Message) -> Outcome: ...


class CallbackHandler(Protocol):
    async def handle(self, query: CallbackQuery) -> Outcome: ...


class UpdateHandler(Protocol):
    async def dispatch(self, update: Update) -> bool: ...


class MessageFuncHandler:
    def __init__(self, func: MessageFunc) -> None:
        self.func = func

    async def handle(self, message: Message) -> Outcome:
        await self.func(message)
        return Outcome.HANDLED

    def __repr__(self) -> str:
        return f"MessageFuncHandler({self.func.__qualname__})"


class CallbackFuncHandler:
    def __init__(self, func: CallbackFunc) -> None:
        self.func = func

    async def handle(self, query: CallbackQuery) -> Outcome:
        await self.func(query)
        return Outcome.HANDLED

    def __repr__(self) -> str:
        return f"CallbackFuncHandler({self.func.__qualname__})"


class PrefixCallbackHandler:
    """Run ``func`` only for callback data whose first segment is ``prefix``."""

    def __init__(
        self,
        prefix: str,
        func: CallbackFunc,
        *,
        separator: str = DEFAULT_SEPARATOR,
    ) -> None:
        if not separator:
            raise InvalidSeparator(separator)
        self.prefix = prefix
        self.func = func
        self.separator = separator

    def matches(self, data: str | None) -> bool:
        parts = (data or "").split(self.separator)
        return len(parts) > 1 and parts[0] == self.prefix

    async def handle(self, query: CallbackQuery) -> Outcome:
        if not self.matches(query.data):
            return Outcome.NOT_INTERESTED
        await self.func(query)
        return Outcome.HANDLED

    def __repr__(self) -> str:
        return f"PrefixCallbackHandler({self.prefix!r})"


class CommandHandler:
    """Run ``func`` for messages whose leading ``/command`` matches.

    With ``is_regexp`` the command is a pattern searched in the command name,
    otherwise it is compared for equality. A leading slash is optional.
    """

    def __init__(
        self,
        command: str,
        func: MessageFunc,
        *,
        is_regexp: bool = False,
        description: str | None = None,
    ) -> None:
        self.command = command if is_regexp else command.removeprefix("/")
        self.func = func
        self.is_regexp = is_regexp
        self.description = description
        self._pattern = re.compile(command) if is_regexp else None

    def matches(self, message: Message) -> bool:
        command = message.command
        if not command:
            return False
        if self._pattern is not None:
            return self._pattern.search(command) is not None
        return command == self.command

    async def handle(self, message: Message) -> Outcome:
        if not self.matches(message):
            return Outcome.NOT_INTERESTED
        await self.func(message)
        return Outcome.HANDLED

    def bot_commands(self) -> list[BotCommand]:
        if self.is_regexp or not self.description:
            return []
        return [BotCommand(command=self.command, description=self.description)]

    def __repr__(self) -> str:
        return f"CommandHandler({self.command!r})"


class HandlerChain:
    """Ordered message and callback handlers for one bot.

    Handlers run in registration order. The first handler that raises stops
    the chain for that update and surfaces as :class:`HandlerFailure`.
    """

    def __init__(
        self,
        *,
        message_handlers: Iterable[MessageHandler] = (),
        callback_handlers: Iterable[CallbackHandler] = (),
    ) -> None:
        self.message_handlers: list[MessageHandler] = list(message_handlers)
        self.callback_handlers: list[CallbackHandler] = list(callback_handlers)

    def add_message_handlers(self, *handlers: MessageHandler) -> None:
        self.message_handlers.extend(handlers)

    def add_callback_handlers(self, *handlers: CallbackHandler) -> None:
        self.callback_handlers.extend(handlers)

    def on_message(self, func: MessageFunc) -> MessageFunc:
        self.add_message_handlers(MessageFuncHandler(func))
        return func

    def on_callback(self, func: CallbackFunc) -> CallbackFunc:
        self.add_callback_handlers(CallbackFuncHandler(func))
        return func

    def bot_commands(self) -> list[BotCommand]:
        commands: list[BotCommand] = []
        for handler in self.message_handlers:
            if isinstance(handler, CommandHandler):
                commands.extend(handler.bot_commands())
        return commands

    async def dispatch(self, update: Update) -> bool:
        handled = False
        message = update.message
        if message is not None and message.message_id != 0:
            for handler in self.message_handlers:
                outcome = await self._run(update, handler, handler.handle, message)
                handled = handled or outcome is Outcome.HANDLED
        query = update.callback_query
        if query is not None and query.id:
            for handler in self.callback_handlers:
                outcome = await self._run(update, handler, handler.handle, query)
                handled = handled or outcome is Outcome.HANDLED
        if not handled:
            logger.debug("dispatch.unhandled", update_id=update.update_id)
        return handled

    async def _run(
        self,
        update: Update,
        handler: MessageHandler | CallbackHandler,
        call: Callable[[Any], Awaitable[Outcome]],
        payload: Message | CallbackQuery,
    ) -> Outcome:
        try:
            return await call(payload)
        except Exception as exc:
            logger.error(
                "dispatch.handler_failed",
                update_id=update.update_id,
                handler=repr(handler),
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise HandlerFailure(update.update_id, handler, exc) from exc

"""Long-poll update dispatcher and conversation state store for Telegram bots."""

from __future__ import annotations

__version__ = "0.1.0"

from .client import BotClient, TelegramClient
from .handlers import (
    CallbackFuncHandler,
    CommandHandler,
    HandlerChain,
    MessageFuncHandler,
    Outcome,
    PrefixCallbackHandler,
)
from .poller import Poller
from .repository import MemoryStateRepository, StateRepository
from .state import State, new_state

__all__ = [
    "BotClient",
    "CallbackFuncHandler",
    "CommandHandler",
    "HandlerChain",
    "MemoryStateRepository",
    "MessageFuncHandler",
    "Outcome",
    "Poller",
    "PrefixCallbackHandler",
    "State",
    "StateRepository",
    "TelegramClient",
    "__version__",
    "new_state",
]

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Protocol

from .errors import MissingConversationId, StateNotFound
from .logging import get_logger
from .state import State

logger = get_logger(__name__)


class StateRepository(Protocol):
    def get(self, chat_id: str) -> list[State]: ...

    def get_by_message(self, chat_id: str, message_id: int) -> State: ...

    def get_by_key(self, key: str) -> list[State]: ...

    def set(self, state: State) -> None: ...

    def clear(self, state: State) -> None: ...


def _require_chat_id(state: State) -> None:
    if not state.chat_id:
        raise MissingConversationId(f"state chat_id can't be empty, state: {state!r}")


def _matches(template: State, stored: State) -> bool:
    if stored.chat_id != template.chat_id:
        return False
    if template.message_id != 0:
        return stored.message_id == template.message_id
    return stored.name == template.name


class MemoryStateRepository:
    """In-process state table keeping one active state per conversation."""

    def __init__(self, states: Mapping[str, list[State]] | None = None) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, list[State]] = {
            chat_id: list(items) for chat_id, items in (states or {}).items()
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def get(self, chat_id: str) -> list[State]:
        with self._lock:
            states = self._states.get(chat_id)
            if not states:
                raise StateNotFound(f"no state for chat {chat_id!r}")
            return list(states)

    def get_by_message(self, chat_id: str, message_id: int) -> State:
        for state in self.get(chat_id):
            if state.message_id == message_id:
                return state
        raise StateNotFound(f"no state for chat {chat_id!r} message {message_id}")

    def get_by_key(self, key: str) -> list[State]:
        with self._lock:
            found = [
                state
                for chat_id in sorted(self._states)
                for state in self._states[chat_id]
                if state.key == key
            ]
        if not found:
            raise StateNotFound(f"no state with key {key!r}")
        return found

    def set(self, state: State) -> None:
        _require_chat_id(state)
        with self._lock:
            self._states[state.chat_id] = [state]
        logger.debug(
            "state.set",
            chat_id=state.chat_id,
            message_id=state.message_id,
            state=state.name,
        )

    def clear(self, state: State) -> None:
        _require_chat_id(state)
        with self._lock:
            if state.message_id == 0 and not state.name:
                self._states.pop(state.chat_id, None)
                return
            stored = self._states.get(state.chat_id)
            if stored is None:
                return
            kept = [item for item in stored if not _matches(state, item)]
            if kept:
                self._states[state.chat_id] = kept
            else:
                del self._states[state.chat_id]
        logger.debug(
            "state.clear",
            chat_id=state.chat_id,
            message_id=state.message_id,
            state=state.name,
        )

"""Conversation state records and their callback-data token codec.

A state token packs routing information into one delimited string so that an
inline button's ``callback_data`` tells the bot which feature, step and action
it belongs to::

    <prefix>_<name>_<action>[_<key>[_<value...>]]

The value is the tail of the token and may itself contain the separator.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .api_models import CallbackQuery
from .errors import InvalidSeparator, MalformedToken

DEFAULT_SEPARATOR = "_"
MIN_TOKEN_PARTS = 3


@dataclass(frozen=True, slots=True)
class State:
    prefix: str = ""
    name: str = ""
    action: str = ""
    key: str = ""
    value: str = ""
    chat_id: str = ""
    message_id: int = 0
    separator: str = DEFAULT_SEPARATOR

    def __post_init__(self) -> None:
        if not self.separator:
            raise InvalidSeparator(self.separator)

    def serialize(self) -> str:
        action = self.action or self.name
        parts = [self.prefix, self.name, action]
        if self.key:
            parts.append(self.key)
        if self.value:
            parts.append(self.value)
        return self.separator.join(parts)

    def deserialize(self, token: str) -> State:
        """Decode ``token`` using this state as the template.

        The template's separator and conversation binding are kept. Its key
        and value are not: a token without a key or value segment yields an
        empty key or value.
        """
        parts = token.split(self.separator)
        if len(parts) < MIN_TOKEN_PARTS:
            raise MalformedToken(token, len(parts))
        return replace(
            self,
            prefix=parts[0],
            name=parts[1],
            action=parts[2],
            key=parts[3] if len(parts) > 3 else "",
            value=self.separator.join(parts[4:]),
        )

    def from_callback(self, query: CallbackQuery) -> State:
        state = self.deserialize(query.data or "")
        if query.message is None:
            return state
        return replace(
            state,
            chat_id=str(query.message.chat.id),
            message_id=query.message.message_id,
        )

    def __str__(self) -> str:
        return self.serialize()


def new_state() -> State:
    return State(separator=DEFAULT_SEPARATOR)

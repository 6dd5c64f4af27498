from __future__ import annotations

import re
from typing import Any

import msgspec

__all__ = [
    "BotCommand",
    "CallbackQuery",
    "Chat",
    "InlineKeyboardButton",
    "InlineKeyboardMarkup",
    "Message",
    "MessageEntity",
    "ResponseEnvelope",
    "ResponseParameters",
    "Update",
    "User",
]

_COMMAND_RE = re.compile(r"^/([a-zA-Z0-9_]*)")


class User(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    is_bot: bool = False
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class Chat(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    type: str | None = None
    title: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_forum: bool | None = None


class MessageEntity(msgspec.Struct, forbid_unknown_fields=False, omit_defaults=True):
    type: str
    offset: int
    length: int
    url: str | None = None
    language: str | None = None


class InlineKeyboardButton(msgspec.Struct, forbid_unknown_fields=False, omit_defaults=True):
    text: str
    url: str | None = None
    callback_data: str | None = None
    switch_inline_query: str | None = None
    switch_inline_query_current_chat: str | None = None
    pay: bool | None = None


class InlineKeyboardMarkup(msgspec.Struct, forbid_unknown_fields=False):
    inline_keyboard: list[list[InlineKeyboardButton]] = msgspec.field(
        default_factory=list
    )


class BotCommand(msgspec.Struct, forbid_unknown_fields=False):
    command: str
    description: str


class LabeledPrice(msgspec.Struct, forbid_unknown_fields=False):
    label: str
    amount: int


class Message(msgspec.Struct, forbid_unknown_fields=False):
    message_id: int
    chat: Chat
    date: int = 0
    from_: User | None = msgspec.field(default=None, name="from")
    sender_chat: Chat | None = None
    reply_to_message: Message | None = None
    edit_date: int | None = None
    media_group_id: str | None = None
    author_signature: str | None = None
    text: str | None = None
    entities: list[MessageEntity] | None = None
    caption: str | None = None
    caption_entities: list[MessageEntity] | None = None
    reply_markup: InlineKeyboardMarkup | None = None

    @property
    def command(self) -> str:
        """Leading ``/command`` token without the slash, or ``""``."""
        match = _COMMAND_RE.match(self.text or "")
        if match is None:
            return ""
        return match.group(1)

    @property
    def is_command(self) -> bool:
        return self.command != ""


class CallbackQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str
    from_: User | None = msgspec.field(default=None, name="from")
    message: Message | None = None
    inline_message_id: str | None = None
    chat_instance: str | None = None
    data: str | None = None
    game_short_name: str | None = None


class Update(msgspec.Struct, forbid_unknown_fields=False):
    update_id: int
    message: Message | None = None
    edited_message: Message | None = None
    channel_post: Message | None = None
    edited_channel_post: Message | None = None
    callback_query: CallbackQuery | None = None


class ResponseParameters(msgspec.Struct, forbid_unknown_fields=False):
    migrate_to_chat_id: int | None = None
    retry_after: int | None = None


class ResponseEnvelope(msgspec.Struct, forbid_unknown_fields=False):
    ok: bool
    result: Any = None
    error_code: int | None = None
    description: str | None = None
    parameters: ResponseParameters | None = None

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol

import msgspec

from .api_models import (
    BotCommand,
    InlineKeyboardMarkup,
    LabeledPrice,
    MessageEntity,
)
from .errors import InvalidRequest

__all__ = [
    "AnswerCallbackQueryRequest",
    "DeleteMessageRequest",
    "EditMessageReplyMarkupRequest",
    "EditMessageTextRequest",
    "InvoiceRequest",
    "MessageRequest",
    "Request",
    "SetMyCommandsRequest",
    "UpdatesRequest",
]

ChatId = int | str


class Request(Protocol):
    method: ClassVar[str]

    def params(self) -> dict[str, Any]: ...


def _to_builtins(value: Any) -> Any:
    return msgspec.to_builtins(value)


def _require_target(
    chat_id: ChatId | None, message_id: int, inline_message_id: str | None
) -> None:
    if (chat_id is None or message_id == 0) and not inline_message_id:
        raise InvalidRequest(
            "required fields not defined, "
            f"chat_id: {chat_id!r}, message_id: {message_id}, "
            f"inline_message_id: {inline_message_id!r}"
        )


def _target_params(
    chat_id: ChatId | None, message_id: int, inline_message_id: str | None
) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if chat_id is not None:
        params["chat_id"] = chat_id
    if message_id != 0:
        params["message_id"] = message_id
    if inline_message_id:
        params["inline_message_id"] = inline_message_id
    return params


@dataclass(frozen=True, slots=True)
class UpdatesRequest:
    """getUpdates parameters; zero or empty values are not transmitted."""

    method: ClassVar[str] = "getUpdates"

    offset: int = 0
    limit: int = 0
    timeout: int = 0
    allowed_updates: tuple[str, ...] = ()

    def params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.offset != 0:
            params["offset"] = self.offset
        if self.limit > 0:
            params["limit"] = self.limit
        if self.timeout > 0:
            params["timeout"] = self.timeout
        if self.allowed_updates:
            params["allowed_updates"] = list(self.allowed_updates)
        return params


@dataclass(frozen=True, slots=True)
class MessageRequest:
    method: ClassVar[str] = "sendMessage"

    chat_id: ChatId | None
    text: str
    parse_mode: str | None = None
    entities: list[MessageEntity] | None = None
    disable_web_page_preview: bool = False
    disable_notification: bool = False
    reply_to_message_id: int = 0
    allow_sending_without_reply: bool = False
    reply_markup: InlineKeyboardMarkup | None = None

    def params(self) -> dict[str, Any]:
        if self.chat_id is None or not self.text:
            raise InvalidRequest(
                "required fields not defined, "
                f"chat_id: {self.chat_id!r}, text: {self.text!r}"
            )
        params: dict[str, Any] = {"chat_id": self.chat_id, "text": self.text}
        if self.parse_mode:
            params["parse_mode"] = self.parse_mode
        if self.entities:
            params["entities"] = _to_builtins(self.entities)
        if self.disable_web_page_preview:
            params["disable_web_page_preview"] = True
        if self.disable_notification:
            params["disable_notification"] = True
        if self.reply_to_message_id > 0:
            params["reply_to_message_id"] = self.reply_to_message_id
        if self.allow_sending_without_reply:
            params["allow_sending_without_reply"] = True
        if self.reply_markup is not None:
            params["reply_markup"] = _to_builtins(self.reply_markup)
        return params


@dataclass(frozen=True, slots=True)
class EditMessageTextRequest:
    method: ClassVar[str] = "editMessageText"

    text: str
    chat_id: ChatId | None = None
    message_id: int = 0
    inline_message_id: str | None = None
    parse_mode: str | None = None
    entities: list[MessageEntity] | None = None
    disable_web_page_preview: bool = False
    reply_markup: InlineKeyboardMarkup | None = None

    def params(self) -> dict[str, Any]:
        _require_target(self.chat_id, self.message_id, self.inline_message_id)
        if not self.text:
            raise InvalidRequest("required field not defined, text is empty")
        params = _target_params(self.chat_id, self.message_id, self.inline_message_id)
        params["text"] = self.text
        if self.parse_mode:
            params["parse_mode"] = self.parse_mode
        if self.entities:
            params["entities"] = _to_builtins(self.entities)
        if self.disable_web_page_preview:
            params["disable_web_page_preview"] = True
        if self.reply_markup is not None:
            params["reply_markup"] = _to_builtins(self.reply_markup)
        return params


@dataclass(frozen=True, slots=True)
class EditMessageReplyMarkupRequest:
    method: ClassVar[str] = "editMessageReplyMarkup"

    chat_id: ChatId | None = None
    message_id: int = 0
    inline_message_id: str | None = None
    reply_markup: InlineKeyboardMarkup | None = None

    def params(self) -> dict[str, Any]:
        _require_target(self.chat_id, self.message_id, self.inline_message_id)
        params = _target_params(self.chat_id, self.message_id, self.inline_message_id)
        if self.reply_markup is not None:
            params["reply_markup"] = _to_builtins(self.reply_markup)
        return params


@dataclass(frozen=True, slots=True)
class AnswerCallbackQueryRequest:
    method: ClassVar[str] = "answerCallbackQuery"

    callback_query_id: str
    text: str | None = None
    show_alert: bool = False
    url: str | None = None
    cache_time: int = 0

    def params(self) -> dict[str, Any]:
        if not self.callback_query_id:
            raise InvalidRequest(
                "required fields not defined, callback_query_id is empty"
            )
        params: dict[str, Any] = {
            "callback_query_id": self.callback_query_id,
            "show_alert": self.show_alert,
        }
        if self.text:
            params["text"] = self.text
        if self.url:
            params["url"] = self.url
        if self.cache_time != 0:
            params["cache_time"] = self.cache_time
        return params


@dataclass(frozen=True, slots=True)
class DeleteMessageRequest:
    method: ClassVar[str] = "deleteMessage"

    chat_id: ChatId
    message_id: int

    def params(self) -> dict[str, Any]:
        return {"chat_id": self.chat_id, "message_id": self.message_id}


@dataclass(frozen=True, slots=True)
class SetMyCommandsRequest:
    method: ClassVar[str] = "setMyCommands"

    commands: list[BotCommand] = field(default_factory=list)
    scope: dict[str, Any] | None = None
    language_code: str | None = None

    def params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"commands": _to_builtins(self.commands)}
        if self.scope is not None:
            params["scope"] = self.scope
        if self.language_code:
            params["language_code"] = self.language_code
        return params


@dataclass(frozen=True, slots=True)
class InvoiceRequest:
    """sendInvoice parameters; prices are amounts in the currency's smallest unit."""

    method: ClassVar[str] = "sendInvoice"

    chat_id: ChatId | None
    title: str
    description: str
    payload: str
    provider_token: str
    currency: str
    prices: list[LabeledPrice] = field(default_factory=list)
    reply_markup: InlineKeyboardMarkup | None = None

    def params(self) -> dict[str, Any]:
        required = (
            self.title,
            self.description,
            self.payload,
            self.provider_token,
            self.currency,
        )
        if self.chat_id is None or not all(required) or not self.prices:
            raise InvalidRequest(
                "required fields not defined, "
                f"chat_id: {self.chat_id!r}, title: {self.title!r}, "
                f"description: {self.description!r}, payload: {self.payload!r}, "
                f"currency: {self.currency!r}, prices: {len(self.prices)}"
            )
        params: dict[str, Any] = {
            "chat_id": self.chat_id,
            "title": self.title,
            "description": self.description,
            "payload": self.payload,
            "provider_token": self.provider_token,
            "currency": self.currency,
            "prices": _to_builtins(self.prices),
        }
        if self.reply_markup is not None:
            params["reply_markup"] = _to_builtins(self.reply_markup)
        return params

"""Shortcuts for answering a received message or callback in place.

Each helper builds the matching request from the message's chat and id and
sends it through any :class:`~telestate.client.BotClient`.
"""

from __future__ import annotations

from dataclasses import replace

from .api_models import CallbackQuery, InlineKeyboardMarkup, Message
from .client import BotClient, decode_message
from .logging import get_logger
from .requests import (
    AnswerCallbackQueryRequest,
    DeleteMessageRequest,
    EditMessageReplyMarkupRequest,
    EditMessageTextRequest,
    MessageRequest,
    Request,
)

logger = get_logger(__name__)

__all__ = [
    "answer_callback",
    "delete_message",
    "edit",
    "edit_keyboard",
    "edit_message",
    "edit_text",
    "reply",
    "reply_text",
    "send",
    "send_copy",
    "send_text",
]


async def _send(client: BotClient, request: Request) -> Message:
    return decode_message(request.method, await client.send_request(request))


async def send(client: BotClient, message: Message, request: MessageRequest) -> Message:
    """Send ``request`` to the chat ``message`` came from."""
    return await _send(client, replace(request, chat_id=message.chat.id))


async def send_text(client: BotClient, message: Message, text: str) -> Message:
    return await _send(client, MessageRequest(chat_id=message.chat.id, text=text))


async def send_copy(client: BotClient, message: Message) -> Message:
    """Post the message's current text and keyboard as a new message."""
    return await _send(
        client,
        MessageRequest(
            chat_id=message.chat.id,
            text=message.text or "",
            reply_markup=message.reply_markup,
        ),
    )


async def reply(client: BotClient, message: Message, request: MessageRequest) -> Message:
    return await _send(
        client,
        replace(
            request,
            chat_id=message.chat.id,
            reply_to_message_id=message.message_id,
        ),
    )


async def reply_text(client: BotClient, message: Message, text: str) -> Message:
    return await _send(
        client,
        MessageRequest(
            chat_id=message.chat.id,
            text=text,
            reply_to_message_id=message.message_id,
        ),
    )


async def edit(
    client: BotClient, message: Message, request: EditMessageTextRequest
) -> Message:
    """Apply ``request`` to ``message``, overriding any target it names."""
    return await _send(
        client,
        replace(
            request,
            chat_id=message.chat.id,
            message_id=message.message_id,
            inline_message_id=None,
        ),
    )


async def edit_text(client: BotClient, message: Message, text: str) -> Message:
    return await _send(
        client,
        EditMessageTextRequest(
            text=text, chat_id=message.chat.id, message_id=message.message_id
        ),
    )


async def edit_message(client: BotClient, message: Message) -> Message:
    """Push the local text and keyboard of ``message`` back to the chat."""
    return await _send(
        client,
        EditMessageTextRequest(
            text=message.text or "",
            chat_id=message.chat.id,
            message_id=message.message_id,
            reply_markup=message.reply_markup,
        ),
    )


async def edit_keyboard(
    client: BotClient, message: Message, keyboard: InlineKeyboardMarkup
) -> Message:
    return await _send(
        client,
        EditMessageReplyMarkupRequest(
            chat_id=message.chat.id,
            message_id=message.message_id,
            reply_markup=keyboard,
        ),
    )


async def delete_message(client: BotClient, message: Message) -> bool:
    result = await client.send_request(
        DeleteMessageRequest(chat_id=message.chat.id, message_id=message.message_id)
    )
    logger.debug(
        "actions.deleted",
        chat_id=message.chat.id,
        message_id=message.message_id,
        result=result,
    )
    return bool(result)


async def answer_callback(
    client: BotClient,
    query: CallbackQuery,
    text: str | None = None,
    *,
    show_alert: bool = False,
) -> bool:
    """Acknowledge ``query`` so the client stops showing a progress spinner."""
    result = await client.send_request(
        AnswerCallbackQueryRequest(
            callback_query_id=query.id, text=text, show_alert=show_alert
        )
    )
    return bool(result)

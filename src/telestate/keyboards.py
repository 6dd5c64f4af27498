from __future__ import annotations

from collections.abc import Iterable, Sequence

from .api_models import InlineKeyboardButton, InlineKeyboardMarkup
from .errors import InvalidRequest
from .state import State

CALLBACK_DATA_MAX_BYTES = 64


def state_button(text: str, state: State) -> InlineKeyboardButton:
    """An inline button whose callback data is the serialized ``state``."""
    data = state.serialize()
    size = len(data.encode("utf-8"))
    if size > CALLBACK_DATA_MAX_BYTES:
        raise InvalidRequest(
            f"callback data {data!r} is {size} bytes, "
            f"limit is {CALLBACK_DATA_MAX_BYTES}"
        )
    return InlineKeyboardButton(text=text, callback_data=data)


def state_keyboard(
    rows: Iterable[Sequence[tuple[str, State]]],
) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [state_button(text, state) for text, state in row] for row in rows
        ]
    )

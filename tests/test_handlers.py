import pytest

from telestate.api_models import BotCommand, CallbackQuery, Message, Update
from telestate.errors import HandlerFailure, InvalidSeparator
from telestate.handlers import (
    CallbackFuncHandler,
    CommandHandler,
    HandlerChain,
    MessageFuncHandler,
    Outcome,
    PrefixCallbackHandler,
)
from tests.fakes import callback_update, make_message, message_update


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def message(self, name: str, *, fail: bool = False):
        async def handler(message: Message) -> None:
            self.calls.append(name)
            if fail:
                raise RuntimeError(f"{name} failed")

        return handler

    def callback(self, name: str, *, fail: bool = False):
        async def handler(query: CallbackQuery) -> None:
            self.calls.append(name)
            if fail:
                raise RuntimeError(f"{name} failed")

        return handler


@pytest.mark.anyio
async def test_message_handlers_run_in_order() -> None:
    rec = _Recorder()
    chain = HandlerChain(
        message_handlers=[
            MessageFuncHandler(rec.message("first")),
            MessageFuncHandler(rec.message("second")),
        ]
    )

    handled = await chain.dispatch(message_update(1))

    assert handled is True
    assert rec.calls == ["first", "second"]


@pytest.mark.anyio
async def test_failure_short_circuits_chain() -> None:
    rec = _Recorder()
    chain = HandlerChain(
        message_handlers=[
            MessageFuncHandler(rec.message("first", fail=True)),
            MessageFuncHandler(rec.message("second")),
        ]
    )

    with pytest.raises(HandlerFailure) as exc_info:
        await chain.dispatch(message_update(5))

    assert rec.calls == ["first"]
    assert exc_info.value.update_id == 5
    assert isinstance(exc_info.value.cause, RuntimeError)
    assert exc_info.value.__cause__ is exc_info.value.cause


@pytest.mark.anyio
async def test_callback_handlers_run_for_callback_updates() -> None:
    rec = _Recorder()
    chain = HandlerChain(
        message_handlers=[MessageFuncHandler(rec.message("msg"))],
        callback_handlers=[
            CallbackFuncHandler(rec.callback("cb1")),
            CallbackFuncHandler(rec.callback("cb2")),
        ],
    )

    await chain.dispatch(callback_update(1, "menu_main_open"))

    assert rec.calls == ["cb1", "cb2"]


@pytest.mark.anyio
async def test_message_without_id_is_ignored() -> None:
    rec = _Recorder()
    chain = HandlerChain(message_handlers=[MessageFuncHandler(rec.message("msg"))])

    handled = await chain.dispatch(message_update(1, message_id=0))

    assert handled is False
    assert rec.calls == []


@pytest.mark.anyio
async def test_update_without_payload_is_unhandled() -> None:
    rec = _Recorder()
    chain = HandlerChain(
        message_handlers=[MessageFuncHandler(rec.message("msg"))],
        callback_handlers=[CallbackFuncHandler(rec.callback("cb"))],
    )

    assert await chain.dispatch(Update(update_id=9)) is False
    assert rec.calls == []


@pytest.mark.anyio
async def test_decorator_registration() -> None:
    chain = HandlerChain()
    seen: list[str] = []

    @chain.on_message
    async def on_message(message: Message) -> None:
        seen.append(message.text or "")

    @chain.on_callback
    async def on_callback(query: CallbackQuery) -> None:
        seen.append(query.data or "")

    await chain.dispatch(message_update(1, "hi"))
    await chain.dispatch(callback_update(2, "a_b_c"))

    assert seen == ["hi", "a_b_c"]


class TestPrefixCallbackHandler:
    @pytest.mark.anyio
    async def test_matching_prefix(self) -> None:
        rec = _Recorder()
        handler = PrefixCallbackHandler("menu", rec.callback("menu"))

        outcome = await handler.handle(CallbackQuery(id="1", data="menu_main_open"))

        assert outcome is Outcome.HANDLED
        assert rec.calls == ["menu"]

    @pytest.mark.anyio
    @pytest.mark.parametrize("data", ["shop_cart_add", "menu", "", None])
    async def test_not_interested(self, data: str | None) -> None:
        rec = _Recorder()
        handler = PrefixCallbackHandler("menu", rec.callback("menu"))

        outcome = await handler.handle(CallbackQuery(id="1", data=data))

        assert outcome is Outcome.NOT_INTERESTED
        assert rec.calls == []

    @pytest.mark.anyio
    async def test_custom_separator(self) -> None:
        rec = _Recorder()
        handler = PrefixCallbackHandler("menu", rec.callback("menu"), separator=":")

        assert await handler.handle(CallbackQuery(id="1", data="menu:a:b")) is Outcome.HANDLED
        assert (
            await handler.handle(CallbackQuery(id="2", data="menu_a_b"))
            is Outcome.NOT_INTERESTED
        )

    def test_empty_separator_rejected(self) -> None:
        rec = _Recorder()
        with pytest.raises(InvalidSeparator):
            PrefixCallbackHandler("menu", rec.callback("menu"), separator="")

    @pytest.mark.anyio
    async def test_mismatch_does_not_stop_chain(self) -> None:
        rec = _Recorder()
        chain = HandlerChain(
            callback_handlers=[
                PrefixCallbackHandler("shop", rec.callback("shop")),
                PrefixCallbackHandler("menu", rec.callback("menu")),
            ]
        )

        handled = await chain.dispatch(callback_update(1, "menu_main_open"))

        assert handled is True
        assert rec.calls == ["menu"]


class TestCommandHandler:
    @pytest.mark.anyio
    async def test_exact_match(self) -> None:
        rec = _Recorder()
        handler = CommandHandler("start", rec.message("start"))

        assert await handler.handle(make_message(text="/start now")) is Outcome.HANDLED
        assert rec.calls == ["start"]

    @pytest.mark.anyio
    async def test_leading_slash_in_config(self) -> None:
        rec = _Recorder()
        handler = CommandHandler("/start", rec.message("start"))

        assert await handler.handle(make_message(text="/start")) is Outcome.HANDLED

    @pytest.mark.anyio
    @pytest.mark.parametrize("text", ["/stop", "start", "", None, "/starter"])
    async def test_not_interested(self, text: str | None) -> None:
        rec = _Recorder()
        handler = CommandHandler("start", rec.message("start"))

        assert await handler.handle(make_message(text=text)) is Outcome.NOT_INTERESTED
        assert rec.calls == []

    @pytest.mark.anyio
    async def test_regexp_match(self) -> None:
        rec = _Recorder()
        handler = CommandHandler(r"^item_\d+$", rec.message("item"), is_regexp=True)

        assert await handler.handle(make_message(text="/item_42")) is Outcome.HANDLED
        assert (
            await handler.handle(make_message(text="/item_x"))
            is Outcome.NOT_INTERESTED
        )
        assert rec.calls == ["item"]

    @pytest.mark.anyio
    async def test_regexp_handler_runs_once(self) -> None:
        rec = _Recorder()
        handler = CommandHandler("help", rec.message("help"), is_regexp=True)

        await handler.handle(make_message(text="/help"))

        assert rec.calls == ["help"]

    def test_bot_commands(self) -> None:
        rec = _Recorder()
        chain = HandlerChain(
            message_handlers=[
                CommandHandler("start", rec.message("a"), description="Start the bot"),
                CommandHandler("hidden", rec.message("b")),
                CommandHandler(r"x\d", rec.message("c"), is_regexp=True, description="x"),
                MessageFuncHandler(rec.message("d")),
            ]
        )

        assert chain.bot_commands() == [
            BotCommand(command="start", description="Start the bot")
        ]


def test_message_command_parsing() -> None:
    assert make_message(text="/start@my_bot hi").command == "start"
    assert make_message(text="hello /start").command == ""
    assert make_message(text=None).is_command is False

import anyio
import pytest

from telestate.api_models import CallbackQuery, Message
from telestate.errors import HandlerFailure, RemoteStatusError, TransportFailure
from telestate.handlers import CallbackFuncHandler, HandlerChain, MessageFuncHandler
from telestate.poller import Poller
from telestate.requests import UpdatesRequest
from tests.fakes import BlockingBotClient, FakeBotClient, callback_update, message_update


def _recording_chain(seen: list[int]) -> HandlerChain:
    async def on_message(message: Message) -> None:
        seen.append(message.message_id)

    return HandlerChain(message_handlers=[MessageFuncHandler(on_message)])


@pytest.mark.anyio
async def test_cursor_advances_past_highest_id() -> None:
    client = FakeBotClient(
        [
            [message_update(1), message_update(2)],
            [],
            [message_update(5)],
        ]
    )
    poller = Poller(client, HandlerChain())

    assert poller.cursor == 0
    await poller.fetch_once()
    assert poller.cursor == 3
    await poller.fetch_once()
    assert poller.cursor == 3
    await poller.fetch_once()
    assert poller.cursor == 6

    assert [request.offset for request in client.requests] == [0, 3, 3]


@pytest.mark.anyio
async def test_cursor_never_moves_backwards() -> None:
    client = FakeBotClient([[message_update(3)]])
    poller = Poller(client, HandlerChain(), cursor=10)

    await poller.fetch_once()

    assert poller.cursor == 10


@pytest.mark.anyio
async def test_request_parameters() -> None:
    client = FakeBotClient()
    poller = Poller(
        client,
        HandlerChain(),
        limit=10,
        timeout=30,
        allowed_updates=["message", "callback_query"],
    )

    await poller.fetch_once()

    assert client.requests == [
        UpdatesRequest(
            offset=0,
            limit=10,
            timeout=30,
            allowed_updates=("message", "callback_query"),
        )
    ]


@pytest.mark.anyio
async def test_dispatch_once_end_to_end() -> None:
    seen: list[int] = []
    client = FakeBotClient(
        [
            [
                message_update(123130161, message_id=1),
                message_update(123130162, message_id=2),
                message_update(123130163, message_id=3),
            ]
        ]
    )
    poller = Poller(client, _recording_chain(seen))

    updates = await poller.dispatch_once()

    assert len(updates) == 3
    assert poller.cursor == 123130164
    assert seen == [1, 2, 3]


@pytest.mark.anyio
async def test_dispatch_in_ascending_id_order() -> None:
    seen: list[int] = []
    client = FakeBotClient(
        [[message_update(7, message_id=7), message_update(6, message_id=6)]]
    )
    poller = Poller(client, _recording_chain(seen))

    await poller.dispatch_once()

    assert seen == [6, 7]
    assert poller.cursor == 8


@pytest.mark.anyio
async def test_handler_failure_surfaces_after_cursor_commit() -> None:
    calls: list[str] = []

    async def first(message: Message) -> None:
        calls.append("first")
        raise RuntimeError("boom")

    async def second(message: Message) -> None:
        calls.append("second")

    chain = HandlerChain(
        message_handlers=[MessageFuncHandler(first), MessageFuncHandler(second)]
    )
    client = FakeBotClient([[message_update(41)]])
    poller = Poller(client, chain)

    with pytest.raises(HandlerFailure) as exc_info:
        await poller.dispatch_once()

    assert calls == ["first"]
    assert exc_info.value.update_id == 41
    assert poller.cursor == 42


@pytest.mark.anyio
async def test_failing_update_does_not_block_batch() -> None:
    seen: list[int] = []

    async def on_message(message: Message) -> None:
        if message.message_id == 1:
            raise ValueError("bad update")
        seen.append(message.message_id)

    chain = HandlerChain(message_handlers=[MessageFuncHandler(on_message)])
    client = FakeBotClient(
        [
            [
                message_update(1, message_id=1),
                message_update(2, message_id=2),
                message_update(3, message_id=3),
            ]
        ]
    )
    poller = Poller(client, chain)

    with pytest.raises(HandlerFailure) as exc_info:
        await poller.dispatch_once()

    assert exc_info.value.update_id == 1
    assert seen == [2, 3]
    assert poller.cursor == 4


@pytest.mark.anyio
async def test_fetch_error_keeps_cursor() -> None:
    client = FakeBotClient([[message_update(1)], TransportFailure("getUpdates", "down")])
    poller = Poller(client, HandlerChain())

    await poller.fetch_once()
    with pytest.raises(TransportFailure):
        await poller.fetch_once()

    assert poller.cursor == 2


@pytest.mark.anyio
async def test_cancelled_fetch_does_not_move_cursor() -> None:
    client = BlockingBotClient([message_update(99)])
    poller = Poller(client, HandlerChain())

    async with anyio.create_task_group() as tg:
        tg.start_soon(poller.dispatch_once)
        await client.started.wait()
        tg.cancel_scope.cancel()

    client.release.set()
    assert poller.cursor == 0


@pytest.mark.anyio
async def test_slow_handler_is_abandoned() -> None:
    seen: list[int] = []

    async def on_message(message: Message) -> None:
        if message.message_id == 1:
            await anyio.sleep_forever()
        seen.append(message.message_id)

    chain = HandlerChain(message_handlers=[MessageFuncHandler(on_message)])
    client = FakeBotClient(
        [[message_update(1, message_id=1), message_update(2, message_id=2)]]
    )
    poller = Poller(client, chain, handler_timeout=0.05)

    with anyio.fail_after(5):
        await poller.dispatch_once()

    assert seen == [2]
    assert poller.cursor == 3


@pytest.mark.anyio
async def test_drain_backlog_skips_updates() -> None:
    seen: list[int] = []
    client = FakeBotClient(
        [[message_update(1), message_update(2)], [message_update(3)], []]
    )
    poller = Poller(client, _recording_chain(seen))

    drained = await poller.drain_backlog()

    assert drained == 3
    assert poller.cursor == 4
    assert seen == []
    assert all(request.timeout == 0 for request in client.requests)


@pytest.mark.anyio
async def test_run_forever_survives_errors_until_cancelled() -> None:
    sleeps: list[float] = []
    seen: list[str] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    with anyio.CancelScope() as scope:

        async def on_message(message: Message) -> None:
            seen.append("message")
            raise RuntimeError("handler broke")

        async def on_callback(query: CallbackQuery) -> None:
            seen.append(query.data or "")
            scope.cancel()

        chain = HandlerChain(
            message_handlers=[MessageFuncHandler(on_message)],
            callback_handlers=[CallbackFuncHandler(on_callback)],
        )
        client = FakeBotClient(
            [
                TransportFailure("getUpdates", "connection reset"),
                [message_update(10)],
                RemoteStatusError(429, "Too Many Requests: retry after 3", retry_after=3),
                ValueError("unexpected"),
                [callback_update(11, "menu_main_open")],
            ]
        )
        poller = Poller(client, chain, error_backoff=0.5, sleep=fake_sleep)
        await poller.run_forever()

    assert scope.cancelled_caught
    assert seen == ["message", "menu_main_open"]
    assert sleeps == [0.5, 3.0, 0.5]
    assert poller.cursor == 12


@pytest.mark.anyio
async def test_run_forever_stops_on_deadline() -> None:
    client = FakeBotClient()
    poller = Poller(client, HandlerChain())

    with anyio.move_on_after(0.05) as scope:
        await poller.run_forever()

    assert scope.cancelled_caught
    assert poller.cursor == 0

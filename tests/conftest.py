import pytest

from telestate.state import State
from tests.fakes import FakeBotClient


@pytest.fixture
def fake_client() -> FakeBotClient:
    return FakeBotClient()


@pytest.fixture
def chat_states() -> dict[str, list[State]]:
    return {
        "100": [State(chat_id="100", name="state1", key="key1")],
        "101": [
            State(chat_id="101", name="state11", key="key2"),
            State(chat_id="101", message_id=111, name="state11", key="key1"),
        ],
        "102": [State(chat_id="102", name="state12", key="key1")],
    }

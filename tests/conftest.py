import pytest
from starlette.websockets import WebSocketState

from bitrelay.connection import Connection


class FakeSocket:
    """Stands in for a Starlette WebSocket: records sends, can fail or drop."""

    def __init__(self, fail=False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail = fail
        self.sent = []

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("socket is broken")
        self.sent.append(text)

    def drop(self):
        self.client_state = WebSocketState.DISCONNECTED


@pytest.fixture
def make_conn():
    def _make(fail=False, remote="test"):
        return Connection(FakeSocket(fail=fail), remote=remote)
    return _make

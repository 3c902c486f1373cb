"""Connection handle and roles for sockets attached to the relay."""

from __future__ import annotations

import asyncio
import uuid
from typing import Optional

from starlette.websockets import WebSocket, WebSocketState

from bitrelay.errors import DeliveryFailure

UNASSIGNED = "unassigned"
DEVICE = "device"
MONITOR = "monitor"


class Connection:
    """
    One accepted WebSocket.

    The relay compares connections by ``id`` (assigned here, at accept time),
    never by the socket object. ``role`` is set once, on the first classified
    message, and stays put until the socket goes away.
    """

    def __init__(self, websocket: WebSocket, remote: Optional[str] = None,
                 send_timeout: Optional[float] = None):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.remote = remote or "?"
        self.send_timeout = send_timeout
        self.role = UNASSIGNED

    def __repr__(self):
        return f"<Connection {self.id[:8]} {self.remote} {self.role}>"

    def __eq__(self, other):
        return isinstance(other, Connection) and other.id == self.id

    def __hash__(self):
        return hash(self.id)

    @property
    def is_open(self) -> bool:
        ws = self.websocket
        return (ws.client_state == WebSocketState.CONNECTED
                and ws.application_state == WebSocketState.CONNECTED)

    def assign_role(self, role: str) -> bool:
        """Set the role if none is set yet. Returns True if ``role`` is now in effect."""
        if self.role == UNASSIGNED:
            self.role = role
        return self.role == role

    async def send(self, text: str):
        """Send one text frame; any failure surfaces as DeliveryFailure."""
        try:
            if self.send_timeout:
                await asyncio.wait_for(self.websocket.send_text(text), self.send_timeout)
            else:
                await self.websocket.send_text(text)
        except asyncio.TimeoutError as e:
            raise DeliveryFailure(self.id, f"timed out after {self.send_timeout}s") from e
        except Exception as e:
            raise DeliveryFailure(self.id, str(e) or type(e).__name__) from e

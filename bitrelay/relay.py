"""
BitRelay — owns the registry and serializes all work on it.

Every transport event (message, close, error) and every sweep runs under one
asyncio.Lock, so handling a message from decode to delivery never interleaves
with another handler.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from starlette.websockets import WebSocket

from bitrelay import codec
from bitrelay.broadcast import Broadcaster
from bitrelay.connection import Connection
from bitrelay.registry import ConnectionRegistry
from bitrelay.router import RelayRouter

logger = logging.getLogger(__name__)


class StatusSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_connected: bool = Field(alias="deviceConnected")
    web_clients_count: int = Field(alias="webClientsCount")
    server_uptime: float = Field(alias="serverUptime")
    timestamp: str


class BitRelay:
    def __init__(self, send_timeout: Optional[float] = None):
        self.send_timeout = send_timeout
        self.registry = ConnectionRegistry()
        self.broadcaster = Broadcaster(self.registry)
        self.router = RelayRouter(self.registry, self.broadcaster)
        self.started_at = time.monotonic()
        self._lock = asyncio.Lock()

    # ------------------ transport events ------------------

    def accept(self, websocket: WebSocket, remote: Optional[str] = None) -> Connection:
        conn = Connection(websocket, remote, send_timeout=self.send_timeout)
        logger.info(f"New connection from {conn.remote} ({conn.id[:8]})")
        return conn

    async def handle_message(self, conn: Connection, raw: str):
        logger.debug(f"Received from {conn}: {raw!r}")
        command = codec.decode(raw)
        async with self._lock:
            await self.router.route(conn, command)

    async def handle_close(self, conn: Connection):
        logger.info(f"Connection closed: {conn}")
        async with self._lock:
            await self.router.connection_closed(conn)

    async def handle_error(self, conn: Connection, exc: BaseException):
        logger.error(f"WebSocket error on {conn}: {exc}")
        async with self._lock:
            await self.router.connection_closed(conn)

    # ------------------ maintenance ------------------

    async def sweep(self):
        async with self._lock:
            dropped, device_cleared = self.registry.sweep()
        if dropped or device_cleared:
            logger.info(f"Sweep: dropped {dropped} monitor(s), device cleared: {device_cleared}")

    # ------------------ queries ------------------

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            device_connected=self.registry.is_device_connected(),
            web_clients_count=self.registry.live_monitor_count(),
            server_uptime=round(self.uptime, 3),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

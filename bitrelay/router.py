"""
Relay router — decides where each decoded command goes.

Directional commands (SET_/BIT_/CLS) and status reports are routed by who sent
them, not by what they say:
  sender holds the device slot  -> broadcast to every monitor
  anyone else                   -> unicast to the device
"""

from __future__ import annotations

import logging

from bitrelay import codec
from bitrelay.broadcast import Broadcaster
from bitrelay.connection import DEVICE, MONITOR, Connection
from bitrelay.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class RelayRouter:
    def __init__(self, registry: ConnectionRegistry, broadcaster: Broadcaster):
        self.registry = registry
        self.broadcaster = broadcaster

    async def route(self, conn: Connection, command: codec.Command):
        if isinstance(command, codec.Identify):
            if command.is_device:
                await self._identify_device(conn)
            else:
                await self._identify_monitor(conn)
            return

        if isinstance(command, codec.DIRECTIONAL):
            await self._relay(conn, command.raw)
            return

        if isinstance(command, codec.StatusReport):
            logger.info(f"Status {command.value} from {conn}: {codec.describe_bits(command.value)}")
            await self._relay(conn, command.raw)
            return

        logger.info(f"Unrecognized message from {conn}: {command.raw!r}")

    async def connection_closed(self, conn: Connection):
        """Forget ``conn``; if it was the device, tell every monitor."""
        if self.registry.remove_connection(conn):
            logger.info(f"Device {conn} went offline")
            await self.broadcaster.broadcast_to_monitors(codec.DEVICE_DISCONNECTED)

    # ------------------ identification ------------------

    async def _identify_device(self, conn: Connection):
        if not conn.assign_role(DEVICE):
            logger.warning(f"{conn} already identified as {conn.role}, ignoring device identification")
            return
        logger.info(f"Device connected: {conn}")
        self.registry.assign_device(conn)
        await self.broadcaster.broadcast_to_monitors(codec.DEVICE_CONNECTED)

    async def _identify_monitor(self, conn: Connection):
        if not conn.assign_role(MONITOR):
            logger.warning(f"{conn} already identified as {conn.role}, ignoring monitor identification")
            return
        if self.registry.add_monitor(conn):
            logger.info(f"Web monitor connected: {conn} ({len(self.registry.monitors)} total)")
        await self.broadcaster.reply(conn, codec.MONITOR_CONNECTED)

    # ------------------ directional ------------------

    async def _relay(self, conn: Connection, payload: str):
        if self.registry.is_device(conn):
            logger.debug(f"Broadcasting device message to monitors: {payload}")
            await self.broadcaster.broadcast_to_monitors(payload)
        else:
            logger.debug(f"Forwarding {payload} from {conn} to device")
            await self.broadcaster.unicast_to_device(payload)

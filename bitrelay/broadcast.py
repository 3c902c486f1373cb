"""Best-effort delivery to the monitors and to the device."""

from __future__ import annotations

import logging

from bitrelay.errors import DeliveryFailure
from bitrelay.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class Broadcaster:
    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def broadcast_to_monitors(self, payload: str) -> int:
        """
        Send ``payload`` to every live monitor. A failed send is logged and
        skipped; closed monitors are pruned after the pass. Returns the number
        of monitors the payload reached.
        """
        delivered = 0
        for conn in self.registry.monitor_list():
            if not conn.is_open:
                continue
            try:
                await conn.send(payload)
                delivered += 1
            except DeliveryFailure as e:
                logger.warning(f"Broadcast to monitor {conn} failed: {e.reason}")

        dropped = self.registry.prune_monitors()
        if dropped:
            logger.info(f"Pruned {dropped} closed monitor(s) after broadcast")
        return delivered

    async def unicast_to_device(self, payload: str) -> bool:
        """Send ``payload`` to the device if one is connected; otherwise drop it."""
        device = self.registry.device
        if device is None or not device.is_open:
            logger.info(f"Device not connected, dropping command: {payload}")
            return False
        try:
            await device.send(payload)
        except DeliveryFailure as e:
            logger.warning(f"Send to device {device} failed: {e.reason}")
            return False
        logger.info(f"Command sent to device: {payload}")
        return True

    async def reply(self, conn, payload: str) -> bool:
        """Unicast ``payload`` back to a single connection."""
        try:
            await conn.send(payload)
        except DeliveryFailure as e:
            logger.warning(f"Reply to {conn} failed: {e.reason}")
            return False
        return True

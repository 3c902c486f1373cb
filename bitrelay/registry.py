"""Connection registry: one device slot and a set of monitors."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from bitrelay.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Holds the device slot and the monitor set, keyed by connection id.

    Not thread-safe on its own; BitRelay serializes every call under its lock.
    """

    def __init__(self):
        self.device: Optional[Connection] = None
        self.monitors: Dict[str, Connection] = {}

    # ------------------ membership ------------------

    def assign_device(self, conn: Connection):
        """Put ``conn`` in the device slot; the previous occupant is forgotten, not closed."""
        previous = self.device
        if previous is not None and previous.id != conn.id:
            logger.info(f"Device slot taken over: {previous} -> {conn}")
        self.monitors.pop(conn.id, None)
        self.device = conn

    def add_monitor(self, conn: Connection) -> bool:
        """
        Register ``conn`` as a monitor. Returns False if it was already
        registered, or if it holds the device slot (the slot is left alone).
        """
        if conn.id in self.monitors:
            return False
        if self.is_device(conn):
            logger.warning(f"{conn} holds the device slot, not adding it as a monitor")
            return False
        self.monitors[conn.id] = conn
        return True

    def remove_connection(self, conn: Connection) -> bool:
        """
        Forget ``conn``. Returns True when it held the device slot, which the
        caller reports to monitors as a device disconnect.
        """
        if self.is_device(conn):
            self.device = None
            return True
        self.monitors.pop(conn.id, None)
        return False

    # ------------------ queries ------------------

    def is_device(self, conn: Connection) -> bool:
        return self.device is not None and self.device.id == conn.id

    def is_monitor(self, conn: Connection) -> bool:
        return conn.id in self.monitors

    def monitor_list(self) -> List[Connection]:
        return list(self.monitors.values())

    def live_monitor_count(self) -> int:
        return sum(1 for m in self.monitors.values() if m.is_open)

    def is_device_connected(self) -> bool:
        return self.device is not None and self.device.is_open

    # ------------------ cleanup ------------------

    def prune_monitors(self) -> int:
        """Drop monitors whose socket is no longer open. Returns how many were dropped."""
        dead = [cid for cid, m in self.monitors.items() if not m.is_open]
        for cid in dead:
            del self.monitors[cid]
        return len(dead)

    def sweep(self):
        """
        Evict every closed connection. Silent: clearing a dead device here
        does not notify monitors. Returns (monitors_dropped, device_cleared).
        """
        dropped = self.prune_monitors()
        device_cleared = False
        if self.device is not None and not self.device.is_open:
            self.device = None
            device_cleared = True
        return dropped, device_cleared

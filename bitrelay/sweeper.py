"""Periodic background eviction of closed connections."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from bitrelay.relay import BitRelay

logger = logging.getLogger(__name__)


class LivenessSweeper:
    def __init__(self, relay: BitRelay, interval: float = 30.0):
        self.relay = relay
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Liveness sweeper started (every {self.interval}s)")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Liveness sweeper stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.relay.sweep()
            except Exception as e:
                logger.error(f"Sweep failed: {e}")

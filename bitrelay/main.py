"""
Bit relay server — HTTP pages and the relay WebSocket on one port.

HTTP:
  GET /        monitor page (first existing candidate file), 404 listing otherwise
  GET /test    diagnostics page with live connection counts
  GET /status  JSON snapshot {deviceConnected, webClientsCount, serverUptime, timestamp}

WS (any path):
  first message identifies the socket: vibrator_device | stinger_missile -> device,
  anything containing web_monitor -> monitor. Then SET_<pos>_<val>, BIT_<value>,
  CLS and bare 0..65535 status numbers are relayed.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import HTMLResponse, PlainTextResponse

from bitrelay import __version__
from bitrelay.config import Settings
from bitrelay.pages import find_page, missing_page, not_found_page, test_page
from bitrelay.relay import BitRelay, StatusSnapshot
from bitrelay.sweeper import LivenessSweeper

logger = logging.getLogger(__name__)


async def _frames(websocket: WebSocket) -> AsyncIterator[str]:
    """Yield text for every frame until the peer disconnects; binary frames are decoded as UTF-8."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        text = message.get("text")
        if text is None:
            text = (message.get("bytes") or b"").decode("utf-8", errors="replace")
        yield text


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.load()
    relay = BitRelay(send_timeout=settings.send_timeout)
    sweeper = LivenessSweeper(relay, interval=settings.sweep_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Bit relay starting up...")
        sweeper.start()
        yield
        await sweeper.stop()
        logger.info("Bit relay shutting down...")

    app = FastAPI(
        title="Bit Relay",
        description="Relays a 16-bit status bitmask between one device and many web monitors",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = relay
    app.state.sweeper = sweeper

    # ------------------ HTTP ------------------

    @app.get("/", response_class=HTMLResponse)
    def index():
        path = find_page(settings.static_dir, settings.page_candidates)
        if path is None:
            logger.info("No monitor page found, returning directory listing")
            return HTMLResponse(missing_page(settings.static_dir, settings.page_candidates), status_code=404)
        try:
            with open(path, encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            return PlainTextResponse("Internal Server Error", status_code=500)
        return HTMLResponse(content, headers={"Cache-Control": "no-cache"})

    @app.get("/test", response_class=HTMLResponse)
    async def diagnostics(request: Request):
        registry = relay.registry
        return test_page(
            settings.port,
            registry.is_device_connected(),
            registry.live_monitor_count(),
            host=request.url.hostname or "localhost",
        )

    @app.get("/status", response_model=StatusSnapshot)
    async def status():
        return relay.snapshot()

    @app.exception_handler(404)
    async def not_found(request: Request, exc):
        return HTMLResponse(not_found_page(request.url.path), status_code=404)

    # ------------------ WebSocket ------------------

    @app.websocket("/{path:path}")
    async def relay_socket(websocket: WebSocket):
        await websocket.accept()
        client = websocket.client
        conn = relay.accept(websocket, f"{client.host}:{client.port}" if client else None)
        try:
            async for raw in _frames(websocket):
                await relay.handle_message(conn, raw)
        except Exception as e:
            await relay.handle_error(conn, e)
        else:
            await relay.handle_close(conn)

    return app

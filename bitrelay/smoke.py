#!/usr/bin/env python3
"""
Smoke check against a running bit relay server.

Connects a web monitor and a device, walks through identification, a status
report, a monitor command and a device disconnect, then reads /status.
"""

import argparse
import asyncio
import sys

import requests
import websockets

from bitrelay import codec

RECV_TIMEOUT = 5.0


class SmokeFailure(Exception):
    pass


async def expect(ws, wanted: str, label: str):
    try:
        got = await asyncio.wait_for(ws.recv(), timeout=RECV_TIMEOUT)
    except asyncio.TimeoutError:
        raise SmokeFailure(f"{label}: nothing received within {RECV_TIMEOUT}s (wanted {wanted!r})")
    if got != wanted:
        raise SmokeFailure(f"{label}: got {got!r}, wanted {wanted!r}")
    print(f"✅ {label}")


async def check_relay(ws_url: str):
    """Monitor first, so it sees the device come and go."""
    print("🔌 Testing relay over WebSocket...")
    async with websockets.connect(ws_url) as monitor:
        await monitor.send("web_monitor")
        await expect(monitor, codec.MONITOR_CONNECTED, "monitor registered")

        device = await websockets.connect(ws_url)
        try:
            await device.send(codec.DEVICE_IDS[0])
            await expect(monitor, codec.DEVICE_CONNECTED, "monitor told device connected")

            await device.send("34")
            await expect(monitor, "34", "status 34 relayed to monitor")

            await monitor.send("SET_5_1")
            await expect(device, "SET_5_1", "SET_5_1 relayed to device")
        finally:
            await device.close()

        await expect(monitor, codec.DEVICE_DISCONNECTED, "monitor told device disconnected")


def check_status(base_url: str):
    print("🌐 Testing /status...")
    response = requests.get(f"{base_url}/status", timeout=5)
    if response.status_code != 200:
        raise SmokeFailure(f"/status returned {response.status_code}")
    data = response.json()
    missing = {"deviceConnected", "webClientsCount", "serverUptime", "timestamp"} - set(data)
    if missing:
        raise SmokeFailure(f"/status missing {sorted(missing)}")
    print(f"✅ /status: device={data['deviceConnected']} monitors={data['webClientsCount']} "
          f"uptime={data['serverUptime']}s")


def main(argv=None):
    ap = argparse.ArgumentParser(description="Smoke check a running bit relay")
    ap.add_argument("--host", default="localhost")
    ap.add_argument("--port", type=int, default=3000)
    args = ap.parse_args(argv)

    base_url = f"http://{args.host}:{args.port}"
    ws_url = f"ws://{args.host}:{args.port}/"
    print(f"📍 Server: {base_url}")
    print("=" * 50)
    try:
        asyncio.run(check_relay(ws_url))
        check_status(base_url)
    except SmokeFailure as e:
        print(f"❌ {e}")
        sys.exit(1)
    except (OSError, websockets.exceptions.WebSocketException, requests.RequestException) as e:
        print(f"❌ Could not talk to the server: {e}")
        print("💡 Make sure it is running:  bitrelay --port", args.port)
        sys.exit(1)
    print("=" * 50)
    print("🏁 All checks passed")


if __name__ == "__main__":
    main()

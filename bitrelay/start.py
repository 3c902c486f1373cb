#!/usr/bin/env python3
"""
Startup script for the bit relay server
"""

import argparse
import logging
import socket
import sys
from typing import List, Tuple

import psutil
import uvicorn

from bitrelay.codec import describe_bits
from bitrelay.config import Settings
from bitrelay.errors import ConfigError
from bitrelay.main import create_app

logger = logging.getLogger("bitrelay")


def lan_addresses() -> List[Tuple[str, str]]:
    """(interface, address) for every non-loopback IPv4 address on this host."""
    found = []
    for name, addrs in sorted(psutil.net_if_addrs().items()):
        for addr in addrs:
            if addr.family == socket.AF_INET and not addr.address.startswith("127."):
                found.append((name, addr.address))
    return found


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Relay a 16-bit status between one device and web monitors")
    ap.add_argument("--host", help="bind address (env BITRELAY_HOST)")
    ap.add_argument("--port", type=int, help="HTTP + WebSocket port (env BITRELAY_PORT)")
    ap.add_argument("--static-dir", help="directory holding the monitor page (env BITRELAY_STATIC_DIR)")
    ap.add_argument("--sweep-interval", type=float, help="seconds between liveness sweeps")
    ap.add_argument("--send-timeout", type=float, help="per-send timeout in seconds")
    ap.add_argument("--log-level", help="critical|error|warning|info|debug")
    return ap.parse_args(argv)


def log_banner(settings: Settings):
    port = settings.port
    logger.info("=================================")
    logger.info("Bit relay server started")
    logger.info(f"WebSocket port: {port}")
    logger.info(f"Monitor page: http://localhost:{port}")
    logger.info(f"Test page: http://localhost:{port}/test")
    logger.info("Number format: 1 = BIT0, 2 = BIT1 (LED), 4 = BIT2, 8 = BIT3, 32 = BIT5 (switch)")
    logger.info(f"  e.g. 34 = {describe_bits(34)}")
    for name, addr in lan_addresses():
        logger.info(f"  reachable at {name}: {addr}:{port}")
    logger.info("Waiting for devices...")
    logger.info("=================================")


def main(argv=None):
    """Main startup function"""
    args = parse_args(argv)
    try:
        settings = Settings.load(
            host=args.host,
            port=args.port,
            static_dir=args.static_dir,
            sweep_interval=args.sweep_interval,
            send_timeout=args.send_timeout,
            log_level=args.log_level,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log_banner(settings)

    try:
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level,
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()

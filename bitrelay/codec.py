"""
Bit-state codec — text frames <-> commands.

Wire forms:
  vibrator_device | stinger_missile   device identification (exact)
  ...web_monitor...                   monitor identification (substring)
  SET_<pos>_<val>                     set one bit
  BIT_<value>                         set all 16 bits at once
  CLS                                 clear all bits
  <digits>                            status report, 0..65535

decode() is total: anything it does not understand becomes Unrecognized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

DEVICE_IDS = ("vibrator_device", "stinger_missile")
MONITOR_TAG = "web_monitor"

SET_PREFIX = "SET_"
BIT_PREFIX = "BIT_"
CLEAR = "CLS"

BIT_COUNT = 16
MAX_STATE = (1 << BIT_COUNT) - 1  # 65535

# server -> client literals
DEVICE_CONNECTED = "vibrator_connected"
DEVICE_DISCONNECTED = "vibrator_disconnected"
MONITOR_CONNECTED = "web_monitor_connected"

# ascii only; \d would also accept other unicode digits
_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Command:
    raw: str


@dataclass(frozen=True)
class Identify(Command):
    kind: str  # "device" | "monitor"

    @property
    def is_device(self) -> bool:
        return self.kind == "device"


@dataclass(frozen=True)
class SetBit(Command):
    position: str
    value: str


@dataclass(frozen=True)
class SetAll(Command):
    value: str


@dataclass(frozen=True)
class Clear(Command):
    pass


@dataclass(frozen=True)
class StatusReport(Command):
    value: int


@dataclass(frozen=True)
class Unrecognized(Command):
    pass


# commands whose destination depends on who sent them
DIRECTIONAL = (SetBit, SetAll, Clear)


def decode(raw: str) -> Command:
    """Classify one text frame. Never raises."""
    if raw in DEVICE_IDS:
        return Identify(raw, "device")
    if MONITOR_TAG in raw:
        return Identify(raw, "monitor")

    if raw.startswith(SET_PREFIX):
        # position/value are passed through as-is, the device validates them
        position, _, value = raw[len(SET_PREFIX):].partition("_")
        return SetBit(raw, position, value)
    if raw.startswith(BIT_PREFIX):
        return SetAll(raw, raw[len(BIT_PREFIX):])
    if raw == CLEAR:
        return Clear(raw)

    if _DIGITS.fullmatch(raw):
        value = int(raw)
        if 0 <= value <= MAX_STATE:
            return StatusReport(raw, value)

    return Unrecognized(raw)


def active_bits(value: int) -> List[int]:
    """Positions of the bits set in a 16-bit state, lowest first."""
    return [i for i in range(BIT_COUNT) if value & (1 << i)]


def describe_bits(value: int) -> str:
    bits = active_bits(value)
    if not bits:
        return "all bits off"
    return ", ".join(f"BIT{i}" for i in bits)

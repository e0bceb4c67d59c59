from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ._icmp import MAX_PAYLOAD_SIZE, PingerError


class ConfigError(PingerError, ValueError):
    """Raised for configuration values outside their allowed bounds."""


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse ``"5ms"``, ``"1m30s"`` or a bare number of seconds."""
    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration {value!r}")
    return total


@dataclass
class Settings:
    host: str
    count: int = 0
    interval: float = 1.0
    size: int = 56
    ttl: int = 64
    trace: bool = False
    mtu_test: bool = False
    live: bool = False
    verbose: bool = False
    output: Optional[str] = None
    max_size: int = MAX_PAYLOAD_SIZE

    def validate(self) -> "Settings":
        if self.count < 0:
            raise ConfigError("count must be >= 0")
        if self.interval < 1e-3:
            raise ConfigError("interval must be >= 1ms")
        if self.size < 0 or self.size > self.max_size:
            raise ConfigError(f"size must be 0-{self.max_size} bytes")
        if self.ttl < 1 or self.ttl > 255:
            raise ConfigError("TTL must be 1-255")
        return self

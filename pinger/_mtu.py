"""Path MTU probing by payload size escalation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from rich.console import Console

from ._connection import Destination
from ._icmp import (
    HEADER_OVERHEAD,
    MAX_PAYLOAD_SIZE,
    EncodingError,
    build_echo,
    encode_packet,
)
from ._icmp import console as default_console
from ._icmp import logger

MTU_CANDIDATES = (1500, 9000, 12000)
PROBES_PER_SIZE = 3
PROBE_SPACING = 0.1
MTU_SEQUENCE = 1


@dataclass
class MtuAttempt:
    size: int
    successes: int

    @property
    def ok(self) -> bool:
        return self.successes == PROBES_PER_SIZE


@dataclass
class MtuResult:
    best: Optional[int]
    attempts: list[MtuAttempt] = field(default_factory=list)

    @property
    def payload_size(self) -> Optional[int]:
        if self.best is None:
            return None
        return self.best - HEADER_OVERHEAD


def discover_mtu(
    destination: Destination,
    open_connection: Callable[[Destination], object],
    identifier: int,
    *,
    candidates: tuple[int, ...] = MTU_CANDIDATES,
    max_payload: int = MAX_PAYLOAD_SIZE,
    pause: Callable[[float], None] = time.sleep,
    console: Console = default_console,
) -> MtuResult:
    """Find the largest candidate frame size that sends 3/3 times.

    Success means the local stack accepted the send; replies are not
    awaited, so a path that silently drops large frames still passes.
    Each candidate gets its own short-lived connection and reuses sequence
    number 1, these probes are not part of the run's measurements.
    """
    console.print("[magenta]MTU[/magenta] Testing MTU...")
    result = MtuResult(best=None)

    for size in candidates:
        payload_size = size - HEADER_OVERHEAD
        if payload_size > max_payload:
            logger.debug("skipping MTU %d: payload %d over limit", size, payload_size)
            continue

        try:
            conn = open_connection(destination)
        except OSError as exc:
            logger.debug("MTU %d: cannot open connection: %s", size, exc)
            continue

        successes = 0
        try:
            for _ in range(PROBES_PER_SIZE):
                try:
                    packet = build_echo(
                        identifier,
                        MTU_SEQUENCE,
                        payload_size,
                        destination.family,
                        max_payload=max_payload,
                    )
                except EncodingError:
                    break
                try:
                    conn.send(encode_packet(packet), destination)
                    successes += 1
                except OSError as exc:
                    logger.debug("MTU %d: send failed: %s", size, exc)
                pause(PROBE_SPACING)
        finally:
            conn.close()

        attempt = MtuAttempt(size=size, successes=successes)
        result.attempts.append(attempt)
        if attempt.ok:
            result.best = size
            console.print(f"  MTU {size} OK")
        else:
            console.print(f"  MTU {size} FAILED ({successes}/{PROBES_PER_SIZE})")
            break

    if result.best is not None:
        console.print(
            f"[blue]✓[/blue] Max MTU: {result.best} bytes "
            f"(size set to {result.payload_size})\n"
        )
    else:
        console.print("[yellow]![/yellow] No MTU discovered, using default\n")
    return result

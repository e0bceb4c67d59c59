"""Traceroute helper functionality."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from rich.console import Console

from ._icmp import console as default_console
from ._icmp import logger
from ._probe import ProbeCycle, ProbeOutcome
from ._report import format_hop

HOP_PACING = 0.05


@dataclass
class TracerouteHop:
    ttl: int
    outcome: ProbeOutcome
    reached_destination: bool


@dataclass
class TracerouteResult:
    target: str
    resolved: str
    max_hops: int
    hops: list[TracerouteHop]
    next_sequence: int

    @property
    def reached(self) -> bool:
        return bool(self.hops) and self.hops[-1].reached_destination

    def __str__(self) -> str:
        lines = [f"Traceroute to {self.target} ({self.resolved}), {self.max_hops} hops max"]
        for hop in self.hops:
            outcome = hop.outcome
            address = outcome.address or "*"
            rtt = f"{outcome.rtt:.2f} ms" if outcome.rtt is not None else "*"
            marker = " DEST!" if hop.reached_destination else ""
            lines.append(f"{hop.ttl:<4} {address:<40} {rtt:>12}{marker}")
        return "\n".join(lines) + "\n"

    def __rich__(self) -> str:  # pragma: no cover - rich display helper
        return self.__str__()


def traceroute(
    cycle: ProbeCycle,
    connection,
    *,
    max_hops: int = 64,
    first_sequence: int = 1,
    pacing: float = HOP_PACING,
    stop: Optional[threading.Event] = None,
    console: Console = default_console,
) -> TracerouteResult:
    """Probe with TTL 1..max_hops, stopping once the destination echoes back.

    ``connection`` is the socket owner used by ``cycle``; only its
    ``set_ttl`` is needed here.
    """
    stop = stop or threading.Event()
    destination = cycle.destination
    console.print(
        f"[magenta]TRACE[/magenta] traceroute to {destination.host} "
        f"([blue]{destination.address}[/blue]), {max_hops} hops max\n"
    )

    hops: list[TracerouteHop] = []
    seq = first_sequence
    for ttl in range(1, max_hops + 1):
        if stop.is_set():
            break
        try:
            connection.set_ttl(ttl)
        except OSError as exc:
            logger.warning("could not set TTL %d: %s", ttl, exc)

        outcome = cycle.run(seq)
        reached = cycle.store.has_measurement(seq)
        seq += 1

        hops.append(TracerouteHop(ttl=ttl, outcome=outcome, reached_destination=reached))
        console.print(format_hop(ttl, outcome, reached))
        if reached:
            logger.debug("Destination reached at TTL %d", ttl)
            break
        if stop.wait(pacing):
            break
    else:
        logger.debug("Traceroute finished without reaching destination")
    console.print()

    return TracerouteResult(
        target=destination.host,
        resolved=destination.address,
        max_hops=max_hops,
        hops=hops,
        next_sequence=seq,
    )

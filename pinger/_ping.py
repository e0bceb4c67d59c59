"""Fixed-interval ping loop."""

from __future__ import annotations

import threading
from typing import Optional

from rich.console import Console

from ._icmp import console as default_console
from ._icmp import logger
from ._probe import ProbeCycle, ProbeOutcome
from ._report import print_ping_outcome


def ping(
    cycle: ProbeCycle,
    *,
    count: int = 0,
    interval: float = 1.0,
    first_sequence: int = 1,
    stop: Optional[threading.Event] = None,
    console: Console = default_console,
) -> int:
    """Probe until ``count`` packets were sent (0 = forever) or ``stop`` is set.

    Returns the next unused sequence number.
    """
    stop = stop or threading.Event()
    seq = first_sequence
    logger.debug(
        "Starting ping to %s (%s) count=%d interval=%.3fs",
        cycle.destination.host,
        cycle.destination.address,
        count,
        interval,
    )
    while not stop.is_set() and (count == 0 or cycle.store.sent < count):
        outcome: ProbeOutcome = cycle.run(seq)
        print_ping_outcome(outcome, console)
        seq += 1
        if stop.wait(interval):
            break
    return seq

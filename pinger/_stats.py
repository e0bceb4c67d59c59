"""Concurrency-safe run statistics."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Snapshot:
    sent: int
    received: int
    measurements: dict[int, float] = field(default_factory=dict)

    @property
    def lost(self) -> int:
        return self.sent - self.received

    @property
    def loss_percent(self) -> Optional[float]:
        if self.sent == 0:
            return None
        return (self.sent - self.received) / self.sent * 100

    def rtts(self) -> list[float]:
        return [rtt for rtt in self.measurements.values() if rtt > 0]


@dataclass
class Summary:
    sent: int
    received: int
    loss_percent: Optional[float]
    rtt_min: Optional[float]
    rtt_avg: Optional[float]
    rtt_max: Optional[float]
    jitter: float
    bandwidth_mbps: float


def calculate_jitter(rtts: list[float]) -> float:
    """Mean absolute difference between consecutive samples."""
    if len(rtts) < 2:
        return 0.0
    total = sum(abs(rtts[idx] - rtts[idx - 1]) for idx in range(1, len(rtts)))
    return total / (len(rtts) - 1)


def calculate_bandwidth(sent: int, size: int, interval: float) -> float:
    """Theoretical send rate in Mbps for ``sent`` probes of ``size`` bytes."""
    if sent <= 0 or interval <= 0:
        return 0.0
    total_bytes = size * sent
    total_time = interval * sent
    return total_bytes / total_time * 8 / 1e6


def rtt_bounds(
    rtts: list[float],
) -> tuple[Optional[float], Optional[float], Optional[float]]:
    if not rtts:
        return None, None, None
    return min(rtts), sum(rtts) / len(rtts), max(rtts)


class StatisticsStore:
    """Sent/received counters and the seq -> RTT (ms) map of one run.

    The probing driver is the only writer. Readers (live reporter, the
    interrupt path, final reporting) always go through :meth:`snapshot` so
    the counters and the map are read together.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sent = 0
        self._received = 0
        self._measurements: dict[int, float] = {}

    def reset(self) -> None:
        with self._lock:
            self._sent = 0
            self._received = 0
            self._measurements = {}

    def record_sent(self) -> int:
        with self._lock:
            self._sent += 1
            return self._sent

    def record_reply(self, sequence: int, rtt: float) -> bool:
        """Store a measurement; a second reply for the same seq is ignored."""
        with self._lock:
            if sequence in self._measurements:
                return False
            self._measurements[sequence] = rtt
            self._received += 1
            return True

    @property
    def sent(self) -> int:
        with self._lock:
            return self._sent

    def has_measurement(self, sequence: int) -> bool:
        with self._lock:
            return sequence in self._measurements

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                sent=self._sent,
                received=self._received,
                measurements=dict(self._measurements),
            )

    def finalize(self, payload_size: int, interval: float) -> Summary:
        snap = self.snapshot()
        # dict order is insertion order, which is ascending seq
        rtts = snap.rtts()
        rtt_min, rtt_avg, rtt_max = rtt_bounds(rtts)
        return Summary(
            sent=snap.sent,
            received=snap.received,
            loss_percent=snap.loss_percent,
            rtt_min=rtt_min,
            rtt_avg=rtt_avg,
            rtt_max=rtt_max,
            jitter=calculate_jitter(rtts),
            bandwidth_mbps=calculate_bandwidth(snap.sent, payload_size, interval),
        )

"""Single send-then-wait probe with reply correlation."""

from __future__ import annotations

import socket
import time
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Protocol

from ._connection import Destination
from ._icmp import (
    MAX_PAYLOAD_SIZE,
    EchoReply,
    EncodingError,
    ParseError,
    ParsedReply,
    TimeExceeded,
    build_echo,
    describe,
    encode_packet,
    logger,
    parse_reply,
)
from ._stats import StatisticsStore

OutcomeStatus = Literal["matched", "hop", "timeout", "send_error"]

MAX_RECV_ATTEMPTS = 5
DEADLINE_FACTOR = 10
# replies faster than this are stale packets left in the socket buffer
MIN_PLAUSIBLE_RTT = 0.01  # ms


class Connection(Protocol):
    family: int

    def send(self, packet: bytes, destination: Destination) -> int: ...

    def receive(self, timeout: float) -> tuple[bytes, str]: ...


@dataclass(frozen=True)
class ProbeOutcome:
    status: OutcomeStatus
    sequence: int
    rtt: Optional[float] = None
    address: Optional[str] = None
    data_len: Optional[int] = None
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.status == "matched"

    def __str__(self) -> str:
        if self.status == "matched":
            return (
                f"{self.data_len} bytes from {self.address}: "
                f"icmp_seq={self.sequence} time={self.rtt:.3f} ms"
            )
        if self.status == "hop":
            return f"From {self.address} icmp_seq={self.sequence} time={self.rtt:.3f} ms"
        if self.status == "send_error":
            return f"send error icmp_seq={self.sequence}: {self.error}"
        return f"Request timeout for icmp_seq={self.sequence}"


class ProbeCycle:
    """Send one echo request and wait, bounded, for the reply that matches it.

    Every transmission attempt counts as sent, even when the socket refuses
    it. Only an echo reply carrying this run's identifier and the probe's
    sequence number is recorded as received; time exceeded messages are
    surfaced as hop responders and leave the counters alone.
    """

    def __init__(
        self,
        connection: Connection,
        destination: Destination,
        identifier: int,
        store: StatisticsStore,
        *,
        payload_size: int = 56,
        interval: float = 1.0,
        max_payload: int = MAX_PAYLOAD_SIZE,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.connection = connection
        self.destination = destination
        self.identifier = identifier & 0xFFFF
        self.store = store
        self.payload_size = payload_size
        self.interval = interval
        self.max_payload = max_payload
        self.clock = clock

    @property
    def read_timeout(self) -> float:
        return self.interval * DEADLINE_FACTOR

    def run(self, sequence: int) -> ProbeOutcome:
        try:
            packet = build_echo(
                self.identifier,
                sequence,
                self.payload_size,
                self.connection.family,
                max_payload=self.max_payload,
            )
        except EncodingError as exc:
            logger.error("marshal error: %s", exc)
            return ProbeOutcome(status="send_error", sequence=sequence, error=str(exc))
        wire = encode_packet(packet)

        self.store.record_sent()
        start = self.clock()
        deadline = start + self.read_timeout

        try:
            self.connection.send(wire, self.destination)
        except OSError as exc:
            logger.debug("send to %s failed: %s", self.destination.address, exc)
            return ProbeOutcome(status="send_error", sequence=sequence, error=str(exc))

        attempts = 0
        while attempts < MAX_RECV_ATTEMPTS:
            try:
                raw, peer = self.connection.receive(deadline - self.clock())
            except socket.timeout:
                break
            except OSError as exc:
                logger.debug("receive failed: %s", exc)
                break

            rtt = (self.clock() - start) * 1000
            if rtt < MIN_PLAUSIBLE_RTT:
                continue

            try:
                reply: ParsedReply = parse_reply(raw, self.connection.family)
            except ParseError as err:
                logger.debug("Discarding malformed packet: %s", err)
                continue

            if isinstance(reply, TimeExceeded):
                return ProbeOutcome(
                    status="hop", sequence=sequence, rtt=rtt, address=peer
                )

            if (
                isinstance(reply, EchoReply)
                and reply.id == self.identifier
                and reply.sequence == sequence & 0xFFFF
            ):
                self.store.record_reply(sequence, rtt)
                return ProbeOutcome(
                    status="matched",
                    sequence=sequence,
                    rtt=rtt,
                    address=peer,
                    data_len=reply.data_len,
                )

            logger.debug("Discarding %s from %s", describe(reply), peer)
            attempts += 1

        return ProbeOutcome(status="timeout", sequence=sequence)

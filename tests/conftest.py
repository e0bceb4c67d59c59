import io
import socket
import struct
from collections import deque

import pytest
from rich.console import Console

from pinger import Destination, StatisticsStore
from pinger._icmp import ICMP_TIME_EXCEEDED, echo_reply_type

IDENTIFIER = 0x1234
DEST_V4 = Destination(host="example.test", address="192.0.2.10", family=socket.AF_INET)
DEST_V6 = Destination(host="example6.test", address="2001:db8::10", family=socket.AF_INET6)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def ipv4_header(src: str, dst: str = "192.0.2.99", payload_len: int = 0) -> bytes:
    return struct.pack(
        "!BBHHHBBH4s4s",
        0x45,
        0,
        20 + payload_len,
        0,
        0,
        64,
        socket.IPPROTO_ICMP,
        0,
        socket.inet_aton(src),
        socket.inet_aton(dst),
    )


def as_reply(request: bytes, family: int = socket.AF_INET, src: str = "192.0.2.10") -> bytes:
    """Turn an encoded echo request into the bytes a raw socket would read back."""
    reply = bytes([echo_reply_type(family)]) + request[1:]
    if family == socket.AF_INET:
        return ipv4_header(src, payload_len=len(reply)) + reply
    return reply


def time_exceeded(request: bytes, src: str) -> bytes:
    inner = ipv4_header("192.0.2.99", "192.0.2.10", len(request)) + request[:8]
    icmp = struct.pack("!BBHI", ICMP_TIME_EXCEEDED, 0, 0, 0) + inner
    return ipv4_header(src, payload_len=len(icmp)) + icmp


def with_id(request: bytes, identifier: int) -> bytes:
    return request[:4] + struct.pack("!H", identifier) + request[6:]


def with_seq(request: bytes, sequence: int) -> bytes:
    return request[:6] + struct.pack("!H", sequence) + request[8:]


def echo_responder(rtt_ms: float = 2.0, src: str = "192.0.2.10"):
    def respond(conn, packet):
        return [(rtt_ms, as_reply(packet, conn.family, src), src)]

    return respond


class FakeConnection:
    """Scripted stand-in for :class:`pinger.IcmpConnection`.

    ``responder(conn, packet)`` returns ``(delay_ms, raw, peer)`` tuples that
    become readable after each successful send; reading advances the clock
    by ``delay_ms`` measured from the previous read.
    """

    def __init__(self, responder=None, *, family=socket.AF_INET, clock=None, fail_sends=()):
        self.family = family
        self.responder = responder
        self.clock = clock or FakeClock()
        self.fail_sends = set(fail_sends)
        self.attempts: list[bytes] = []
        self.sent: list[bytes] = []
        self.ttls: list[int] = []
        self.pending = deque()
        self.closed = False

    def set_ttl(self, ttl: int) -> None:
        self.ttls.append(ttl)

    def send(self, packet: bytes, destination) -> int:
        index = len(self.attempts)
        self.attempts.append(packet)
        if index in self.fail_sends:
            raise OSError("Message too long")
        self.sent.append(packet)
        if self.responder is not None:
            self.pending.extend(self.responder(self, packet))
        return len(packet)

    def receive(self, timeout: float):
        if timeout <= 0 or not self.pending:
            raise socket.timeout("read deadline exceeded")
        delay_ms, raw, peer = self.pending[0]
        if delay_ms / 1000 > timeout:
            self.clock.advance(timeout)
            raise socket.timeout("read deadline exceeded")
        self.pending.popleft()
        self.clock.advance(delay_ms / 1000)
        return raw, peer

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return StatisticsStore()


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def console(out):
    return Console(file=out, width=200, color_system=None)

import threading

import pytest

from pinger import ProbeCycle, ping

from conftest import DEST_V4, IDENTIFIER, FakeConnection, as_reply, echo_responder


def test_ping_count_scenario(clock, store, console, out):
    rtts = iter([1.0, 2.0, 3.0, 4.0, 5.0])

    def respond(conn, packet):
        return [(next(rtts), as_reply(packet), "192.0.2.10")]

    conn = FakeConnection(respond, clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, interval=0.001, clock=clock)

    next_seq = ping(cycle, count=5, interval=0.001, console=console)

    assert next_seq == 6
    summary = store.finalize(56, 0.001)
    assert (summary.sent, summary.received, summary.loss_percent) == (5, 5, 0.0)
    assert summary.rtt_min == pytest.approx(1.0)
    assert summary.rtt_avg == pytest.approx(3.0)
    assert summary.rtt_max == pytest.approx(5.0)
    lines = out.getvalue().splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("56 bytes from 192.0.2.10: icmp_seq=1 time=")


def test_ping_reports_timeouts_and_keeps_going(clock, store, console, out):
    def respond(conn, packet):
        if len(conn.sent) == 2:
            return []
        return [(1.0, as_reply(packet), "192.0.2.10")]

    conn = FakeConnection(respond, clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, interval=0.001, clock=clock)

    ping(cycle, count=3, interval=0.001, console=console)

    assert "Request timeout for icmp_seq=2" in out.getvalue()
    snap = store.snapshot()
    assert (snap.sent, snap.received) == (3, 2)
    assert sorted(snap.measurements) == [1, 3]


def test_ping_send_errors_consume_sequence_numbers(clock, store, console, out):
    conn = FakeConnection(echo_responder(), clock=clock, fail_sends={0})
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, interval=0.001, clock=clock)

    ping(cycle, count=2, interval=0.001, console=console)

    assert "send error icmp_seq=1" in out.getvalue()
    assert list(store.snapshot().measurements) == [2]


def test_ping_stops_when_interrupted(clock, store, console):
    stop = threading.Event()
    conn = FakeConnection(echo_responder(), clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, interval=0.001, clock=clock)

    def respond_then_stop(conn, packet):
        if len(conn.sent) == 3:
            stop.set()
        return [(1.0, as_reply(packet), "192.0.2.10")]

    conn.responder = respond_then_stop
    ping(cycle, count=0, interval=0.001, stop=stop, console=console)

    assert store.snapshot().sent == 3


def test_ping_with_stop_already_set_sends_nothing(clock, store, console):
    stop = threading.Event()
    stop.set()
    conn = FakeConnection(echo_responder(), clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, clock=clock)

    assert ping(cycle, count=5, stop=stop, console=console) == 1
    assert conn.attempts == []

import re

from pinger import ProbeCycle, traceroute

from conftest import DEST_V4, IDENTIFIER, FakeConnection, as_reply, time_exceeded

HOP_LINE = re.compile(r"^\s*\d+ ")


def hop_lines(text):
    return [line for line in text.splitlines() if HOP_LINE.match(line)]


def routed(dest_hop):
    def respond(conn, packet):
        ttl = conn.ttls[-1]
        if ttl < dest_hop:
            hop = f"10.0.0.{ttl}"
            return [(ttl * 1.0, time_exceeded(packet, hop), hop)]
        return [(10.0, as_reply(packet), DEST_V4.address)]

    return respond


def test_traceroute_stops_at_destination(clock, store, console, out):
    conn = FakeConnection(routed(3), clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, clock=clock)

    result = traceroute(cycle, conn, max_hops=3, pacing=0, console=console)

    assert conn.ttls == [1, 2, 3]
    assert [hop.outcome.status for hop in result.hops] == ["hop", "hop", "matched"]
    assert result.reached
    assert result.next_sequence == 4
    lines = hop_lines(out.getvalue())
    assert len(lines) == 3
    assert "10.0.0.1" in lines[0]
    assert lines[-1].rstrip().endswith("DEST!")
    assert "DEST!" not in lines[0]


def test_traceroute_stops_early_before_ceiling(clock, store, console):
    conn = FakeConnection(routed(2), clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, clock=clock)

    result = traceroute(cycle, conn, max_hops=30, pacing=0, console=console)

    assert len(result.hops) == 2
    assert conn.ttls == [1, 2]


def test_hops_do_not_count_as_received(clock, store, console):
    conn = FakeConnection(routed(3), clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, clock=clock)

    traceroute(cycle, conn, max_hops=3, pacing=0, console=console)

    snap = store.snapshot()
    assert (snap.sent, snap.received) == (3, 1)
    assert list(snap.measurements) == [3]


def test_traceroute_silent_path_reaches_ceiling(clock, store, console, out):
    conn = FakeConnection(None, clock=clock)
    cycle = ProbeCycle(conn, DEST_V4, IDENTIFIER, store, interval=0.001, clock=clock)

    result = traceroute(cycle, conn, max_hops=4, pacing=0, console=console)

    assert not result.reached
    assert len(result.hops) == 4
    assert all(line.rstrip().endswith("*") for line in hop_lines(out.getvalue()))
    assert "4 hops max" in str(result)

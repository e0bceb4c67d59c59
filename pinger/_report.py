"""Console rendering and JSON persistence of run statistics."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from ._icmp import console as default_console
from ._icmp import logger
from ._probe import ProbeOutcome
from ._stats import Snapshot, StatisticsStore, Summary, rtt_bounds

LIVE_INTERVAL = 10.0
PROGRESS_SEGMENTS = 20
# Ethernet (14) + IPv4 (20) + ICMP (8) headers around the ICMP data
FRAME_OVERHEAD = 42


def _format_ms(value: Optional[float], digits: int = 3) -> str:
    if value is None:
        return "-"
    return f"{value:.{digits}f}ms"


def _rtt_style(rtt: float) -> str:
    if rtt < 1:
        return "green"
    if rtt < 10:
        return "yellow"
    return "red"


def print_ping_outcome(outcome: ProbeOutcome, console: Console = default_console) -> None:
    seq = outcome.sequence
    if outcome.status == "matched":
        style = _rtt_style(outcome.rtt)
        console.print(
            f"{outcome.data_len} bytes from [blue]{outcome.address}[/blue]: "
            f"icmp_seq={seq} [{style}]time={_format_ms(outcome.rtt)}[/{style}]"
        )
    elif outcome.status == "hop":
        console.print(
            f"From [cyan]{outcome.address}[/cyan] icmp_seq={seq} "
            f"[yellow]Time to live exceeded[/yellow]"
        )
    elif outcome.status == "send_error":
        console.print(f"[red]send error[/red] icmp_seq={seq}")
    else:
        console.print(f"[red]Request timeout for icmp_seq={seq}[/red]")


def format_hop(hop: int, outcome: ProbeOutcome, reached: bool) -> str:
    line = f"{hop:>2} "
    if outcome.status == "matched":
        line += f"[green]{outcome.address}[/green] [green]{_format_ms(outcome.rtt, 0)}[/green]"
    elif outcome.status == "hop":
        line += f"[cyan]{outcome.address}[/cyan] [yellow]{_format_ms(outcome.rtt, 0)}[/yellow]"
    elif outcome.status == "send_error":
        line += f"[red]send error[/red] icmp_seq={outcome.sequence}"
    else:
        line += "[red]*[/red]"
    if reached:
        line += " [green]DEST![/green]"
    return line


def progress_bar(sent: int, count: int) -> str:
    pct = sent / count * 100
    bars = min(int(pct / (100 / PROGRESS_SEGMENTS)), PROGRESS_SEGMENTS)
    return f"[{'█' * bars}{'░' * (PROGRESS_SEGMENTS - bars)}] {pct:.0f}%"


def format_live(snapshot: Snapshot, count: int) -> Optional[str]:
    """One-line live view, or ``None`` before the first probe."""
    if snapshot.sent == 0:
        return None
    _, avg, _ = rtt_bounds(snapshot.rtts())
    progress = f" {progress_bar(snapshot.sent, count)}" if count > 0 else ""
    return (
        f"[blue]LIVE[/blue] {snapshot.sent}/{count} pkts{progress} "
        f"loss:{snapshot.loss_percent:.1f}% "
        f"rtt:[yellow]{_format_ms(avg if avg is not None else 0.0)}[/yellow]"
    )


class LiveReporter(threading.Thread):
    """Prints a live statistics line every ``period`` seconds until stopped."""

    def __init__(
        self,
        store: StatisticsStore,
        count: int,
        stop: threading.Event,
        *,
        period: float = LIVE_INTERVAL,
        console: Console = default_console,
    ):
        super().__init__(name="pinger-live", daemon=True)
        self.store = store
        self.count = count
        self.stop = stop
        self.period = period
        self.console = console

    def run(self) -> None:
        while not self.stop.wait(self.period):
            line = format_live(self.store.snapshot(), self.count)
            if line is not None:
                self.console.print(line)


def format_summary(
    summary: Summary,
    *,
    verbose: bool = False,
    payload_size: int = 56,
) -> Optional[str]:
    if summary.sent == 0:
        return None

    lines = [
        "",
        "[magenta]--- ping statistics ---[/magenta]",
        f"[blue]{summary.sent}[/blue] transmitted, "
        f"[blue]{summary.received}[/blue] received, "
        f"[magenta]{summary.loss_percent:.1f}%[/magenta] packet loss",
    ]
    if summary.received == 0 or summary.rtt_min is None:
        return "\n".join(lines)

    lines.append(
        "round-trip min/avg/max = "
        f"[green]{_format_ms(summary.rtt_min)}[/green]/"
        f"[yellow]{_format_ms(summary.rtt_avg)}[/yellow]/"
        f"[red]{_format_ms(summary.rtt_max)}[/red]"
    )
    if verbose:
        lines.append(f"[yellow] jitter[/yellow] Jitter: [yellow]{_format_ms(summary.jitter)}[/yellow]")
        lines.append(f"[blue] bandwidth[/blue] Bandwidth: {summary.bandwidth_mbps:.1f} Mbps")
        lines.append(
            f"[magenta] frame[/magenta] Frame size: {payload_size + FRAME_OVERHEAD} bytes "
            f"(ICMP data: {payload_size})"
        )
    return "\n".join(lines)


def stats_document(snapshot: Snapshot) -> dict:
    rtts = snapshot.rtts()
    rtt_min, rtt_avg, rtt_max = rtt_bounds(rtts)
    return {
        "packets_sent": snapshot.sent,
        "packets_received": snapshot.received,
        "packet_loss_percent": snapshot.loss_percent,
        "min_rtt": rtt_min if rtt_min is not None else 0.0,
        "avg_rtt": rtt_avg if rtt_avg is not None else 0.0,
        "max_rtt": rtt_max if rtt_max is not None else 0.0,
        "measurements": [
            {"seq": seq, "rtt": rtt}
            for seq, rtt in snapshot.measurements.items()
            if rtt > 0
        ],
    }


def write_json_stats(
    path: Union[str, Path],
    snapshot: Snapshot,
    console: Console = default_console,
) -> bool:
    """Persist the snapshot; failures are logged and reported as ``False``."""
    try:
        data = json.dumps(stats_document(snapshot), indent=2)
        Path(path).write_text(data, encoding="utf-8")
    except (OSError, ValueError) as exc:
        logger.error("write file error: %s", exc)
        return False
    console.print(f"Statistics saved to {path}")
    return True

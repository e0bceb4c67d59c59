"""One probing run: setup, driver thread, live view and final report."""

from __future__ import annotations

import dataclasses
import os
import threading
from typing import Callable, Optional

from rich.console import Console

from ._config import Settings
from ._connection import Destination, IcmpConnection, resolve_destination
from ._icmp import console as default_console
from ._icmp import logger
from ._mtu import discover_mtu
from ._ping import ping
from ._probe import ProbeCycle
from ._report import LiveReporter, format_summary, write_json_stats
from ._stats import StatisticsStore
from ._traceroute import traceroute

WAIT_SLICE = 0.5


def process_identifier() -> int:
    return os.getpid() & 0xFFFF


class Session:
    """Runs the ping or traceroute driver and produces exactly one report.

    The driver runs in a worker thread. Normal completion and
    :meth:`interrupt` both release :meth:`run`, which then calls
    :meth:`finish`; the report is printed at most once.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        open_connection: Callable[[Destination], IcmpConnection] = IcmpConnection.open,
        resolve: Callable[[str], Destination] = resolve_destination,
        identifier: Optional[int] = None,
        store: Optional[StatisticsStore] = None,
        console: Console = default_console,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.settings = settings
        self.open_connection = open_connection
        self.resolve = resolve
        self.identifier = process_identifier() if identifier is None else identifier
        self.store = store or StatisticsStore()
        self.console = console
        self.clock = clock
        self.stop = threading.Event()
        self.finished = threading.Event()
        self.destination: Optional[Destination] = None
        self.connection = None
        self.error: Optional[BaseException] = None
        self._report_lock = threading.Lock()
        self._reported = False

    def start(self) -> None:
        """Resolve, open the socket and run MTU discovery; errors here are fatal."""
        self.settings.validate()
        self.destination = self.resolve(self.settings.host)
        self.connection = self.open_connection(self.destination)
        if not self.settings.trace:
            self.connection.set_ttl(self.settings.ttl)

        self.store.reset()

        if self.settings.mtu_test:
            result = discover_mtu(
                self.destination,
                self.open_connection,
                self.identifier,
                max_payload=self.settings.max_size,
                console=self.console,
            )
            if result.payload_size is not None:
                self.settings = dataclasses.replace(
                    self.settings, size=result.payload_size
                )

    def make_cycle(self) -> ProbeCycle:
        kwargs = {}
        if self.clock is not None:
            kwargs["clock"] = self.clock
        return ProbeCycle(
            self.connection,
            self.destination,
            self.identifier,
            self.store,
            payload_size=self.settings.size,
            interval=self.settings.interval,
            max_payload=self.settings.max_size,
            **kwargs,
        )

    def _drive(self) -> None:
        try:
            cycle = self.make_cycle()
            if self.settings.trace:
                traceroute(
                    cycle,
                    self.connection,
                    max_hops=self.settings.ttl,
                    stop=self.stop,
                    console=self.console,
                )
            else:
                ping(
                    cycle,
                    count=self.settings.count,
                    interval=self.settings.interval,
                    stop=self.stop,
                    console=self.console,
                )
        except Exception as exc:
            logger.exception("Probe loop failed: %s", exc)
            self.error = exc
        finally:
            self.finished.set()

    def interrupt(self) -> None:
        """Stop issuing probes and release :meth:`run` for the final report."""
        self.stop.set()
        self.finished.set()

    def run(self) -> int:
        if self.destination is None:
            self.start()

        worker = threading.Thread(target=self._drive, name="pinger-driver", daemon=True)
        worker.start()

        if self.settings.live and not self.settings.trace:
            LiveReporter(
                self.store, self.settings.count, self.stop, console=self.console
            ).start()

        while not self.finished.wait(WAIT_SLICE):
            pass

        interrupted = self.stop.is_set()
        status = self.finish()
        if not interrupted:
            worker.join()
        if self.connection is not None and not worker.is_alive():
            self.connection.close()
        return status

    def finish(self) -> int:
        with self._report_lock:
            if self._reported:
                return 0
            self._reported = True
        self.stop.set()

        summary = self.store.finalize(self.settings.size, self.settings.interval)
        text = format_summary(
            summary, verbose=self.settings.verbose, payload_size=self.settings.size
        )
        if text is not None:
            self.console.print(text)
        if self.settings.output:
            write_json_stats(self.settings.output, self.store.snapshot(), self.console)
        return 1 if self.error is not None else 0

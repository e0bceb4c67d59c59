"""Command line interface for pinger."""

from __future__ import annotations

import argparse
import datetime
import signal
import sys
from typing import Optional, Sequence

from . import __version__
from ._config import ConfigError, Settings, parse_duration
from ._connection import RawSocketPermissionError, ResolveError, UnsupportedPlatformError
from ._icmp import JUMBO_MAX_PAYLOAD_SIZE, MAX_PAYLOAD_SIZE, configure_logging, console, logger
from ._session import Session

EPILOG = """\
Examples:
  pinger -V
  pinger -c 10 -i 5ms 192.168.1.1
  pinger -c 100 -i 1ms --live -v -o stats.json 8.8.8.8
  pinger --trace -t 30 8.8.8.8
  pinger -t 32 -s 1472 192.168.1.1
"""


def _duration(value: str) -> float:
    try:
        return parse_duration(value)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pinger",
        usage="%(prog)s [options] <host>",
        description="ICMP ping with live statistics, traceroute and MTU discovery",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("host", nargs="?", help="target host or address")
    parser.add_argument(
        "-c", dest="count", type=int, default=0,
        help="stop after count packets (0 = infinite)",
    )
    parser.add_argument(
        "-i", dest="interval", type=_duration, default=1.0,
        help="interval between packets, e.g. 1s, 5ms (min 1ms)",
    )
    parser.add_argument("-o", dest="output", help="write statistics to JSON file")
    parser.add_argument(
        "-s", dest="size", type=int, default=56,
        help=f"ICMP data size (default 56, max {MAX_PAYLOAD_SIZE})",
    )
    parser.add_argument(
        "-t", dest="ttl", type=int, default=64, help="IP TTL (1-255, default 64)"
    )
    parser.add_argument(
        "--trace", action="store_true",
        help="traceroute-like mode (increment TTL from 1 to -t)",
    )
    parser.add_argument(
        "--mtu-test", action="store_true",
        help="auto discover MTU (jumbo frames support)",
    )
    parser.add_argument(
        "--jumbo", action="store_true",
        help=f"allow ICMP data up to {JUMBO_MAX_PAYLOAD_SIZE} bytes",
    )
    parser.add_argument("--live", action="store_true", help="live statistics every 10s")
    parser.add_argument("-v", dest="verbose", action="store_true", help="verbose statistics")
    parser.add_argument("-V", dest="version", action="store_true", help="show version")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        host=args.host,
        count=args.count,
        interval=args.interval,
        size=args.size,
        ttl=args.ttl,
        trace=args.trace,
        mtu_test=args.mtu_test,
        live=args.live,
        verbose=args.verbose,
        output=args.output,
        max_size=JUMBO_MAX_PAYLOAD_SIZE if args.jumbo else MAX_PAYLOAD_SIZE,
    )


def run(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        console.print(f"pinger v{__version__} (built {datetime.date.today():%Y-%m-%d})")
        console.print("Backend developer tools - MTU/Jumbo ping + traceroute utility")
        return 0

    if not args.host:
        parser.print_usage(sys.stderr)
        return 1

    configure_logging(args.verbose)

    try:
        session = Session(settings_from_args(args).validate())
        session.start()
    except ConfigError as exc:
        logger.error(str(exc))
        return 1
    except ResolveError as exc:
        logger.error("resolve error: %s", exc)
        return 1
    except (RawSocketPermissionError, UnsupportedPlatformError) as exc:
        logger.error("listen error: %s", exc)
        return 1
    except OSError as exc:
        logger.error("socket error: %s", exc)
        return 1

    def handle_signal(signum, frame) -> None:
        session.interrupt()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    return session.run()


if __name__ == "__main__":
    sys.exit(run())

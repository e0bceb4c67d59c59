__version__ = "1.2.1"

from ._config import ConfigError, Settings, parse_duration
from ._connection import (
    Destination,
    IcmpConnection,
    RawSocketPermissionError,
    ResolveError,
    UnsupportedPlatformError,
    resolve_destination,
)
from ._icmp import (
    EchoReply,
    EncodingError,
    IcmpPacket,
    OtherMessage,
    ParseError,
    PingerError,
    TimeExceeded,
    build_echo,
    console,
    encode_packet,
    logger,
    parse_reply,
)
from ._mtu import MtuResult, discover_mtu
from ._ping import ping
from ._probe import ProbeCycle, ProbeOutcome
from ._session import Session
from ._stats import Snapshot, StatisticsStore, Summary
from ._traceroute import TracerouteHop, TracerouteResult, traceroute

__all__ = [
    "ConfigError",
    "Destination",
    "EchoReply",
    "EncodingError",
    "IcmpConnection",
    "IcmpPacket",
    "MtuResult",
    "OtherMessage",
    "ParseError",
    "PingerError",
    "ProbeCycle",
    "ProbeOutcome",
    "RawSocketPermissionError",
    "ResolveError",
    "Session",
    "Settings",
    "Snapshot",
    "StatisticsStore",
    "Summary",
    "TimeExceeded",
    "TracerouteHop",
    "TracerouteResult",
    "UnsupportedPlatformError",
    "build_echo",
    "console",
    "discover_mtu",
    "encode_packet",
    "logger",
    "parse_duration",
    "parse_reply",
    "ping",
    "resolve_destination",
    "traceroute",
]

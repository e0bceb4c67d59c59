from __future__ import annotations

import logging
import socket
import struct
from dataclasses import dataclass
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0
ICMP_TIME_EXCEEDED = 11

ICMPV6_ECHO_REQUEST = 128
ICMPV6_ECHO_REPLY = 129
ICMPV6_TIME_EXCEEDED = 3

# 1500 byte Ethernet MTU minus 20 bytes IPv4 header and 8 bytes ICMP header
MAX_PAYLOAD_SIZE = 1472
JUMBO_MAX_PAYLOAD_SIZE = 65507
HEADER_OVERHEAD = 28

PAYLOAD_PATTERN = b"ABCDEFGHIJKLMNOPQRSTUVWXYZ"


# ------------- Logger configuravel
console = Console()
FORMAT = "%(message)s"
logger = logging.getLogger("pinger")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level="DEBUG" if verbose else "INFO",
        format=FORMAT,
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                markup=True,
                show_time=False,
            )
        ],
    )


class PingerError(Exception):
    """Base class for every error raised by pinger."""


class EncodingError(PingerError, ValueError):
    """Raised when an echo request cannot be built."""


class ParseError(PingerError, ValueError):
    """Raised when received bytes are not a decodable ICMP message."""


@dataclass
class IcmpPacket:
    type: int
    code: int
    checksum: int
    id: int
    sequence: int
    data: bytes


@dataclass
class IpHeader:
    version: int
    ihl: int
    total_length: int
    ttl: int
    protocol: int
    src_addr: str
    dest_addr: str


@dataclass(frozen=True)
class EchoReply:
    id: int
    sequence: int
    data_len: int


@dataclass(frozen=True)
class TimeExceeded:
    pass


@dataclass(frozen=True)
class OtherMessage:
    type: int
    code: int


ParsedReply = Union[EchoReply, TimeExceeded, OtherMessage]


def icmp_checksum(data: bytes) -> int:
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack("!%dH" % (len(data) // 2), data))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return (~total) & 0xFFFF


def make_payload(size: int) -> bytes:
    """Return ``size`` bytes of the repeating ``A..Z`` pattern."""
    repeats = size // len(PAYLOAD_PATTERN) + 1
    return (PAYLOAD_PATTERN * repeats)[:size]


def build_echo(
    identifier: int,
    sequence: int,
    payload_size: int,
    family: int = socket.AF_INET,
    *,
    max_payload: int = MAX_PAYLOAD_SIZE,
) -> IcmpPacket:
    """Build an Echo Request for the given address family.

    IPv6 packets carry a zero checksum; the kernel fills it in for raw
    ICMPv6 sockets since it depends on the pseudo header.
    """
    if payload_size < 0 or payload_size > max_payload:
        raise EncodingError(
            f"payload size {payload_size} outside 0-{max_payload} bytes"
        )

    data = make_payload(payload_size)
    identifier &= 0xFFFF
    sequence &= 0xFFFF

    if family == socket.AF_INET6:
        return IcmpPacket(
            type=ICMPV6_ECHO_REQUEST,
            code=0,
            checksum=0,
            id=identifier,
            sequence=sequence,
            data=data,
        )

    header = struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, 0, identifier, sequence)
    checksum = icmp_checksum(header + data)
    return IcmpPacket(
        type=ICMP_ECHO_REQUEST,
        code=0,
        checksum=checksum,
        id=identifier,
        sequence=sequence,
        data=data,
    )


def encode_packet(packet: IcmpPacket) -> bytes:
    header = struct.pack(
        "!BBHHH",
        packet.type,
        packet.code,
        packet.checksum,
        packet.id,
        packet.sequence,
    )
    return header + packet.data


def parse_ip_header(pkt: bytes) -> IpHeader:
    if len(pkt) < 20:
        raise ParseError("Packet shorter than minimum IP header length (20 bytes).")

    iph = struct.unpack("!BBHHHBBH4s4s", pkt[:20])
    version_ihl = iph[0]
    return IpHeader(
        version=version_ihl >> 4,
        ihl=version_ihl & 0xF,
        total_length=iph[2],
        ttl=iph[5],
        protocol=iph[6],
        src_addr=socket.inet_ntoa(iph[8]),
        dest_addr=socket.inet_ntoa(iph[9]),
    )


def parse_icmp_packet(pkt: bytes, family: int = socket.AF_INET) -> IcmpPacket:
    """Decode an ICMP message, stripping the IPv4 header when present.

    Raw IPv4 sockets hand over the IP header, raw IPv6 and datagram ICMP
    sockets do not. No ICMP type has 4 in its high nibble, so a leading
    ``0x4?`` byte always means an IPv4 header.
    """
    if family == socket.AF_INET and pkt and pkt[0] >> 4 == 4:
        ip_header = parse_ip_header(pkt)
        iph_length = ip_header.ihl * 4
        if iph_length < 20 or len(pkt) < iph_length + 8:
            raise ParseError(
                "Packet shorter than IP header + ICMP header (IHL + 8 bytes)."
            )
        pkt = pkt[iph_length:]

    if len(pkt) < 8:
        raise ParseError("Packet shorter than ICMP header (8 bytes).")

    icmph = struct.unpack("!BBHHH", pkt[:8])
    return IcmpPacket(
        type=icmph[0],
        code=icmph[1],
        checksum=icmph[2],
        id=icmph[3],
        sequence=icmph[4],
        data=pkt[8:],
    )


def parse_reply(raw: bytes, family: int = socket.AF_INET) -> ParsedReply:
    """Classify received bytes as an echo reply, a time exceeded or other."""
    icmp_pkt = parse_icmp_packet(raw, family)

    if family == socket.AF_INET6:
        echo_reply, time_exceeded = ICMPV6_ECHO_REPLY, ICMPV6_TIME_EXCEEDED
    else:
        echo_reply, time_exceeded = ICMP_ECHO_REPLY, ICMP_TIME_EXCEEDED

    if icmp_pkt.type == echo_reply:
        return EchoReply(
            id=icmp_pkt.id,
            sequence=icmp_pkt.sequence,
            data_len=len(icmp_pkt.data),
        )
    if icmp_pkt.type == time_exceeded:
        return TimeExceeded()
    return OtherMessage(type=icmp_pkt.type, code=icmp_pkt.code)


def echo_reply_type(family: int) -> int:
    return ICMPV6_ECHO_REPLY if family == socket.AF_INET6 else ICMP_ECHO_REPLY


def describe(reply: Optional[ParsedReply]) -> str:
    if isinstance(reply, EchoReply):
        return f"echo reply id={reply.id} seq={reply.sequence}"
    if isinstance(reply, TimeExceeded):
        return "time exceeded"
    if isinstance(reply, OtherMessage):
        return f"icmp type {reply.type} code {reply.code}"
    return "nothing"

"""Raw ICMP socket ownership and host resolution."""

from __future__ import annotations

import select
import socket
import sys
from dataclasses import dataclass
from typing import Optional

from ._icmp import PingerError, logger

SUPPORTED_PLATFORMS = ("linux", "darwin", "win32")
RECV_BUFFER_SIZE = 65535


class RawSocketPermissionError(PermissionError):
    """Raised when raw socket creation fails due to missing privileges."""


class UnsupportedPlatformError(PingerError, OSError):
    """Raised when raw ICMP sockets are not supported on this platform."""


class ResolveError(PingerError, RuntimeError):
    """Raised when a host name cannot be resolved."""


@dataclass(frozen=True)
class Destination:
    host: str
    address: str
    family: int

    def sockaddr(self) -> tuple:
        if self.family == socket.AF_INET6:
            return (self.address, 0, 0, 0)
        return (self.address, 0)


def valid_ip(host: str) -> Optional[int]:
    for family in (socket.AF_INET, socket.AF_INET6):
        try:
            socket.inet_pton(family, host)
            return family
        except OSError:
            continue
    return None


def resolve_destination(host: str) -> Destination:
    family = valid_ip(host)
    if family is not None:
        return Destination(host=host, address=host, family=family)

    try:
        infos = socket.getaddrinfo(host, None)
    except OSError as exc:
        message = f"Resolve error {host}: {exc}"
        logger.debug(message)
        raise ResolveError(message) from exc

    # prefer IPv4, like a plain "ip" network lookup
    infos.sort(key=lambda info: info[0] != socket.AF_INET)
    for family, _, _, _, sockaddr in infos:
        if family in (socket.AF_INET, socket.AF_INET6):
            return Destination(host=host, address=sockaddr[0], family=family)
    raise ResolveError(f"Resolve error {host}: no IPv4 or IPv6 address")


class IcmpConnection:
    """Raw ICMP socket bound for the destination's address family."""

    def __init__(self, family: int = socket.AF_INET):
        self.family = family
        self._sock: Optional[socket.socket] = None

    @classmethod
    def open(cls, destination: Destination) -> "IcmpConnection":
        conn = cls(destination.family)
        conn.sock  # surface permission errors at startup
        return conn

    @property
    def sock(self) -> socket.socket:
        if self._sock is None:
            if sys.platform not in SUPPORTED_PLATFORMS:
                raise UnsupportedPlatformError(f"unsupported OS: {sys.platform}")
            if self.family == socket.AF_INET6:
                proto = socket.getprotobyname("ipv6-icmp")
            else:
                proto = socket.getprotobyname("icmp")
            try:
                self._sock = socket.socket(self.family, socket.SOCK_RAW, proto)
            except PermissionError as exc:
                message = (
                    "Raw socket requires elevated privileges. Use sudo or grant "
                    "CAP_NET_RAW to the Python interpreter."
                )
                raise RawSocketPermissionError(message) from exc
        return self._sock

    def set_ttl(self, ttl: int) -> None:
        if self.family == socket.AF_INET6:
            self.sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_UNICAST_HOPS, ttl)
        else:
            self.sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, ttl)

    def send(self, packet: bytes, destination: Destination) -> int:
        return self.sock.sendto(packet, destination.sockaddr())

    def receive(self, timeout: float) -> tuple[bytes, str]:
        """Read one packet, raising :class:`socket.timeout` when none arrives."""
        if timeout <= 0:
            raise socket.timeout("read deadline exceeded")
        ready = select.select([self.sock], [], [], timeout)
        if not ready[0]:
            raise socket.timeout("read deadline exceeded")
        pkt, addr = self.sock.recvfrom(RECV_BUFFER_SIZE)
        return pkt, addr[0]

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def __enter__(self) -> "IcmpConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

"""Small helpers shared across the synchronisation code."""

from __future__ import annotations

import enum
import ipaddress
import socket
import sys
from dataclasses import dataclass


class MismatchingIpVersionError(LookupError):
    """No address of the requested IP version was found for a host."""


def get_hostname_ip(
    hostname: str, isipv6: bool
) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """Resolve ``hostname`` and return the first address of the wanted version.

    Resolution failures propagate as :class:`OSError`.
    """
    for family, _type, _proto, _canon, sockaddr in socket.getaddrinfo(hostname, None):
        address = ipaddress.ip_address(str(sockaddr[0]).split("%", 1)[0])
        if (address.version == 6) == isipv6:
            return address
    raise MismatchingIpVersionError(
        f"no IPv{6 if isipv6 else 4} address found for {hostname}"
    )


def wrap_diff(start: float, end: float, maximum: float) -> float:
    """Signed difference from ``start`` to ``end`` on a scale that wraps at ``maximum``."""
    threshold = maximum * 0.5
    if abs(start - end) > threshold:
        if start < threshold and end > threshold:
            return -((start + maximum) - end)
        return end + maximum - start
    return end - start


def float_eq(lhs: float, rhs: float) -> bool:
    """Whether two floats are equal within machine epsilon."""
    return abs(rhs - lhs) < sys.float_info.epsilon


class Category(enum.Enum):
    """Who is allowed to send a synchronised value."""

    SHARED = "shared"
    MASTER = "master"
    SERVER = "server"
    INIT = "init"


class InDataType(enum.Enum):
    """Data type of a simulator variable."""

    BOOL = "bool"
    I32 = "i32"
    I64 = "i64"
    F64 = "f64"


class NumberDigits:
    """Decimal digits of a non-negative integer, least significant first."""

    __slots__ = ("_digits",)

    def __init__(self, value: int) -> None:
        digits = []
        while value > 0:
            value, digit = divmod(value, 10)
            digits.append(digit)
        self._digits = tuple(digits)

    def get(self, index: int) -> int:
        """Digit at ``index`` (0 is the ones place); missing places read as 0."""
        if index < len(self._digits):
            return self._digits[index]
        return 0


@dataclass(frozen=True)
class Vector3:
    """A three component vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)
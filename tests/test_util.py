import ipaddress
import socket
from unittest.mock import patch

import pytest

from cockpitshare.util import (
    Category,
    InDataType,
    MismatchingIpVersionError,
    NumberDigits,
    Vector3,
    float_eq,
    get_hostname_ip,
    wrap_diff,
)

_ADDRS = [
    (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", 0, 0, 0)),
    (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 0)),
]


def test_number_digits():
    digits = NumberDigits(503)
    assert digits.get(0) == 3
    assert digits.get(1) == 0
    assert digits.get(2) == 5
    assert digits.get(3) == 0


def test_number_digits_zero_and_negative_are_all_padding():
    assert [NumberDigits(0).get(i) for i in range(3)] == [0, 0, 0]
    assert NumberDigits(-42).get(0) == 0


def test_wrap_diff():
    assert float_eq(wrap_diff(0.0, 10.0, 360.0), 10.0)
    assert float_eq(wrap_diff(350.0, 10.0, 360.0), 20.0)
    assert float_eq(wrap_diff(10.0, 350.0, 360.0), -20.0)


def test_wrap_diff_is_antisymmetric():
    for start, end in [(350.0, 10.0), (0.0, 10.0), (100.0, 30.0)]:
        assert float_eq(wrap_diff(start, end, 360.0), -wrap_diff(end, start, 360.0))


def test_float_eq():
    assert float_eq(0.1 + 0.2, 0.3)
    assert not float_eq(1.0, 1.001)


def test_vector_arithmetic():
    a = Vector3(1.0, 2.0, 3.0)
    b = Vector3(0.5, 0.5, 0.5)
    assert (a + b) - b == a
    assert a - a == Vector3()


def test_enum_values():
    assert InDataType("f64") is InDataType.F64
    assert Category("init") is Category.INIT


def test_hostname_ip_picks_requested_version():
    with patch("cockpitshare.util.socket.getaddrinfo", return_value=_ADDRS):
        assert get_hostname_ip("host", False) == ipaddress.ip_address("127.0.0.1")
        assert get_hostname_ip("host", True) == ipaddress.ip_address("::1")


def test_hostname_ip_mismatch():
    with patch("cockpitshare.util.socket.getaddrinfo", return_value=_ADDRS[1:]):
        with pytest.raises(MismatchingIpVersionError):
            get_hostname_ip("host", True)
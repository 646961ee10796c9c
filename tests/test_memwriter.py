import struct

import pytest

from cockpitshare.memwriter import MemWriter


def test_new_buffer_is_zero_filled():
    writer = MemWriter(16, 4)
    assert writer.to_bytes() == bytes(16)


def test_u32_round_trip():
    writer = MemWriter(8, 4)
    writer.write_u32(0xDEADBEEF)
    assert struct.unpack_from("=I", writer.to_bytes())[0] == 0xDEADBEEF


def test_mixed_values_round_trip():
    writer = MemWriter(64, 4)
    writer.write_i32(-7)
    writer.write_i64(-(2**40))
    writer.write_f64(42.5)
    writer.write_bool(True)
    assert struct.unpack_from("=iqdi", writer.to_bytes()) == (-7, -(2**40), 42.5, 1)
    assert writer.position == struct.calcsize("=iqdi")


def test_string_and_padding():
    writer = MemWriter(8, 1)
    writer.write_str("ab")
    writer.pad(2)
    writer.write_str("cd")
    assert writer.to_bytes()[:6] == b"ab\x00\x00cd"


def test_negative_pad_overwrites():
    writer = MemWriter(8, 1)
    writer.write_str("abcd")
    writer.pad(-2)
    writer.write_str("xy")
    assert writer.to_bytes()[:4] == b"abxy"


def test_write_past_end_raises():
    writer = MemWriter(4, 4)
    writer.write_u32(1)
    with pytest.raises(ValueError):
        writer.write_u32(2)


def test_pad_outside_buffer_raises():
    writer = MemWriter(4, 4)
    with pytest.raises(ValueError):
        writer.pad(-1)


def test_invalid_alignment_raises():
    with pytest.raises(ValueError):
        MemWriter(16, 3)


def test_u32_out_of_range_raises():
    writer = MemWriter(8, 4)
    with pytest.raises(struct.error):
        writer.write_u32(-1)
import struct

import pytest

from cockpitshare.connector import SimConnector
from cockpitshare.gaugecommunicator import (
    GaugeCommunicator,
    GetResult,
    InterpolateData,
    InterpolationType,
    format_get,
)


def _client_data(conn):
    return [r.args for r in conn.requests if r.name == "set_client_data"]


def _return_block(records):
    header = struct.pack("=I4x", len(records))
    return header + b"".join(struct.pack("=i4xd", i, v) for i, v in records)


def test_format_get():
    assert format_get("A:X", " Bool ") == "(A:X, Bool)"
    assert format_get(" L:Y ", None) == "(L:Y)"


def test_set_without_units():
    conn = SimConnector()
    GaugeCommunicator().set(conn, "L:FOO", None, " 1 ")
    (args,) = _client_data(conn)
    assert args[:4] == (0, 0, 0, 0)
    assert len(args[4]) == 128
    assert args[4][8:].rstrip(b"\0") == b"1 (>L:FOO)"


def test_set_with_units():
    conn = SimConnector()
    GaugeCommunicator().set(conn, "A:LIGHT", "Bool", "1")
    (args,) = _client_data(conn)
    assert args[4][8:].rstrip(b"\0") == b"1 (>A:LIGHT, Bool)"


def test_send_raw():
    conn = SimConnector()
    GaugeCommunicator().send_raw(conn, "(>K:TOGGLE)")
    (args,) = _client_data(conn)
    assert args[4][8:].rstrip(b"\0") == b"(>K:TOGGLE)"


def test_stop_interpolation_operation():
    conn = SimConnector()
    GaugeCommunicator().stop_interpolation(conn)
    (args,) = _client_data(conn)
    assert struct.unpack_from("=i", args[4])[0] == -2


def test_send_definitions_in_blocks():
    conn = SimConnector()
    gauge = GaugeCommunicator()
    for index in range(130):
        gauge.add_definition(f"L:V{index}", None)
    gauge.send_definitions(conn)
    blocks = _client_data(conn)
    assert len(blocks) == 2
    assert all(len(args[4]) == 126 * 64 for args in blocks)
    first = blocks[0][4]
    assert first[:64].rstrip(b"\0") == b"(L:V0)"
    assert first[64:128].rstrip(b"\0") == b"(L:V1)"
    assert blocks[1][4][:64].rstrip(b"\0") == b"(L:V126)"
    assert len(gauge) == 130


def test_send_new_interpolation_data_skips_unmapped():
    conn = SimConnector()
    gauge = GaugeCommunicator()
    gauge.add_interpolate_mapping("A:HEADING", "HEADING", "Degrees", InterpolationType.WRAP360)
    gauge.add_interpolate_mapping("A:ALT", "ALT", "Feet", InterpolationType.DEFAULT)
    gauge.send_new_interpolation_data(
        conn, 2.5, [InterpolateData("ALT", 1000.0), InterpolateData("NOPE", 1.0)]
    )
    (args,) = _client_data(conn)
    data = args[4]
    assert len(data) == 24
    assert struct.unpack_from("=Id", data, 0) == (100, 2.5)
    assert struct.unpack_from("=Id", data, 12) == (1, 1000.0)


def test_process_client_data():
    gauge = GaugeCommunicator()
    gauge.add_definition("L:A", None)
    gauge.add_definition("L:B", None)
    results = gauge.process_client_data(_return_block([(0, 3.5), (5, 1.0), (1, 1e70)]))
    assert results == [GetResult("L:A", 3.5), GetResult("L:B", 10e64)]


def test_process_client_data_short_raises():
    gauge = GaugeCommunicator()
    gauge.add_definition("L:A", None)
    with pytest.raises(ValueError):
        gauge.process_client_data(_return_block([(0, 1.0)])[:-4])


def test_on_connected_sets_up_areas():
    conn = SimConnector()
    gauge = GaugeCommunicator()
    gauge.add_interpolate_mapping("A:X", "X", None, InterpolationType.INVERT)
    gauge.on_connected(conn)
    names = [r.args for r in conn.requests if r.name == "map_client_data_name_to_id"]
    assert ("YCSEND", 0) in names
    assert ("YCSENDINTERPOLATE", 5) in names
    data_sets = _client_data(conn)
    assert struct.unpack_from("=i", data_sets[0][4])[0] == -1
    mapping = data_sets[-1]
    assert mapping[0] == 4
    assert len(mapping[4]) == 72
    assert mapping[4][8:72].rstrip(b"\0") == b"(>A:X)"
    assert any(r.name == "request_client_data" for r in conn.requests)


def test_interpolation_type_from_config_name():
    assert InterpolationType("DefaultConstant") is InterpolationType.DEFAULT_CONSTANT
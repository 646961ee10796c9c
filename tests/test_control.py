from cockpitshare.connector import SimConnector
from cockpitshare.control import Control
from cockpitshare.gaugecommunicator import GaugeCommunicator


def _events(conn):
    return [r.args for r in conn.requests if r.name == "transmit_client_event"]


def _last_command(conn):
    data = [r.args[4] for r in conn.requests if r.name == "set_client_data"][-1]
    return data[8:].rstrip(b"\0")


def test_starts_without_control():
    assert Control().has_control() is False


def test_take_control_unfreezes():
    conn = SimConnector()
    control = Control()
    control.take_control(conn, GaugeCommunicator())
    assert control.has_control() is True
    assert _events(conn) == [(1, 1000, 0, 5, 0), (1, 1001, 0, 5, 0), (1, 1002, 0, 5, 0)]
    assert _last_command(conn) == b"0 (>L:A32NX_EXTERNAL_OVERRIDE)"


def test_lose_control_freezes():
    conn = SimConnector()
    control = Control()
    control.take_control(conn, GaugeCommunicator())
    conn.requests.clear()
    control.lose_control(conn, GaugeCommunicator())
    assert control.has_control() is False
    assert [args[2] for args in _events(conn)] == [1, 1, 1]
    assert _last_command(conn) == b"1 (>L:A32NX_EXTERNAL_OVERRIDE)"


def test_on_connected_maps_freeze_events():
    conn = SimConnector()
    Control().on_connected(conn)
    mapped = [r.args for r in conn.requests if r.name == "map_client_event_to_sim_event"]
    assert mapped == [
        (1000, "FREEZE_LATITUDE_LONGITUDE_SET"),
        (1001, "FREEZE_ALTITUDE_SET"),
        (1002, "FREEZE_ATTITUDE_SET"),
    ]
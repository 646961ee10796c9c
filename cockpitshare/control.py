"""Freezing and unfreezing the aircraft when control changes hands."""

from __future__ import annotations

from cockpitshare.connector import SimConnector
from cockpitshare.gaugecommunicator import GaugeCommunicator

_FREEZE_EVENTS = {
    1000: "FREEZE_LATITUDE_LONGITUDE_SET",
    1001: "FREEZE_ALTITUDE_SET",
    1002: "FREEZE_ATTITUDE_SET",
}
_GROUP_ID = 5
_EXTERNAL_OVERRIDE = "L:A32NX_EXTERNAL_OVERRIDE"


class Control:
    """Tracks whether this client controls the aircraft."""

    def __init__(self) -> None:
        self._has_control = False

    def do_transfer(self, conn: SimConnector) -> None:
        """Freeze the aircraft unless we have control."""
        frozen = int(not self._has_control)
        for event_id in _FREEZE_EVENTS:
            conn.transmit_client_event(1, event_id, frozen, _GROUP_ID, 0)

    def take_control(
        self, conn: SimConnector, gauge_communicator: GaugeCommunicator
    ) -> None:
        self._has_control = True
        self.do_transfer(conn)
        gauge_communicator.stop_interpolation(conn)
        gauge_communicator.set(conn, _EXTERNAL_OVERRIDE, None, "0")

    def lose_control(
        self, conn: SimConnector, gauge_communicator: GaugeCommunicator
    ) -> None:
        self._has_control = False
        self.do_transfer(conn)
        gauge_communicator.stop_interpolation(conn)
        gauge_communicator.set(conn, _EXTERNAL_OVERRIDE, None, "1")

    def has_control(self) -> bool:
        return self._has_control

    def on_connected(self, conn: SimConnector) -> None:
        for event_id, event_name in _FREEZE_EVENTS.items():
            conn.map_client_event_to_sim_event(event_id, event_name)
"""Outbound request channel to the flight simulator."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DATATYPE_INT32 = 1
DATATYPE_FLOAT64 = 4

PERIOD_SIM_FRAME = 3
CLIENT_DATA_PERIOD_ON_SET = 3

CLIENT_DATA_SET_FLAG_TAGGED = 1
CLIENT_DATA_REQUEST_FLAG_CHANGED = 1
CLIENT_DATA_REQUEST_FLAG_TAGGED = 2

EVENT_FLAG_GROUPID_IS_PRIORITY = 0x10


@dataclass(frozen=True)
class SimRequest:
    """One request sent to the simulator: its operation name and arguments."""

    name: str
    args: tuple[Any, ...]


class SimConnector:
    """Collects simulator requests and hands each to an optional sink.

    Every request is appended to :attr:`requests` in the order it was made.
    """

    def __init__(self, sink: Callable[[SimRequest], None] | None = None) -> None:
        self.requests: list[SimRequest] = []
        self._sink = sink

    def _submit(self, name: str, *args: Any) -> None:
        request = SimRequest(name, args)
        self.requests.append(request)
        if self._sink is not None:
            self._sink(request)

    def transmit_client_event(
        self, object_id: int, event_id: int, data: int, group_id: int, flags: int
    ) -> None:
        self._submit("transmit_client_event", object_id, event_id, data, group_id, flags)

    def set_client_data(
        self, client_data_id: int, define_id: int, flags: int, reserved: int, data: bytes
    ) -> None:
        self._submit("set_client_data", client_data_id, define_id, flags, reserved, bytes(data))

    def map_client_data_name_to_id(self, name: str, client_data_id: int) -> None:
        self._submit("map_client_data_name_to_id", name, client_data_id)

    def add_to_client_data_definition(
        self, define_id: int, offset: int, size: int, epsilon: float, datum_id: int
    ) -> None:
        self._submit("add_to_client_data_definition", define_id, offset, size, epsilon, datum_id)

    def request_client_data(
        self, client_data_id: int, request_id: int, define_id: int, period: int, flags: int
    ) -> None:
        self._submit("request_client_data", client_data_id, request_id, define_id, period, flags)

    def map_client_event_to_sim_event(self, event_id: int, event_name: str) -> None:
        self._submit("map_client_event_to_sim_event", event_id, event_name)

    def add_client_event_to_notification_group(
        self, group_id: int, event_id: int, maskable: bool
    ) -> None:
        self._submit("add_client_event_to_notification_group", group_id, event_id, maskable)

    def clear_data_definition(self, define_id: int) -> None:
        self._submit("clear_data_definition", define_id)

    def add_data_definition(
        self,
        define_id: int,
        var_name: str,
        units: str,
        data_type: int,
        datum_id: int,
        epsilon: float,
    ) -> None:
        self._submit(
            "add_data_definition", define_id, var_name, units, data_type, datum_id, epsilon
        )

    def set_data_on_sim_object(
        self, define_id: int, object_id: int, flags: int, count: int, data: bytes
    ) -> None:
        self._submit("set_data_on_sim_object", define_id, object_id, flags, count, bytes(data))

    def request_data_on_sim_object(
        self, request_id: int, define_id: int, object_id: int, period: int, flags: int
    ) -> None:
        self._submit("request_data_on_sim_object", request_id, define_id, object_id, period, flags)
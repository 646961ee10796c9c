"""Registries for events, local variables and aircraft variables."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from cockpitshare.connector import (
    CLIENT_DATA_SET_FLAG_TAGGED,
    DATATYPE_FLOAT64,
    DATATYPE_INT32,
    SimConnector,
)
from cockpitshare.gaugecommunicator import GaugeCommunicator, GetResult
from cockpitshare.util import InDataType
from cockpitshare.varreader import VarReader


class Events:
    """Maps event names to client event ids."""

    def __init__(self, group_id: int) -> None:
        self.group_id = group_id
        self._ids: dict[str, int] = {}
        self._names: dict[int, str] = {}
        self._should_notify: set[int] = set()

    def __len__(self) -> int:
        return len(self._ids)

    def get_or_map_event_id(self, event_name: str, should_notify: bool) -> int:
        """Id of ``event_name``, assigning the next free id if it is new."""
        existing = self._ids.get(event_name)
        if existing is not None:
            return existing
        event_id = len(self._ids)
        self._ids[event_name] = event_id
        self._names[event_id] = event_name
        if should_notify:
            self._should_notify.add(event_id)
        return event_id

    def match_event_id(self, event_id: int) -> str | None:
        return self._names.get(event_id)

    def trigger_event(self, conn: SimConnector, event_name: str, data: int) -> None:
        """Transmit a mapped event; raises :class:`KeyError` if it is unknown."""
        event_id = self._ids[event_name]
        conn.transmit_client_event(1, event_id, data, 0, 0)

    def on_connected(self, conn: SimConnector) -> None:
        for event_name, event_id in self._ids.items():
            conn.map_client_event_to_sim_event(event_id, event_name)
            if event_id in self._should_notify:
                conn.add_client_event_to_notification_group(self.group_id, event_id, True)


class LVarSyncer:
    """Local variables read and written through the gauge."""

    def __init__(self) -> None:
        self.transfer = GaugeCommunicator()
        self._current: dict[str, float] = {}
        self._raw_count = 0

    def __len__(self) -> int:
        return len(self.transfer)

    def add_var(self, var_name: str, var_units: str | None) -> None:
        self.transfer.add_definition(var_name, var_units)

    def add_custom_var(self, calculator: str) -> str:
        """Register raw calculator code and return the name given to it."""
        name = f"CustomLVar{self._raw_count}"
        self.transfer.add_definition_raw(calculator, name)
        self._raw_count += 1
        return name

    def process_client_data(self, data: bytes) -> list[GetResult]:
        results = self.transfer.process_client_data(data)
        for result in results:
            self._current[result.var_name] = result.value
        return results

    def set(self, conn: SimConnector, var_name: str, value: str) -> None:
        self.transfer.set(conn, var_name, None, value)

    def set_unchecked(
        self, conn: SimConnector, var_name: str, var_units: str | None, value: str
    ) -> None:
        self.transfer.set(conn, var_name, var_units, value)

    def send_raw(self, conn: SimConnector, raw_string: str) -> None:
        self.transfer.send_raw(conn, raw_string)

    def on_connected(self, conn: SimConnector) -> None:
        self.transfer.on_connected(conn)
        self.transfer.send_definitions(conn)

    def get_var(self, var_name: str) -> float | None:
        return self._current.get(var_name)

    def get_all_vars(self) -> dict[str, float]:
        return dict(self._current)


@dataclass(frozen=True)
class _AircraftVar:
    datum_id: int
    var_units: str
    var_type: InDataType


class AircraftVars:
    """Aircraft variables exchanged as tagged sim object data."""

    def __init__(self, define_id: int) -> None:
        self.define_id = define_id
        self._vars: dict[str, _AircraftVar] = {}
        self._current: dict[str, bool | int | float] = {}
        self._reader = VarReader()

    def __len__(self) -> int:
        return len(self._vars)

    def add_var(self, var_name: str, var_units: str, data_type: InDataType) -> None:
        """Define a variable; a name already defined is left as it is."""
        if var_name in self._vars:
            return
        datum_id = self._reader.add_definition(var_name, data_type)
        self._vars[var_name] = _AircraftVar(datum_id, var_units, data_type)

    def read_vars(self, item_count: int, data: bytes) -> dict[str, bool | int | float]:
        """Decode tagged data and remember the values."""
        values = self._reader.read_from_bytes(item_count, data)
        self._current.update(values)
        return values

    def get_all_vars(self) -> dict[str, bool | int | float]:
        return dict(self._current)

    def set_vars(self, conn: SimConnector, data: Mapping[str, bool | int | float]) -> None:
        payload = self._reader.write_to_data(data)
        conn.set_data_on_sim_object(
            self.define_id, 0, CLIENT_DATA_SET_FLAG_TAGGED, len(data), payload
        )

    def get_var(self, var_name: str) -> bool | int | float | None:
        return self._current.get(var_name)

    def on_connected(self, conn: SimConnector) -> None:
        conn.clear_data_definition(self.define_id)
        for var_name, var in self._vars.items():
            if var.var_type in (InDataType.BOOL, InDataType.I32):
                data_type = DATATYPE_INT32
            elif var.var_type is InDataType.F64:
                data_type = DATATYPE_FLOAT64
            else:
                continue
            conn.add_data_definition(
                self.define_id, var_name, var.var_units, data_type, var.datum_id, 0.0
            )
"""Exchange of calculator code and values with the in-sim gauge."""

from __future__ import annotations

import enum
import math
import struct
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from cockpitshare.connector import (
    CLIENT_DATA_PERIOD_ON_SET,
    CLIENT_DATA_SET_FLAG_TAGGED,
    SimConnector,
)
from cockpitshare.memwriter import MemWriter

SEND = 0
SEND_MULTIPLE = 2
RECEIVE_MULTIPLE = 3
MAP_INTERPOLATE = 4
SEND_INTERPOLATE = 5

_SLOT_SIZE = 64
_SLOTS_PER_BLOCK = 126
_VALUE_LIMIT = 10e64

_COUNT_HEADER = struct.Struct("=I4x")
_RETURN_DATUM = struct.Struct("=i4xd")


@dataclass(frozen=True)
class GetResult:
    """A value read from the gauge."""

    var_name: str
    value: float


@dataclass(frozen=True)
class InterpolateData:
    """A new target value for an interpolated variable."""

    name: str
    value: float


class InterpolationType(enum.Enum):
    """How the gauge interpolates a variable; values are the config names."""

    DEFAULT = "Default"
    WRAP180 = "Wrap180"
    WRAP90 = "Wrap90"
    WRAP360 = "Wrap360"
    INVERT = "Invert"
    DEFAULT_CONSTANT = "DefaultConstant"
    INVERT_CONSTANT = "InvertConstant"


_WIRE_CODES = {
    InterpolationType.DEFAULT: 0,
    InterpolationType.WRAP180: 1,
    InterpolationType.WRAP360: 2,
    InterpolationType.WRAP90: 3,
    InterpolationType.INVERT: 4,
    InterpolationType.DEFAULT_CONSTANT: 5,
    InterpolationType.INVERT_CONSTANT: 6,
}


@dataclass(frozen=True)
class _Datum:
    friendly_name: str
    calculator: str


@dataclass(frozen=True)
class _InterpolateMapping:
    datum_id: int
    interpolation_type: InterpolationType
    exec_string: str


def format_get(var_name: str, var_units: str | None) -> str:
    """Calculator expression that reads a variable."""
    if var_units is not None:
        return f"({var_name}, {var_units.strip()})"
    return f"({var_name.strip()})"


def _chunks(items: Sequence[_Datum], size: int) -> Iterator[Sequence[_Datum]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class GaugeCommunicator:
    """Defines gauge variables and sends commands through client data areas."""

    def __init__(self) -> None:
        self._datums: list[_Datum] = []
        self._interpolate: dict[str, _InterpolateMapping] = {}

    def __len__(self) -> int:
        return len(self._datums)

    def _send_command(self, conn: SimConnector, command: str) -> None:
        writer = MemWriter(128, 4)
        writer.write_u32(0)
        writer.pad(4)
        writer.write_str(command)
        conn.set_client_data(SEND, SEND, 0, 0, writer.to_bytes())

    def set(
        self, conn: SimConnector, var_name: str, var_units: str | None, val: str
    ) -> None:
        """Set a variable (or fire an event) through calculator code."""
        if var_units is not None:
            command = f"{val.strip()} (>{var_name.strip()}, {var_units.strip()})"
        else:
            command = f"{val.strip()} (>{var_name.strip()})"
        self._send_command(conn, command)

    def send_raw(self, conn: SimConnector, string: str) -> None:
        """Execute raw calculator code."""
        self._send_command(conn, string)

    def add_definition(self, var_name: str, var_units: str | None) -> None:
        self.add_definition_raw(format_get(var_name, var_units), var_name)

    def add_definition_raw(self, calculator: str, name: str) -> None:
        self._datums.append(_Datum(name, calculator))

    def send_definitions(self, conn: SimConnector) -> None:
        """Send all calculator read expressions in blocks of 126 slots."""
        for block in _chunks(self._datums, _SLOTS_PER_BLOCK):
            writer = MemWriter(8096, 4)
            for datum in block:
                writer.write_str(datum.calculator)
                writer.pad(_SLOT_SIZE - len(datum.calculator.encode("utf-8")))
            data = writer.to_bytes()[: _SLOT_SIZE * _SLOTS_PER_BLOCK]
            conn.set_client_data(SEND_MULTIPLE, SEND_MULTIPLE, 0, 0, data)

    def add_interpolate_mapping(
        self,
        calculator_var_name: str,
        index_var_name: str,
        var_units: str | None,
        interpolation_type: InterpolationType,
    ) -> None:
        if var_units is not None:
            exec_string = f"(>{calculator_var_name.strip()}, {var_units.strip()})"
        else:
            exec_string = f"(>{calculator_var_name.strip()})"
        self._interpolate[index_var_name] = _InterpolateMapping(
            len(self._interpolate), interpolation_type, exec_string
        )

    def send_new_interpolation_data(
        self, conn: SimConnector, time: float, data: Iterable[InterpolateData]
    ) -> None:
        """Send new interpolation targets; unmapped names are skipped."""
        writer = MemWriter(2048, 8)
        writer.write_u32(100)
        writer.write_f64(time)
        count = 0
        for entry in data:
            mapping = self._interpolate.get(entry.name)
            if mapping is None:
                continue
            writer.write_u32(mapping.datum_id)
            writer.write_f64(entry.value)
            count += 1
        conn.set_client_data(
            SEND_INTERPOLATE,
            SEND_INTERPOLATE,
            CLIENT_DATA_SET_FLAG_TAGGED,
            0,
            writer.to_bytes()[: count * 12 + 12],
        )

    def _do_operation(self, operation: int, conn: SimConnector) -> None:
        writer = MemWriter(128, 4)
        writer.write_i32(operation)
        conn.set_client_data(SEND, SEND, 0, 0, writer.to_bytes())

    def _clear_definitions(self, conn: SimConnector) -> None:
        self._do_operation(-1, conn)

    def stop_interpolation(self, conn: SimConnector) -> None:
        self._do_operation(-2, conn)

    def process_client_data(self, data: bytes) -> list[GetResult]:
        """Decode values returned by the gauge.

        ``data`` holds a u32 count, four bytes of padding, then records of an
        i32 datum id, four bytes of padding and an f64 value. Unknown ids are
        skipped; values are clamped to +/-10e64. Raises :class:`ValueError`
        if the data is shorter than the count says.
        """
        view = memoryview(data)
        if len(view) < _COUNT_HEADER.size:
            raise ValueError("client data too short")
        (count,) = _COUNT_HEADER.unpack_from(view, 0)
        if _COUNT_HEADER.size + count * _RETURN_DATUM.size > len(view):
            raise ValueError("client data too short")
        results = []
        for datum_id, value in _RETURN_DATUM.iter_unpack(
            view[_COUNT_HEADER.size:_COUNT_HEADER.size + count * _RETURN_DATUM.size]
        ):
            if not 0 <= datum_id < len(self._datums):
                continue
            if not math.isnan(value):
                value = min(max(value, -_VALUE_LIMIT), _VALUE_LIMIT)
            results.append(GetResult(self._datums[datum_id].friendly_name, value))
        return results

    def _write_interpolate_mapping(self, conn: SimConnector) -> None:
        writer = MemWriter(8096, 4)
        for mapping in self._interpolate.values():
            writer.write_u32(mapping.datum_id)
            writer.write_u32(_WIRE_CODES[mapping.interpolation_type])
            writer.write_str(mapping.exec_string)
            writer.pad(_SLOT_SIZE - len(mapping.exec_string.encode("utf-8")))
        conn.set_client_data(
            MAP_INTERPOLATE,
            MAP_INTERPOLATE,
            CLIENT_DATA_SET_FLAG_TAGGED,
            0,
            writer.to_bytes()[: len(self._interpolate) * 72],
        )

    def on_connected(self, conn: SimConnector) -> None:
        """Set up the client data areas and reset the gauge's definitions."""
        conn.map_client_data_name_to_id("YCSEND", SEND)
        conn.map_client_data_name_to_id("YCSENDMULTI", SEND_MULTIPLE)
        conn.map_client_data_name_to_id("YCRECEIVEMULTI", RECEIVE_MULTIPLE)
        conn.map_client_data_name_to_id("YCMAPINTERPOLATE", MAP_INTERPOLATE)
        conn.map_client_data_name_to_id("YCSENDINTERPOLATE", SEND_INTERPOLATE)

        conn.add_to_client_data_definition(SEND, 0, 4, 0.0, 0)
        conn.add_to_client_data_definition(SEND, 4, 124, 0.0, 1)
        conn.add_to_client_data_definition(SEND_INTERPOLATE, 0, 8, 0.0, 100)
        for index in range(100):
            conn.add_to_client_data_definition(MAP_INTERPOLATE, index * 68, 68, 0.0, index)
            conn.add_to_client_data_definition(SEND_INTERPOLATE, index * 8 + 8, 8, 0.0, index)
        conn.add_to_client_data_definition(RECEIVE_MULTIPLE, 0, 8096, 0.0, 0)
        conn.add_to_client_data_definition(SEND_MULTIPLE, 0, 8064, 0.0, 0)

        self._clear_definitions(conn)

        conn.request_client_data(
            RECEIVE_MULTIPLE, 1, RECEIVE_MULTIPLE, CLIENT_DATA_PERIOD_ON_SET, 0
        )
        self._write_interpolate_mapping(conn)
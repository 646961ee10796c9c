"""Encoding and decoding of tagged simulator variable data."""

from __future__ import annotations

import struct
from collections.abc import Mapping

from cockpitshare.util import InDataType

_HEADER = struct.Struct("<I")
_VALUE_FORMATS = {
    InDataType.BOOL: (struct.Struct("<i"), 1),
    InDataType.I32: (struct.Struct("<i"), 1),
    InDataType.I64: (struct.Struct("<q"), 2),
    InDataType.F64: (struct.Struct("<d"), 2),
}


class VarReader:
    """Maps variable names to datum ids and converts tagged data blocks."""

    def __init__(self) -> None:
        self._datum_ids: dict[str, int] = {}
        self._entries: list[tuple[str, InDataType]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add_definition(self, data_name: str, data_type: InDataType) -> int:
        """Register a variable and return its datum id."""
        datum_id = len(self._entries)
        self._datum_ids[data_name] = datum_id
        self._entries.append((data_name, data_type))
        return datum_id

    def read_from_bytes(
        self, item_count: int, data: bytes
    ) -> dict[str, bool | int | float]:
        """Decode ``item_count`` tagged items from ``data``.

        Each item is a little-endian u32 datum id followed by its value;
        32-bit values occupy one further word and 64-bit values two.
        Raises :class:`LookupError` for an undefined datum id and
        :class:`ValueError` if the data is too short.
        """
        view = memoryview(data)
        result: dict[str, bool | int | float] = {}
        offset = 0
        for _ in range(item_count):
            if offset + _HEADER.size > len(view):
                raise ValueError("tagged data ended early")
            (datum_id,) = _HEADER.unpack_from(view, offset)
            if datum_id >= len(self._entries):
                raise LookupError("DatumID wasn't defined.")
            name, data_type = self._entries[datum_id]
            value_format, words = _VALUE_FORMATS[data_type]
            value_offset = offset + _HEADER.size
            if value_offset + value_format.size > len(view):
                raise ValueError("tagged data ended early")
            if data_type is InDataType.BOOL:
                value: bool | int | float = view[value_offset] != 0
            else:
                (value,) = value_format.unpack_from(view, value_offset)
            result[name] = value
            offset += (words + 1) * 4
        return result

    def write_to_data(self, data: Mapping[str, bool | int | float]) -> bytes:
        """Encode values as tagged data: datum id, then a 64-bit value."""
        chunks = []
        for name, value in data.items():
            chunks.append(_HEADER.pack(self._datum_ids[name]))
            if isinstance(value, float):
                chunks.append(struct.pack("<d", value))
            else:
                chunks.append(struct.pack("<q", int(value)))
        return b"".join(chunks)
"""Fixed-size, zero-filled byte buffer written sequentially."""

from __future__ import annotations

import struct

_U32 = struct.Struct("=I")
_I32 = struct.Struct("=i")
_I64 = struct.Struct("=q")
_F64 = struct.Struct("=d")


class MemWriter:
    """Writes native-endian values into a zero-filled buffer of fixed size.

    The write position can be moved with :meth:`pad`, also backwards.
    Writing past the end of the buffer raises :class:`ValueError`.
    """

    def __init__(self, size: int, align: int = 1) -> None:
        if size < 0:
            raise ValueError("size must not be negative")
        if align <= 0 or align & (align - 1):
            raise ValueError("alignment must be a power of two")
        self._buffer = bytearray(size)
        self._position = 0

    @property
    def position(self) -> int:
        """Current write offset."""
        return self._position

    def _write(self, data: bytes) -> None:
        end = self._position + len(data)
        if end > len(self._buffer):
            raise ValueError("write past the end of the buffer")
        self._buffer[self._position:end] = data
        self._position = end

    def write_bool(self, val: bool) -> None:
        self.write_i32(int(bool(val)))

    def write_u32(self, val: int) -> None:
        self._write(_U32.pack(val))

    def write_i32(self, val: int) -> None:
        self._write(_I32.pack(val))

    def write_i64(self, val: int) -> None:
        self._write(_I64.pack(val))

    def write_f64(self, val: float) -> None:
        self._write(_F64.pack(val))

    def write_str(self, val: str) -> None:
        """Write the UTF-8 bytes of ``val`` without a terminator."""
        self._write(val.encode("utf-8"))

    def pad(self, count: int) -> None:
        """Move the write position by ``count`` bytes (may be negative)."""
        position = self._position + count
        if not 0 <= position <= len(self._buffer):
            raise ValueError("padding moves outside the buffer")
        self._position = position

    def to_bytes(self) -> bytes:
        """The whole buffer, including unwritten zero bytes."""
        return bytes(self._buffer)
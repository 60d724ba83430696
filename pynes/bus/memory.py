"""Flat 64 KiB memory for the 6502 core.

The NES CPU normally sees RAM, PPU/APU registers and cartridge space through a
bus. The core only needs a single linear store, so every address maps straight
onto one ``bytearray``. Words are little-endian: low byte at ``address``, high
byte at ``address + 1``.
"""

from __future__ import annotations

from typing import Iterable

from pynes.utils import debug_enabled, debug_log

ADDRESS_SPACE = 0x10000


def _mask16(value: int) -> int:
    """Clamp ``value`` to the 16-bit address space."""

    return value & 0xFFFF


class Memory:
    """Byte-addressable store covering the whole 16-bit address space."""

    def __init__(self, size: int = ADDRESS_SPACE) -> None:
        if size != ADDRESS_SPACE:
            raise ValueError(f"memory size must be {ADDRESS_SPACE:#x} bytes, got {size:#x}")
        self._data = bytearray(size)

    def __len__(self) -> int:
        return len(self._data)

    def read(self, address: int) -> int:
        return self._data[_mask16(address)]

    def write(self, address: int, value: int) -> None:
        self._data[_mask16(address)] = value & 0xFF

    def read_word(self, address: int) -> int:
        low = self.read(address)
        high = self.read(address + 1)
        return (high << 8) | low

    def write_word(self, address: int, value: int) -> None:
        self.write(address, value & 0xFF)
        self.write(address + 1, (value >> 8) & 0xFF)

    def load_block(self, start: int, data: Iterable[int]) -> int:
        """Copy ``data`` into memory at ``start`` and return the byte count.

        The caller is responsible for checking that the block fits; bytes that
        would run past 0xFFFF wrap to the bottom of the address space.
        """

        payload = bytes(value & 0xFF for value in data)
        start = _mask16(start)
        end = start + len(payload)
        if end <= ADDRESS_SPACE:
            self._data[start:end] = payload
        else:
            split = ADDRESS_SPACE - start
            self._data[start:] = payload[:split]
            self._data[: end - ADDRESS_SPACE] = payload[split:]
        if debug_enabled("mem"):
            debug_log("mem", "load_block start=%04x length=%d", start, len(payload))
        return len(payload)

    def snapshot(self, start: int = 0, length: int = ADDRESS_SPACE) -> bytes:
        """Return a copy of ``length`` bytes beginning at ``start``."""

        start = _mask16(start)
        return bytes(self._data[start : start + length])

    def clear(self) -> None:
        self._data[:] = bytes(len(self._data))

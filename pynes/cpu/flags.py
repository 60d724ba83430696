"""Processor status register (``P``) for the 6502."""

from __future__ import annotations

from enum import IntFlag


class Flag(IntFlag):
    """Bit positions inside the 6502 status register."""

    CARRY = 0x01
    ZERO = 0x02
    INTERRUPT_DISABLE = 0x04
    DECIMAL = 0x08
    BREAK = 0x10
    BREAK2 = 0x20
    OVERFLOW = 0x40
    NEGATIVE = 0x80


class StatusFlags:
    """Eight independent condition bits stored as a single byte."""

    __slots__ = ("bits",)

    def __init__(self, bits: int = 0x00) -> None:
        self.bits = int(bits) & 0xFF

    def set(self, flag: Flag) -> None:
        self.bits = int(self.bits | flag)

    def clear(self, flag: Flag) -> None:
        self.bits = int(self.bits & ~flag) & 0xFF

    def test(self, flag: Flag) -> bool:
        return (self.bits & flag) != 0

    def assign(self, flag: Flag, enabled: bool) -> None:
        if enabled:
            self.set(flag)
        else:
            self.clear(flag)

    def update_zero_negative(self, result: int) -> None:
        """Recompute Z and N from an 8-bit ``result``."""

        result &= 0xFF
        self.assign(Flag.ZERO, result == 0)
        self.assign(Flag.NEGATIVE, (result & 0x80) != 0)

    def copy(self) -> "StatusFlags":
        return StatusFlags(self.bits)

    def __int__(self) -> int:
        return self.bits

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StatusFlags):
            return self.bits == other.bits
        if isinstance(other, int):
            return self.bits == (other & 0xFF)
        return NotImplemented

    def __repr__(self) -> str:
        rendered = "".join(
            letter if self.test(flag) else letter.lower()
            for letter, flag in zip("NVUBDIZC", sorted(Flag, reverse=True))
        )
        return f"StatusFlags({self.bits:#04x} {rendered})"

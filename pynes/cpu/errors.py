"""Exceptions raised by the 6502 core."""

from __future__ import annotations


class CPUError(Exception):
    """Base error for CPU-related failures."""


class UnknownOpcodeError(CPUError):
    """Raised when the fetched byte has no entry in the opcode catalog."""

    def __init__(self, opcode: int, address: int | None = None) -> None:
        self.opcode = opcode & 0xFF
        self.address = address
        where = "" if address is None else f" at {address:#06x}"
        super().__init__(f"unknown opcode {self.opcode:#04x}{where}")


class UnsupportedAddressingModeError(CPUError):
    """Raised when an address is requested for a mode that has none."""

    def __init__(self, mode: object) -> None:
        self.mode = mode
        super().__init__(f"addressing mode {mode} cannot be resolved to an address")


class ProgramTooLargeError(CPUError):
    """Raised by ``load`` when a program does not fit above the load address."""

    def __init__(self, length: int, base: int, limit: int = 0x10000) -> None:
        self.length = length
        self.base = base
        super().__init__(
            f"program of {length} bytes does not fit at {base:#06x} "
            f"({limit - base} bytes available)"
        )


class DuplicateOpcodeError(CPUError):
    """Raised while building a catalog that registers an opcode twice."""

    def __init__(self, opcode: int, existing: str, duplicate: str) -> None:
        self.opcode = opcode
        super().__init__(
            f"opcode {opcode:#04x} already registered as {existing}, cannot add {duplicate}"
        )


class UnimplementedInstructionError(CPUError):
    """Raised when a catalogued mnemonic has no handler yet."""

    def __init__(self, mnemonic: str, opcode: int) -> None:
        self.mnemonic = mnemonic
        self.opcode = opcode
        super().__init__(f"instruction {mnemonic} ({opcode:#04x}) not implemented")

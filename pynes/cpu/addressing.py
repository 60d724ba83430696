"""Effective-address resolution for the 6502 addressing modes.

``resolve`` is a pure function of the register file and memory contents: it
reads operand bytes starting at ``pc`` (the byte after the opcode) but never
moves the program counter or writes memory. Zero-page modes wrap inside page
0, absolute and post-indexed modes wrap at 16 bits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .errors import UnsupportedAddressingModeError
from .opcodes import AddressingMode


class IndexRegisters(Protocol):
    x: int
    y: int


class ByteReader(Protocol):
    def read(self, address: int) -> int: ...


@dataclass(frozen=True)
class Resolution:
    """Effective address plus whether indexing crossed a page boundary."""

    address: int
    page_crossed: bool = False


def read_zero_page_word(memory: ByteReader, pointer: int) -> int:
    """Read a little-endian pointer stored in page 0.

    The high byte of a pointer at 0xFF comes from 0x00, not 0x100.
    """

    pointer &= 0xFF
    low = memory.read(pointer)
    high = memory.read((pointer + 1) & 0xFF)
    return (high << 8) | low


def read_operand_word(memory: ByteReader, address: int) -> int:
    low = memory.read(address & 0xFFFF)
    high = memory.read((address + 1) & 0xFFFF)
    return (high << 8) | low


def _indexed(base: int, index: int) -> Resolution:
    address = (base + index) & 0xFFFF
    return Resolution(address, (base & 0xFF00) != (address & 0xFF00))


def resolve(mode: AddressingMode, pc: int, registers: IndexRegisters, memory: ByteReader) -> Resolution:
    """Compute the effective address for ``mode``.

    ``pc`` must point at the first operand byte. Raises
    :class:`UnsupportedAddressingModeError` for ``IMPLIED``.
    """

    pc &= 0xFFFF
    if mode is AddressingMode.IMMEDIATE:
        return Resolution(pc)
    if mode is AddressingMode.ZERO_PAGE:
        return Resolution(memory.read(pc))
    if mode is AddressingMode.ZERO_PAGE_X:
        return Resolution((memory.read(pc) + registers.x) & 0xFF)
    if mode is AddressingMode.ZERO_PAGE_Y:
        return Resolution((memory.read(pc) + registers.y) & 0xFF)
    if mode is AddressingMode.ABSOLUTE:
        return Resolution(read_operand_word(memory, pc))
    if mode is AddressingMode.ABSOLUTE_X:
        return _indexed(read_operand_word(memory, pc), registers.x)
    if mode is AddressingMode.ABSOLUTE_Y:
        return _indexed(read_operand_word(memory, pc), registers.y)
    if mode is AddressingMode.INDIRECT_X:
        pointer = (memory.read(pc) + registers.x) & 0xFF
        return Resolution(read_zero_page_word(memory, pointer))
    if mode is AddressingMode.INDIRECT_Y:
        base = read_zero_page_word(memory, memory.read(pc))
        return _indexed(base, registers.y)
    raise UnsupportedAddressingModeError(mode)


def resolve_address(mode: AddressingMode, pc: int, registers: IndexRegisters, memory: ByteReader) -> int:
    """Return only the effective address for ``mode``."""

    return resolve(mode, pc, registers, memory).address

"""Opcode metadata for the 6502 (NES 2A03) CPU.

The catalog lists the 151 documented opcodes. Branches and ``JMP ($nnnn)``
are catalogued as ``IMPLIED``: their operand bytes are not an effective
address, so their handlers consume the operand themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Final, Iterable, Iterator, List, Sequence

from .errors import DuplicateOpcodeError, UnknownOpcodeError


class AddressingMode(Enum):
    """Rules for turning operand bytes into an effective address."""

    IMPLIED = auto()
    IMMEDIATE = auto()
    ZERO_PAGE = auto()
    ZERO_PAGE_X = auto()
    ZERO_PAGE_Y = auto()
    ABSOLUTE = auto()
    ABSOLUTE_X = auto()
    ABSOLUTE_Y = auto()
    INDIRECT_X = auto()
    INDIRECT_Y = auto()


_OPERAND_LENGTHS: Final = {
    AddressingMode.IMMEDIATE: 2,
    AddressingMode.ZERO_PAGE: 2,
    AddressingMode.ZERO_PAGE_X: 2,
    AddressingMode.ZERO_PAGE_Y: 2,
    AddressingMode.ABSOLUTE: 3,
    AddressingMode.ABSOLUTE_X: 3,
    AddressingMode.ABSOLUTE_Y: 3,
    AddressingMode.INDIRECT_X: 2,
    AddressingMode.INDIRECT_Y: 2,
}


@dataclass(frozen=True)
class Instruction:
    """Metadata describing a single 6502 opcode."""

    opcode: int
    mnemonic: str
    length: int
    cycles: int
    mode: AddressingMode
    page_penalty: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.opcode <= 0xFF:
            raise ValueError(f"opcode out of range: {self.opcode}")
        if not 1 <= self.length <= 3:
            raise ValueError(f"{self.mnemonic}: length must be 1-3, got {self.length}")
        if self.cycles <= 0:
            raise ValueError("cycles must be positive")
        expected = _OPERAND_LENGTHS.get(self.mode)
        if expected is not None and expected != self.length:
            raise ValueError(
                f"{self.mnemonic} {self.opcode:#04x}: mode {self.mode.name} needs length {expected}")


class OpcodeCatalog:
    """Read-only opcode lookup produced by :class:`OpcodeTable`."""

    __slots__ = ("_table", "_count")

    def __init__(self, table: Sequence[Instruction | None]) -> None:
        self._table = tuple(table)
        self._count = sum(1 for entry in self._table if entry is not None)

    def get(self, code: int) -> Instruction:
        instruction = self._table[code & 0xFF]
        if instruction is None:
            raise UnknownOpcodeError(code)
        return instruction

    def find(self, code: int) -> Instruction | None:
        return self._table[code & 0xFF]

    def mnemonics(self) -> frozenset[str]:
        return frozenset(instruction.mnemonic for instruction in self)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, int) and 0 <= code <= 0xFF and self._table[code] is not None

    def __iter__(self) -> Iterator[Instruction]:
        return (entry for entry in self._table if entry is not None)

    def __len__(self) -> int:
        return self._count


class OpcodeTable:
    """Mutable builder for the 256-entry instruction table."""

    _TABLE_SIZE: Final[int] = 0x100

    def __init__(self) -> None:
        self._table: List[Instruction | None] = [None] * self._TABLE_SIZE

    def register(self, instruction: Instruction) -> None:
        opcode = instruction.opcode
        existing = self._table[opcode]
        if existing is not None:
            raise DuplicateOpcodeError(opcode, existing.mnemonic, instruction.mnemonic)
        self._table[opcode] = instruction

    def register_all(self, instructions: Iterable[Instruction]) -> None:
        for instruction in instructions:
            self.register(instruction)

    def freeze(self) -> OpcodeCatalog:
        return OpcodeCatalog(self._table)


def build_opcode_catalog(instructions: Iterable[Instruction]) -> OpcodeCatalog:
    """Build an immutable catalog, rejecting duplicate opcodes."""

    table = OpcodeTable()
    table.register_all(instructions)
    return table.freeze()


DEFAULT_INSTRUCTIONS: Sequence[Instruction] = (
    # ADC
    Instruction(0x69, "ADC", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0x65, "ADC", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x75, "ADC", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0x6D, "ADC", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0x7D, "ADC", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    Instruction(0x79, "ADC", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    Instruction(0x61, "ADC", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0x71, "ADC", 2, 5, AddressingMode.INDIRECT_Y, page_penalty=True),
    # AND
    Instruction(0x29, "AND", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0x25, "AND", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x35, "AND", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0x2D, "AND", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0x3D, "AND", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    Instruction(0x39, "AND", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    Instruction(0x21, "AND", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0x31, "AND", 2, 5, AddressingMode.INDIRECT_Y, page_penalty=True),
    # ASL
    Instruction(0x0A, "ASL", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x06, "ASL", 2, 5, AddressingMode.ZERO_PAGE),
    Instruction(0x16, "ASL", 2, 6, AddressingMode.ZERO_PAGE_X),
    Instruction(0x0E, "ASL", 3, 6, AddressingMode.ABSOLUTE),
    Instruction(0x1E, "ASL", 3, 7, AddressingMode.ABSOLUTE_X),
    # Branches: signed displacement, relative to the next instruction
    Instruction(0x90, "BCC", 2, 2, AddressingMode.IMPLIED),
    Instruction(0xB0, "BCS", 2, 2, AddressingMode.IMPLIED),
    Instruction(0xF0, "BEQ", 2, 2, AddressingMode.IMPLIED),
    Instruction(0x30, "BMI", 2, 2, AddressingMode.IMPLIED),
    Instruction(0xD0, "BNE", 2, 2, AddressingMode.IMPLIED),
    Instruction(0x10, "BPL", 2, 2, AddressingMode.IMPLIED),
    Instruction(0x50, "BVC", 2, 2, AddressingMode.IMPLIED),
    Instruction(0x70, "BVS", 2, 2, AddressingMode.IMPLIED),
    # BIT
    Instruction(0x24, "BIT", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x2C, "BIT", 3, 4, AddressingMode.ABSOLUTE),
    # BRK halts the core
    Instruction(0x00, "BRK", 1, 7, AddressingMode.IMPLIED),
    # Flag clears
    Instruction(0x18, "CLC", 1, 2, AddressingMode.IMPLIED),
    Instruction(0xD8, "CLD", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x58, "CLI", 1, 2, AddressingMode.IMPLIED),
    Instruction(0xB8, "CLV", 1, 2, AddressingMode.IMPLIED),
    # CMP
    Instruction(0xC9, "CMP", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0xC5, "CMP", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0xD5, "CMP", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0xCD, "CMP", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0xDD, "CMP", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    Instruction(0xD9, "CMP", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    Instruction(0xC1, "CMP", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0xD1, "CMP", 2, 5, AddressingMode.INDIRECT_Y, page_penalty=True),
    # CPX
    Instruction(0xE0, "CPX", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0xE4, "CPX", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0xEC, "CPX", 3, 4, AddressingMode.ABSOLUTE),
    # CPY
    Instruction(0xC0, "CPY", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0xC4, "CPY", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0xCC, "CPY", 3, 4, AddressingMode.ABSOLUTE),
    # DEC
    Instruction(0xC6, "DEC", 2, 5, AddressingMode.ZERO_PAGE),
    Instruction(0xD6, "DEC", 2, 6, AddressingMode.ZERO_PAGE_X),
    Instruction(0xCE, "DEC", 3, 6, AddressingMode.ABSOLUTE),
    Instruction(0xDE, "DEC", 3, 7, AddressingMode.ABSOLUTE_X),
    # DEX / DEY
    Instruction(0xCA, "DEX", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x88, "DEY", 1, 2, AddressingMode.IMPLIED),
    # EOR
    Instruction(0x49, "EOR", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0x45, "EOR", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x55, "EOR", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0x4D, "EOR", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0x5D, "EOR", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    Instruction(0x59, "EOR", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    Instruction(0x41, "EOR", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0x51, "EOR", 2, 5, AddressingMode.INDIRECT_Y, page_penalty=True),
    # INC
    Instruction(0xE6, "INC", 2, 5, AddressingMode.ZERO_PAGE),
    Instruction(0xF6, "INC", 2, 6, AddressingMode.ZERO_PAGE_X),
    Instruction(0xEE, "INC", 3, 6, AddressingMode.ABSOLUTE),
    Instruction(0xFE, "INC", 3, 7, AddressingMode.ABSOLUTE_X),
    # INX / INY
    Instruction(0xE8, "INX", 1, 2, AddressingMode.IMPLIED),
    Instruction(0xC8, "INY", 1, 2, AddressingMode.IMPLIED),
    # JMP (0x6C reads its own pointer, with the page-wrap bug)
    Instruction(0x4C, "JMP", 3, 3, AddressingMode.ABSOLUTE),
    Instruction(0x6C, "JMP", 3, 5, AddressingMode.IMPLIED),
    # JSR
    Instruction(0x20, "JSR", 3, 6, AddressingMode.ABSOLUTE),
    # LDA
    Instruction(0xA9, "LDA", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0xA5, "LDA", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0xB5, "LDA", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0xAD, "LDA", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0xBD, "LDA", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    Instruction(0xB9, "LDA", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    Instruction(0xA1, "LDA", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0xB1, "LDA", 2, 5, AddressingMode.INDIRECT_Y, page_penalty=True),
    # LDX
    Instruction(0xA2, "LDX", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0xA6, "LDX", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0xB6, "LDX", 2, 4, AddressingMode.ZERO_PAGE_Y),
    Instruction(0xAE, "LDX", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0xBE, "LDX", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    # LDY
    Instruction(0xA0, "LDY", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0xA4, "LDY", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0xB4, "LDY", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0xAC, "LDY", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0xBC, "LDY", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    # LSR
    Instruction(0x4A, "LSR", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x46, "LSR", 2, 5, AddressingMode.ZERO_PAGE),
    Instruction(0x56, "LSR", 2, 6, AddressingMode.ZERO_PAGE_X),
    Instruction(0x4E, "LSR", 3, 6, AddressingMode.ABSOLUTE),
    Instruction(0x5E, "LSR", 3, 7, AddressingMode.ABSOLUTE_X),
    # NOP
    Instruction(0xEA, "NOP", 1, 2, AddressingMode.IMPLIED),
    # ORA
    Instruction(0x09, "ORA", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0x05, "ORA", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x15, "ORA", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0x0D, "ORA", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0x1D, "ORA", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    Instruction(0x19, "ORA", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    Instruction(0x01, "ORA", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0x11, "ORA", 2, 5, AddressingMode.INDIRECT_Y, page_penalty=True),
    # Stack
    Instruction(0x48, "PHA", 1, 3, AddressingMode.IMPLIED),
    Instruction(0x08, "PHP", 1, 3, AddressingMode.IMPLIED),
    Instruction(0x68, "PLA", 1, 4, AddressingMode.IMPLIED),
    Instruction(0x28, "PLP", 1, 4, AddressingMode.IMPLIED),
    # ROL
    Instruction(0x2A, "ROL", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x26, "ROL", 2, 5, AddressingMode.ZERO_PAGE),
    Instruction(0x36, "ROL", 2, 6, AddressingMode.ZERO_PAGE_X),
    Instruction(0x2E, "ROL", 3, 6, AddressingMode.ABSOLUTE),
    Instruction(0x3E, "ROL", 3, 7, AddressingMode.ABSOLUTE_X),
    # ROR
    Instruction(0x6A, "ROR", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x66, "ROR", 2, 5, AddressingMode.ZERO_PAGE),
    Instruction(0x76, "ROR", 2, 6, AddressingMode.ZERO_PAGE_X),
    Instruction(0x6E, "ROR", 3, 6, AddressingMode.ABSOLUTE),
    Instruction(0x7E, "ROR", 3, 7, AddressingMode.ABSOLUTE_X),
    # Returns
    Instruction(0x40, "RTI", 1, 6, AddressingMode.IMPLIED),
    Instruction(0x60, "RTS", 1, 6, AddressingMode.IMPLIED),
    # SBC
    Instruction(0xE9, "SBC", 2, 2, AddressingMode.IMMEDIATE),
    Instruction(0xE5, "SBC", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0xF5, "SBC", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0xED, "SBC", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0xFD, "SBC", 3, 4, AddressingMode.ABSOLUTE_X, page_penalty=True),
    Instruction(0xF9, "SBC", 3, 4, AddressingMode.ABSOLUTE_Y, page_penalty=True),
    Instruction(0xE1, "SBC", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0xF1, "SBC", 2, 5, AddressingMode.INDIRECT_Y, page_penalty=True),
    # Flag sets
    Instruction(0x38, "SEC", 1, 2, AddressingMode.IMPLIED),
    Instruction(0xF8, "SED", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x78, "SEI", 1, 2, AddressingMode.IMPLIED),
    # STA
    Instruction(0x85, "STA", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x95, "STA", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0x8D, "STA", 3, 4, AddressingMode.ABSOLUTE),
    Instruction(0x9D, "STA", 3, 5, AddressingMode.ABSOLUTE_X),
    Instruction(0x99, "STA", 3, 5, AddressingMode.ABSOLUTE_Y),
    Instruction(0x81, "STA", 2, 6, AddressingMode.INDIRECT_X),
    Instruction(0x91, "STA", 2, 6, AddressingMode.INDIRECT_Y),
    # STX
    Instruction(0x86, "STX", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x96, "STX", 2, 4, AddressingMode.ZERO_PAGE_Y),
    Instruction(0x8E, "STX", 3, 4, AddressingMode.ABSOLUTE),
    # STY
    Instruction(0x84, "STY", 2, 3, AddressingMode.ZERO_PAGE),
    Instruction(0x94, "STY", 2, 4, AddressingMode.ZERO_PAGE_X),
    Instruction(0x8C, "STY", 3, 4, AddressingMode.ABSOLUTE),
    # Register transfers
    Instruction(0xAA, "TAX", 1, 2, AddressingMode.IMPLIED),
    Instruction(0xA8, "TAY", 1, 2, AddressingMode.IMPLIED),
    Instruction(0xBA, "TSX", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x8A, "TXA", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x9A, "TXS", 1, 2, AddressingMode.IMPLIED),
    Instruction(0x98, "TYA", 1, 2, AddressingMode.IMPLIED),
)


OPCODE_CATALOG: OpcodeCatalog = build_opcode_catalog(DEFAULT_INSTRUCTIONS)

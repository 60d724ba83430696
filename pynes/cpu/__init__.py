"""6502 CPU package."""

from .core import CPU6502, CPUState
from .errors import (
    CPUError,
    DuplicateOpcodeError,
    ProgramTooLargeError,
    UnimplementedInstructionError,
    UnknownOpcodeError,
    UnsupportedAddressingModeError,
)
from .flags import Flag, StatusFlags
from .opcodes import OPCODE_CATALOG, AddressingMode, Instruction, OpcodeCatalog, build_opcode_catalog
from . import addressing, opcodes

__all__ = [
    "CPU6502",
    "CPUState",
    "CPUError",
    "DuplicateOpcodeError",
    "ProgramTooLargeError",
    "UnimplementedInstructionError",
    "UnknownOpcodeError",
    "UnsupportedAddressingModeError",
    "Flag",
    "StatusFlags",
    "AddressingMode",
    "Instruction",
    "OpcodeCatalog",
    "OPCODE_CATALOG",
    "build_opcode_catalog",
    "addressing",
    "opcodes",
]

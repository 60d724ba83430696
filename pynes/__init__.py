"""Cycle-counting MOS 6502 core as used by the NES CPU.

The core runs a raw program image out of a flat 64 KiB memory and exposes the
resulting register, flag and memory state.
"""

from __future__ import annotations

from . import bus, cpu, system, utils
from .cpu import CPU6502

__all__: list[str] = [
    "bus",
    "cpu",
    "system",
    "utils",
    "CPU6502",
]

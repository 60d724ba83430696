"""Ring buffer of executed instructions, formatted like nestest logs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .debug import debug_log


@dataclass
class TraceEntry:
    pc: int
    opcode: int | None
    operands: tuple[int, ...]
    mnemonic: str
    a: int
    x: int
    y: int
    p: int
    sp: int
    cycle: int
    halted: bool
    note: str = ""


class TraceRecorder:
    """Keeps the most recent ``capacity`` instruction snapshots."""

    def __init__(self, capacity: int = 256) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: List[TraceEntry | None] = [None] * capacity
        self._index = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._size

    def record_step(
        self,
        cpu_state,
        opcode: int | None,
        cycle: int,
        *,
        operands: Sequence[int] = (),
        mnemonic: str = "",
        halted: bool = False,
        note: str = "",
    ) -> None:
        """Store the register file as it was *before* the instruction ran."""

        entry = TraceEntry(
            pc=cpu_state.pc & 0xFFFF,
            opcode=None if opcode is None else opcode & 0xFF,
            operands=tuple(value & 0xFF for value in operands),
            mnemonic=mnemonic,
            a=cpu_state.a & 0xFF,
            x=cpu_state.x & 0xFF,
            y=cpu_state.y & 0xFF,
            p=int(cpu_state.status) & 0xFF,
            sp=cpu_state.sp & 0xFF,
            cycle=cycle,
            halted=halted,
            note=note,
        )
        self._append(entry)

    def entries(self, limit: int | None = None) -> Iterable[TraceEntry]:
        count = self._size if limit is None else min(self._size, max(limit, 0))
        for offset in range(count):
            index = (self._index - count + offset) % self._capacity
            entry = self._entries[index]
            if entry is not None:
                yield entry

    def last_entry(self) -> TraceEntry | None:
        if self._size == 0:
            return None
        return self._entries[(self._index - 1) % self._capacity]

    def clear(self) -> None:
        self._entries = [None] * self._capacity
        self._index = 0
        self._size = 0

    def format_entries(self, limit: int | None = None) -> Sequence[str]:
        lines: list[str] = []
        for entry in self.entries(limit):
            opcode = "--" if entry.opcode is None else f"{entry.opcode:02X}"
            raw = " ".join([opcode, *(f"{value:02X}" for value in entry.operands)])
            mnemonic = entry.mnemonic or "???"
            line = (
                f"{entry.pc:04X}  {raw:<8}  {mnemonic:<4} "
                f"A:{entry.a:02X} X:{entry.x:02X} Y:{entry.y:02X} P:{entry.p:02X} SP:{entry.sp:02X} "
                f"CYC:{entry.cycle}"
            )
            notes = [entry.note] if entry.note else []
            if entry.halted:
                notes.insert(0, "HALT")
            if notes:
                line += " ; " + ",".join(notes)
            lines.append(line)
        return lines

    def dump(self, category: str = "trace", limit: int | None = None) -> None:
        for line in self.format_entries(limit):
            debug_log(category, line)

    def _append(self, entry: TraceEntry) -> None:
        self._entries[self._index] = entry
        self._index = (self._index + 1) % self._capacity
        if self._size < self._capacity:
            self._size += 1

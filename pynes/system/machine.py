"""Assembly of a runnable 6502 machine from a configuration object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pynes.bus import Memory
from pynes.cpu import OPCODE_CATALOG, CPU6502, OpcodeCatalog
from pynes.utils import TraceRecorder


@dataclass
class MachineConfig:
    """Runtime configuration for a 6502 machine."""

    program: Optional[bytes] = None
    trace_capacity: int = 0
    instruction_table: Optional[OpcodeCatalog] = None
    auto_reset: bool = True


@dataclass
class Machine:
    """Aggregates the memory, CPU and optional trace buffer."""

    memory: Memory
    cpu: CPU6502
    trace: TraceRecorder | None

    def run(self) -> CPU6502:
        self.cpu.run()
        return self.cpu

    def run_program(self, program: bytes) -> CPU6502:
        self.cpu.load_and_run(program)
        return self.cpu


def create_machine(config: MachineConfig | None = None) -> Machine:
    """Instantiate a machine with the requested configuration.

    Every CPU shares the process-wide opcode catalog unless the configuration
    supplies its own table.
    """

    config = config or MachineConfig()
    if config.trace_capacity < 0:
        raise ValueError("trace_capacity must not be negative")

    memory = Memory()
    trace = TraceRecorder(config.trace_capacity) if config.trace_capacity else None
    table = config.instruction_table if config.instruction_table is not None else OPCODE_CATALOG
    cpu = CPU6502(
        memory,
        instruction_table=table,
        trace=trace,
    )

    if config.program is not None:
        cpu.load(config.program)
    if config.auto_reset:
        cpu.reset()

    return Machine(memory=memory, cpu=cpu, trace=trace)

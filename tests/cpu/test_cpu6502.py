"""Tests for the 6502 execution engine lifecycle and error paths."""

from __future__ import annotations

import pytest

from pynes.cpu import (
    OPCODE_CATALOG,
    CPU6502,
    AddressingMode,
    Flag,
    Instruction,
    ProgramTooLargeError,
    UnimplementedInstructionError,
    UnknownOpcodeError,
    UnsupportedAddressingModeError,
    build_opcode_catalog,
)
from pynes.utils import TraceRecorder


def make_cpu(program: list[int]) -> CPU6502:
    cpu = CPU6502()
    cpu.load(program)
    cpu.reset()
    return cpu


def read_flag(cpu: CPU6502, flag: Flag) -> bool:
    return cpu.state.status.test(flag)


def test_new_cpu_is_zeroed() -> None:
    cpu = CPU6502()

    assert (cpu.state.a, cpu.state.x, cpu.state.y) == (0, 0, 0)
    assert cpu.state.pc == 0x0000
    assert cpu.state.sp == 0xFD
    assert int(cpu.state.status) == 0x00
    assert cpu.memory.snapshot() == bytes(0x10000)
    assert not cpu.halted


def test_load_writes_program_and_reset_vector() -> None:
    cpu = CPU6502()

    cpu.load([0xA9, 0x05, 0x00])

    assert cpu.memory.snapshot(0x8000, 3) == bytes([0xA9, 0x05, 0x00])
    assert cpu.memory.read_word(0xFFFC) == 0x8000


@pytest.mark.parametrize("length", [0, 1, 0x100, 0x7FFC, 0x8000])
def test_reset_always_starts_at_program_base(length: int) -> None:
    cpu = CPU6502()
    cpu.load([0xEA] * length)

    cpu.reset()

    assert cpu.state.pc == 0x8000


def test_load_rejects_program_past_end_of_memory() -> None:
    cpu = CPU6502()

    with pytest.raises(ProgramTooLargeError) as excinfo:
        cpu.load(bytes(0x8001))

    assert excinfo.value.length == 0x8001
    assert cpu.memory.read_word(0xFFFC) == 0x0000


def test_reset_restores_registers_but_not_memory() -> None:
    cpu = make_cpu([0x00])
    cpu.memory.write(0x0200, 0x77)
    cpu.state.a = 0x11
    cpu.state.x = 0x22
    cpu.state.y = 0x33
    cpu.state.sp = 0x10
    cpu.state.status.set(Flag.CARRY)
    cpu.cycle_count = 99

    cpu.reset()

    assert (cpu.state.a, cpu.state.x, cpu.state.y) == (0, 0, 0)
    assert cpu.state.sp == 0xFD
    assert int(cpu.state.status) == 0x24
    assert cpu.cycle_count == 0
    assert cpu.memory.read(0x0200) == 0x77


def test_interpret_lda_immediate() -> None:
    cpu = CPU6502()

    cpu.interpret([0xA9, 0x05, 0x00])

    assert cpu.state.a == 0x05
    assert not read_flag(cpu, Flag.ZERO)
    assert not read_flag(cpu, Flag.NEGATIVE)


def test_interpret_lda_zero_sets_zero_flag() -> None:
    cpu = CPU6502()

    cpu.interpret([0xA9, 0x00, 0x00])

    assert read_flag(cpu, Flag.ZERO)


@pytest.mark.parametrize("value", range(0x100))
def test_lda_sets_only_zero_and_negative(value: int) -> None:
    cpu = make_cpu([0xA9, value, 0x00])
    other_bits = int(cpu.state.status) & ~(Flag.ZERO | Flag.NEGATIVE) & 0xFF

    cpu.run()

    assert cpu.state.a == value
    assert read_flag(cpu, Flag.ZERO) == (value == 0)
    assert read_flag(cpu, Flag.NEGATIVE) == bool(value & 0x80)
    assert int(cpu.state.status) & ~(Flag.ZERO | Flag.NEGATIVE) & 0xFF == other_bits


@pytest.mark.parametrize("value", [0x00, 0x01, 0x7F, 0x80, 0xFF])
def test_tax_matches_lda_flags(value: int) -> None:
    lda = make_cpu([0xA9, value, 0x00])
    lda.run()
    tax = make_cpu([0xAA, 0x00])
    tax.state.a = value

    tax.run()

    assert tax.state.x == value
    assert int(tax.state.status) == int(lda.state.status)


def test_inx_wraps_to_zero() -> None:
    cpu = make_cpu([0xE8, 0x00])
    cpu.state.x = 0xFF

    cpu.run()

    assert cpu.state.x == 0x00
    assert read_flag(cpu, Flag.ZERO)
    assert not read_flag(cpu, Flag.NEGATIVE)


def test_lda_tax_inx_program() -> None:
    cpu = CPU6502()

    cpu.load_and_run([0xA9, 0xC0, 0xAA, 0xE8, 0x00])

    assert cpu.state.x == 0xC1


def test_inx_overflow_twice() -> None:
    cpu = make_cpu([0xE8, 0xE8, 0x00])
    cpu.state.x = 0xFF

    cpu.run()

    assert cpu.state.x == 0x01


def test_brk_halts_and_step_becomes_noop() -> None:
    cpu = make_cpu([0x00, 0xE8])

    cycles = cpu.step()

    assert cycles == 7
    assert cpu.halted
    assert cpu.state.pc == 0x8001
    assert cpu.step() == 0
    assert cpu.state.x == 0


def test_step_advances_pc_past_operands() -> None:
    cpu = make_cpu([0xAD, 0x00, 0x02, 0xA9, 0x01, 0xEA, 0x00])

    assert cpu.step() == 4
    assert cpu.state.pc == 0x8003
    assert cpu.step() == 2
    assert cpu.state.pc == 0x8005
    assert cpu.step() == 2
    assert cpu.state.pc == 0x8006
    assert cpu.cycle_count == 8


def test_page_cross_costs_extra_cycle_for_reads() -> None:
    cpu = make_cpu([0xBD, 0xF0, 0x02, 0x9D, 0xF0, 0x02, 0x00])
    cpu.state.x = 0x20

    assert cpu.step() == 5  # LDA abs,X crosses into page 3
    assert cpu.step() == 5  # STA abs,X has a fixed cost


def test_unknown_opcode_halts_and_keeps_prior_effects() -> None:
    cpu = make_cpu([0xA9, 0x07, 0x85, 0x10, 0x02, 0xE8])

    with pytest.raises(UnknownOpcodeError) as excinfo:
        cpu.run()

    assert excinfo.value.opcode == 0x02
    assert excinfo.value.address == 0x8004
    assert cpu.halted
    assert cpu.state.a == 0x07
    assert cpu.memory.read(0x0010) == 0x07
    assert cpu.state.x == 0x00


def test_implied_mode_address_request_is_rejected() -> None:
    broken = build_opcode_catalog([
        Instruction(0xA9, "LDA", 1, 2, AddressingMode.IMPLIED),
        Instruction(0x00, "BRK", 1, 7, AddressingMode.IMPLIED),
    ])
    cpu = CPU6502(instruction_table=broken)
    cpu.load([0xA9, 0x00])
    cpu.reset()

    with pytest.raises(UnsupportedAddressingModeError):
        cpu.run()

    assert cpu.halted


def test_catalogued_opcode_without_handler() -> None:
    staged = build_opcode_catalog([Instruction(0x02, "KIL", 1, 2, AddressingMode.IMPLIED)])
    cpu = CPU6502(instruction_table=staged)
    cpu.load([0x02])
    cpu.reset()

    with pytest.raises(UnimplementedInstructionError) as excinfo:
        cpu.step()

    assert excinfo.value.mnemonic == "KIL"
    assert cpu.halted


def test_run_with_callback_sees_every_instruction() -> None:
    cpu = make_cpu([0xE8, 0xE8, 0xE8, 0x00])
    seen: list[int] = []

    cpu.run_with_callback(lambda c: seen.append(c.state.pc))

    assert seen == [0x8000, 0x8001, 0x8002, 0x8003]
    assert cpu.state.x == 3


def test_callback_can_halt_an_endless_loop() -> None:
    cpu = make_cpu([0xE8, 0x4C, 0x00, 0x80])  # INX; JMP $8000

    def stop_after_ten(c: CPU6502) -> None:
        if c.state.x == 10:
            c.halt()

    cpu.run_with_callback(stop_after_ten)

    assert cpu.halted
    assert cpu.state.x == 10


def test_instances_share_the_catalog() -> None:
    first = CPU6502()
    second = CPU6502()

    assert first.instruction_table is OPCODE_CATALOG
    assert second.instruction_table is first.instruction_table
    assert first.memory is not second.memory


def test_trace_records_state_before_each_instruction() -> None:
    cpu = CPU6502(trace=TraceRecorder(16))

    cpu.load_and_run([0xA9, 0xC0, 0xAA, 0xE8, 0x00])

    lines = list(cpu.trace.format_entries())
    assert len(lines) == 4
    assert lines[0] == "8000  A9 C0     LDA  A:00 X:00 Y:00 P:24 SP:FD CYC:0"
    assert lines[-1].startswith("8004  00        BRK  A:C0 X:C1 Y:00 P:A4 SP:FD CYC:6")
    assert lines[-1].endswith("; HALT")


def test_trace_records_unknown_opcode() -> None:
    cpu = CPU6502(trace=TraceRecorder(4))
    cpu.load([0xFF])
    cpu.reset()

    with pytest.raises(UnknownOpcodeError):
        cpu.step()

    entry = cpu.trace.last_entry()
    assert entry is not None
    assert entry.opcode == 0xFF
    assert entry.halted
    assert entry.note == "unknown-opcode"

"""6502 register file and fetch-decode-execute engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterable, Optional

from pynes.bus import ADDRESS_SPACE, Memory
from pynes.utils import TraceRecorder, debug_enabled, debug_log

from .addressing import resolve
from .errors import (
    CPUError,
    ProgramTooLargeError,
    UnimplementedInstructionError,
    UnknownOpcodeError,
    UnsupportedAddressingModeError,
)
from .flags import Flag, StatusFlags
from .opcodes import OPCODE_CATALOG, AddressingMode, Instruction, OpcodeCatalog

Handler = Callable[[Instruction, Optional[int]], int]


@dataclass
class CPUState:
    """Snapshot of the 6502 register file."""

    a: int = 0x00
    x: int = 0x00
    y: int = 0x00
    sp: int = 0xFD
    pc: int = 0x0000
    status: StatusFlags = field(default_factory=StatusFlags)

    def clone(self) -> "CPUState":
        return CPUState(self.a, self.x, self.y, self.sp, self.pc, self.status.copy())


@dataclass
class CPU6502:
    """NES-flavoured 6502 core running out of a flat 64 KiB memory."""

    memory: Memory = field(default_factory=Memory)
    instruction_table: OpcodeCatalog = field(default=OPCODE_CATALOG)
    trace: TraceRecorder | None = None

    PROGRAM_BASE: ClassVar[int] = 0x8000
    RESET_VECTOR: ClassVar[int] = 0xFFFC
    STACK_BASE: ClassVar[int] = 0x0100
    STACK_RESET: ClassVar[int] = 0xFD
    POWER_ON_STATUS: ClassVar[int] = Flag.INTERRUPT_DISABLE | Flag.BREAK2

    state: CPUState = field(default_factory=CPUState)
    cycle_count: int = 0
    halted: bool = False

    def __post_init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        for mnemonic in self.instruction_table.mnemonics():
            handler = getattr(self, f"op_{mnemonic.lower()}", None)
            if handler is not None:
                self._handlers[mnemonic] = handler

    # ------------------------------------------------------------------
    # Program control

    def load(self, program: Iterable[int]) -> None:
        """Copy ``program`` to ``PROGRAM_BASE`` and point the reset vector at it."""

        data = bytes(program)
        if self.PROGRAM_BASE + len(data) > ADDRESS_SPACE:
            raise ProgramTooLargeError(len(data), self.PROGRAM_BASE, ADDRESS_SPACE)
        self.memory.load_block(self.PROGRAM_BASE, data)
        self.memory.write_word(self.RESET_VECTOR, self.PROGRAM_BASE)

    def reset(self) -> None:
        """Reinitialise registers and flags and jump through the reset vector.

        Memory is left untouched.
        """

        self.state = CPUState(sp=self.STACK_RESET, status=StatusFlags(self.POWER_ON_STATUS))
        self.state.pc = self.memory.read_word(self.RESET_VECTOR)
        self.cycle_count = 0
        self.halted = False
        if debug_enabled("cpu"):
            debug_log("cpu", "reset pc=%04x", self.state.pc)

    def run(self) -> None:
        """Execute until BRK halts the CPU or an error propagates."""

        while not self.halted:
            self.step()

    def run_with_callback(self, callback: Callable[["CPU6502"], object]) -> None:
        """Like :meth:`run`, calling ``callback(cpu)`` before every instruction.

        The callback stops the loop by calling :meth:`halt`.
        """

        while not self.halted:
            callback(self)
            if self.halted:
                break
            self.step()

    def load_and_run(self, program: Iterable[int]) -> None:
        self.load(program)
        self.reset()
        self.run()

    interpret = load_and_run

    def halt(self) -> None:
        self.halted = True

    def step(self) -> int:
        """Execute a single instruction and return the cycle count."""

        if self.halted:
            return 0

        before = self.state.clone() if self.trace is not None else None
        cycle_before = self.cycle_count
        pc_before = self.state.pc
        opcode = self._fetch_byte()
        try:
            instruction = self._decode(opcode, pc_before)
        except UnknownOpcodeError:
            self.halted = True
            if before is not None:
                self.trace.record_step(before, opcode, cycle_before, halted=True, note="unknown-opcode")
            raise

        if debug_enabled("cpu"):
            debug_log("cpu", "pc=%04x opcode=%02x %s", pc_before, opcode, instruction.mnemonic)
        operands = self._peek_operands(pc_before, instruction) if before is not None else ()

        try:
            cycles = instruction.cycles + self._execute(instruction)
        except CPUError:
            self.halted = True
            raise
        self.cycle_count += cycles

        if before is not None:
            self.trace.record_step(
                before,
                opcode,
                cycle_before,
                operands=operands,
                mnemonic=instruction.mnemonic,
                halted=self.halted,
            )
        return cycles

    def _execute(self, instruction: Instruction) -> int:
        handler = self._handlers.get(instruction.mnemonic)
        if handler is None:
            raise UnimplementedInstructionError(instruction.mnemonic, instruction.opcode)

        address: int | None = None
        extra_cycles = 0
        if instruction.mode is not AddressingMode.IMPLIED:
            resolution = resolve(instruction.mode, self.state.pc, self.state, self.memory)
            self.state.pc = (self.state.pc + instruction.length - 1) & 0xFFFF
            address = resolution.address
            if instruction.page_penalty and resolution.page_crossed:
                extra_cycles += 1
        return extra_cycles + (handler(instruction, address) or 0)

    def _decode(self, opcode: int, address: int) -> Instruction:
        instruction = self.instruction_table.find(opcode)
        if instruction is None:
            raise UnknownOpcodeError(opcode, address)
        return instruction

    def _peek_operands(self, pc: int, instruction: Instruction) -> tuple[int, ...]:
        return tuple(self._read_byte(pc + offset) for offset in range(1, instruction.length))

    # ------------------------------------------------------------------
    # Loads, stores and transfers

    def op_lda(self, instruction: Instruction, address: int | None) -> int:
        self.state.a = self._read_operand(instruction, address)
        self._update_nz_flags(self.state.a)
        return 0

    def op_ldx(self, instruction: Instruction, address: int | None) -> int:
        self.state.x = self._read_operand(instruction, address)
        self._update_nz_flags(self.state.x)
        return 0

    def op_ldy(self, instruction: Instruction, address: int | None) -> int:
        self.state.y = self._read_operand(instruction, address)
        self._update_nz_flags(self.state.y)
        return 0

    def op_sta(self, instruction: Instruction, address: int | None) -> int:
        self._write_byte(self._require_address(instruction, address), self.state.a)
        return 0

    def op_stx(self, instruction: Instruction, address: int | None) -> int:
        self._write_byte(self._require_address(instruction, address), self.state.x)
        return 0

    def op_sty(self, instruction: Instruction, address: int | None) -> int:
        self._write_byte(self._require_address(instruction, address), self.state.y)
        return 0

    def op_tax(self, *_) -> int:
        self.state.x = self.state.a
        self._update_nz_flags(self.state.x)
        return 0

    def op_tay(self, *_) -> int:
        self.state.y = self.state.a
        self._update_nz_flags(self.state.y)
        return 0

    def op_txa(self, *_) -> int:
        self.state.a = self.state.x
        self._update_nz_flags(self.state.a)
        return 0

    def op_tya(self, *_) -> int:
        self.state.a = self.state.y
        self._update_nz_flags(self.state.a)
        return 0

    def op_tsx(self, *_) -> int:
        self.state.x = self.state.sp
        self._update_nz_flags(self.state.x)
        return 0

    def op_txs(self, *_) -> int:
        """TXS is the only transfer that leaves the flags alone."""

        self.state.sp = self.state.x
        return 0

    # ------------------------------------------------------------------
    # Arithmetic and logic

    def op_adc(self, instruction: Instruction, address: int | None) -> int:
        self._add_with_carry(self._read_operand(instruction, address))
        return 0

    def op_sbc(self, instruction: Instruction, address: int | None) -> int:
        # A - M - (1 - C) == A + ~M + C
        self._add_with_carry(self._read_operand(instruction, address) ^ 0xFF)
        return 0

    def op_and(self, instruction: Instruction, address: int | None) -> int:
        self.state.a &= self._read_operand(instruction, address)
        self._update_nz_flags(self.state.a)
        return 0

    def op_ora(self, instruction: Instruction, address: int | None) -> int:
        self.state.a |= self._read_operand(instruction, address)
        self._update_nz_flags(self.state.a)
        return 0

    def op_eor(self, instruction: Instruction, address: int | None) -> int:
        self.state.a ^= self._read_operand(instruction, address)
        self._update_nz_flags(self.state.a)
        return 0

    def op_cmp(self, instruction: Instruction, address: int | None) -> int:
        self._compare(self.state.a, self._read_operand(instruction, address))
        return 0

    def op_cpx(self, instruction: Instruction, address: int | None) -> int:
        self._compare(self.state.x, self._read_operand(instruction, address))
        return 0

    def op_cpy(self, instruction: Instruction, address: int | None) -> int:
        self._compare(self.state.y, self._read_operand(instruction, address))
        return 0

    def op_bit(self, instruction: Instruction, address: int | None) -> int:
        value = self._read_operand(instruction, address)
        self._set_flag(Flag.ZERO, (self.state.a & value) == 0)
        self._set_flag(Flag.OVERFLOW, (value & 0x40) != 0)
        self._set_flag(Flag.NEGATIVE, (value & 0x80) != 0)
        return 0

    # ------------------------------------------------------------------
    # Increments, decrements, shifts and rotates

    def op_inc(self, instruction: Instruction, address: int | None) -> int:
        self._modify_memory(instruction, address, self._op_inc)
        return 0

    def op_dec(self, instruction: Instruction, address: int | None) -> int:
        self._modify_memory(instruction, address, self._op_dec)
        return 0

    def op_inx(self, *_) -> int:
        self.state.x = self._op_inc(self.state.x)
        return 0

    def op_iny(self, *_) -> int:
        self.state.y = self._op_inc(self.state.y)
        return 0

    def op_dex(self, *_) -> int:
        self.state.x = self._op_dec(self.state.x)
        return 0

    def op_dey(self, *_) -> int:
        self.state.y = self._op_dec(self.state.y)
        return 0

    def op_asl(self, _: Instruction, address: int | None) -> int:
        self._modify_accumulator_or_memory(address, self._op_asl)
        return 0

    def op_lsr(self, _: Instruction, address: int | None) -> int:
        self._modify_accumulator_or_memory(address, self._op_lsr)
        return 0

    def op_rol(self, _: Instruction, address: int | None) -> int:
        self._modify_accumulator_or_memory(address, self._op_rol)
        return 0

    def op_ror(self, _: Instruction, address: int | None) -> int:
        self._modify_accumulator_or_memory(address, self._op_ror)
        return 0

    # ------------------------------------------------------------------
    # Branches, jumps and subroutines

    def op_bcc(self, *_) -> int:
        return self._branch(not self._get_flag(Flag.CARRY))

    def op_bcs(self, *_) -> int:
        return self._branch(self._get_flag(Flag.CARRY))

    def op_bne(self, *_) -> int:
        return self._branch(not self._get_flag(Flag.ZERO))

    def op_beq(self, *_) -> int:
        return self._branch(self._get_flag(Flag.ZERO))

    def op_bpl(self, *_) -> int:
        return self._branch(not self._get_flag(Flag.NEGATIVE))

    def op_bmi(self, *_) -> int:
        return self._branch(self._get_flag(Flag.NEGATIVE))

    def op_bvc(self, *_) -> int:
        return self._branch(not self._get_flag(Flag.OVERFLOW))

    def op_bvs(self, *_) -> int:
        return self._branch(self._get_flag(Flag.OVERFLOW))

    def op_jmp(self, instruction: Instruction, address: int | None) -> int:
        if instruction.mode is AddressingMode.IMPLIED:
            pointer = self._fetch_word()
            # The pointer's high byte never carries into the next page.
            low = self._read_byte(pointer)
            high = self._read_byte((pointer & 0xFF00) | ((pointer + 1) & 0x00FF))
            self.state.pc = (high << 8) | low
        else:
            self.state.pc = self._require_address(instruction, address)
        return 0

    def op_jsr(self, instruction: Instruction, address: int | None) -> int:
        target = self._require_address(instruction, address)
        self._push_word((self.state.pc - 1) & 0xFFFF)
        self.state.pc = target
        return 0

    def op_rts(self, *_) -> int:
        self.state.pc = (self._pull_word() + 1) & 0xFFFF
        return 0

    def op_rti(self, *_) -> int:
        self._apply_pulled_status(self._pull_byte())
        self.state.pc = self._pull_word()
        return 0

    def op_brk(self, *_) -> int:
        self.halted = True
        if debug_enabled("cpu"):
            debug_log("cpu", "BRK at %04x, halting", (self.state.pc - 1) & 0xFFFF)
        return 0

    def op_nop(self, *_) -> int:
        """No operation."""

        return 0

    # ------------------------------------------------------------------
    # Stack

    def op_pha(self, *_) -> int:
        self._push_byte(self.state.a)
        return 0

    def op_php(self, *_) -> int:
        self._push_byte(int(self.state.status) | Flag.BREAK | Flag.BREAK2)
        return 0

    def op_pla(self, *_) -> int:
        self.state.a = self._pull_byte()
        self._update_nz_flags(self.state.a)
        return 0

    def op_plp(self, *_) -> int:
        self._apply_pulled_status(self._pull_byte())
        return 0

    # ------------------------------------------------------------------
    # Flag instructions

    def op_clc(self, *_) -> int:
        self._set_flag(Flag.CARRY, False)
        return 0

    def op_sec(self, *_) -> int:
        self._set_flag(Flag.CARRY, True)
        return 0

    def op_cli(self, *_) -> int:
        self._set_flag(Flag.INTERRUPT_DISABLE, False)
        return 0

    def op_sei(self, *_) -> int:
        self._set_flag(Flag.INTERRUPT_DISABLE, True)
        return 0

    def op_cld(self, *_) -> int:
        self._set_flag(Flag.DECIMAL, False)
        return 0

    def op_sed(self, *_) -> int:
        self._set_flag(Flag.DECIMAL, True)
        return 0

    def op_clv(self, *_) -> int:
        self._set_flag(Flag.OVERFLOW, False)
        return 0

    # ------------------------------------------------------------------
    # ALU helpers

    def _add_with_carry(self, operand: int) -> None:
        current = self.state.a
        total = current + operand + (1 if self._get_flag(Flag.CARRY) else 0)
        result = total & 0xFF
        self._set_flag(Flag.CARRY, total > 0xFF)
        self._set_flag(Flag.OVERFLOW, ((current ^ result) & (operand ^ result) & 0x80) != 0)
        self.state.a = result
        self._update_nz_flags(result)

    def _compare(self, register: int, operand: int) -> None:
        self._set_flag(Flag.CARRY, register >= operand)
        self._update_nz_flags((register - operand) & 0xFF)

    def _op_inc(self, value: int) -> int:
        result = (value + 1) & 0xFF
        self._update_nz_flags(result)
        return result

    def _op_dec(self, value: int) -> int:
        result = (value - 1) & 0xFF
        self._update_nz_flags(result)
        return result

    def _op_asl(self, value: int) -> int:
        self._set_flag(Flag.CARRY, (value & 0x80) != 0)
        result = (value << 1) & 0xFF
        self._update_nz_flags(result)
        return result

    def _op_lsr(self, value: int) -> int:
        self._set_flag(Flag.CARRY, (value & 0x01) != 0)
        result = value >> 1
        self._update_nz_flags(result)
        return result

    def _op_rol(self, value: int) -> int:
        carry_in = 0x01 if self._get_flag(Flag.CARRY) else 0
        self._set_flag(Flag.CARRY, (value & 0x80) != 0)
        result = ((value << 1) | carry_in) & 0xFF
        self._update_nz_flags(result)
        return result

    def _op_ror(self, value: int) -> int:
        carry_in = 0x80 if self._get_flag(Flag.CARRY) else 0
        self._set_flag(Flag.CARRY, (value & 0x01) != 0)
        result = (value >> 1) | carry_in
        self._update_nz_flags(result)
        return result

    def _branch(self, condition: bool) -> int:
        displacement = self._fetch_byte()
        if displacement & 0x80:
            displacement -= 0x100
        if not condition:
            return 0
        origin = self.state.pc
        target = (origin + displacement) & 0xFFFF
        self.state.pc = target
        return 1 if (origin & 0xFF00) == (target & 0xFF00) else 2

    # ------------------------------------------------------------------
    # Fetch and operand helpers

    def _fetch_byte(self) -> int:
        value = self._read_byte(self.state.pc)
        self.state.pc = (self.state.pc + 1) & 0xFFFF
        return value

    def _fetch_word(self) -> int:
        low = self._fetch_byte()
        high = self._fetch_byte()
        return (high << 8) | low

    def _require_address(self, instruction: Instruction, address: int | None) -> int:
        if address is None:
            raise UnsupportedAddressingModeError(instruction.mode)
        return address

    def _read_operand(self, instruction: Instruction, address: int | None) -> int:
        return self._read_byte(self._require_address(instruction, address))

    def _modify_memory(self, instruction: Instruction, address: int | None, mutate: Callable[[int], int]) -> int:
        target = self._require_address(instruction, address)
        result = mutate(self._read_byte(target)) & 0xFF
        self._write_byte(target, result)
        return result

    def _modify_accumulator_or_memory(self, address: int | None, mutate: Callable[[int], int]) -> int:
        if address is None:
            self.state.a = mutate(self.state.a) & 0xFF
            return self.state.a
        result = mutate(self._read_byte(address)) & 0xFF
        self._write_byte(address, result)
        return result

    # ------------------------------------------------------------------
    # Memory helpers

    def _read_byte(self, address: int) -> int:
        return self.memory.read(address & 0xFFFF)

    def _write_byte(self, address: int, value: int) -> None:
        self.memory.write(address & 0xFFFF, value & 0xFF)

    # ------------------------------------------------------------------
    # Stack helpers

    def _push_byte(self, value: int) -> None:
        self._write_byte(self.STACK_BASE | self.state.sp, value)
        self.state.sp = (self.state.sp - 1) & 0xFF

    def _pull_byte(self) -> int:
        self.state.sp = (self.state.sp + 1) & 0xFF
        return self._read_byte(self.STACK_BASE | self.state.sp)

    def _push_word(self, value: int) -> None:
        self._push_byte((value >> 8) & 0xFF)
        self._push_byte(value & 0xFF)

    def _pull_word(self) -> int:
        low = self._pull_byte()
        high = self._pull_byte()
        return (high << 8) | low

    def _apply_pulled_status(self, value: int) -> None:
        self.state.status = StatusFlags(value)
        self.state.status.clear(Flag.BREAK)
        self.state.status.set(Flag.BREAK2)

    # ------------------------------------------------------------------
    # Flag helpers

    def _set_flag(self, flag: Flag, enabled: bool) -> None:
        self.state.status.assign(flag, enabled)

    def _get_flag(self, flag: Flag) -> bool:
        return self.state.status.test(flag)

    def _update_nz_flags(self, value: int) -> None:
        self.state.status.update_zero_negative(value)

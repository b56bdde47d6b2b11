"""CHIP-8 CPU core: register file, call stack and instruction execution."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import random
from typing import Callable, Dict, List, Optional, Protocol, Type

from chip8emu.cpu import opcodes
from chip8emu.cpu.opcodes import OP_SIZE, Operation, decode
from chip8emu.memory import PROGRAM_START, Chip8Error, MemoryBus

logger = logging.getLogger(__name__)

REGISTER_COUNT = 16
STACK_DEPTH = 16
VF = 0xF
ADDRESS_LIMIT = 0xFFF


class StackOverflow(Chip8Error):
    """Raised by CALL when the 16-level nesting limit is already reached."""

    def __init__(self, pc: int) -> None:
        super().__init__(f"subroutine nesting limit reached at PC=0x{pc:03X}")
        self.pc = pc


class StackUnderflow(Chip8Error):
    """Raised by RET outside of any subroutine."""

    def __init__(self, pc: int) -> None:
        super().__init__(f"return with empty call stack at PC=0x{pc:03X}")
        self.pc = pc


class UnknownInstruction(Chip8Error):
    """Raised when an undecodable word reaches the execute stage."""

    def __init__(self, word: int, pc: int) -> None:
        super().__init__(f"invalid instruction 0x{word:04X} at PC=0x{pc:03X}")
        self.word = word
        self.pc = pc


class Framebuffer(Protocol):
    def clear(self) -> None:
        ...

    def draw(self, x: int, y: int, rows: bytes) -> bool:
        ...


class Keypad(Protocol):
    def is_key_pressed(self, key: int) -> bool:
        ...

    def next_key_press(self) -> Optional[int]:
        ...

    def discard_presses(self) -> None:
        ...


class CountdownTimer(Protocol):
    def value(self) -> int:
        ...

    def set(self, value: int) -> None:
        ...


@dataclass
class CPURegisters:
    """Register file matching the CHIP-8 layout."""

    v: List[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    index: int = 0
    program_counter: int = PROGRAM_START


@dataclass
class CPUStatus:
    halted: bool = False
    waiting_for_key: bool = False


class Chip8CPU:
    """Interpreter for the 35 CHIP-8 operations.

    The CPU owns only its registers and call stack. Memory, the framebuffer,
    the keypad and both timers are handed to :meth:`step` for the duration of
    one instruction.
    """

    def __init__(self, *, rng: Optional[random.Random] = None) -> None:
        self.registers = CPURegisters()
        self.status = CPUStatus()
        self.stack: List[int] = []
        self.instruction_count = 0
        self.rng = rng if rng is not None else random.Random()
        self._operation_table: Dict[Type[Operation], Callable[[Operation], None]] = {}
        self._init_operation_table()

        # Per-step bindings, valid only while an instruction executes.
        self._memory: Optional[MemoryBus] = None
        self._display: Optional[Framebuffer] = None
        self._keyboard: Optional[Keypad] = None
        self._delay: Optional[CountdownTimer] = None
        self._sound: Optional[CountdownTimer] = None
        self._instruction_pc = PROGRAM_START

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self.registers = CPURegisters()
        self.status = CPUStatus()
        self.stack.clear()
        self.instruction_count = 0

    @property
    def halted(self) -> bool:
        return self.status.halted

    @property
    def waiting_for_key(self) -> bool:
        return self.status.waiting_for_key

    def describe(self) -> str:
        regs = self.registers
        values = " ".join(f"V{i:X}={value:02X}" for i, value in enumerate(regs.v))
        return (
            f"{self.instruction_count:04d} PC=0x{regs.program_counter:04X} "
            f"I=0x{regs.index:03X} SP={len(self.stack)} {values}"
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def step(
        self,
        memory: MemoryBus,
        display: Framebuffer,
        keyboard: Keypad,
        delay_timer: CountdownTimer,
        sound_timer: CountdownTimer,
    ) -> Optional[Operation]:
        """Execute one instruction and return the operation that ran."""

        if self.status.halted:
            return None

        pc = self.registers.program_counter
        word = memory.fetch_instruction(pc)
        operation = decode(word)
        self.instruction_count += 1
        self.registers.program_counter = pc + OP_SIZE

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%010d 0x%03X %04X %s", self.instruction_count, pc, word, operation)

        self._memory = memory
        self._display = display
        self._keyboard = keyboard
        self._delay = delay_timer
        self._sound = sound_timer
        self._instruction_pc = pc
        try:
            self._operation_table[type(operation)](operation)
        finally:
            self._memory = None
            self._display = None
            self._keyboard = None
            self._delay = None
            self._sound = None
        return operation

    def _init_operation_table(self) -> None:
        self._operation_table.clear()
        self._register_operation(opcodes.Eof, self._op_eof)
        self._register_operation(opcodes.ClearScreen, self._op_clear_screen)
        self._register_operation(opcodes.Return, self._op_return)
        self._register_operation(opcodes.Jump, self._op_jump)
        self._register_operation(opcodes.Call, self._op_call)
        self._register_operation(opcodes.JumpOffset, self._op_jump_offset)
        self._register_operation(opcodes.SkipIfEqual, self._op_skip_if_equal)
        self._register_operation(opcodes.SkipIfNotEqual, self._op_skip_if_not_equal)
        self._register_operation(opcodes.SkipIfRegistersEqual, self._op_skip_if_registers_equal)
        self._register_operation(opcodes.SkipIfRegistersNotEqual, self._op_skip_if_registers_not_equal)
        self._register_operation(opcodes.SkipIfKeyPressed, self._op_skip_if_key_pressed)
        self._register_operation(opcodes.SkipIfKeyNotPressed, self._op_skip_if_key_not_pressed)
        self._register_operation(opcodes.LoadImmediate, self._op_load_immediate)
        self._register_operation(opcodes.AddImmediate, self._op_add_immediate)
        self._register_operation(opcodes.LoadRegister, self._op_load_register)
        self._register_operation(opcodes.Or, self._op_or)
        self._register_operation(opcodes.And, self._op_and)
        self._register_operation(opcodes.Xor, self._op_xor)
        self._register_operation(opcodes.Add, self._op_add)
        self._register_operation(opcodes.Subtract, self._op_subtract)
        self._register_operation(opcodes.ShiftRight, self._op_shift_right)
        self._register_operation(opcodes.SubtractReverse, self._op_subtract_reverse)
        self._register_operation(opcodes.ShiftLeft, self._op_shift_left)
        self._register_operation(opcodes.Random, self._op_random)
        self._register_operation(opcodes.SetIndex, self._op_set_index)
        self._register_operation(opcodes.Draw, self._op_draw)
        self._register_operation(opcodes.ReadDelayTimer, self._op_read_delay_timer)
        self._register_operation(opcodes.WaitForKey, self._op_wait_for_key)
        self._register_operation(opcodes.SetDelayTimer, self._op_set_delay_timer)
        self._register_operation(opcodes.SetSoundTimer, self._op_set_sound_timer)
        self._register_operation(opcodes.AddIndex, self._op_add_index)
        self._register_operation(opcodes.LoadFontGlyph, self._op_load_font_glyph)
        self._register_operation(opcodes.StoreBcd, self._op_store_bcd)
        self._register_operation(opcodes.StoreRegisters, self._op_store_registers)
        self._register_operation(opcodes.LoadRegisters, self._op_load_registers)
        self._register_operation(opcodes.Unknown, self._op_unknown)

        missing = [cls.__name__ for cls in opcodes.OPERATION_TYPES if cls not in self._operation_table]
        if missing:
            raise TypeError("no handler registered for: " + ", ".join(missing))

    def _register_operation(self, cls: Type[Operation], handler: Callable[[Operation], None]) -> None:
        self._operation_table[cls] = handler

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _skip_if(self, condition: bool) -> None:
        if condition:
            self.registers.program_counter += OP_SIZE

    def _write_with_flag(self, x: int, value: int, flag: int) -> None:
        # VF is written after Vx so the flag survives x == F.
        self.registers.v[x] = value & 0xFF
        self.registers.v[VF] = flag

    # ------------------------------------------------------------------
    # Control flow
    # ------------------------------------------------------------------
    def _op_eof(self, op: opcodes.Eof) -> None:
        self.status.halted = True
        logger.debug("end of program reached after %d instructions", self.instruction_count)

    def _op_clear_screen(self, op: opcodes.ClearScreen) -> None:
        self._display.clear()

    def _op_return(self, op: opcodes.Return) -> None:
        if not self.stack:
            raise StackUnderflow(self._instruction_pc)
        self.registers.program_counter = self.stack.pop()

    def _op_jump(self, op: opcodes.Jump) -> None:
        self.registers.program_counter = op.nnn

    def _op_call(self, op: opcodes.Call) -> None:
        if len(self.stack) >= STACK_DEPTH:
            raise StackOverflow(self._instruction_pc)
        self.stack.append(self.registers.program_counter)
        self.registers.program_counter = op.nnn

    def _op_jump_offset(self, op: opcodes.JumpOffset) -> None:
        self.registers.program_counter = self.registers.v[0] + op.nnn

    def _op_skip_if_equal(self, op: opcodes.SkipIfEqual) -> None:
        self._skip_if(self.registers.v[op.x] == op.nn)

    def _op_skip_if_not_equal(self, op: opcodes.SkipIfNotEqual) -> None:
        self._skip_if(self.registers.v[op.x] != op.nn)

    def _op_skip_if_registers_equal(self, op: opcodes.SkipIfRegistersEqual) -> None:
        self._skip_if(self.registers.v[op.x] == self.registers.v[op.y])

    def _op_skip_if_registers_not_equal(self, op: opcodes.SkipIfRegistersNotEqual) -> None:
        self._skip_if(self.registers.v[op.x] != self.registers.v[op.y])

    def _op_skip_if_key_pressed(self, op: opcodes.SkipIfKeyPressed) -> None:
        self._skip_if(self._keyboard.is_key_pressed(self.registers.v[op.x] & 0xF))

    def _op_skip_if_key_not_pressed(self, op: opcodes.SkipIfKeyNotPressed) -> None:
        self._skip_if(not self._keyboard.is_key_pressed(self.registers.v[op.x] & 0xF))

    def _op_unknown(self, op: opcodes.Unknown) -> None:
        raise UnknownInstruction(op.word, self._instruction_pc)

    # ------------------------------------------------------------------
    # Registers and arithmetic
    # ------------------------------------------------------------------
    def _op_load_immediate(self, op: opcodes.LoadImmediate) -> None:
        self.registers.v[op.x] = op.nn

    def _op_add_immediate(self, op: opcodes.AddImmediate) -> None:
        self.registers.v[op.x] = (self.registers.v[op.x] + op.nn) & 0xFF

    def _op_load_register(self, op: opcodes.LoadRegister) -> None:
        self.registers.v[op.x] = self.registers.v[op.y]

    def _op_or(self, op: opcodes.Or) -> None:
        self.registers.v[op.x] |= self.registers.v[op.y]

    def _op_and(self, op: opcodes.And) -> None:
        self.registers.v[op.x] &= self.registers.v[op.y]

    def _op_xor(self, op: opcodes.Xor) -> None:
        self.registers.v[op.x] ^= self.registers.v[op.y]

    def _op_add(self, op: opcodes.Add) -> None:
        total = self.registers.v[op.x] + self.registers.v[op.y]
        self._write_with_flag(op.x, total, 1 if total > 0xFF else 0)

    def _op_subtract(self, op: opcodes.Subtract) -> None:
        vx = self.registers.v[op.x]
        vy = self.registers.v[op.y]
        self._write_with_flag(op.x, vx - vy, 1 if vx >= vy else 0)

    def _op_subtract_reverse(self, op: opcodes.SubtractReverse) -> None:
        vx = self.registers.v[op.x]
        vy = self.registers.v[op.y]
        self._write_with_flag(op.x, vy - vx, 1 if vy >= vx else 0)

    def _op_shift_right(self, op: opcodes.ShiftRight) -> None:
        vx = self.registers.v[op.x]
        self._write_with_flag(op.x, vx >> 1, vx & 0x01)

    def _op_shift_left(self, op: opcodes.ShiftLeft) -> None:
        vx = self.registers.v[op.x]
        self._write_with_flag(op.x, vx << 1, (vx >> 7) & 0x01)

    def _op_random(self, op: opcodes.Random) -> None:
        self.registers.v[op.x] = self.rng.randrange(0x100) & op.nn

    # ------------------------------------------------------------------
    # Index register, display, timers and memory
    # ------------------------------------------------------------------
    def _op_set_index(self, op: opcodes.SetIndex) -> None:
        self.registers.index = op.nnn

    def _op_draw(self, op: opcodes.Draw) -> None:
        rows = self._memory.read_block(self.registers.index, op.n)
        collided = self._display.draw(self.registers.v[op.x], self.registers.v[op.y], rows)
        self.registers.v[VF] = 1 if collided else 0

    def _op_read_delay_timer(self, op: opcodes.ReadDelayTimer) -> None:
        self.registers.v[op.x] = self._delay.value()

    def _op_wait_for_key(self, op: opcodes.WaitForKey) -> None:
        if not self.status.waiting_for_key:
            # Only presses made after the wait begins count.
            self._keyboard.discard_presses()
            self.status.waiting_for_key = True
        key = self._keyboard.next_key_press()
        if key is None:
            # Re-run this instruction on the next step; timers keep running.
            self.registers.program_counter -= OP_SIZE
            return
        self.status.waiting_for_key = False
        self.registers.v[op.x] = key & 0xF

    def _op_set_delay_timer(self, op: opcodes.SetDelayTimer) -> None:
        self._delay.set(self.registers.v[op.x])

    def _op_set_sound_timer(self, op: opcodes.SetSoundTimer) -> None:
        self._sound.set(self.registers.v[op.x])

    def _op_add_index(self, op: opcodes.AddIndex) -> None:
        total = self.registers.index + self.registers.v[op.x]
        self.registers.index = total & 0xFFFF
        self.registers.v[VF] = 1 if total > ADDRESS_LIMIT else 0

    def _op_load_font_glyph(self, op: opcodes.LoadFontGlyph) -> None:
        self.registers.index = MemoryBus.font_glyph_address(self.registers.v[op.x])

    def _op_store_bcd(self, op: opcodes.StoreBcd) -> None:
        value = self.registers.v[op.x]
        self._memory.write_block(self.registers.index, (value // 100, (value // 10) % 10, value % 10))

    def _op_store_registers(self, op: opcodes.StoreRegisters) -> None:
        self._memory.write_block(self.registers.index, self.registers.v[: op.x + 1])

    def _op_load_registers(self, op: opcodes.LoadRegisters) -> None:
        values = self._memory.read_block(self.registers.index, op.x + 1)
        self.registers.v[: op.x + 1] = list(values)


__all__ = [
    "CPURegisters",
    "CPUStatus",
    "Chip8CPU",
    "REGISTER_COUNT",
    "STACK_DEPTH",
    "StackOverflow",
    "StackUnderflow",
    "UnknownInstruction",
    "VF",
]

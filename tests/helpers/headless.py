"""Headless execution helpers for CHIP-8 programs."""

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Iterable, List, Sequence

from chip8emu.chip8.computer import Chip8Computer


@dataclass(frozen=True)
class KeyEvent:
    """Represents a keypad event scheduled by step count."""

    step: int
    key: int
    pressed: bool


class FakeClock:
    """Manually advanced clock for timer-sensitive tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def assemble(words: Iterable[int]) -> bytes:
    """Pack 16-bit instruction words big-endian."""

    data = bytearray()
    for word in words:
        data.append((word >> 8) & 0xFF)
        data.append(word & 0xFF)
    return bytes(data)


def make_computer(program: bytes, *, clock: FakeClock | None = None, seed: int = 0) -> Chip8Computer:
    computer = Chip8Computer(rng=random.Random(seed), clock=clock if clock is not None else FakeClock())
    computer.load_program(program)
    return computer


def run_program(
    program: bytes,
    *,
    total_steps: int,
    events: Sequence[KeyEvent] | None = None,
    clock: FakeClock | None = None,
    seconds_per_step: float = 1.0 / Chip8Computer.INSTRUCTION_RATE_HZ,
) -> tuple[Chip8Computer, List[int]]:
    """Execute a CHIP-8 program headlessly and capture PC history.

    Simulated time advances by ``seconds_per_step`` after every step so the
    timers see the documented 500 Hz cadence.
    """

    clock = clock if clock is not None else FakeClock()
    computer = make_computer(program, clock=clock)
    scheduled = sorted(events or [], key=lambda evt: evt.step)
    index = 0
    pc_history: List[int] = []

    while computer.step_count < total_steps and not computer.is_halted():
        while index < len(scheduled) and scheduled[index].step <= computer.step_count:
            evt = scheduled[index]
            if evt.pressed:
                computer.keyboard.press(evt.key)
            else:
                computer.keyboard.release(evt.key)
            index += 1
        clock.advance(seconds_per_step)
        computer.step()
        pc_history.append(computer.cpu_core.registers.program_counter)

    return computer, pc_history

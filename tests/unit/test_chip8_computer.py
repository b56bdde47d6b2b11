from __future__ import annotations

import random
from typing import List

import pytest

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.display import Snapshot
from chip8emu.chip8.sound import HISTORY_LENGTH
from chip8emu.cpu.cpu import StackUnderflow


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _computer(program: bytes, clock: FakeClock | None = None) -> Chip8Computer:
    computer = Chip8Computer(rng=random.Random(0), clock=clock or FakeClock())
    computer.load_program(program)
    return computer


def test_machine_constants() -> None:
    assert Chip8Computer.MEMORY_SIZE == 4096
    assert Chip8Computer.PROGRAM_START == 0x200
    assert Chip8Computer.STACK_DEPTH == 16
    assert Chip8Computer.INSTRUCTION_RATE_HZ == 500
    assert Chip8Computer.TIMER_RATE_HZ == 60


def test_step_executes_and_halts_on_sentinel() -> None:
    computer = _computer(bytes([0x60, 0x05, 0x0A, 0x00]))
    computer.step()
    assert computer.cpu_core.registers.v[0] == 5
    assert not computer.is_halted()
    computer.step()
    assert computer.is_halted()
    assert computer.step_count == 2
    computer.step()
    assert computer.step_count == 2


def test_step_ticks_timers_against_clock() -> None:
    clock = FakeClock()
    computer = _computer(bytes([0x60, 0x02, 0xF0, 0x15, 0x12, 0x04]), clock)
    computer.step()
    computer.step()
    assert computer.delay_timer.value() == 2
    clock.now += 1.0 / 60
    computer.step()
    assert computer.delay_timer.value() == 1


def test_sound_timer_requests_tone_while_non_zero() -> None:
    clock = FakeClock()
    computer = _computer(bytes([0x60, 0x01, 0xF0, 0x18, 0x12, 0x04]), clock)
    computer.step()
    computer.step()
    assert list(computer.sound_processor.history) == []
    clock.now += 1.0 / 60
    computer.step()
    assert list(computer.sound_processor.history) == ["emit"]
    assert computer.sound_timer.value() == 0
    computer.step()
    assert list(computer.sound_processor.history) == ["emit"]


def test_display_listeners_receive_frames_only_when_dirty() -> None:
    computer = _computer(bytes([0xA0, 0x50, 0xD0, 0x15, 0x12, 0x04]))
    computer.display.take_dirty()
    frames: List[Snapshot] = []
    computer.add_display_listener(frames.append)
    computer.step()
    assert frames == []
    computer.step()
    assert len(frames) == 1
    assert frames[0][0][:4] == (1, 1, 1, 1)
    computer.step()
    assert len(frames) == 1
    computer.remove_display_listener(frames.append)


def test_faults_propagate_from_step_and_are_captured_by_run() -> None:
    computer = _computer(bytes([0x00, 0xEE]))
    with pytest.raises(StackUnderflow):
        computer.step()

    computer.reset()
    result = computer.run(throttle=False)
    assert isinstance(result.fault, StackUnderflow)
    assert not result.halted


def test_reset_restores_power_on_state() -> None:
    computer = _computer(bytes([0x60, 0x07, 0xA3, 0x00, 0xF0, 0x33, 0x0A, 0x00]))
    computer.run(throttle=False)
    assert computer.is_halted()
    assert computer.memory.read_byte(0x302) == 7

    computer.reset()
    assert not computer.is_halted()
    assert computer.step_count == 0
    assert computer.cpu_core.registers.program_counter == 0x200
    assert computer.memory.read_byte(0x302) == 0
    assert computer.memory.read_byte(0x200) == 0x60


def test_load_user_program(tmp_path) -> None:
    rom = tmp_path / "maze.ch8"
    rom.write_bytes(bytes([0x0A]))
    computer = Chip8Computer()
    info = computer.load_user_program(rom)
    assert info.name == "MAZE"
    assert computer.program_info is info
    assert computer.memory.read_byte(0x200) == 0x0A


def test_long_tone_keeps_bounded_history() -> None:
    computer = _computer(bytes([0x60, 0xFF, 0xF0, 0x18, 0x12, 0x04]))
    computer.run(max_steps=5000, throttle=False)
    assert computer.sound_timer.value() == 0xFF
    assert len(computer.sound_processor.history) == HISTORY_LENGTH

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

_HELPER_PATH = Path(__file__).resolve().parents[1] / "helpers" / "headless.py"
_SPEC = importlib.util.spec_from_file_location("headless_helper", _HELPER_PATH)
_MODULE = importlib.util.module_from_spec(_SPEC)
assert _SPEC is not None and _SPEC.loader is not None
sys.modules[_SPEC.name] = _MODULE
_SPEC.loader.exec_module(_MODULE)  # type: ignore[arg-type]

FakeClock = _MODULE.FakeClock
KeyEvent = _MODULE.KeyEvent
assemble = _MODULE.assemble
run_program = _MODULE.run_program


def test_minimal_program_halts_after_two_steps() -> None:
    computer, history = run_program(bytes([0x60, 0x05, 0x0A, 0x00]), total_steps=100)
    assert computer.is_halted()
    assert computer.step_count == 2
    assert computer.cpu_core.registers.v[0] == 5
    assert history == [0x202, 0x204]


def test_draw_digit_and_print_screen() -> None:
    program = assemble(
        [
            0x6007,  # LD V0, 7
            0xF029,  # LD F, V0
            0x6102,  # LD V1, 2
            0x6203,  # LD V2, 3
            0xD125,  # DRW V1, V2, 5
            0x0A00,
        ]
    )
    computer, _ = run_program(program, total_steps=100)
    assert computer.is_halted()
    rows = computer.display.snapshot()
    assert rows[3][2:6] == (1, 1, 1, 1)
    assert rows[4][2:6] == (0, 0, 0, 1)
    assert computer.cpu_core.registers.v[0xF] == 0


def test_delay_timer_loop_runs_in_wall_clock_time() -> None:
    program = assemble(
        [
            0x600A,  # LD V0, 10
            0xF015,  # LD DT, V0
            0xF107,  # LD V1, DT
            0x3100,  # SE V1, 0
            0x1204,  # JP 0x204
            0x0A00,
        ]
    )
    clock = FakeClock()
    computer, _ = run_program(program, total_steps=10_000, clock=clock)
    assert computer.is_halted()
    assert 0.16 <= clock.now <= 0.20


def test_wait_for_key_blocks_until_scheduled_press() -> None:
    program = assemble([0xF50A, 0x0A00])
    computer, history = run_program(
        program,
        total_steps=1000,
        events=[KeyEvent(step=50, key=0xC, pressed=True)],
    )
    assert computer.is_halted()
    assert computer.cpu_core.registers.v[5] == 0xC
    assert history[:50] == [0x200] * 50
    assert computer.step_count == 52


def test_subroutine_counter_loop() -> None:
    program = assemble(
        [
            0x6000,  # 200: LD V0, 0
            0x220A,  # 202: CALL 0x20A
            0x300A,  # 204: SE V0, 10
            0x1202,  # 206: JP 0x202
            0x0A00,  # 208: EOF
            0x7001,  # 20A: ADD V0, 1
            0x00EE,  # 20C: RET
        ]
    )
    computer, _ = run_program(program, total_steps=1000)
    assert computer.is_halted()
    assert computer.cpu_core.registers.v[0] == 10
    assert computer.cpu_core.stack == []

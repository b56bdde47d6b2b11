from __future__ import annotations

import threading
from typing import List

import pytest

from chip8emu.memory import Chip8Error
from chip8emu.system.computer import MAX_LAG_NS, Computer, TimeManager


class FakeNanoClock:
    def __init__(self) -> None:
        self.now = 0
        self.sleeps: List[float] = []

    def __call__(self) -> int:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += round(seconds * 1_000_000_000)


class CountingComputer(Computer):
    def __init__(self, *, halt_after: int | None = None, fail_after: int | None = None, **kwargs) -> None:
        super().__init__(instruction_rate=kwargs.pop("instruction_rate", 500), **kwargs)
        self.halt_after = halt_after
        self.fail_after = fail_after

    def step(self) -> None:
        if self.fail_after is not None and self.step_count >= self.fail_after:
            raise Chip8Error("boom")
        self.step_count += 1
        if self.halt_after is not None and self.step_count >= self.halt_after:
            self._halt()


def test_time_manager_sleeps_until_step_is_due() -> None:
    clock = FakeNanoClock()
    manager = TimeManager(clock, clock.sleep)
    manager.reset(0, 500)
    manager.wait_until(1, 500)
    assert clock.sleeps == [pytest.approx(0.002)]
    assert clock.now == 2_000_000


def test_time_manager_does_not_sleep_when_behind() -> None:
    clock = FakeNanoClock()
    manager = TimeManager(clock, clock.sleep)
    clock.now = 1_000_000
    manager.reset(0, 500)
    clock.now += 5_000_000
    manager.wait_until(1, 500)
    assert clock.sleeps == []


def test_time_manager_reanchors_after_large_lag() -> None:
    clock = FakeNanoClock()
    manager = TimeManager(clock, clock.sleep)
    manager.reset(0, 500)
    clock.now = MAX_LAG_NS * 2
    manager.wait_until(1, 500)
    assert manager.base_time() == clock.now - 2_000_000


def test_run_stops_on_halt() -> None:
    clock = FakeNanoClock()
    computer = CountingComputer(halt_after=3, time_manager=TimeManager(clock, clock.sleep))
    result = computer.run()
    assert result.steps == 3
    assert result.halted
    assert not result.budget_exhausted
    assert computer.get_running_status() == Computer.STATUS_HALTED
    assert sum(clock.sleeps) == pytest.approx(3 / 500)


def test_run_respects_step_budget() -> None:
    computer = CountingComputer()
    result = computer.run(max_steps=10, throttle=False)
    assert result.steps == 10
    assert result.budget_exhausted
    assert computer.get_running_status() == Computer.STATUS_RUNNING


def test_run_captures_faults() -> None:
    computer = CountingComputer(fail_after=2)
    result = computer.run(throttle=False)
    assert result.steps == 2
    assert isinstance(result.fault, Chip8Error)
    assert computer.fault is result.fault
    assert computer.run(throttle=False).steps == 0


def test_run_honours_stop_event() -> None:
    computer = CountingComputer()
    stop = threading.Event()
    stop.set()
    result = computer.run(stop_event=stop, throttle=False)
    assert result.stopped
    assert result.steps == 0


def test_instruction_rate_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CountingComputer(instruction_rate=0)
    computer = CountingComputer()
    computer.set_instruction_rate(1000)
    assert computer.instruction_rate == 1000
    with pytest.raises(ValueError):
        computer.set_instruction_rate(-1)

"""Computer scaffold providing pacing and run-loop control."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable, Optional

from chip8emu.memory import Chip8Error

logger = logging.getLogger(__name__)

# Falling further behind than this re-anchors the schedule instead of bursting.
MAX_LAG_NS = 100_000_000


class TimeManager:
    """Tracks wall-clock alignment against the emulated instruction clock."""

    def __init__(
        self,
        clock_ns: Callable[[], int] = time.perf_counter_ns,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock_ns = clock_ns
        self._sleep = sleep
        self._base_time_ns = clock_ns()

    def reset(self, step_count: int, frequency_hz: float) -> int:
        now = self._clock_ns()
        if frequency_hz <= 0:
            self._base_time_ns = now
        else:
            simulated_offset = int((step_count / frequency_hz) * 1_000_000_000)
            self._base_time_ns = now - simulated_offset
        return self._base_time_ns

    def base_time(self) -> int:
        return self._base_time_ns

    def wait_until(self, step_count: int, frequency_hz: float) -> None:
        """Sleep until ``step_count`` steps are due at ``frequency_hz``."""

        if frequency_hz <= 0:
            return
        target = self._base_time_ns + int((step_count / frequency_hz) * 1_000_000_000)
        now = self._clock_ns()
        if target > now:
            self._sleep((target - now) / 1_000_000_000)
        elif now - target > MAX_LAG_NS:
            self.reset(step_count, frequency_hz)


@dataclass
class RunResult:
    """Outcome of :meth:`Computer.run`."""

    steps: int
    halted: bool
    stopped: bool = False
    fault: Optional[Chip8Error] = None

    @property
    def budget_exhausted(self) -> bool:
        return not (self.halted or self.stopped or self.fault is not None)


class Computer:
    """Host machine driving a CPU at a fixed instruction rate."""

    STATUS_RUNNING = 0
    STATUS_HALTED = 1

    def __init__(self, *, instruction_rate: float, time_manager: Optional[TimeManager] = None) -> None:
        if instruction_rate <= 0:
            raise ValueError("instruction rate must be positive")
        self.instruction_rate = instruction_rate
        self.step_count: int = 0
        self.fault: Optional[Chip8Error] = None
        self._running_status: int = self.STATUS_RUNNING
        self._time_manager = time_manager if time_manager is not None else TimeManager()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    def get_running_status(self) -> int:
        return self._running_status

    def is_halted(self) -> bool:
        return self._running_status == self.STATUS_HALTED

    def _halt(self) -> None:
        if self._running_status != self.STATUS_HALTED:
            logger.info("machine halted after %d steps", self.step_count)
        self._running_status = self.STATUS_HALTED

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def step(self) -> None:
        raise NotImplementedError

    def run(
        self,
        max_steps: Optional[int] = None,
        *,
        stop_event: Optional[threading.Event] = None,
        throttle: bool = True,
    ) -> RunResult:
        """Step until halt, fault, stop request or ``max_steps``."""

        executed = 0
        stopped = False
        self._time_manager.reset(0, self.instruction_rate)
        while not self.is_halted() and self.fault is None:
            if stop_event is not None and stop_event.is_set():
                stopped = True
                break
            if max_steps is not None and executed >= max_steps:
                break
            try:
                self.step()
            except Chip8Error as exc:
                logger.error("machine fault after %d steps: %s", self.step_count, exc)
                self.fault = exc
                break
            executed += 1
            if throttle:
                self._time_manager.wait_until(executed, self.instruction_rate)
        return RunResult(executed, self.is_halted(), stopped, self.fault)

    def set_instruction_rate(self, frequency: float) -> None:
        if frequency <= 0:
            raise ValueError("frequency must be positive")
        self.instruction_rate = frequency

"""CHIP-8 system wiring: memory, CPU, framebuffer, keypad, timers and buzzer."""

from __future__ import annotations

import logging
import os
import random
import time
from typing import Callable, List, Optional

from chip8emu.chip8.display import Chip8Display, Snapshot
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.chip8.sound import Chip8SoundProcessor
from chip8emu.chip8.timer import TIMER_RATE_HZ, Timer
from chip8emu.cpu.cpu import STACK_DEPTH, Chip8CPU
from chip8emu.emulator.file import ProgramInfo, load_rom
from chip8emu.memory import MEMORY_SIZE, PROGRAM_START, MemoryBus
from chip8emu.system.computer import Computer, TimeManager

logger = logging.getLogger(__name__)

DisplayListener = Callable[[Snapshot], None]


class Chip8Computer(Computer):
    """Concrete CHIP-8 machine owning every piece of emulated state.

    One :meth:`step` requests a tone while the sound timer is non-zero,
    executes one instruction, ticks both timers against the wall clock and
    pushes a framebuffer snapshot to listeners when the screen changed.
    """

    MEMORY_SIZE = MEMORY_SIZE
    PROGRAM_START = PROGRAM_START
    STACK_DEPTH = STACK_DEPTH
    INSTRUCTION_RATE_HZ = 500
    TIMER_RATE_HZ = TIMER_RATE_HZ

    def __init__(
        self,
        *,
        keyboard: Optional[Chip8Keyboard] = None,
        sound_processor: Optional[Chip8SoundProcessor] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        instruction_rate: float = INSTRUCTION_RATE_HZ,
        time_manager: Optional[TimeManager] = None,
        enable_audio: bool = False,
    ) -> None:
        super().__init__(instruction_rate=instruction_rate, time_manager=time_manager)
        self._clock = clock
        self.memory = MemoryBus()
        self.display = Chip8Display()
        self.keyboard = keyboard if keyboard is not None else Chip8Keyboard()
        self.sound_processor = (
            sound_processor if sound_processor is not None else Chip8SoundProcessor(enable_audio=enable_audio)
        )
        self.delay_timer = Timer(clock)
        self.sound_timer = Timer(clock)
        self.cpu_core = Chip8CPU(rng=rng)
        self.program_info: Optional[ProgramInfo] = None
        self._program: bytes = b""
        self._display_listeners: List[DisplayListener] = []

    # ------------------------------------------------------------------
    # Program loading
    # ------------------------------------------------------------------
    def load_program(self, program: bytes) -> None:
        self.memory.load_program(program)
        self._program = bytes(program)
        logger.info("loaded %d byte program at 0x%03X", len(program), self.PROGRAM_START)

    def load_user_program(self, path: str | os.PathLike[str]) -> ProgramInfo:
        info = load_rom(path)
        self.load_program(info.data)
        self.program_info = info
        return info

    def reset(self) -> None:
        """Return to power-on state with the last program reloaded."""

        self.memory = MemoryBus()
        if self._program:
            self.memory.load_program(self._program)
        self.cpu_core.reset()
        self.display.clear()
        self.keyboard.clear()
        self.delay_timer.reset()
        self.sound_timer.reset()
        self.step_count = 0
        self.fault = None
        self._running_status = self.STATUS_RUNNING

    # ------------------------------------------------------------------
    # Display collaborators
    # ------------------------------------------------------------------
    def add_display_listener(self, listener: DisplayListener) -> None:
        self._display_listeners.append(listener)

    def remove_display_listener(self, listener: DisplayListener) -> None:
        self._display_listeners.remove(listener)

    def _publish_frame(self) -> None:
        if not self.display.take_dirty() or not self._display_listeners:
            return
        snapshot = self.display.snapshot()
        for listener in self._display_listeners:
            listener(snapshot)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def step(self) -> None:
        if self.is_halted():
            return
        if self.sound_timer.value() > 0:
            self.sound_processor.emit()
        self.cpu_core.step(self.memory, self.display, self.keyboard, self.delay_timer, self.sound_timer)
        self.step_count += 1
        now = self._clock()
        self.delay_timer.tick(now)
        self.sound_timer.tick(now)
        if self.cpu_core.halted:
            self._halt()
        self._publish_frame()

    def tick_timers(self) -> None:
        """Advance both timers without executing an instruction."""

        now = self._clock()
        self.delay_timer.tick(now)
        self.sound_timer.tick(now)

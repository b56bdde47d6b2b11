"""Paused-state inspector drawn over the pygame window."""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Tuple

from chip8emu.cpu.opcodes import decode
from chip8emu.memory import Chip8Error

Section = Tuple[str, List[str]]

HEADING_COLOR = (255, 215, 0)
TEXT_COLOR = (230, 230, 230)
BACKDROP = (0, 0, 0, 196)
MARGIN = 8


class DebugOverlay:
    """Keeps a PC trace and a frozen view of the machine for the debug pause."""

    TRACE_LENGTH = 32
    TRACE_PER_LINE = 8
    INSTRUCTIONS = [
        "ESC: toggle debug",
        "SPACE: resume",
        "N: step",
        "Q: quit",
    ]

    def __init__(self, computer) -> None:
        self._computer = computer
        self._trace: Deque[int] = deque(maxlen=self.TRACE_LENGTH)
        self._sections: Dict[str, List[str]] = {}
        self._status = ""
        self._font = None

    def record_execution(self, pc: int) -> None:
        self._trace.append(pc & 0xFFF)

    def get_trace(self) -> List[int]:
        return list(self._trace)

    def set_status(self, message: str) -> None:
        self._status = message

    def capture_state(self) -> None:
        """Freeze the current registers, stack and next instruction."""

        self._sections = {
            "CPU": self._registers(),
            "Stack": self._stack(),
            "Next": self._next_instruction(),
        }

    def lines(self) -> List[str]:
        out = [self._status] if self._status else []
        for title, body in self._layout():
            out.append(f"[{title}]")
            out.extend(body)
        return out

    def render(self, screen) -> None:
        import pygame  # type: ignore

        if self._font is None:
            pygame.font.init()
            self._font = pygame.font.SysFont("Courier", 12)
        panel = pygame.Surface(screen.get_size(), pygame.SRCALPHA)
        panel.fill(BACKDROP)
        y = MARGIN
        for line in self.lines():
            color = HEADING_COLOR if line.startswith("[") else TEXT_COLOR
            panel.blit(self._font.render(line, True, color), (MARGIN, y))
            y += self._font.get_linesize()
        screen.blit(panel, (0, 0))

    def _layout(self) -> List[Section]:
        captured = [(title, self._sections.get(title, [])) for title in ("CPU", "Stack", "Next")]
        return captured + [("Trace", self._trace_lines()), ("Controls", self.INSTRUCTIONS)]

    def _registers(self) -> List[str]:
        cpu = self._computer.cpu_core
        regs = cpu.registers
        v = regs.v
        state = "  HALTED" if cpu.halted else "  WAIT-KEY" if cpu.waiting_for_key else ""
        return [
            f"PC:{regs.program_counter:03X}  I:{regs.index:03X}  N:{cpu.instruction_count}",
            "  ".join(f"V{i:X}:{v[i]:02X}" for i in range(8)),
            "  ".join(f"V{i:X}:{v[i]:02X}" for i in range(8, 16)),
            f"DT:{self._computer.delay_timer.value():02X}  ST:{self._computer.sound_timer.value():02X}{state}",
        ]

    def _stack(self) -> List[str]:
        frames = self._computer.cpu_core.stack[::-1]
        return [f"{depth:2d}: {address:03X}" for depth, address in enumerate(frames)] or ["<empty>"]

    def _next_instruction(self) -> List[str]:
        pc = self._computer.cpu_core.registers.program_counter
        try:
            word = self._computer.memory.fetch_instruction(pc)
        except Chip8Error as exc:
            return [f"{pc:03X}: {exc}"]
        return [f"{pc:03X}: {word:04X}  {decode(word)}"]

    def _trace_lines(self) -> List[str]:
        newest_first = [f"{pc:03X}" for pc in reversed(self._trace)]
        if not newest_first:
            return ["<empty>"]
        width = self.TRACE_PER_LINE
        return [" ".join(newest_first[i:i + width]) for i in range(0, len(newest_first), width)]

"""CHIP-8 emulator pygame application."""

from __future__ import annotations

import argparse
import logging
import os
import random
import sys
from typing import Dict, Iterable, Optional

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.disassembler import disassemble
from chip8emu.emulator.file import ProgramLoadError, load_rom, resolve_rom_path
from chip8emu.frontend.debug_overlay import DebugOverlay
from chip8emu.memory import Chip8Error

logger = logging.getLogger(__name__)

BASE_CAPTION = "CHIP-8 Emulator"

# Host keys laid out as the 4x4 COSMAC VIP keypad.
KEY_MAP: Dict[int, int] = {
    ord("1"): 0x1,
    ord("2"): 0x2,
    ord("3"): 0x3,
    ord("4"): 0xC,
    ord("q"): 0x4,
    ord("w"): 0x5,
    ord("e"): 0x6,
    ord("r"): 0xD,
    ord("a"): 0x7,
    ord("s"): 0x8,
    ord("d"): 0x9,
    ord("f"): 0xE,
    ord("z"): 0xA,
    ord("x"): 0x0,
    ord("c"): 0xB,
    ord("v"): 0xF,
}

# Alternative layout with A-D on the digit row and 0 on "v".
CLASSIC_KEY_MAP: Dict[int, int] = {
    ord("v"): 0x0,
    ord("q"): 0x1,
    ord("w"): 0x2,
    ord("e"): 0x3,
    ord("a"): 0x4,
    ord("s"): 0x5,
    ord("d"): 0x6,
    ord("z"): 0x7,
    ord("x"): 0x8,
    ord("c"): 0x9,
    ord("1"): 0xA,
    ord("2"): 0xB,
    ord("3"): 0xC,
    ord("4"): 0xD,
    ord("r"): 0xE,
    ord("f"): 0xF,
}

KEY_MAPS = {"vip": KEY_MAP, "classic": CLASSIC_KEY_MAP}


def _handle_key_event(keyboard: Chip8Keyboard, key_map: Dict[int, int], key: int, pressed: bool) -> None:
    mapping = key_map.get(key)
    if mapping is None:
        return
    if pressed:
        keyboard.press(mapping)
    else:
        keyboard.release(mapping)


def _run_frame(computer: Chip8Computer, overlay: DebugOverlay, steps: int, cycle_limit: Optional[int]) -> None:
    if cycle_limit is not None:
        steps = min(steps, max(cycle_limit - computer.step_count, 0))
    for _ in range(steps):
        if computer.is_halted() or computer.fault is not None:
            return
        overlay.record_execution(computer.cpu_core.registers.program_counter)
        result = computer.run(max_steps=1, throttle=False)
        if result.fault is not None:
            return


class _StepBudget:
    """Instructions to run per window frame, carrying the fractional remainder."""

    def __init__(self, rate: float, fps: int) -> None:
        self._rate = rate
        self._fps = fps
        self._frames = 0
        self._issued = 0

    def next_frame(self) -> int:
        self._frames += 1
        due = int(self._frames * self._rate // self._fps)
        steps = due - self._issued
        self._issued = due
        return steps


def _caption(computer: Chip8Computer, debug_mode: bool) -> str:
    caption = BASE_CAPTION
    if computer.program_info is not None:
        caption = f"{caption} | {computer.program_info.name}"
    if computer.fault is not None:
        caption += f" | FAULT: {computer.fault}"
    elif computer.is_halted():
        caption += " | halted"
    elif debug_mode:
        caption += " | paused"
    return caption


def _pygame_loop(
    computer: Chip8Computer,
    *,
    scale: int,
    fps: int,
    key_map: Dict[int, int],
    start_paused: bool = False,
    cycle_limit: Optional[int] = None,
) -> int:
    import pygame  # type: ignore

    display = computer.display
    overlay = DebugOverlay(computer)
    keyboard = computer.keyboard

    pygame.init()
    screen = pygame.display.set_mode((display.WIDTH * scale, display.HEIGHT * scale))
    pygame.display.set_caption(_caption(computer, start_paused))
    clock = pygame.time.Clock()

    budget = _StepBudget(computer.instruction_rate, fps)
    debug_mode = start_paused
    if debug_mode:
        overlay.set_status("Debug paused")
        overlay.capture_state()
    running = True

    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
                continue
            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    debug_mode = not debug_mode
                    overlay.set_status("Debug paused" if debug_mode else "")
                    overlay.capture_state()
                    continue
                if debug_mode:
                    if event.key == pygame.K_q:
                        running = False
                    elif event.key == pygame.K_SPACE:
                        debug_mode = False
                        overlay.set_status("Resumed")
                    elif event.key == pygame.K_n:
                        _run_frame(computer, overlay, 1, cycle_limit)
                        overlay.set_status("Stepped")
                        overlay.capture_state()
                    continue
                _handle_key_event(keyboard, key_map, event.key, True)
            elif event.type == pygame.KEYUP:
                _handle_key_event(keyboard, key_map, event.key, False)

        if not debug_mode:
            _run_frame(computer, overlay, budget.next_frame(), cycle_limit)
        else:
            computer.tick_timers()

        screen.blit(display.render_pygame_surface(scale), (0, 0))
        if debug_mode:
            overlay.capture_state()
            overlay.render(screen)
        pygame.display.set_caption(_caption(computer, debug_mode))
        pygame.display.flip()
        clock.tick(fps)

    computer.sound_processor.stop()
    pygame.quit()
    return 4 if computer.fault is not None else 0


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument("rom", nargs="?", default=None, help="ROM image (defaults to $CHIP8EMU_ROM)")
    parser.add_argument("--dis", action="store_true", help="Print the disassembled ROM and exit")
    parser.add_argument("--debug", action="store_true", help="Start paused; press N to step one cycle at a time")
    parser.add_argument("--cycles", type=int, default=0, help="Stop executing after this many instructions (0: no limit)")
    parser.add_argument("--scale", type=int, default=10, help="Integer scaling factor for display (default: 10)")
    parser.add_argument("--fps", type=int, default=60, help="Target frames per second for the window loop")
    parser.add_argument(
        "--rate",
        type=float,
        default=Chip8Computer.INSTRUCTION_RATE_HZ,
        help="Instructions per second (default: 500)",
    )
    parser.add_argument("--keymap", choices=sorted(KEY_MAPS), default="vip", help="Host keyboard layout")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the RND instruction")
    parser.add_argument("--audio", dest="audio", action="store_true", help="Enable the buzzer (requires pygame mixer)")
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=None,
        help="Logging level (DEBUG traces every instruction; defaults from $CHIP8EMU_TRACE)",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    level = args.log_level or ("DEBUG" if os.getenv("CHIP8EMU_TRACE") else "WARNING")
    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(name)s: %(message)s")

    rom_path = resolve_rom_path(args.rom)
    if rom_path is None:
        parser.error("a ROM path is required (argument or $CHIP8EMU_ROM)")
    if args.scale <= 0:
        raise SystemExit("scale must be positive")
    if args.fps <= 0:
        raise SystemExit("fps must be positive")
    if args.rate <= 0:
        raise SystemExit("rate must be positive")

    try:
        info = load_rom(rom_path)
    except ProgramLoadError as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return 1

    if args.dis:
        for line in disassemble(info.data):
            print(line)
        return 0

    rng = random.Random(args.seed) if args.seed is not None else None
    computer = Chip8Computer(rng=rng, instruction_rate=args.rate, enable_audio=args.audio)
    try:
        computer.load_program(info.data)
    except Chip8Error as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return 1
    computer.program_info = info

    try:
        return _pygame_loop(
            computer,
            scale=args.scale,
            fps=args.fps,
            key_map=KEY_MAPS[args.keymap],
            start_paused=args.debug,
            cycle_limit=args.cycles if args.cycles > 0 else None,
        )
    except RuntimeError as exc:
        raise SystemExit(str(exc))


if __name__ == "__main__":
    raise SystemExit(main())

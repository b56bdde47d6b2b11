"""Headless runner for CHIP-8 ROM debugging workflows."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
import logging
import os
import random
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TextIO

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.disassembler import disassemble
from chip8emu.emulator.file import ProgramLoadError, load_rom, resolve_rom_path
from chip8emu.memory import MEMORY_SIZE, Chip8Error

DEFAULT_MAX_CYCLES = 1_000_000
LAST_ADDRESS = MEMORY_SIZE - 1
ROW_WIDTH = 16

EXIT_OK = 0
EXIT_LOAD_FAILED = 1
EXIT_CYCLE_LIMIT = 2
EXIT_TIMEOUT = 3
EXIT_FAULT = 4


@dataclass(frozen=True)
class MemoryWindow:
    """Inclusive address window selected for a memory dump."""

    first: int
    last: int

    def __len__(self) -> int:
        return self.last - self.first + 1

    def rows(self) -> range:
        return range(self.first - self.first % ROW_WIDTH, self.last + 1, ROW_WIDTH)


@dataclass
class ExecutionReport:
    steps: int = 0
    halted: bool = False
    break_hit: bool = False
    timeout_hit: bool = False
    cycle_hit: bool = False
    quit_requested: bool = False
    fault: Optional[Chip8Error] = None


def _parse_address(text: str) -> int:
    try:
        value = int(text.strip(), 16)
    except ValueError:
        raise ValueError(f"{text!r} is not a hexadecimal address") from None
    if not (0 <= value <= LAST_ADDRESS):
        raise ValueError(f"0x{value:X} lies outside 0x000-0x{LAST_ADDRESS:03X}")
    return value


def _parse_window(spec: str) -> MemoryWindow:
    parts = spec.split(":")
    if len(parts) != 2:
        raise ValueError("expected START:END")
    first, last = (_parse_address(part) for part in parts)
    if last < first:
        raise ValueError("END precedes START")
    return MemoryWindow(first, last)


def _parse_keys(spec: str) -> List[int]:
    keys: List[int] = []
    for item in filter(None, (part.strip() for part in spec.split(","))):
        key = int(item, 16)
        if not (0 <= key <= 0xF):
            raise ValueError(f"key {item!r} is not a hex digit")
        keys.append(key)
    return keys


def _coalesce(windows: Sequence[MemoryWindow]) -> List[MemoryWindow]:
    """Sort windows and join the ones that overlap or touch."""

    if not windows:
        return [MemoryWindow(0, LAST_ADDRESS)]
    joined: List[MemoryWindow] = []
    for window in sorted(windows, key=lambda w: w.first):
        if joined and window.first <= joined[-1].last + 1:
            previous = joined.pop()
            window = MemoryWindow(previous.first, max(previous.last, window.last))
        joined.append(window)
    return joined


def _hex_table(memory, windows: Sequence[MemoryWindow]) -> str:
    header = "ADDR " + " ".join(f"+{column:X}" for column in range(ROW_WIDTH))
    blocks: List[str] = []
    for window in windows:
        lines = [header]
        for row in window.rows():
            cells = " ".join(f"{memory.read_byte(row + column):02X}" for column in range(ROW_WIDTH))
            lines.append(f"{row:04X} {cells}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _dump_memory(memory, windows: Sequence[MemoryWindow], *, target: Path | None, fmt: str) -> None:
    windows = _coalesce(windows)
    if fmt == "bin":
        data = b"".join(memory.read_block(window.first, len(window)) for window in windows)
        if target is None:
            sys.stdout.buffer.write(data)
        else:
            target.write_bytes(data)
        return

    table = _hex_table(memory, windows)
    if target is None:
        print(table)
    else:
        target.write_text(table + "\n")


def _execute_program(
    computer: Chip8Computer,
    *,
    max_cycles: int | None,
    breakpoints: Sequence[int],
    max_seconds: float | None,
    step_mode: bool = False,
    prompt: Callable[[str], str] = input,
    out: TextIO | None = None,
) -> ExecutionReport:
    """Step ``computer`` until it halts, faults or meets a stop condition."""

    out = out if out is not None else sys.stdout
    stops = frozenset(breakpoints)
    report = ExecutionReport()
    deadline = None if max_seconds is None or max_seconds < 0 else time.monotonic() + max_seconds

    while not computer.is_halted():
        if computer.cpu_core.registers.program_counter in stops:
            report.break_hit = True
            break
        if max_cycles is not None and report.steps >= max_cycles:
            report.cycle_hit = True
            break
        try:
            computer.step()
        except Chip8Error as exc:
            computer.fault = report.fault = exc
            break
        report.steps += 1

        if step_mode:
            print(computer.cpu_core.describe(), file=out)
            try:
                answer = prompt("step> ")
            except EOFError:
                answer = "q"
            if answer.strip().lower() in ("q", "quit"):
                report.quit_requested = True
                break
        if deadline is not None and time.monotonic() >= deadline:
            report.timeout_hit = True
            break

    report.halted = computer.is_halted()
    return report


def _configure_logging(level: str | None) -> None:
    if level is None:
        level = "DEBUG" if os.getenv("CHIP8EMU_TRACE") else "WARNING"
    logging.basicConfig(level=getattr(logging, level.upper()), format="%(levelname)s %(name)s: %(message)s")


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8-debug-runner",
        description="Run a CHIP-8 ROM without a window and inspect the result.",
    )
    parser.add_argument("rom", nargs="?", default=None, help="ROM image (defaults to $CHIP8EMU_ROM)")
    parser.add_argument("--dis", action="store_true", help="Print the disassembled ROM and exit")
    parser.add_argument(
        "--cycles",
        type=int,
        default=DEFAULT_MAX_CYCLES,
        help="Instruction budget; 0 or less runs until halt",
    )
    parser.add_argument("--break-pc", action="append", default=[], metavar="ADDR", help="Stop when PC reaches ADDR")
    parser.add_argument("--step", action="store_true", help="Print the CPU state and wait for Enter after each cycle")
    parser.add_argument("--seconds", type=float, default=None, help="Wall-clock limit in seconds")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the RND instruction")
    parser.add_argument("--keys", default="", help="Comma separated hex keys held for the whole run")
    parser.add_argument("--show-screen", action="store_true", help="Print the framebuffer when execution stops")
    parser.add_argument("--dump", default=None, metavar="PATH", help="Write the memory dump to PATH")
    parser.add_argument(
        "--dump-range",
        action="append",
        default=[],
        metavar="START:END",
        help="Inclusive hex window to dump; repeatable",
    )
    parser.add_argument("--dump-format", choices=("hex", "bin"), default="hex", help="Hex table or raw bytes")
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=None,
        help="Logging level (DEBUG traces every instruction; defaults from $CHIP8EMU_TRACE)",
    )
    return parser


def main(argv: Sequence[str] | None = None, *, prompt: Callable[[str], str] = input) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    rom_path = resolve_rom_path(args.rom)
    if rom_path is None:
        parser.error("a ROM path is required (argument or $CHIP8EMU_ROM)")

    try:
        breakpoints = [_parse_address(value) for value in args.break_pc]
        windows = [_parse_window(value) for value in args.dump_range]
        held_keys = _parse_keys(args.keys)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        info = load_rom(rom_path)
    except ProgramLoadError as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    if args.dis:
        print("\n".join(disassemble(info.data)))
        return EXIT_OK

    computer = Chip8Computer(rng=random.Random(args.seed) if args.seed is not None else None)
    computer.load_program(info.data)
    computer.program_info = info
    computer.keyboard.set_keys(held_keys)

    report = _execute_program(
        computer,
        max_cycles=args.cycles if args.cycles > 0 else None,
        breakpoints=breakpoints,
        max_seconds=args.seconds,
        step_mode=args.step,
        prompt=prompt,
    )

    if args.show_screen:
        print(computer.display.render_text())
    if args.dump is not None or windows:
        _dump_memory(
            computer.memory,
            windows,
            target=Path(args.dump) if args.dump is not None else None,
            fmt=args.dump_format,
        )

    if report.fault is not None:
        print(f"Execution stopped: {report.fault}", file=sys.stderr)
        print(computer.cpu_core.describe(), file=sys.stderr)
        return EXIT_FAULT
    if report.halted or report.break_hit or report.quit_requested:
        return EXIT_OK
    if report.timeout_hit:
        print("Execution stopped: time limit reached", file=sys.stderr)
        return EXIT_TIMEOUT
    if report.cycle_hit:
        print("Execution stopped: cycle limit reached", file=sys.stderr)
        return EXIT_CYCLE_LIMIT
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

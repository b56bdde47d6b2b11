"""File loading helpers for the CHIP-8 emulator."""

from chip8emu.emulator.file.program import (
    ENV_ROM_PATH,
    ProgramInfo,
    ProgramLoadError,
    load_rom,
    resolve_rom_path,
)

__all__ = [
    "ENV_ROM_PATH",
    "ProgramInfo",
    "ProgramLoadError",
    "load_rom",
    "resolve_rom_path",
]

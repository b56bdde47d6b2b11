"""Raw CHIP-8 ROM loading."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Optional

from chip8emu.memory import MAX_PROGRAM_SIZE

logger = logging.getLogger(__name__)

ENV_ROM_PATH = "CHIP8EMU_ROM"


class ProgramLoadError(RuntimeError):
    """Raised when a ROM image cannot be read."""


@dataclass
class ProgramInfo:
    data: bytes
    name: str = ""
    path: Optional[Path] = None

    @property
    def size(self) -> int:
        return len(self.data)


def load_rom(path: str | os.PathLike[str]) -> ProgramInfo:
    """Read a headerless ROM image from disk."""

    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except OSError as exc:
        raise ProgramLoadError(f"cannot read {file_path}: {exc.strerror or exc}") from exc
    if not data:
        raise ProgramLoadError(f"{file_path} is empty")
    if len(data) > MAX_PROGRAM_SIZE:
        raise ProgramLoadError(
            f"{file_path} is {len(data)} bytes; at most {MAX_PROGRAM_SIZE} bytes fit in memory"
        )
    logger.debug("read %d bytes from %s", len(data), file_path)
    return ProgramInfo(data=data, name=file_path.stem.upper(), path=file_path)


def resolve_rom_path(rom_path: str | os.PathLike[str] | None) -> Optional[Path]:
    """Return the explicit ROM path, else the one named by ``CHIP8EMU_ROM``."""

    if rom_path is not None and str(rom_path):
        return Path(rom_path)
    env_value = os.getenv(ENV_ROM_PATH)
    if env_value:
        return Path(env_value)
    return None

"""Static disassembly of CHIP-8 ROM images."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List

from chip8emu.cpu.opcodes import OP_SIZE, Operation, decode
from chip8emu.memory import END_SENTINEL, PROGRAM_START


@dataclass(frozen=True)
class DisassembledWord:
    address: int
    word: int
    operation: Operation

    def format(self) -> str:
        return f"0x{self.address:03X}  {self.word:04X}  {self.operation}"


def iter_words(rom: bytes, *, base: int = PROGRAM_START) -> Iterator[DisassembledWord]:
    """Decode every word of ``rom`` without executing anything.

    A trailing odd byte is padded with zero unless it is the end sentinel.
    """

    for offset in range(0, len(rom), OP_SIZE):
        hi = rom[offset]
        lo = rom[offset + 1] if offset + 1 < len(rom) else 0
        word = (END_SENTINEL << 8) if hi == END_SENTINEL else (hi << 8) | lo
        yield DisassembledWord(base + offset, word, decode(word))


def disassemble(rom: bytes, *, base: int = PROGRAM_START) -> List[str]:
    return [entry.format() for entry in iter_words(rom, base=base)]

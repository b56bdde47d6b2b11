"""Flat CHIP-8 memory bus with the built-in hexadecimal font."""

from __future__ import annotations

from typing import Iterable

MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START
FONT_START = 0x050
GLYPH_HEIGHT = 5
END_SENTINEL = 0x0A

FONT_GLYPHS = (
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
)


class Chip8Error(RuntimeError):
    """Base class for fatal machine conditions."""


class OutOfBounds(Chip8Error):
    """Raised when an access falls outside the 4 KiB address space."""

    def __init__(self, address: int, length: int = 1) -> None:
        if length == 1:
            message = f"address 0x{address:04X} is out of bounds"
        else:
            message = f"block 0x{address:04X}+{length} is out of bounds"
        super().__init__(message)
        self.address = address
        self.length = length


class InvalidDigit(Chip8Error):
    """Raised when a font glyph is requested for a value above 0xF."""

    def __init__(self, digit: int) -> None:
        super().__init__(f"no font glyph for value 0x{digit:02X}")
        self.digit = digit


class ProgramTooLarge(Chip8Error):
    """Raised when a ROM does not fit between 0x200 and the end of memory."""

    def __init__(self, length: int) -> None:
        super().__init__(f"program of {length} bytes exceeds the {MAX_PROGRAM_SIZE} byte limit")
        self.length = length


class MemoryBus:
    """4 KiB byte-addressable memory shared by the CPU and the display."""

    def __init__(self) -> None:
        self.data = bytearray(MEMORY_SIZE)
        self.data[FONT_START:FONT_START + len(FONT_GLYPHS)] = bytes(FONT_GLYPHS)
        self.program_length = 0

    def __len__(self) -> int:
        return MEMORY_SIZE

    def _check(self, address: int, length: int = 1) -> None:
        if address < 0 or length < 0 or address + length > MEMORY_SIZE:
            raise OutOfBounds(address, length)

    def read_byte(self, address: int) -> int:
        self._check(address)
        return self.data[address]

    def write_byte(self, address: int, value: int) -> None:
        self._check(address)
        self.data[address] = value & 0xFF

    def read_block(self, address: int, length: int) -> bytes:
        self._check(address, length)
        return bytes(self.data[address:address + length])

    def write_block(self, address: int, values: Iterable[int]) -> None:
        block = bytes(value & 0xFF for value in values)
        self._check(address, len(block))
        self.data[address:address + len(block)] = block

    def fetch_instruction(self, pc: int) -> int:
        """Return the big-endian word at ``pc``.

        The end sentinel byte short-circuits the fetch so a program may end on
        the very last byte of memory.
        """

        hi = self.read_byte(pc)
        if hi == END_SENTINEL:
            return END_SENTINEL << 8
        lo = self.read_byte(pc + 1)
        return (hi << 8) | lo

    @staticmethod
    def font_glyph_address(digit: int) -> int:
        if not (0 <= digit <= 0xF):
            raise InvalidDigit(digit)
        return FONT_START + digit * GLYPH_HEIGHT

    def load_program(self, program: bytes) -> None:
        if len(program) > MAX_PROGRAM_SIZE:
            raise ProgramTooLarge(len(program))
        self.data[PROGRAM_START:PROGRAM_START + len(program)] = program
        self.program_length = len(program)


__all__ = [
    "Chip8Error",
    "END_SENTINEL",
    "FONT_GLYPHS",
    "FONT_START",
    "GLYPH_HEIGHT",
    "InvalidDigit",
    "MAX_PROGRAM_SIZE",
    "MEMORY_SIZE",
    "MemoryBus",
    "OutOfBounds",
    "PROGRAM_START",
    "ProgramTooLarge",
]

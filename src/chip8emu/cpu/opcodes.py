"""CHIP-8 instruction words and their decoded operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Type

OP_SIZE = 2


@dataclass(frozen=True)
class Operation:
    """Base class of every decoded instruction."""

    def mnemonic(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.mnemonic()


OPERATION_TYPES: List[Type[Operation]] = []


def _register(cls: Type[Operation]) -> Type[Operation]:
    OPERATION_TYPES.append(cls)
    return cls


# ----------------------------------------------------------------------
# Control flow
# ----------------------------------------------------------------------
@_register
@dataclass(frozen=True)
class Eof(Operation):
    def mnemonic(self) -> str:
        return "EOF"


@_register
@dataclass(frozen=True)
class ClearScreen(Operation):
    def mnemonic(self) -> str:
        return "CLS"


@_register
@dataclass(frozen=True)
class Return(Operation):
    def mnemonic(self) -> str:
        return "RET"


@_register
@dataclass(frozen=True)
class Jump(Operation):
    nnn: int

    def mnemonic(self) -> str:
        return f"JP 0x{self.nnn:03X}"


@_register
@dataclass(frozen=True)
class Call(Operation):
    nnn: int

    def mnemonic(self) -> str:
        return f"CALL 0x{self.nnn:03X}"


@_register
@dataclass(frozen=True)
class JumpOffset(Operation):
    nnn: int

    def mnemonic(self) -> str:
        return f"JP V0, 0x{self.nnn:03X}"


# ----------------------------------------------------------------------
# Conditional skips
# ----------------------------------------------------------------------
@_register
@dataclass(frozen=True)
class SkipIfEqual(Operation):
    x: int
    nn: int

    def mnemonic(self) -> str:
        return f"SE V{self.x:X}, 0x{self.nn:02X}"


@_register
@dataclass(frozen=True)
class SkipIfNotEqual(Operation):
    x: int
    nn: int

    def mnemonic(self) -> str:
        return f"SNE V{self.x:X}, 0x{self.nn:02X}"


@_register
@dataclass(frozen=True)
class SkipIfRegistersEqual(Operation):
    x: int
    y: int

    def mnemonic(self) -> str:
        return f"SE V{self.x:X}, V{self.y:X}"


@_register
@dataclass(frozen=True)
class SkipIfRegistersNotEqual(Operation):
    x: int
    y: int

    def mnemonic(self) -> str:
        return f"SNE V{self.x:X}, V{self.y:X}"


@_register
@dataclass(frozen=True)
class SkipIfKeyPressed(Operation):
    x: int

    def mnemonic(self) -> str:
        return f"SKP V{self.x:X}"


@_register
@dataclass(frozen=True)
class SkipIfKeyNotPressed(Operation):
    x: int

    def mnemonic(self) -> str:
        return f"SKNP V{self.x:X}"


# ----------------------------------------------------------------------
# Register loads and arithmetic
# ----------------------------------------------------------------------
@_register
@dataclass(frozen=True)
class LoadImmediate(Operation):
    x: int
    nn: int

    def mnemonic(self) -> str:
        return f"LD V{self.x:X}, 0x{self.nn:02X}"


@_register
@dataclass(frozen=True)
class AddImmediate(Operation):
    x: int
    nn: int

    def mnemonic(self) -> str:
        return f"ADD V{self.x:X}, 0x{self.nn:02X}"


@dataclass(frozen=True)
class _RegisterPair(Operation):
    x: int
    y: int

    NAME = ""

    def mnemonic(self) -> str:
        return f"{self.NAME} V{self.x:X}, V{self.y:X}"


@_register
@dataclass(frozen=True)
class LoadRegister(_RegisterPair):
    NAME = "LD"


@_register
@dataclass(frozen=True)
class Or(_RegisterPair):
    NAME = "OR"


@_register
@dataclass(frozen=True)
class And(_RegisterPair):
    NAME = "AND"


@_register
@dataclass(frozen=True)
class Xor(_RegisterPair):
    NAME = "XOR"


@_register
@dataclass(frozen=True)
class Add(_RegisterPair):
    NAME = "ADD"


@_register
@dataclass(frozen=True)
class Subtract(_RegisterPair):
    NAME = "SUB"


@_register
@dataclass(frozen=True)
class ShiftRight(_RegisterPair):
    NAME = "SHR"


@_register
@dataclass(frozen=True)
class SubtractReverse(_RegisterPair):
    NAME = "SUBN"


@_register
@dataclass(frozen=True)
class ShiftLeft(_RegisterPair):
    NAME = "SHL"


@_register
@dataclass(frozen=True)
class Random(Operation):
    x: int
    nn: int

    def mnemonic(self) -> str:
        return f"RND V{self.x:X}, 0x{self.nn:02X}"


# ----------------------------------------------------------------------
# Index register, display and memory
# ----------------------------------------------------------------------
@_register
@dataclass(frozen=True)
class SetIndex(Operation):
    nnn: int

    def mnemonic(self) -> str:
        return f"LD I, 0x{self.nnn:03X}"


@_register
@dataclass(frozen=True)
class Draw(Operation):
    x: int
    y: int
    n: int

    def mnemonic(self) -> str:
        return f"DRW V{self.x:X}, V{self.y:X}, {self.n}"


@dataclass(frozen=True)
class _SingleRegister(Operation):
    x: int

    TEMPLATE = ""

    def mnemonic(self) -> str:
        return self.TEMPLATE.format(reg=f"V{self.x:X}")


@_register
@dataclass(frozen=True)
class ReadDelayTimer(_SingleRegister):
    TEMPLATE = "LD {reg}, DT"


@_register
@dataclass(frozen=True)
class WaitForKey(_SingleRegister):
    TEMPLATE = "LD {reg}, K"


@_register
@dataclass(frozen=True)
class SetDelayTimer(_SingleRegister):
    TEMPLATE = "LD DT, {reg}"


@_register
@dataclass(frozen=True)
class SetSoundTimer(_SingleRegister):
    TEMPLATE = "LD ST, {reg}"


@_register
@dataclass(frozen=True)
class AddIndex(_SingleRegister):
    TEMPLATE = "ADD I, {reg}"


@_register
@dataclass(frozen=True)
class LoadFontGlyph(_SingleRegister):
    TEMPLATE = "LD F, {reg}"


@_register
@dataclass(frozen=True)
class StoreBcd(_SingleRegister):
    TEMPLATE = "LD B, {reg}"


@_register
@dataclass(frozen=True)
class StoreRegisters(_SingleRegister):
    TEMPLATE = "LD [I], {reg}"


@_register
@dataclass(frozen=True)
class LoadRegisters(_SingleRegister):
    TEMPLATE = "LD {reg}, [I]"


@_register
@dataclass(frozen=True)
class Unknown(Operation):
    word: int

    def mnemonic(self) -> str:
        return f"??? 0x{self.word:04X}"


# ----------------------------------------------------------------------
# Decoding
# ----------------------------------------------------------------------
_ARITHMETIC: Dict[int, Type[_RegisterPair]] = {
    0x0: LoadRegister,
    0x1: Or,
    0x2: And,
    0x3: Xor,
    0x4: Add,
    0x5: Subtract,
    0x6: ShiftRight,
    0x7: SubtractReverse,
    0xE: ShiftLeft,
}

_KEY_OPS: Dict[int, Type[_SingleRegister]] = {
    0x9E: SkipIfKeyPressed,
    0xA1: SkipIfKeyNotPressed,
}

_MISC_OPS: Dict[int, Type[_SingleRegister]] = {
    0x07: ReadDelayTimer,
    0x0A: WaitForKey,
    0x15: SetDelayTimer,
    0x18: SetSoundTimer,
    0x1E: AddIndex,
    0x29: LoadFontGlyph,
    0x33: StoreBcd,
    0x55: StoreRegisters,
    0x65: LoadRegisters,
}


def decode(word: int) -> Operation:
    """Decode a 16-bit instruction word into an :class:`Operation`."""

    word &= 0xFFFF
    op = (word >> 12) & 0xF
    x = (word >> 8) & 0xF
    y = (word >> 4) & 0xF
    n = word & 0xF
    nn = word & 0xFF
    nnn = word & 0xFFF

    if op == 0x0:
        if (word >> 8) == 0x0A:
            return Eof()
        if word == 0x00E0:
            return ClearScreen()
        if word == 0x00EE:
            return Return()
        return Unknown(word)
    if op == 0x1:
        return Jump(nnn)
    if op == 0x2:
        return Call(nnn)
    if op == 0x3:
        return SkipIfEqual(x, nn)
    if op == 0x4:
        return SkipIfNotEqual(x, nn)
    if op == 0x5:
        return SkipIfRegistersEqual(x, y) if n == 0 else Unknown(word)
    if op == 0x6:
        return LoadImmediate(x, nn)
    if op == 0x7:
        return AddImmediate(x, nn)
    if op == 0x8:
        arithmetic = _ARITHMETIC.get(n)
        return arithmetic(x, y) if arithmetic is not None else Unknown(word)
    if op == 0x9:
        return SkipIfRegistersNotEqual(x, y) if n == 0 else Unknown(word)
    if op == 0xA:
        return SetIndex(nnn)
    if op == 0xB:
        return JumpOffset(nnn)
    if op == 0xC:
        return Random(x, nn)
    if op == 0xD:
        return Draw(x, y, n)
    if op == 0xE:
        key_op = _KEY_OPS.get(nn)
        return key_op(x) if key_op is not None else Unknown(word)
    misc = _MISC_OPS.get(nn)
    return misc(x) if misc is not None else Unknown(word)


__all__ = ["OP_SIZE", "OPERATION_TYPES", "Operation", "decode"] + [cls.__name__ for cls in OPERATION_TYPES]

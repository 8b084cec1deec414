"""
Instruction decoder for the CHIP-8 core.

:func:`decode` maps a raw 16-bit instruction word to one of the frozen
operation dataclasses below, or raises
:class:`~chip8.core.errors.UnknownInstructionError`.  Dispatch is on the top
nibble; the ``8xy_`` family is sub-selected by the low nibble, ``9xy0``
requires a zero low nibble and the ``Ex__`` / ``Fx__`` families are
sub-selected by the low byte.

Field naming follows the usual notation for a word ``ABCD``::

    x    = B      (register index)
    y    = C      (register index)
    n    = D      (4-bit immediate)
    byte = CD     (8-bit immediate)
    addr = BCD    (12-bit address)

``str(op)`` yields the disassembly of the operation.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import Callable, Dict, Tuple

from chip8.core.errors import UnknownInstructionError


class Op:
    """Base class of every decoded operation."""

    _fmt: str = ""

    def __str__(self) -> str:
        return self._fmt.format(*astuple(self))


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Sys(Op):
    addr: int
    _fmt = "SYS {0:#05x}"


@dataclass(frozen=True)
class Cls(Op):
    _fmt = "CLS"


@dataclass(frozen=True)
class Ret(Op):
    _fmt = "RET"


@dataclass(frozen=True)
class Jump(Op):
    addr: int
    _fmt = "JP {0:#05x}"


@dataclass(frozen=True)
class Call(Op):
    addr: int
    _fmt = "CALL {0:#05x}"


@dataclass(frozen=True)
class SkipEqByte(Op):
    x: int
    byte: int
    _fmt = "SE V{0:X}, {1:#04x}"


@dataclass(frozen=True)
class SkipNeByte(Op):
    x: int
    byte: int
    _fmt = "SNE V{0:X}, {1:#04x}"


@dataclass(frozen=True)
class SkipEqReg(Op):
    x: int
    y: int
    _fmt = "SE V{0:X}, V{1:X}"


@dataclass(frozen=True)
class LoadByte(Op):
    x: int
    byte: int
    _fmt = "LD V{0:X}, {1:#04x}"


@dataclass(frozen=True)
class AddByte(Op):
    x: int
    byte: int
    _fmt = "ADD V{0:X}, {1:#04x}"


@dataclass(frozen=True)
class LoadReg(Op):
    x: int
    y: int
    _fmt = "LD V{0:X}, V{1:X}"


@dataclass(frozen=True)
class Or(Op):
    x: int
    y: int
    _fmt = "OR V{0:X}, V{1:X}"


@dataclass(frozen=True)
class And(Op):
    x: int
    y: int
    _fmt = "AND V{0:X}, V{1:X}"


@dataclass(frozen=True)
class Xor(Op):
    x: int
    y: int
    _fmt = "XOR V{0:X}, V{1:X}"


@dataclass(frozen=True)
class AddReg(Op):
    x: int
    y: int
    _fmt = "ADD V{0:X}, V{1:X}"


@dataclass(frozen=True)
class Sub(Op):
    x: int
    y: int
    _fmt = "SUB V{0:X}, V{1:X}"


@dataclass(frozen=True)
class ShiftRight(Op):
    x: int
    y: int
    _fmt = "SHR V{0:X}, V{1:X}"


@dataclass(frozen=True)
class SubN(Op):
    x: int
    y: int
    _fmt = "SUBN V{0:X}, V{1:X}"


@dataclass(frozen=True)
class ShiftLeft(Op):
    x: int
    y: int
    _fmt = "SHL V{0:X}, V{1:X}"


@dataclass(frozen=True)
class SkipNeReg(Op):
    x: int
    y: int
    _fmt = "SNE V{0:X}, V{1:X}"


@dataclass(frozen=True)
class LoadI(Op):
    addr: int
    _fmt = "LD I, {0:#05x}"


@dataclass(frozen=True)
class JumpV0(Op):
    addr: int
    _fmt = "JP V0, {0:#05x}"


@dataclass(frozen=True)
class Rand(Op):
    x: int
    byte: int
    _fmt = "RND V{0:X}, {1:#04x}"


@dataclass(frozen=True)
class DrawSprite(Op):
    x: int
    y: int
    n: int
    _fmt = "DRW V{0:X}, V{1:X}, {2}"


@dataclass(frozen=True)
class SkipKeyPressed(Op):
    x: int
    _fmt = "SKP V{0:X}"


@dataclass(frozen=True)
class SkipKeyNotPressed(Op):
    x: int
    _fmt = "SKNP V{0:X}"


@dataclass(frozen=True)
class LoadDelay(Op):
    x: int
    _fmt = "LD V{0:X}, DT"


@dataclass(frozen=True)
class WaitKey(Op):
    x: int
    _fmt = "LD V{0:X}, K"


@dataclass(frozen=True)
class SetDelay(Op):
    x: int
    _fmt = "LD DT, V{0:X}"


@dataclass(frozen=True)
class SetSound(Op):
    x: int
    _fmt = "LD ST, V{0:X}"


@dataclass(frozen=True)
class AddI(Op):
    x: int
    _fmt = "ADD I, V{0:X}"


@dataclass(frozen=True)
class LoadFont(Op):
    x: int
    _fmt = "LD F, V{0:X}"


@dataclass(frozen=True)
class StoreBCD(Op):
    x: int
    _fmt = "LD B, V{0:X}"


@dataclass(frozen=True)
class StoreRegisters(Op):
    x: int
    _fmt = "LD [I], V{0:X}"


@dataclass(frozen=True)
class LoadRegisters(Op):
    x: int
    _fmt = "LD V{0:X}, [I]"


# ---------------------------------------------------------------------------
# Sub-family lookup tables (built once at module level)
# ---------------------------------------------------------------------------

_ALU_OPS: Dict[int, Callable[[int, int], Op]] = {
    0x0: LoadReg,
    0x1: Or,
    0x2: And,
    0x3: Xor,
    0x4: AddReg,
    0x5: Sub,
    0x6: ShiftRight,
    0x7: SubN,
    0xE: ShiftLeft,
}

_KEY_OPS: Dict[int, Callable[[int], Op]] = {
    0x9E: SkipKeyPressed,
    0xA1: SkipKeyNotPressed,
}

_MISC_OPS: Dict[int, Callable[[int], Op]] = {
    0x07: LoadDelay,
    0x0A: WaitKey,
    0x15: SetDelay,
    0x18: SetSound,
    0x1E: AddI,
    0x29: LoadFont,
    0x33: StoreBCD,
    0x55: StoreRegisters,
    0x65: LoadRegisters,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def decode(word: int) -> Op:
    """Decode a 16-bit instruction word.

    Raises:
        UnknownInstructionError: If *word* is not a recognised instruction.
    """
    family = word & 0xF000
    x = (word >> 8) & 0xF
    y = (word >> 4) & 0xF
    n = word & 0xF
    byte = word & 0xFF
    addr = word & 0xFFF

    if family == 0x0000:
        if word == 0x00E0:
            return Cls()
        if word == 0x00EE:
            return Ret()
        return Sys(addr)
    if family == 0x1000:
        return Jump(addr)
    if family == 0x2000:
        return Call(addr)
    if family == 0x3000:
        return SkipEqByte(x, byte)
    if family == 0x4000:
        return SkipNeByte(x, byte)
    if family == 0x5000:
        return SkipEqReg(x, y)
    if family == 0x6000:
        return LoadByte(x, byte)
    if family == 0x7000:
        return AddByte(x, byte)
    if family == 0x8000:
        alu = _ALU_OPS.get(n)
        if alu is not None:
            return alu(x, y)
    elif family == 0x9000:
        if n == 0x0:
            return SkipNeReg(x, y)
    elif family == 0xA000:
        return LoadI(addr)
    elif family == 0xB000:
        return JumpV0(addr)
    elif family == 0xC000:
        return Rand(x, byte)
    elif family == 0xD000:
        return DrawSprite(x, y, n)
    elif family == 0xE000:
        key_op = _KEY_OPS.get(byte)
        if key_op is not None:
            return key_op(x)
    elif family == 0xF000:
        misc = _MISC_OPS.get(byte)
        if misc is not None:
            return misc(x)

    raise UnknownInstructionError(word)


def to_bcd(value: int) -> Tuple[int, int, int]:
    """Split a byte into its hundreds, tens and ones decimal digits."""
    return value // 100, (value % 100) // 10, value % 10

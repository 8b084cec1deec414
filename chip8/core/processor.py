"""
CHIP-8 processor for the chip8 core.

Owns the whole machine state -- memory, V registers, I, PC, call stack,
timers, keypad and framebuffer -- and drives fetch, decode and execute one
instruction per :meth:`Processor.step`.

Each step, in order:

1. Decrement the delay and sound timers (floor 0).
2. Apply staged key events to the keypad.
3. Fetch the word at PC.  A PC outside the loaded program halts the
   processor and yields an ``Exit`` signal.
4. Decode it; an unknown word is fatal.
5. Advance PC by 2 and dispatch.
6. Return one :class:`~chip8.core.types.Step` signal.

Flag conventions worth knowing:

* ``ADD Vx, Vy`` sets VF on carry.
* ``SUB`` and ``SUBN`` set VF when a *borrow* occurs (not on "no borrow").
* ``SHR`` / ``SHL`` put the bit shifted out in VF.
* ``DRW`` sets VF to the collision flag.
"""

from __future__ import annotations

import logging
import random
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple, Type, Union

from chip8.core import decoder as ops
from chip8.core.decoder import Op, decode, to_bcd
from chip8.core.errors import (
    Chip8Error,
    InvalidProgramError,
    MemoryAccessError,
    ProgramReadError,
    StackOverflowError,
    StackUnderflowError,
)
from chip8.core.frame_buffer import FrameBuffer
from chip8.core.keypad import Keypad, KeyLike
from chip8.core.types import EXIT, NOP, WAIT_FOR_KEY, ProcessorState, Step

logger = logging.getLogger(__name__)

MEMORY_SIZE: int = 4096
PROGRAM_START: int = 0x200
PROGRAM_CAPACITY: int = MEMORY_SIZE - PROGRAM_START
REGISTER_COUNT: int = 16
STACK_DEPTH: int = 16

# fmt: off
FONT_SET: bytes = bytes([
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
])
# fmt: on

assert len(FONT_SET) == 80, f"font set must have 80 bytes, got {len(FONT_SET)}"

ProgramSource = Union[bytes, bytearray, memoryview, BinaryIO]


def read_program(source: ProgramSource) -> bytes:
    """Return the program bytes from a bytes-like object or a binary stream.

    Raises:
        ProgramReadError: If reading the stream fails.
        InvalidProgramError: If the program exceeds the program region.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    else:
        try:
            # One byte past capacity is enough to detect an oversized program.
            data = source.read(PROGRAM_CAPACITY + 1)
        except OSError as exc:
            raise ProgramReadError(f"Failed to read program: {exc}") from exc
        if data is None:
            data = b""

    if len(data) > PROGRAM_CAPACITY:
        raise InvalidProgramError(len(data), PROGRAM_CAPACITY)
    return bytes(data)


class Processor:
    """The CHIP-8 interpreter.

    Parameters
    ----------
    program:
        ROM contents, either bytes-like or a binary file object.  Copied to
        memory at ``PROGRAM_START``.
    rng:
        Source of randomness for ``RND``.  Defaults to a fresh, unseeded
        :class:`random.Random`; pass a seeded one for reproducible runs.

    Raises
    ------
    ProgramReadError
        If the program stream cannot be read.
    InvalidProgramError
        If the program is larger than ``PROGRAM_CAPACITY`` bytes.
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(self, program: ProgramSource, rng: Optional[random.Random] = None) -> None:
        # Registers
        self.v: bytearray = bytearray(REGISTER_COUNT)  # V0..VF
        self.i: int = 0                                # address register
        self.pc: int = PROGRAM_START                   # program counter
        self.sp: int = 0                               # stack pointer
        self.stack: List[int] = [0] * STACK_DEPTH

        # Timers
        self.dt: int = 0
        self.st: int = 0

        self.memory: bytearray = bytearray(MEMORY_SIZE)
        self.memory[: len(FONT_SET)] = FONT_SET
        self.program_end: int = PROGRAM_START

        self.frame_buffer: FrameBuffer = FrameBuffer()
        self.keypad: Keypad = Keypad()
        self.rng: random.Random = rng if rng is not None else random.Random()

        self.state: ProcessorState = ProcessorState.Running
        self.step_count: int = 0

        # (address, word, op) of the most recently executed instruction.
        self.last_instruction: Optional[Tuple[int, int, Op]] = None

        self._dispatch: Dict[Type[Op], Callable[[Op], Step]] = self._build_dispatch_table()

        self.load_program(program)

    def load_program(self, program: ProgramSource) -> None:
        """Replace the program region with *program*.

        The region [PROGRAM_START, MEMORY_SIZE) is zeroed first.  Registers,
        timers, stack and display are left untouched.
        """
        data = read_program(program)
        self.memory[PROGRAM_START:] = bytes(PROGRAM_CAPACITY)
        self.memory[PROGRAM_START : PROGRAM_START + len(data)] = data
        self.program_end = PROGRAM_START + len(data)
        logger.info("Loaded %d-byte program", len(data))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def halted(self) -> bool:
        return self.state == ProcessorState.Halted

    @property
    def program_size(self) -> int:
        return self.program_end - PROGRAM_START

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def key_press(self, key: KeyLike) -> None:
        """Stage a key press; visible from the next :meth:`step`."""
        self.keypad.press(key)

    def key_release(self, key: KeyLike) -> None:
        """Stage a key release; visible from the next :meth:`step`."""
        self.keypad.release(key)

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------

    def step(self) -> Step:
        """Run one fetch-decode-execute cycle and return its signal.

        Raises:
            Chip8Error: On any fatal execution error.  The processor is
                halted and later calls return ``Exit``.
        """
        self.step_count += 1

        if self.dt > 0:
            self.dt -= 1
        if self.st > 0:
            self.st -= 1

        self.keypad.capture()

        if self.state == ProcessorState.Halted:
            return EXIT

        word = self._fetch()
        if word is None:
            logger.info("PC %#05x outside program, halting", self.pc)
            self.state = ProcessorState.Halted
            return EXIT

        address = self.pc
        try:
            op = decode(word)
            logger.debug("EXEC %#05x %04X %s", address, word, op)
            self.last_instruction = (address, word, op)
            self.pc += 2
            return self._dispatch[type(op)](op)
        except Chip8Error:
            self.state = ProcessorState.Halted
            raise

    def _fetch(self) -> Optional[int]:
        pc = self.pc
        if pc < PROGRAM_START or pc >= self.program_end or pc + 1 >= MEMORY_SIZE:
            return None
        return (self.memory[pc] << 8) | self.memory[pc + 1]

    # ------------------------------------------------------------------
    # Stack helpers
    # ------------------------------------------------------------------

    def push(self, value: int) -> None:
        if self.sp >= STACK_DEPTH:
            raise StackOverflowError()
        self.stack[self.sp] = value
        self.sp += 1

    def pull(self) -> int:
        if self.sp == 0:
            raise StackUnderflowError()
        self.sp -= 1
        return self.stack[self.sp]

    # ------------------------------------------------------------------
    # Memory helpers
    # ------------------------------------------------------------------

    def _check_range(self, start: int, length: int) -> None:
        if length == 0:
            return
        if start < 0 or start >= MEMORY_SIZE:
            raise MemoryAccessError(start)
        end = start + length
        if end > MEMORY_SIZE:
            raise MemoryAccessError(MEMORY_SIZE)

    # ------------------------------------------------------------------
    # Instruction implementations
    # ------------------------------------------------------------------

    def i_sys(self, op: ops.Sys) -> Step:
        return NOP

    def i_cls(self, op: ops.Cls) -> Step:
        self.frame_buffer.clear()
        return Step.draw(self.frame_buffer.pixels())

    def i_ret(self, op: ops.Ret) -> Step:
        self.pc = self.pull()
        return NOP

    def i_jp(self, op: ops.Jump) -> Step:
        self.pc = op.addr
        return NOP

    def i_call(self, op: ops.Call) -> Step:
        self.push(self.pc)
        self.pc = op.addr
        return NOP

    def i_se_byte(self, op: ops.SkipEqByte) -> Step:
        if self.v[op.x] == op.byte:
            self.pc += 2
        return NOP

    def i_sne_byte(self, op: ops.SkipNeByte) -> Step:
        if self.v[op.x] != op.byte:
            self.pc += 2
        return NOP

    def i_se_reg(self, op: ops.SkipEqReg) -> Step:
        if self.v[op.x] == self.v[op.y]:
            self.pc += 2
        return NOP

    def i_ld_byte(self, op: ops.LoadByte) -> Step:
        self.v[op.x] = op.byte
        return NOP

    def i_add_byte(self, op: ops.AddByte) -> Step:
        self.v[op.x] = (self.v[op.x] + op.byte) & 0xFF
        return NOP

    def i_ld_reg(self, op: ops.LoadReg) -> Step:
        self.v[op.x] = self.v[op.y]
        return NOP

    def i_or(self, op: ops.Or) -> Step:
        self.v[op.x] |= self.v[op.y]
        return NOP

    def i_and(self, op: ops.And) -> Step:
        self.v[op.x] &= self.v[op.y]
        return NOP

    def i_xor(self, op: ops.Xor) -> Step:
        self.v[op.x] ^= self.v[op.y]
        return NOP

    def i_add_reg(self, op: ops.AddReg) -> Step:
        total = self.v[op.x] + self.v[op.y]
        self.v[op.x] = total & 0xFF
        self.v[0xF] = 1 if total > 0xFF else 0
        return NOP

    def i_sub(self, op: ops.Sub) -> Step:
        a, b = self.v[op.x], self.v[op.y]
        self.v[op.x] = (a - b) & 0xFF
        self.v[0xF] = 1 if b > a else 0
        return NOP

    def i_shr(self, op: ops.ShiftRight) -> Step:
        value = self.v[op.x]
        self.v[0xF] = value & 0x01
        self.v[op.x] = value >> 1
        return NOP

    def i_subn(self, op: ops.SubN) -> Step:
        a, b = self.v[op.x], self.v[op.y]
        self.v[0xF] = 1 if a > b else 0
        self.v[op.x] = max(b - a, 0)
        return NOP

    def i_shl(self, op: ops.ShiftLeft) -> Step:
        value = self.v[op.x]
        self.v[0xF] = (value >> 7) & 0x01
        self.v[op.x] = (value << 1) & 0xFF
        return NOP

    def i_sne_reg(self, op: ops.SkipNeReg) -> Step:
        if self.v[op.x] != self.v[op.y]:
            self.pc += 2
        return NOP

    def i_ld_i(self, op: ops.LoadI) -> Step:
        self.i = op.addr
        return NOP

    def i_jp_v0(self, op: ops.JumpV0) -> Step:
        self.pc = op.addr
        self.pc += self.v[0x0]
        return NOP

    def i_rnd(self, op: ops.Rand) -> Step:
        self.v[op.x] = self.rng.randrange(256) & op.byte
        return NOP

    def i_drw(self, op: ops.DrawSprite) -> Step:
        self._check_range(self.i, op.n)
        sprite = self.memory[self.i : self.i + op.n]
        collision = self.frame_buffer.draw(self.v[op.x], self.v[op.y], sprite)
        if collision is not None:
            self.v[0xF] = 1 if collision else 0
        return Step.draw(self.frame_buffer.pixels())

    def i_skp(self, op: ops.SkipKeyPressed) -> Step:
        if self.keypad.is_pressed(self.v[op.x]):
            self.pc += 2
        return NOP

    def i_sknp(self, op: ops.SkipKeyNotPressed) -> Step:
        if not self.keypad.is_pressed(self.v[op.x]):
            self.pc += 2
        return NOP

    def i_ld_dt(self, op: ops.LoadDelay) -> Step:
        self.v[op.x] = self.dt
        return NOP

    def i_ld_key(self, op: ops.WaitKey) -> Step:
        key = self.keypad.pressed_key()
        if key is None:
            self.pc -= 2
            self.state = ProcessorState.AwaitingKey
            return WAIT_FOR_KEY
        self.v[op.x] = key
        self.state = ProcessorState.Running
        return NOP

    def i_set_dt(self, op: ops.SetDelay) -> Step:
        self.dt = self.v[op.x]
        return NOP

    def i_set_st(self, op: ops.SetSound) -> Step:
        self.st = self.v[op.x]
        return NOP

    def i_add_i(self, op: ops.AddI) -> Step:
        self.i = (self.i + self.v[op.x]) & 0xFFFF
        return NOP

    def i_ld_font(self, op: ops.LoadFont) -> Step:
        self.i = (self.v[op.x] * 4) & 0xFFFF
        return NOP

    def i_ld_bcd(self, op: ops.StoreBCD) -> Step:
        self._check_range(self.i, 3)
        self.memory[self.i : self.i + 3] = bytes(to_bcd(self.v[op.x]))
        return NOP

    def i_store_regs(self, op: ops.StoreRegisters) -> Step:
        count = op.x + 1
        self._check_range(self.i, count)
        self.memory[self.i : self.i + count] = self.v[:count]
        return NOP

    def i_load_regs(self, op: ops.LoadRegisters) -> Step:
        count = op.x + 1
        self._check_range(self.i, count)
        self.v[:count] = self.memory[self.i : self.i + count]
        return NOP

    # ------------------------------------------------------------------
    # Dispatch table
    # ------------------------------------------------------------------

    def _build_dispatch_table(self) -> Dict[Type[Op], Callable[[Op], Step]]:
        """Map every operation class to its handler.

        Handlers run after PC has been advanced past the instruction.
        """
        return {
            ops.Sys: self.i_sys,
            ops.Cls: self.i_cls,
            ops.Ret: self.i_ret,
            ops.Jump: self.i_jp,
            ops.Call: self.i_call,
            ops.SkipEqByte: self.i_se_byte,
            ops.SkipNeByte: self.i_sne_byte,
            ops.SkipEqReg: self.i_se_reg,
            ops.LoadByte: self.i_ld_byte,
            ops.AddByte: self.i_add_byte,
            ops.LoadReg: self.i_ld_reg,
            ops.Or: self.i_or,
            ops.And: self.i_and,
            ops.Xor: self.i_xor,
            ops.AddReg: self.i_add_reg,
            ops.Sub: self.i_sub,
            ops.ShiftRight: self.i_shr,
            ops.SubN: self.i_subn,
            ops.ShiftLeft: self.i_shl,
            ops.SkipNeReg: self.i_sne_reg,
            ops.LoadI: self.i_ld_i,
            ops.JumpV0: self.i_jp_v0,
            ops.Rand: self.i_rnd,
            ops.DrawSprite: self.i_drw,
            ops.SkipKeyPressed: self.i_skp,
            ops.SkipKeyNotPressed: self.i_sknp,
            ops.LoadDelay: self.i_ld_dt,
            ops.WaitKey: self.i_ld_key,
            ops.SetDelay: self.i_set_dt,
            ops.SetSound: self.i_set_st,
            ops.AddI: self.i_add_i,
            ops.LoadFont: self.i_ld_font,
            ops.StoreBCD: self.i_ld_bcd,
            ops.StoreRegisters: self.i_store_regs,
            ops.LoadRegisters: self.i_load_regs,
        }

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"Processor("
            f"pc={self.pc:#05x}, "
            f"i={self.i:#05x}, "
            f"sp={self.sp}, "
            f"state={self.state.name}, "
            f"program={self.program_size} bytes)"
        )

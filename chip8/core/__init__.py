# chip8 emulation core
"""
The CHIP-8 emulation core: decoder, framebuffer, keypad and processor.

Use :class:`Processor(program) <processor.Processor>` to load a program and
call :meth:`~processor.Processor.step` at a fixed rate.
"""

from chip8.core.decoder import Op, decode, to_bcd
from chip8.core.errors import (
    Chip8Error,
    InvalidProgramError,
    MemoryAccessError,
    ProgramReadError,
    StackOverflowError,
    StackUnderflowError,
    UnexpectedError,
    UnknownInstructionError,
)
from chip8.core.frame_buffer import HEIGHT, WIDTH, FrameBuffer
from chip8.core.keypad import Keypad
from chip8.core.processor import (
    MEMORY_SIZE,
    PROGRAM_CAPACITY,
    PROGRAM_START,
    STACK_DEPTH,
    Processor,
)
from chip8.core.types import Key, Pixel, ProcessorState, Step, StepKind

__all__ = [
    "Chip8Error",
    "FrameBuffer",
    "HEIGHT",
    "InvalidProgramError",
    "Key",
    "Keypad",
    "MEMORY_SIZE",
    "MemoryAccessError",
    "Op",
    "PROGRAM_CAPACITY",
    "PROGRAM_START",
    "Pixel",
    "Processor",
    "ProcessorState",
    "ProgramReadError",
    "STACK_DEPTH",
    "StackOverflowError",
    "StackUnderflowError",
    "Step",
    "StepKind",
    "UnexpectedError",
    "UnknownInstructionError",
    "WIDTH",
    "decode",
    "to_bcd",
]

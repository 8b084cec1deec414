"""
Exception hierarchy for the CHIP-8 core.

Every error raised by the core derives from :class:`Chip8Error`, so a driver
can stop on any of them with a single ``except`` clause.  Load-time errors
(:class:`ProgramReadError`, :class:`InvalidProgramError`) prevent a
:class:`~chip8.core.processor.Processor` from being constructed at all;
execution-time errors halt the processor that raised them.
"""

from __future__ import annotations


class Chip8Error(Exception):
    """Base class for all CHIP-8 errors."""


class ProgramReadError(Chip8Error):
    """Reading the program from its byte source failed.

    The underlying :class:`OSError` is chained as ``__cause__``.
    """


class InvalidProgramError(Chip8Error):
    """The program does not fit in the program region of memory."""

    def __init__(self, size: int, capacity: int) -> None:
        super().__init__(
            f"Invalid program: {size} bytes exceeds the {capacity}-byte program region"
        )
        self.size = size
        self.capacity = capacity


class UnknownInstructionError(Chip8Error):
    """The fetched word does not decode to any known operation."""

    def __init__(self, word: int) -> None:
        super().__init__(f"Unknown instruction: {word:#06X}")
        self.word = word


class StackOverflowError(Chip8Error):
    """A CALL was executed with the call stack already full."""

    def __init__(self) -> None:
        super().__init__("Stack overflow")


class StackUnderflowError(Chip8Error):
    """A RET was executed with an empty call stack."""

    def __init__(self) -> None:
        super().__init__("Stack underflow")


class MemoryAccessError(Chip8Error):
    """An instruction addressed memory outside the 4 KB address space."""

    def __init__(self, address: int) -> None:
        super().__init__(f"Memory access out of range: {address:#06X}")
        self.address = address


class UnexpectedError(Chip8Error):
    """Wraps a driver-side failure so it travels through the same channel.

    The original exception is chained as ``__cause__``.
    """

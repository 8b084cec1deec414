"""
Core enumerations and value types for the CHIP-8 machine.

Key, ProcessorState and StepKind are the enums shared between the core and
its drivers.  :class:`Step` is the single signal the processor returns from
every :meth:`~chip8.core.processor.Processor.step` call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, NamedTuple, Optional


class Key(IntEnum):
    """The sixteen logical keys of the hexadecimal keypad."""
    Key0 = 0x0
    Key1 = 0x1
    Key2 = 0x2
    Key3 = 0x3
    Key4 = 0x4
    Key5 = 0x5
    Key6 = 0x6
    Key7 = 0x7
    Key8 = 0x8
    Key9 = 0x9
    KeyA = 0xA
    KeyB = 0xB
    KeyC = 0xC
    KeyD = 0xD
    KeyE = 0xE
    KeyF = 0xF


class ProcessorState(IntEnum):
    Running = 0
    AwaitingKey = 1
    Halted = 2


class StepKind(IntEnum):
    Nop = 0
    Draw = 1
    WaitForKey = 2
    Exit = 3


class Pixel(NamedTuple):
    """A lit framebuffer cell."""
    x: int
    y: int


@dataclass(frozen=True)
class Step:
    """Signal produced by one processor step.

    ``pixels`` is only set for :attr:`StepKind.Draw` and holds a single-use
    iterator over the lit cells at the time the draw happened.
    """

    kind: StepKind
    pixels: Optional[Iterator[Pixel]] = None

    @classmethod
    def draw(cls, pixels: Iterator[Pixel]) -> Step:
        return cls(StepKind.Draw, pixels)

    @property
    def is_draw(self) -> bool:
        return self.kind == StepKind.Draw

    @property
    def is_exit(self) -> bool:
        return self.kind == StepKind.Exit


NOP = Step(StepKind.Nop)
WAIT_FOR_KEY = Step(StepKind.WaitForKey)
EXIT = Step(StepKind.Exit)

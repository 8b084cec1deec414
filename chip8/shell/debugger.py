"""
Text-mode debugger for chip8.

Drives a :class:`~chip8.core.processor.Processor` without any window: each
``Draw`` signal prints the display as text, and with tracing enabled every
executed instruction is printed as ``ADDR  WORD  DISASSEMBLY``.

Typical usage::

    processor = MachineFactory.create("roms/maze.ch8")
    Debugger(processor, trace=True).run(max_steps=500)
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Iterable, Optional, TextIO

from chip8.core.errors import Chip8Error, UnexpectedError
from chip8.core.processor import Processor
from chip8.core.frame_buffer import HEIGHT, WIDTH
from chip8.core.types import Pixel, Step, StepKind

logger = logging.getLogger(__name__)


def render_text(pixels: Iterable[Pixel], on: str = "█", off: str = "·") -> str:
    """Render lit pixels as a WIDTH x HEIGHT block of text."""
    screen = [[off] * WIDTH for _ in range(HEIGHT)]
    for x, y in pixels:
        screen[y][x] = on
    return "\n".join("".join(row) for row in screen)


class Debugger:
    """Step a processor and dump its output as text.

    Parameters
    ----------
    processor:
        The processor to drive.
    out:
        Text stream for the listing and screen dumps.  Defaults to
        ``sys.stdout``.
    trace:
        Print every executed instruction.
    """

    def __init__(
        self,
        processor: Processor,
        out: Optional[TextIO] = None,
        *,
        trace: bool = False,
    ) -> None:
        self._processor = processor
        self._out: TextIO = out if out is not None else sys.stdout
        self._trace = trace
        self._draws: int = 0

    @property
    def draw_count(self) -> int:
        return self._draws

    def run(self, max_steps: Optional[int] = None, hz: Optional[float] = None) -> int:
        """Step until ``Exit`` or *max_steps* steps have run.

        Parameters:
            max_steps: Upper bound on steps; ``None`` runs until ``Exit``.
            hz: When given, sleep between steps to hold this rate.

        Returns:
            The number of steps executed, including the one that exited.

        Raises:
            Chip8Error: Any core error, unchanged.
            UnexpectedError: Wraps any other failure while driving.
        """
        interval = 1.0 / hz if hz else 0.0
        steps = 0
        try:
            while max_steps is None or steps < max_steps:
                step = self._processor.step()
                steps += 1
                self._report(step)
                if step.kind == StepKind.Exit:
                    break
                if interval:
                    time.sleep(interval)
        except Chip8Error:
            raise
        except Exception as exc:
            raise UnexpectedError(f"Debugger failed: {exc}") from exc

        logger.info("Debugger ran %d steps (%d draws)", steps, self._draws)
        return steps

    def _report(self, step: Step) -> None:
        out = self._out
        if self._trace and step.kind != StepKind.Exit:
            last = self._processor.last_instruction
            if last is not None:
                address, word, op = last
                out.write(f"{address:03X}  {word:04X}  {op}\n")

        if step.kind == StepKind.Draw:
            self._draws += 1
            out.write(render_text(step.pixels or ()))
            out.write("\n\n")
        elif step.kind == StepKind.Exit:
            out.write("-- exit --\n")

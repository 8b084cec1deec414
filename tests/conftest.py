"""Shared fixtures for the chip8 test suite."""

from __future__ import annotations

import os
import random
from typing import Callable, Sequence

import pytest

# pygame-backed tests run without a real display.
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

from chip8.core.processor import Processor


def assemble(words: Sequence[int]) -> bytes:
    """Pack 16-bit instruction words big-endian."""
    out = bytearray()
    for word in words:
        out.append((word >> 8) & 0xFF)
        out.append(word & 0xFF)
    return bytes(out)


@pytest.fixture
def make_processor() -> Callable[..., Processor]:
    """Build a processor from a list of instruction words."""

    def _make(words: Sequence[int], seed: int = 0) -> Processor:
        return Processor(assemble(words), rng=random.Random(seed))

    return _make

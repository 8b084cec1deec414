"""
Machine creation factory for chip8.

Creates a ready-to-run :class:`~chip8.core.processor.Processor` from a ROM
file path and an optional random seed.

Typical usage::

    processor = MachineFactory.create("roms/pong.ch8")
    processor = MachineFactory.create("roms/pong.ch8", seed=1234)
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from chip8.core.processor import Processor
from chip8.shell.services.rom_bytes_service import RomBytesService

logger = logging.getLogger(__name__)


class MachineFactory:
    """Create an emulated CHIP-8 machine from a ROM file."""

    @staticmethod
    def create(rom_path: str, seed: Optional[int] = None) -> Processor:
        """Build and return a processor with the ROM loaded.

        Parameters
        ----------
        rom_path:
            Filesystem path to the ROM image.
        seed:
            Seed for the ``RND`` instruction's generator.  ``None`` seeds from
            the operating system.

        Raises
        ------
        FileNotFoundError
            If *rom_path* does not exist.
        InvalidProgramError
            If the ROM is too large to load.
        """
        rom = RomBytesService.read(rom_path)
        logger.info("Read %d bytes from %s", len(rom), rom_path)
        processor = Processor(rom, rng=random.Random(seed))
        logger.info("Created %r", processor)
        return processor

    @staticmethod
    def describe(rom_path: str) -> dict:
        """Return ROM metadata without constructing a processor."""
        return RomBytesService.describe(rom_path)

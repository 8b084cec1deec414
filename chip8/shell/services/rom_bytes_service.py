"""
ROM loading and inspection service for chip8.

Responsibilities:
  - Read ROM files from disk.
  - Produce a disassembly listing of a ROM image.
  - Summarise a ROM (size, remaining capacity, decodable instruction count).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

from chip8.core.decoder import decode
from chip8.core.errors import UnknownInstructionError
from chip8.core.processor import PROGRAM_CAPACITY, PROGRAM_START


# ---------------------------------------------------------------------------
# Listing entry data-class
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ListingLine:
    """One 16-bit word of a disassembly listing."""

    address: int
    word: int
    text: str
    known: bool

    def __str__(self) -> str:
        return f"{self.address:03X}  {self.word:04X}  {self.text}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class RomBytesService:
    """Static helpers for reading and inspecting CHIP-8 ROM images."""

    @staticmethod
    def read(path: str) -> bytes:
        """Read a ROM file from *path*.

        Raises:
            FileNotFoundError: If *path* does not exist.
            OSError: On general I/O failure.
        """
        with open(path, "rb") as fh:
            return fh.read()

    @staticmethod
    def disassemble(rom: bytes, origin: int = PROGRAM_START) -> List[ListingLine]:
        """Disassemble *rom* one word at a time, starting at *origin*.

        Data embedded in the program (sprites, tables) is decoded like any
        other word; words that do not decode are listed as ``DW``.  A
        trailing odd byte is padded with zero, as it would read from memory.
        """
        lines: List[ListingLine] = []
        for offset in range(0, len(rom), 2):
            hi = rom[offset]
            lo = rom[offset + 1] if offset + 1 < len(rom) else 0
            word = (hi << 8) | lo
            try:
                text = str(decode(word))
                known = True
            except UnknownInstructionError:
                text = f"DW {word:#06x}"
                known = False
            lines.append(ListingLine(origin + offset, word, text, known))
        return lines

    @staticmethod
    def describe(path: str) -> dict:
        """Return human-readable metadata for the ROM at *path*."""
        rom = RomBytesService.read(path)
        listing = RomBytesService.disassemble(rom)
        unknown = sum(1 for line in listing if not line.known)
        return {
            "file": os.path.basename(path),
            "size": len(rom),
            "capacity_remaining": PROGRAM_CAPACITY - len(rom),
            "fits": len(rom) <= PROGRAM_CAPACITY,
            "words": len(listing),
            "unknown_words": unknown,
        }

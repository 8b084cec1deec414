"""
FrameBuffer -- the 64x32 monochrome display of the CHIP-8 machine.

Cells are held in a numpy ``uint8`` array of shape ``(HEIGHT, WIDTH)`` in
row-major order, each cell 0 (off) or 1 (lit).  The only mutations are
:meth:`FrameBuffer.clear` and the sprite XOR-blit :meth:`FrameBuffer.draw`.

Edge policy
-----------
Sprites are *clipped*, never wrapped:

* A sprite whose origin lies outside the grid is rejected outright.
* Columns past the right edge are dropped.
* Once a row falls below the bottom edge the remaining rows are abandoned.
"""

from __future__ import annotations

from typing import Iterator, Optional, Sequence

import numpy as np

from chip8.core.types import Pixel

WIDTH: int = 64
HEIGHT: int = 32

SPRITE_WIDTH: int = 8
MAX_SPRITE_ROWS: int = 15


class FrameBuffer:
    """Holds the on/off state of every display cell."""

    def __init__(self) -> None:
        self._cells: np.ndarray = np.zeros((HEIGHT, WIDTH), dtype=np.uint8)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Turn every cell off."""
        self._cells.fill(0)

    def draw(self, x: int, y: int, rows: Sequence[int]) -> Optional[bool]:
        """XOR-blit a sprite with its top-left corner at (*x*, *y*).

        Args:
            x: Column of the sprite's left edge.
            y: Row of the sprite's top edge.
            rows: Sprite bytes, one 8-pixel row each, most significant bit
                  leftmost.  Only the first MAX_SPRITE_ROWS rows are drawn.

        Returns:
            ``None`` if the origin lies outside the grid (nothing is drawn),
            otherwise ``True`` if any lit cell was turned off.
        """
        if x >= WIDTH or y >= HEIGHT:
            return None

        cells = self._cells
        width = min(SPRITE_WIDTH, WIDTH - x)
        collision = False

        for h, row_bits in enumerate(rows[:MAX_SPRITE_ROWS]):
            row = y + h
            if row >= HEIGHT:
                break
            for w in range(width):
                if row_bits & (0x80 >> w):
                    col = x + w
                    if cells[row, col]:
                        collision = True
                    cells[row, col] ^= 1

        return collision

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def pixels(self) -> Iterator[Pixel]:
        """Return the lit cells as a lazy, single-use iterator.

        The set of lit cells is captured when this method is called; later
        draws do not affect an iterator that has already been handed out.
        """
        ys, xs = np.nonzero(self._cells)
        return (Pixel(x, y) for y, x in zip(ys.tolist(), xs.tolist()))

    def is_lit(self, x: int, y: int) -> bool:
        return bool(self._cells[y, x])

    def lit_count(self) -> int:
        return int(np.count_nonzero(self._cells))

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return "\n".join(
            "".join("█" if cell else "·" for cell in row)
            for row in self._cells.tolist()
        )

    def __repr__(self) -> str:
        return f"FrameBuffer(width={WIDTH}, height={HEIGHT}, lit={self.lit_count()})"

"""
Frame renderer for chip8.
Converts the lit-pixel snapshot carried by a ``Draw`` signal into an RGB
pygame Surface.

Performance notes
-----------------
The frame is assembled as a numpy ``(WIDTH, HEIGHT, 3)`` array -- already in
the ``(x, y)`` order that :mod:`pygame.surfarray` expects -- and copied into
the surface with a single :func:`pygame.surfarray.blit_array` call.
"""

from __future__ import annotations

import logging
from typing import Iterable, Tuple

import numpy as np
import pygame

from chip8.core.frame_buffer import HEIGHT, WIDTH
from chip8.core.types import Pixel

logger = logging.getLogger(__name__)

Colour = Tuple[int, int, int]

DEFAULT_FOREGROUND: Colour = (0x33, 0xFF, 0x66)
DEFAULT_BACKGROUND: Colour = (0x00, 0x00, 0x00)


class FrameRenderer:
    """Render lit pixels into a reused :class:`pygame.Surface`.

    Parameters
    ----------
    foreground:
        RGB colour of lit cells.
    background:
        RGB colour of unlit cells.
    """

    def __init__(
        self,
        foreground: Colour = DEFAULT_FOREGROUND,
        background: Colour = DEFAULT_BACKGROUND,
    ) -> None:
        self._foreground = np.array(foreground, dtype=np.uint8)
        self._background = np.array(background, dtype=np.uint8)

        self._rgb: np.ndarray = np.empty((WIDTH, HEIGHT, 3), dtype=np.uint8)
        self._rgb[:, :] = self._background

        self._surface: pygame.Surface = pygame.Surface((WIDTH, HEIGHT))
        pygame.surfarray.blit_array(self._surface, self._rgb)

        logger.info("FrameRenderer: %dx%d", WIDTH, HEIGHT)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def surface(self) -> pygame.Surface:
        """The last rendered frame (updated on each :meth:`render` call)."""
        return self._surface

    def render(self, pixels: Iterable[Pixel]) -> pygame.Surface:
        """Render *pixels* and return the surface.

        The previous frame is discarded: every cell not named in *pixels*
        is painted with the background colour.
        """
        rgb = self._rgb
        rgb[:, :] = self._background
        coords = np.fromiter(
            (c for p in pixels for c in p), dtype=np.intp
        ).reshape(-1, 2)
        if len(coords):
            rgb[coords[:, 0], coords[:, 1]] = self._foreground

        pygame.surfarray.blit_array(self._surface, rgb)
        return self._surface

    def frame_array(self) -> np.ndarray:
        """Return a copy of the RGB array of the last rendered frame."""
        return self._rgb.copy()

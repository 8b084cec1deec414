"""
Main application window for chip8.
Uses pygame to create a display, drive the emulation main loop, and
coordinate video and input.

Typical usage::

    from chip8.platform.window import Window

    processor = MachineFactory.create("pong.ch8")
    window = Window(processor, scale=10)
    window.run()
"""

from __future__ import annotations

import logging
import time

import pygame

from chip8.core.frame_buffer import HEIGHT, WIDTH
from chip8.core.processor import Processor
from chip8.core.types import StepKind
from chip8.platform.input_handler import InputHandler
from chip8.shell.frame_renderer import FrameRenderer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_WINDOW_TITLE: str = "CHIP-8"

# Minimum / maximum allowed display scale factors.
_MIN_SCALE: int = 1
_MAX_SCALE: int = 20

DEFAULT_FRAME_HZ: int = 60


class Window:
    """Pygame window that owns the emulation main loop.

    Parameters
    ----------
    processor:
        A processor with a program loaded.
    scale:
        Integer scale factor applied to the 64x32 native resolution.
    frame_hz:
        Frames presented per second.
    steps_per_frame:
        Processor steps run per frame.  The logical step rate is
        ``frame_hz * steps_per_frame``.
    """

    def __init__(
        self,
        processor: Processor,
        scale: int = 10,
        *,
        frame_hz: int = DEFAULT_FRAME_HZ,
        steps_per_frame: int = 1,
    ) -> None:
        # ---- basic state -------------------------------------------------
        self._processor = processor
        self._scale: int = max(_MIN_SCALE, min(_MAX_SCALE, scale))
        self._frame_hz: int = max(1, frame_hz)
        self._steps_per_frame: int = max(1, steps_per_frame)
        self._running: bool = False
        self._paused: bool = False

        # ---- init pygame display -----------------------------------------
        if not pygame.get_init():
            pygame.init()

        self._display_width: int = WIDTH * self._scale
        self._display_height: int = HEIGHT * self._scale

        self._screen: pygame.Surface = pygame.display.set_mode(
            (self._display_width, self._display_height),
            pygame.RESIZABLE,
        )
        pygame.display.set_caption(_WINDOW_TITLE)

        self._clock: pygame.time.Clock = pygame.time.Clock()

        # ---- subsystems --------------------------------------------------
        self._frame_renderer: FrameRenderer = FrameRenderer()
        self._input: InputHandler = InputHandler(processor)

        # ---- performance counters ----------------------------------------
        self._frame_count: int = 0
        self._fps_update_time: float = 0.0
        self._fps_display: float = 0.0

        logger.info(
            "Window: %dx%d display (scale=%d, %d Hz, %d steps/frame)",
            self._display_width,
            self._display_height,
            self._scale,
            self._frame_hz,
            self._steps_per_frame,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def scale(self) -> int:
        return self._scale

    @property
    def frame_renderer(self) -> FrameRenderer:
        return self._frame_renderer

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Enter the main emulation loop.

        This method blocks until the user closes the window, presses
        Escape, or the program exits.  Core errors propagate to the caller
        after the window has been shut down.
        """
        self._running = True
        self._fps_update_time = time.monotonic()
        self._frame_count = 0

        logger.info("Entering main loop (target %d fps)", self._frame_hz)

        try:
            while self._running:
                self._tick()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._shutdown()

    # ------------------------------------------------------------------
    # Per-frame tick
    # ------------------------------------------------------------------

    def _tick(self) -> None:
        """Execute one iteration of the main loop."""
        # ---- input -------------------------------------------------------
        self._input.poll()
        if self._input.quit_requested:
            self._running = False
            return
        if self._input.take_pause_toggle():
            self._paused = not self._paused
            logger.info("Paused" if self._paused else "Resumed")

        # ---- emulation ---------------------------------------------------
        if not self._paused:
            for _ in range(self._steps_per_frame):
                step = self._processor.step()
                if step.kind == StepKind.Draw:
                    self._frame_renderer.render(step.pixels or ())
                elif step.kind == StepKind.Exit:
                    logger.info("Program exited")
                    self._running = False
                    break

        # ---- video -------------------------------------------------------
        surface = self._frame_renderer.surface
        current_size = self._screen.get_size()
        scaled = pygame.transform.scale(surface, current_size)
        self._screen.blit(scaled, (0, 0))
        pygame.display.flip()

        # ---- timing ------------------------------------------------------
        self._clock.tick(self._frame_hz)
        self._update_fps()

    # ------------------------------------------------------------------
    # FPS tracking
    # ------------------------------------------------------------------

    def _update_fps(self) -> None:
        """Update the displayed FPS counter roughly once per second."""
        self._frame_count += 1
        now = time.monotonic()
        elapsed = now - self._fps_update_time
        if elapsed >= 1.0:
            self._fps_display = self._frame_count / elapsed
            self._frame_count = 0
            self._fps_update_time = now

            pygame.display.set_caption(
                f"{_WINDOW_TITLE}  [{self._fps_display:.1f} fps]"
            )

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def _shutdown(self) -> None:
        logger.info("Shutting down")
        pygame.quit()

"""
Input handler for chip8.
Maps keyboard keys to the sixteen logical keypad keys.

Keyboard layout
---------------

The left-hand 4x4 block of a QWERTY keyboard stands in for the hex pad::

    1 2 3 4        1 2 3 C
    q w e r   ->   4 5 6 D
    a s d f        7 8 9 E
    z x c v        A 0 B F

=======  ==========================
Key      Action
=======  ==========================
Escape   Quit
P        Pause / resume
=======  ==========================

Quit is a driver-level convention; the processor never sees it.
"""

from __future__ import annotations

import logging

import pygame

from chip8.core.types import Key

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Keyboard -> Key mappings
# ---------------------------------------------------------------------------

_KEY_MAP: dict[int, Key] = {
    pygame.K_1: Key.Key1,
    pygame.K_2: Key.Key2,
    pygame.K_3: Key.Key3,
    pygame.K_4: Key.KeyC,
    pygame.K_q: Key.Key4,
    pygame.K_w: Key.Key5,
    pygame.K_e: Key.Key6,
    pygame.K_r: Key.KeyD,
    pygame.K_a: Key.Key7,
    pygame.K_s: Key.Key8,
    pygame.K_d: Key.Key9,
    pygame.K_f: Key.KeyE,
    pygame.K_z: Key.KeyA,
    pygame.K_x: Key.Key0,
    pygame.K_c: Key.KeyB,
    pygame.K_v: Key.KeyF,
}


class InputHandler:
    """Translates pygame keyboard events into keypad events.

    Parameters
    ----------
    processor:
        The emulated machine.  Expected interface:

        * ``key_press(key: Key)``
        * ``key_release(key: Key)``
    """

    def __init__(self, processor: object) -> None:
        self._processor = processor
        self._quit_requested: bool = False
        self._pause_toggled: bool = False
        self._held: set[Key] = set()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def quit_requested(self) -> bool:
        """``True`` if the user pressed Escape or closed the window."""
        return self._quit_requested

    def take_pause_toggle(self) -> bool:
        """Return ``True`` once per press of the pause key."""
        toggled = self._pause_toggled
        self._pause_toggled = False
        return toggled

    def poll(self) -> None:
        """Pump the pygame event queue and process all pending events.

        This should be called once at the top of each frame.
        """
        for event in pygame.event.get():
            self.handle_event(event)

    def handle_event(self, event: pygame.event.Event) -> None:
        """Process a single pygame event."""
        if event.type == pygame.QUIT:
            self._quit_requested = True
        elif event.type == pygame.KEYDOWN:
            self._on_key_down(event)
        elif event.type == pygame.KEYUP:
            self._on_key_up(event)
        elif event.type == pygame.WINDOWFOCUSLOST:
            # Key-up events are lost while unfocused.
            self.clear_all()

    def clear_all(self) -> None:
        """Release all currently-held keys."""
        for key in list(self._held):
            self._send(key, False)

    # ------------------------------------------------------------------
    # Keyboard handlers
    # ------------------------------------------------------------------

    def _on_key_down(self, event: pygame.event.Event) -> None:
        if event.key == pygame.K_ESCAPE:
            self._quit_requested = True
            return
        if event.key == pygame.K_p:
            self._pause_toggled = True
            return

        key = _KEY_MAP.get(event.key)
        if key is not None and key not in self._held:
            self._send(key, True)

    def _on_key_up(self, event: pygame.event.Event) -> None:
        key = _KEY_MAP.get(event.key)
        if key is not None and key in self._held:
            self._send(key, False)

    # ------------------------------------------------------------------
    # Machine bridge
    # ------------------------------------------------------------------

    def _send(self, key: Key, down: bool) -> None:
        if down:
            self._held.add(key)
            self._processor.key_press(key)  # type: ignore[attr-defined]
        else:
            self._held.discard(key)
            self._processor.key_release(key)  # type: ignore[attr-defined]

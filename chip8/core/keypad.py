"""
Keypad - hexadecimal keypad state with a staging queue.

Host code (possibly on an input-polling thread) posts press / release events
through :meth:`Keypad.press` and :meth:`Keypad.release`.  Events are staged on
a :class:`queue.SimpleQueue` and only become visible to the emulation core
when it calls :meth:`Keypad.capture`, which the processor does once at the
start of every step.  The latch array itself is only ever touched from the
thread that owns the processor.
"""

from __future__ import annotations

import logging
import queue
from typing import List, Optional, Tuple, Union

from chip8.core.types import Key

logger = logging.getLogger(__name__)

KEY_COUNT: int = 16

KeyLike = Union[Key, int]


def _as_key(key: KeyLike) -> Key:
    try:
        return Key(key)
    except ValueError:
        raise ValueError(f"key must be in [0, {KEY_COUNT}), got {key!r}") from None


class Keypad:
    """Sixteen key latches fed by a staging queue."""

    def __init__(self) -> None:
        self._pending: queue.SimpleQueue[Tuple[Key, bool]] = queue.SimpleQueue()
        self._pressed: List[bool] = [False] * KEY_COUNT

    # ------------------------------------------------------------------
    # Host-side event injection (any thread)
    # ------------------------------------------------------------------

    def press(self, key: KeyLike) -> None:
        self._pending.put((_as_key(key), True))

    def release(self, key: KeyLike) -> None:
        self._pending.put((_as_key(key), False))

    # ------------------------------------------------------------------
    # Core side (processor thread)
    # ------------------------------------------------------------------

    def capture(self) -> int:
        """Apply every staged event to the latches.

        Returns:
            The number of events applied.
        """
        applied = 0
        while True:
            try:
                key, down = self._pending.get_nowait()
            except queue.Empty:
                return applied
            logger.debug("KEY %s: %s", "PRESS" if down else "RELEASE", key.name)
            self._pressed[key] = down
            applied += 1

    def is_pressed(self, index: int) -> bool:
        """Return ``True`` if key *index* is down.

        Indices outside the keypad are never pressed.
        """
        if 0 <= index < KEY_COUNT:
            return self._pressed[index]
        return False

    def pressed_key(self) -> Optional[int]:
        """Return the lowest-numbered key that is down, or ``None``."""
        for index, down in enumerate(self._pressed):
            if down:
                return index
        return None

    def clear(self) -> None:
        """Release every key and drop any staged events."""
        self.capture()
        self._pressed = [False] * KEY_COUNT

    def __repr__(self) -> str:
        down = [f"{i:X}" for i, d in enumerate(self._pressed) if d]
        return f"Keypad(pressed=[{', '.join(down)}])"

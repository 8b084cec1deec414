#!/usr/bin/env python3
"""
chip8 -- CHIP-8 virtual machine.

Script entry point for running from a source checkout::

    python main.py roms/pong.ch8
    python main.py roms/pong.ch8 --info

See :mod:`chip8.main` for the full option list.
"""

from __future__ import annotations

import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so that ``chip8`` can be imported
# regardless of how the script is invoked.
# ---------------------------------------------------------------------------
_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from chip8.main import main


if __name__ == "__main__":
    sys.exit(main())

"""
chip8 -- a CHIP-8 virtual machine with a pygame front end.

The emulation core lives in :mod:`chip8.core`; ROM handling, rendering and
the text debugger in :mod:`chip8.shell`; the pygame window and keyboard
mapping in :mod:`chip8.platform`.
"""

__version__ = "1.0.0"

"""
chip8 -- CHIP-8 virtual machine.

Main entry point.  Parses command-line arguments, creates the processor from
a ROM file, and launches the pygame display window or the text debugger.

Usage examples::

    # Run a ROM at the default 60 steps per second
    chip8 roms/pong.ch8

    # Faster execution and a bigger window
    chip8 roms/pong.ch8 --steps-per-frame 10 --scale 15

    # List ROM metadata and disassembly without launching
    chip8 roms/pong.ch8 --info

    # Run headless, printing the screen on every draw and tracing opcodes
    chip8 roms/maze.ch8 --debug --trace --max-steps 200
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from chip8.core.errors import Chip8Error
from chip8.core.processor import Processor
from chip8.shell.debugger import Debugger
from chip8.shell.services.machine_factory import MachineFactory
from chip8.shell.services.rom_bytes_service import RomBytesService


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chip8",
        description=(
            "CHIP-8 virtual machine.  "
            "Load a ROM file and run it in a pygame window."
        ),
    )

    parser.add_argument(
        "rom",
        help="Path to the ROM file (.ch8)",
    )

    # Display
    parser.add_argument(
        "--scale", "-s",
        type=int,
        default=10,
        help="Display scale factor (1-20).  Default: 10.",
    )

    # Timing
    parser.add_argument(
        "--hz",
        type=int,
        default=None,
        help=(
            "Frames per second in the window (default: 60).  "
            "With --debug, steps per second (default: unpaced)."
        ),
    )
    parser.add_argument(
        "--steps-per-frame",
        type=int,
        default=1,
        metavar="N",
        help="Processor steps per frame.  Default: 1.",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the RND instruction (reproducible runs).",
    )

    # Debugging / info
    parser.add_argument(
        "--info",
        action="store_true",
        default=False,
        help="Print ROM metadata and a disassembly, then exit.",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Run without a window, printing the screen as text on each draw.",
    )

    parser.add_argument(
        "--trace",
        action="store_true",
        default=False,
        help="Print every executed instruction (requires --debug).",
    )

    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        metavar="N",
        help="Stop after N steps (requires --debug).",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG).",
    )

    return parser


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(verbosity: int) -> None:
    """Set up the root logger based on requested verbosity."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Info mode
# ---------------------------------------------------------------------------

def _print_rom_info(rom_path: str) -> int:
    """Print human-readable metadata and a disassembly for a ROM."""
    try:
        info = MachineFactory.describe(rom_path)
        rom = RomBytesService.read(rom_path)
    except OSError as exc:
        print(f"Error reading ROM: {exc}", file=sys.stderr)
        return 1

    print("CHIP-8 ROM Information")
    print("=" * 40)
    for key, value in info.items():
        label = key.replace("_", " ").title()
        print(f"  {label:20s}: {value}")
    print("=" * 40)
    for line in RomBytesService.disassemble(rom):
        print(f"  {line}")
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def _run_window(processor: Processor, args: argparse.Namespace) -> None:
    # pygame is only needed for the windowed driver.
    from chip8.platform.window import DEFAULT_FRAME_HZ, Window

    window = Window(
        processor,
        scale=args.scale,
        frame_hz=args.hz if args.hz is not None else DEFAULT_FRAME_HZ,
        steps_per_frame=args.steps_per_frame,
    )
    window.run()


def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` to use ``sys.argv``.

    Returns
    -------
    int
        Exit code (0 on success).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.debug and (args.trace or args.max_steps is not None):
        parser.error("--trace and --max-steps require --debug")

    _configure_logging(args.verbose)
    logger = logging.getLogger("chip8.main")

    # Validate the ROM path early.
    rom_path: str = os.path.expanduser(args.rom)
    if not os.path.isfile(rom_path):
        print(f"Error: ROM file not found: {rom_path}", file=sys.stderr)
        return 1

    # Info-only mode.
    if args.info:
        return _print_rom_info(rom_path)

    # Create the emulated machine.
    try:
        processor = MachineFactory.create(rom_path, seed=args.seed)
    except (OSError, Chip8Error) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.info("Starting emulation ...")
    try:
        if args.debug:
            Debugger(processor, trace=args.trace).run(
                max_steps=args.max_steps, hz=args.hz
            )
        else:
            _run_window(processor, args)
    except KeyboardInterrupt:
        pass
    except Chip8Error as exc:
        logger.debug("Emulation stopped", exc_info=True)
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("Fatal error during emulation")
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1

    logger.info("Exited cleanly")
    return 0


if __name__ == "__main__":
    sys.exit(main())

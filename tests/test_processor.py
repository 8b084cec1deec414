"""
Processor tests
===============

Covers program loading, the step cycle, timers, stack discipline, key
handling and the semantics of every instruction group.
"""

from __future__ import annotations

import io
import random

import pytest

from chip8.core.errors import (
    InvalidProgramError,
    MemoryAccessError,
    ProgramReadError,
    StackOverflowError,
    StackUnderflowError,
    UnknownInstructionError,
)
from chip8.core.processor import (
    FONT_SET,
    MEMORY_SIZE,
    PROGRAM_CAPACITY,
    PROGRAM_START,
    STACK_DEPTH,
    Processor,
)
from chip8.core.types import Key, Pixel, ProcessorState, StepKind

from conftest import assemble


# =============================================================================
# Program load
# =============================================================================

class TestProgramLoad:

    def test_program_copied_to_program_start(self) -> None:
        proc = Processor(b"\x12\x34\x56")
        assert proc.memory[PROGRAM_START:PROGRAM_START + 3] == b"\x12\x34\x56"
        assert proc.program_end == PROGRAM_START + 3
        assert proc.pc == PROGRAM_START

    def test_font_preloaded(self) -> None:
        proc = Processor(b"")
        assert proc.memory[:80] == FONT_SET

    def test_accepts_binary_stream(self) -> None:
        proc = Processor(io.BytesIO(b"\x00\xE0"))
        assert proc.program_size == 2

    def test_full_capacity_program_loads(self) -> None:
        proc = Processor(bytes(PROGRAM_CAPACITY))
        assert proc.program_end == MEMORY_SIZE

    def test_oversized_program_is_rejected(self) -> None:
        with pytest.raises(InvalidProgramError) as info:
            Processor(bytes(PROGRAM_CAPACITY + 1))
        assert info.value.size == PROGRAM_CAPACITY + 1

    def test_oversized_stream_is_rejected(self) -> None:
        with pytest.raises(InvalidProgramError):
            Processor(io.BytesIO(bytes(MEMORY_SIZE)))

    def test_stream_io_error_is_wrapped(self) -> None:
        class BrokenStream(io.RawIOBase):
            def readable(self) -> bool:
                return True

            def read(self, size: int = -1) -> bytes:
                raise OSError("disk on fire")

        with pytest.raises(ProgramReadError) as info:
            Processor(BrokenStream())
        assert isinstance(info.value.__cause__, OSError)

    def test_reload_clears_program_region_and_keeps_timers(self) -> None:
        proc = Processor(b"\xAA" * 10)
        proc.dt = 7
        proc.st = 3
        proc.memory[0xF00] = 0x55
        proc.load_program(b"\x11\x22")
        assert proc.memory[PROGRAM_START:PROGRAM_START + 4] == b"\x11\x22\x00\x00"
        assert proc.memory[0xF00] == 0
        assert proc.program_end == PROGRAM_START + 2
        assert (proc.dt, proc.st) == (7, 3)
        assert proc.memory[:80] == FONT_SET

    def test_failed_reload_keeps_current_program(self) -> None:
        proc = Processor(b"\x11\x22")
        with pytest.raises(InvalidProgramError):
            proc.load_program(bytes(PROGRAM_CAPACITY + 1))
        assert proc.memory[PROGRAM_START:PROGRAM_START + 2] == b"\x11\x22"


# =============================================================================
# Step cycle
# =============================================================================

class TestStepCycle:

    def test_pc_advances_by_two(self, make_processor) -> None:
        proc = make_processor([0x6001, 0x6002])
        assert proc.step().kind == StepKind.Nop
        assert proc.pc == PROGRAM_START + 2

    def test_running_past_program_exits_and_halts(self, make_processor) -> None:
        proc = make_processor([0x6001])
        proc.step()
        step = proc.step()
        assert step.kind == StepKind.Exit
        assert proc.state == ProcessorState.Halted
        assert proc.step().kind == StepKind.Exit

    def test_empty_program_exits_immediately(self) -> None:
        assert Processor(b"").step().kind == StepKind.Exit

    def test_jump_below_program_start_exits(self, make_processor) -> None:
        proc = make_processor([0x1100])
        proc.step()
        assert proc.step().kind == StepKind.Exit

    def test_unknown_instruction_is_fatal(self, make_processor) -> None:
        proc = make_processor([0x6001, 0xF0FF, 0x6002])
        proc.step()
        with pytest.raises(UnknownInstructionError) as info:
            proc.step()
        assert info.value.word == 0xF0FF
        assert proc.halted
        assert proc.step().kind == StepKind.Exit
        assert proc.v[0] == 1

    def test_last_instruction_recorded(self, make_processor) -> None:
        proc = make_processor([0x6A05])
        proc.step()
        address, word, op = proc.last_instruction
        assert (address, word, str(op)) == (PROGRAM_START, 0x6A05, "LD VA, 0x05")

    def test_sys_has_no_effect(self, make_processor) -> None:
        proc = make_processor([0x0123])
        before = bytes(proc.v), proc.i, proc.sp
        assert proc.step().kind == StepKind.Nop
        assert (bytes(proc.v), proc.i, proc.sp) == before


# =============================================================================
# Timers
# =============================================================================

class TestTimers:

    def test_timers_count_down_and_stop_at_zero(self, make_processor) -> None:
        proc = make_processor([0x0000] * 6)
        proc.dt = 5
        proc.st = 5
        for _ in range(5):
            proc.step()
        assert (proc.dt, proc.st) == (0, 0)
        proc.step()
        assert (proc.dt, proc.st) == (0, 0)

    def test_timers_tick_even_when_halted(self) -> None:
        proc = Processor(b"")
        proc.dt = 2
        proc.step()
        proc.step()
        assert proc.dt == 0

    def test_set_and_read_delay(self, make_processor) -> None:
        proc = make_processor([0x6A0A, 0xFA15, 0xFB07, 0xFA18])
        proc.step()
        proc.step()
        assert proc.dt == 10
        proc.step()  # the timer ticks once before the read
        assert proc.v[0xB] == 9
        proc.step()
        assert proc.st == 10


# =============================================================================
# Call stack
# =============================================================================

class TestCallStack:

    def test_call_and_return(self, make_processor) -> None:
        # 200: CALL 206 / 202: LD V0,1 / 204: JP 204 / 206: LD V1,2 / 208: RET
        proc = make_processor([0x2206, 0x6001, 0x1204, 0x6102, 0x00EE])
        proc.step()
        assert proc.pc == 0x206
        assert proc.stack[0] == 0x202
        proc.step()
        proc.step()
        assert proc.pc == 0x202
        assert proc.sp == 0
        proc.step()
        assert (proc.v[0], proc.v[1]) == (1, 2)

    def test_sixteen_nested_calls_then_overflow(self, make_processor) -> None:
        words = [0x2000 | (PROGRAM_START + 2 * (k + 1)) for k in range(STACK_DEPTH + 1)]
        proc = make_processor(words)
        for _ in range(STACK_DEPTH):
            assert proc.step().kind == StepKind.Nop
        assert proc.sp == STACK_DEPTH
        with pytest.raises(StackOverflowError):
            proc.step()
        assert proc.halted

    def test_return_without_call_underflows(self, make_processor) -> None:
        proc = make_processor([0x00EE])
        with pytest.raises(StackUnderflowError):
            proc.step()
        assert proc.halted


# =============================================================================
# Skips and jumps
# =============================================================================

class TestControlFlow:

    @pytest.mark.parametrize(
        "setup, word, skipped",
        [
            (0x6A05, 0x3A05, True),
            (0x6A05, 0x3A06, False),
            (0x6A05, 0x4A06, True),
            (0x6A05, 0x4A05, False),
            (0x6A00, 0x5AB0, True),    # VA == VB == 0
            (0x6A01, 0x5AB0, False),
            (0x6A01, 0x9AB0, True),
            (0x6A00, 0x9AB0, False),
        ],
    )
    def test_conditional_skips(self, make_processor, setup, word, skipped) -> None:
        proc = make_processor([setup, word, 0x0000, 0x0000])
        proc.step()
        proc.step()
        assert proc.pc == PROGRAM_START + (6 if skipped else 4)

    def test_jump(self, make_processor) -> None:
        proc = make_processor([0x1ABC])
        proc.step()
        assert proc.pc == 0xABC

    def test_jump_relative_to_v0(self, make_processor) -> None:
        proc = make_processor([0x6010, 0xB300])
        proc.step()
        proc.step()
        assert proc.pc == 0x310


# =============================================================================
# Arithmetic and logic
# =============================================================================

def _run(make_processor, words):
    proc = make_processor(words)
    for _ in words:
        proc.step()
    return proc


class TestArithmetic:

    def test_add_byte_wraps_and_leaves_vf(self, make_processor) -> None:
        proc = _run(make_processor, [0x6F07, 0x6AFF, 0x7A02])
        assert proc.v[0xA] == 0x01
        assert proc.v[0xF] == 0x07

    def test_load_or_and_xor(self, make_processor) -> None:
        proc = _run(make_processor, [0x600C, 0x610A, 0x8200, 0x8211])
        assert proc.v[2] == 0x0E
        proc = _run(make_processor, [0x600C, 0x610A, 0x8012])
        assert proc.v[0] == 0x08
        proc = _run(make_processor, [0x600C, 0x610A, 0x8013])
        assert proc.v[0] == 0x06

    def test_add_registers_sets_carry(self, make_processor) -> None:
        proc = _run(make_processor, [0x60F0, 0x6120, 0x8014])
        assert proc.v[0] == 0x10
        assert proc.v[0xF] == 1

    def test_add_registers_clears_carry(self, make_processor) -> None:
        proc = _run(make_processor, [0x6F01, 0x6010, 0x6120, 0x8014])
        assert proc.v[0] == 0x30
        assert proc.v[0xF] == 0

    # VF polarity: 1 means a borrow happened.  Flipping this convention is a
    # deliberate one-line change in Processor.i_sub / i_subn.
    def test_sub_borrow_sets_vf(self, make_processor) -> None:
        proc = _run(make_processor, [0x6005, 0x6107, 0x8015])
        assert proc.v[0] == 0xFE
        assert proc.v[0xF] == 1

    def test_sub_without_borrow_clears_vf(self, make_processor) -> None:
        proc = _run(make_processor, [0x6F01, 0x6007, 0x6105, 0x8015])
        assert proc.v[0] == 0x02
        assert proc.v[0xF] == 0

    def test_subn_borrow_sets_vf(self, make_processor) -> None:
        proc = _run(make_processor, [0x6007, 0x6105, 0x8017])
        assert proc.v[0xF] == 1
        assert proc.v[0] == 0

    def test_subn_without_borrow_clears_vf(self, make_processor) -> None:
        proc = _run(make_processor, [0x6F01, 0x6005, 0x6107, 0x8017])
        assert proc.v[0] == 0x02
        assert proc.v[0xF] == 0

    def test_shift_right_moves_low_bit_to_vf(self, make_processor) -> None:
        proc = _run(make_processor, [0x6005, 0x8016])
        assert proc.v[0] == 0x02
        assert proc.v[0xF] == 1

    def test_shift_left_moves_high_bit_to_vf(self, make_processor) -> None:
        proc = _run(make_processor, [0x6081, 0x801E])
        assert proc.v[0] == 0x02
        assert proc.v[0xF] == 1
        proc = _run(make_processor, [0x6041, 0x801E])
        assert proc.v[0] == 0x82
        assert proc.v[0xF] == 0

    def test_random_is_masked_and_reproducible(self, make_processor) -> None:
        proc = _run(make_processor, [0xC00F])
        expected = random.Random(0).randrange(256) & 0x0F
        assert proc.v[0] == expected
        proc = _run(make_processor, [0xC000])
        assert proc.v[0] == 0


# =============================================================================
# Memory operations
# =============================================================================

class TestMemoryOps:

    def test_load_i_and_add_i(self, make_processor) -> None:
        proc = _run(make_processor, [0xA300, 0x6010, 0xF01E])
        assert proc.i == 0x310

    def test_add_i_wraps_at_sixteen_bits(self, make_processor) -> None:
        proc = make_processor([0x60FF, 0xF01E])
        proc.i = 0xFFF0
        proc.step()
        proc.step()
        assert proc.i == 0x00EF

    def test_font_glyph_address(self, make_processor) -> None:
        proc = _run(make_processor, [0x600A, 0xF029])
        assert proc.i == 4 * 0xA

    def test_store_bcd(self, make_processor) -> None:
        proc = _run(make_processor, [0xA400, 0x607B, 0xF033])
        assert proc.memory[0x400:0x403] == bytes([1, 2, 3])

    def test_store_and_load_register_block(self, make_processor) -> None:
        proc = _run(make_processor, [0x6011, 0x6122, 0x6233, 0x6344, 0xA500, 0xF255])
        assert proc.memory[0x500:0x504] == bytes([0x11, 0x22, 0x33, 0x00])
        assert proc.i == 0x500

        proc.load_program(assemble([0xA600, 0xF165]))
        proc.memory[0x600:0x604] = bytes([9, 8, 7, 6])
        proc.pc = PROGRAM_START
        proc.step()
        proc.step()
        assert list(proc.v[:4]) == [9, 8, 0x33, 0x44]

    def test_out_of_range_store_is_fatal(self, make_processor) -> None:
        proc = make_processor([0xAFFF, 0xF233])
        proc.step()
        with pytest.raises(MemoryAccessError):
            proc.step()
        assert proc.halted

    def test_zero_row_draw_at_end_of_memory(self, make_processor) -> None:
        proc = make_processor([0xD010, 0x6001])
        proc.i = MEMORY_SIZE
        step = proc.step()
        assert step.kind == StepKind.Draw
        assert list(step.pixels) == []
        assert proc.v[0xF] == 0
        assert not proc.halted
        proc.step()
        assert proc.v[0] == 1

    def test_sprite_ending_at_end_of_memory(self, make_processor) -> None:
        proc = make_processor([0xD012])
        proc.i = MEMORY_SIZE - 2
        assert proc.step().kind == StepKind.Draw
        assert not proc.halted


# =============================================================================
# Display
# =============================================================================

class TestDisplay:

    def test_cls_returns_empty_draw(self, make_processor) -> None:
        proc = make_processor([0x00E0])
        step = proc.step()
        assert step.kind == StepKind.Draw
        assert list(step.pixels) == []

    def test_draw_font_glyph_twice(self, make_processor) -> None:
        # V0 = 0, V1 = 0, I = glyph 0, draw twice.
        proc = make_processor([0xF029, 0xD015, 0xD015])
        proc.step()
        step = proc.step()
        assert step.kind == StepKind.Draw
        pixels = list(step.pixels)
        assert Pixel(0, 0) in pixels and len(pixels) == 14
        assert proc.v[0xF] == 0
        step = proc.step()
        assert list(step.pixels) == []
        assert proc.v[0xF] == 1

    def test_rejected_draw_leaves_vf(self, make_processor) -> None:
        proc = make_processor([0x6F01, 0x6040, 0xD015])
        for _ in range(3):
            step = proc.step()
        assert step.kind == StepKind.Draw
        assert proc.v[0xF] == 1
        assert proc.frame_buffer.lit_count() == 0


# =============================================================================
# Keypad
# =============================================================================

class TestKeys:

    def test_wait_for_key_blocks_without_progress(self, make_processor) -> None:
        proc = make_processor([0xF50A, 0x6001])
        for _ in range(3):
            assert proc.step().kind == StepKind.WaitForKey
            assert proc.pc == PROGRAM_START
            assert proc.state == ProcessorState.AwaitingKey

    def test_wait_for_key_loads_lowest_pressed_key(self, make_processor) -> None:
        proc = make_processor([0xF50A, 0x6001])
        proc.step()
        proc.key_press(Key.KeyB)
        proc.key_press(Key.Key7)
        assert proc.step().kind == StepKind.Nop
        assert proc.v[5] == 7
        assert proc.pc == PROGRAM_START + 2
        assert proc.state == ProcessorState.Running

    def test_key_events_visible_only_on_next_step(self, make_processor) -> None:
        proc = make_processor([0x0000])
        proc.key_press(3)
        assert not proc.keypad.is_pressed(3)
        proc.step()
        assert proc.keypad.is_pressed(3)

    def test_release_clears_key(self, make_processor) -> None:
        proc = make_processor([0xF00A, 0xF00A])
        proc.key_press(Key.Key2)
        proc.key_release(Key.Key2)
        assert proc.step().kind == StepKind.WaitForKey

    @pytest.mark.parametrize("pressed, word, skipped", [
        (True, 0xE09E, True),
        (False, 0xE09E, False),
        (True, 0xE0A1, False),
        (False, 0xE0A1, True),
    ])
    def test_skip_on_key(self, make_processor, pressed, word, skipped) -> None:
        proc = make_processor([0x6004, word, 0x0000, 0x0000])
        if pressed:
            proc.key_press(4)
        proc.step()
        proc.step()
        assert proc.pc == PROGRAM_START + (6 if skipped else 4)

    def test_out_of_range_key_index_is_not_pressed(self, make_processor) -> None:
        proc = make_processor([0x6020, 0xE09E, 0xE0A1, 0x0000])
        proc.key_press(0)
        proc.step()
        proc.step()
        assert proc.pc == PROGRAM_START + 4
        proc.step()
        assert proc.pc == PROGRAM_START + 8

    def test_invalid_key_rejected_at_call_site(self, make_processor) -> None:
        proc = make_processor([0x0000])
        with pytest.raises(ValueError):
            proc.key_press(16)

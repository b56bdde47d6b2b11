from __future__ import annotations

import threading

import pytest

from chip8emu.chip8.keyboard import PRESS_QUEUE_LENGTH, Chip8Keyboard


def test_press_and_release_track_held_state() -> None:
    keyboard = Chip8Keyboard()
    keyboard.press(0xA)
    assert keyboard.is_key_pressed(0xA)
    assert keyboard.pressed_keys() == [0xA]
    keyboard.release(0xA)
    assert not keyboard.is_key_pressed(0xA)


def test_press_events_are_queued_once_per_transition() -> None:
    keyboard = Chip8Keyboard()
    keyboard.press(0x3)
    keyboard.press(0x3)
    keyboard.press(0x1)
    assert keyboard.next_key_press() == 0x3
    assert keyboard.next_key_press() == 0x1
    assert keyboard.next_key_press() is None

    keyboard.release(0x3)
    keyboard.press(0x3)
    assert keyboard.next_key_press() == 0x3


def test_set_keys_replaces_held_set() -> None:
    keyboard = Chip8Keyboard()
    keyboard.press(0x0)
    keyboard.set_keys([0x5, 0x6])
    assert keyboard.pressed_keys() == [0x5, 0x6]


def test_press_queue_keeps_only_newest_presses() -> None:
    keyboard = Chip8Keyboard()
    for index in range(100_000):
        key = index % 16
        keyboard.press(key)
        keyboard.release(key)
    drained = []
    key = keyboard.next_key_press()
    while key is not None:
        drained.append(key)
        key = keyboard.next_key_press()
    assert len(drained) == PRESS_QUEUE_LENGTH
    assert drained[-1] == (100_000 - 1) % 16


def test_discard_presses_keeps_held_state() -> None:
    keyboard = Chip8Keyboard()
    keyboard.press(0x4)
    keyboard.discard_presses()
    assert keyboard.next_key_press() is None
    assert keyboard.is_key_pressed(0x4)


def test_clear_drops_pending_presses() -> None:
    keyboard = Chip8Keyboard()
    keyboard.press(0x2)
    keyboard.clear()
    assert keyboard.pressed_keys() == []
    assert keyboard.next_key_press() is None


def test_invalid_key_rejected() -> None:
    keyboard = Chip8Keyboard()
    with pytest.raises(ValueError):
        keyboard.press(0x10)
    with pytest.raises(ValueError):
        keyboard.is_key_pressed(-1)


def test_wait_for_key_times_out() -> None:
    keyboard = Chip8Keyboard()
    assert keyboard.wait_for_key(timeout=0.01) is None


def test_wait_for_key_wakes_on_press_from_another_thread() -> None:
    keyboard = Chip8Keyboard()
    presser = threading.Timer(0.01, keyboard.press, args=(0xE,))
    presser.start()
    try:
        assert keyboard.wait_for_key(timeout=5.0) == 0xE
    finally:
        presser.join()

"""CHIP-8 hexadecimal keypad state."""

from __future__ import annotations

from collections import deque
import threading
from typing import Deque, Iterable, List, Optional

KEY_COUNT = 16
PRESS_QUEUE_LENGTH = 16


class Chip8Keyboard:
    """Sixteen-key keypad shared between the input thread and the CPU.

    Presses are recorded both as held state (for the skip-if-key
    instructions) and as a short queue of press events (for wait-for-key).
    Only the newest ``PRESS_QUEUE_LENGTH`` presses are kept.
    """

    def __init__(self) -> None:
        self._held: List[bool] = [False] * KEY_COUNT
        self._presses: Deque[int] = deque(maxlen=PRESS_QUEUE_LENGTH)
        self._condition = threading.Condition()

    @staticmethod
    def _check(key: int) -> None:
        if not (0 <= key < KEY_COUNT):
            raise ValueError("key must be in range 0x0-0xF")

    def press(self, key: int) -> None:
        self._check(key)
        with self._condition:
            if not self._held[key]:
                self._presses.append(key)
            self._held[key] = True
            self._condition.notify_all()

    def release(self, key: int) -> None:
        self._check(key)
        with self._condition:
            self._held[key] = False

    def set_keys(self, keys: Iterable[int]) -> None:
        held = set(keys)
        for key in range(KEY_COUNT):
            if key in held:
                self.press(key)
            else:
                self.release(key)

    def clear(self) -> None:
        with self._condition:
            self._held = [False] * KEY_COUNT
            self._presses.clear()

    def is_key_pressed(self, key: int) -> bool:
        self._check(key)
        with self._condition:
            return self._held[key]

    def pressed_keys(self) -> List[int]:
        with self._condition:
            return [key for key, held in enumerate(self._held) if held]

    def discard_presses(self) -> None:
        """Forget pending presses so only later ones are reported."""

        with self._condition:
            self._presses.clear()

    def next_key_press(self) -> Optional[int]:
        """Pop the oldest pending key press without blocking."""

        with self._condition:
            if self._presses:
                return self._presses.popleft()
            return None

    def wait_for_key(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until a key is pressed; return None if ``timeout`` expires."""

        with self._condition:
            if not self._condition.wait_for(lambda: bool(self._presses), timeout=timeout):
                return None
            return self._presses.popleft()

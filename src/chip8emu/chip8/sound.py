"""CHIP-8 buzzer with optional square-wave playback."""

from __future__ import annotations

from array import array
from collections import deque
from dataclasses import dataclass, field
import logging
from typing import Deque

logger = logging.getLogger(__name__)

HISTORY_LENGTH = 256


@dataclass
class Chip8SoundProcessor:
    """Single-tone beeper driven by the sound timer.

    The most recent ``HISTORY_LENGTH`` cues are kept in ``history``. Audio
    output only happens when ``enable_audio`` is set and the pygame mixer can
    be initialised.
    """

    history: Deque[str] = field(default_factory=lambda: deque(maxlen=HISTORY_LENGTH))
    sample_rate: int = 44100
    frequency: float = 440.0
    volume: float = 0.3
    duration: float = 1.0 / 60.0
    enable_audio: bool = False

    def __post_init__(self) -> None:
        self._audio_initialized: bool = False
        self._channel = None
        self._tone = None

    def emit(self) -> None:
        """Play one timer tick worth of tone."""

        self.history.append("emit")
        if not self.enable_audio:
            return
        if not self._ensure_mixer():
            return
        if self._channel.get_busy():
            return
        self._channel.play(self._tone)

    def stop(self) -> None:
        if self._channel is not None:
            self._channel.stop()

    # ------------------------------------------------------------------
    # Audio control helpers
    # ------------------------------------------------------------------
    def _ensure_mixer(self) -> bool:
        if self._audio_initialized:
            return True
        try:
            import pygame  # type: ignore

            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=self.sample_rate, size=-16, channels=1)
            self._channel = pygame.mixer.Channel(0)
            self._tone = pygame.mixer.Sound(buffer=self._render_tone())
            self._channel.set_volume(self.volume)
            self._audio_initialized = True
        except Exception as exc:
            logger.warning("audio disabled: %s", exc)
            self.enable_audio = False
            self._channel = None
            self._tone = None
            self._audio_initialized = False
        return self._audio_initialized

    def _render_tone(self) -> array:
        samples = max(1, int(self.sample_rate * self.duration))
        half_period = max(1, int(self.sample_rate / (2.0 * self.frequency)))
        amplitude = 32767
        buffer = array("h", [0] * samples)
        for index in range(samples):
            buffer[index] = amplitude if (index // half_period) % 2 == 0 else -amplitude
        return buffer


__all__ = ["Chip8SoundProcessor", "HISTORY_LENGTH"]
